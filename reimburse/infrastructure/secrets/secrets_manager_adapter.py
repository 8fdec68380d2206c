"""
Infrastructure adapter: AWS Secrets Manager → ISecretStore.

The Lambda's secret (SECRETS_ARN) is a flat JSON object whose keys are the
environment variable names read by Settings.from_env(), typically:

    {"SUPABASE_SERVICE_ROLE_KEY": "...", "SUPABASE_JWT_SECRET": "...",
     "SUPABASE_ANON_KEY": "..."}

load_into_env() runs once at cold start, before Settings.from_env(). Values
are stringified, and keys already set in the function configuration win over
the secret.
"""

import json
import os
from typing import Any, MutableMapping, Optional

import boto3

from reimburse.domain.ports.secret_store_port import ISecretStore


class SecretsManagerAdapter(ISecretStore):
    """Fetches and deserializes secrets from AWS Secrets Manager."""

    def __init__(self, region: Optional[str] = None, client: Any = None) -> None:
        self._client = client or boto3.client(
            "secretsmanager",
            region_name=region or os.environ.get("AWS_DEFAULT_REGION", "us-east-1"),
        )

    def get_secret(self, secret_arn: str) -> dict:
        """Fetch and deserialize a JSON secret by ARN."""
        response = self._client.get_secret_value(SecretId=secret_arn)
        return json.loads(response["SecretString"])

    def load_into_env(
        self,
        secret_arn: str,
        environ: Optional[MutableMapping[str, str]] = None,
    ) -> None:
        """Inject all key-value pairs of a JSON secret into the environment.

        Values already present in the environment are left untouched so local
        overrides keep working.
        """
        environ = os.environ if environ is None else environ
        for key, value in self.get_secret(secret_arn).items():
            environ.setdefault(key, str(value))
