"""
AWS Lambda entry point for API Gateway / Function URL events.

The service-role key may be kept in Secrets Manager: when SECRETS_ARN is set,
its JSON payload is loaded into the environment at cold start, before the
Composition Root reads Settings.from_env().

Routing follows the request path: any path containing "/admin" is treated as
an administrative export, everything else as a self-service export.
"""

import asyncio
import base64
import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from reimburse.application.use_cases.compile_receipts import CompileReceiptsUseCase
from reimburse.domain.entities.compilation import Scope
from reimburse.infrastructure.config import Settings
from reimburse.infrastructure.entrypoints.composition import build_use_case, configure_logging
from reimburse.infrastructure.entrypoints.schemas import (
    CompileRequestBody,
    bearer_token,
    render_result,
)
from reimburse.infrastructure.secrets.secrets_manager_adapter import SecretsManagerAdapter

logger = logging.getLogger(__name__)

_use_case: Optional[CompileReceiptsUseCase] = None


def _bootstrap() -> CompileReceiptsUseCase:
    global _use_case
    if _use_case is None:
        secret_arn = os.environ.get("SECRETS_ARN")
        if secret_arn:
            SecretsManagerAdapter().load_into_env(secret_arn)
        settings = Settings.from_env()
        configure_logging(settings)
        _use_case = build_use_case(settings)
    return _use_case


def _response(status: int, payload: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def _path(event: dict) -> str:
    return event.get("rawPath") or event.get("path") or ""


def _authorization(event: dict) -> Optional[str]:
    headers = event.get("headers") or {}
    return next((v for k, v in headers.items() if k.lower() == "authorization"), None)


def handle(event: dict, use_case: CompileReceiptsUseCase) -> dict:
    """Process one API Gateway event with an already wired use case."""
    raw_body = event.get("body")
    if not raw_body:
        return _response(400, {"error": "Missing request body"})
    if event.get("isBase64Encoded"):
        raw_body = base64.b64decode(raw_body)
    try:
        body = CompileRequestBody.model_validate_json(raw_body)
    except ValidationError as exc:
        logger.info("Rejected malformed request: %s", exc.errors())
        return _response(400, {"error": "Invalid request body"})
    if not body.expenses:
        return _response(400, {"error": "No expenses provided"})

    scope = Scope.ADMINISTRATIVE if "/admin" in _path(event) else Scope.SELF

    request = body.to_request(scope, bearer=bearer_token(_authorization(event)))
    status, payload = render_result(asyncio.run(use_case.execute(request)))
    return _response(status, payload)


def handler(event: dict, context=None) -> dict:
    """Lambda entrypoint."""
    return handle(event, _bootstrap())
