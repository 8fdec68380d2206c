"""
Infrastructure adapter: AWS S3 → IDocumentStore.

boto3 is synchronous, so each call is pushed onto a worker thread to keep the
event loop free. Presigned URLs are computed locally by botocore.
"""

import asyncio
import os
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from reimburse.domain.errors import DocumentStoreError
from reimburse.domain.ports.document_store_port import IDocumentStore


class S3DocumentStore(IDocumentStore):
    """Writes finished documents to one bucket and presigns GETs for them."""

    def __init__(self, bucket: str, region: Optional[str] = None, client: Any = None) -> None:
        self._bucket = bucket
        self._client = client or boto3.client(
            "s3",
            region_name=region or os.environ.get("AWS_DEFAULT_REGION", "us-east-1"),
        )

    async def put_object(self, key: str, data: bytes, content_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise DocumentStoreError(f"upload of s3://{self._bucket}/{key} failed: {exc}") from exc

    async def get_retrieval_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            raise DocumentStoreError(f"could not presign s3://{self._bucket}/{key}: {exc}") from exc
