import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from reimburse.domain.errors import DocumentStoreError
from reimburse.infrastructure.secrets.secrets_manager_adapter import SecretsManagerAdapter
from reimburse.infrastructure.storage.s3_document_store import S3DocumentStore


def _client_error(operation):
    return ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, operation)


@pytest.mark.asyncio
async def test_s3_store_puts_object_and_presigns_get():
    client = MagicMock()
    client.generate_presigned_url.return_value = "https://s3.test/receipts/x.pdf?sig=1"
    store = S3DocumentStore("reimburse-pdfs", client=client)

    await store.put_object("receipts/x.pdf", b"%PDF", "application/pdf")
    url = await store.get_retrieval_url("receipts/x.pdf", 3600)

    client.put_object.assert_called_once_with(
        Bucket="reimburse-pdfs", Key="receipts/x.pdf", Body=b"%PDF", ContentType="application/pdf",
    )
    client.generate_presigned_url.assert_called_once_with(
        "get_object", Params={"Bucket": "reimburse-pdfs", "Key": "receipts/x.pdf"}, ExpiresIn=3600,
    )
    assert url == "https://s3.test/receipts/x.pdf?sig=1"


@pytest.mark.asyncio
async def test_s3_put_failure_is_document_store_error():
    client = MagicMock()
    client.put_object.side_effect = _client_error("PutObject")

    with pytest.raises(DocumentStoreError):
        await S3DocumentStore("bucket", client=client).put_object("k", b"", "application/pdf")


@pytest.mark.asyncio
async def test_s3_presign_failure_is_document_store_error():
    client = MagicMock()
    client.generate_presigned_url.side_effect = _client_error("GetObject")

    with pytest.raises(DocumentStoreError):
        await S3DocumentStore("bucket", client=client).get_retrieval_url("k", 60)


def test_secrets_adapter_loads_json_secret_without_overriding():
    client = MagicMock()
    client.get_secret_value.return_value = {
        "SecretString": json.dumps({"SUPABASE_SERVICE_ROLE_KEY": "from-secret", "LOG_LEVEL": "DEBUG"}),
    }
    environ = {"LOG_LEVEL": "WARNING"}

    SecretsManagerAdapter(client=client).load_into_env("arn:aws:secretsmanager:x", environ)

    client.get_secret_value.assert_called_once_with(SecretId="arn:aws:secretsmanager:x")
    assert environ == {"LOG_LEVEL": "WARNING", "SUPABASE_SERVICE_ROLE_KEY": "from-secret"}
