import pytest

from reimburse.infrastructure.auth.jwt_verifier import SupabaseJwtVerifier
from reimburse.infrastructure.auth.supabase_auth_verifier import SupabaseAuthVerifier
from reimburse.infrastructure.config import Settings
from reimburse.infrastructure.entrypoints.composition import build_verifier

REQUIRED = {
    "SUPABASE_URL": "https://project.supabase.co/",
    "SUPABASE_ANON_KEY": "anon",
    "SUPABASE_SERVICE_ROLE_KEY": "service",
}


def test_defaults():
    settings = Settings.from_env(REQUIRED)

    assert settings.supabase.rest_url == "https://project.supabase.co/rest/v1"
    assert settings.supabase.receipts_bucket == "receipts"
    assert settings.pdf_bucket == "reimburse-pdfs"
    assert settings.fetch.max_receipts == 150
    assert settings.fetch.concurrency == 8
    assert settings.download.max_image_bytes == 10 * 1024 * 1024
    assert settings.download.timeout_seconds == 10.0
    assert settings.max_receipts_per_expense == 20
    assert settings.publish.url_ttl_seconds == 3600


def test_overrides():
    settings = Settings.from_env({
        **REQUIRED,
        "PDF_BUCKET_NAME": "exports",
        "FETCH_CONCURRENCY": "4",
        "FETCH_TIMEOUT_SECONDS": "8",
        "MAX_RECEIPTS": "40",
        "MAX_RECEIPTS_PER_EXPENSE": "",
        "FILENAME_PREFIX": "amplitude",
    })

    assert settings.pdf_bucket == "exports"
    assert settings.fetch.concurrency == 4
    assert settings.fetch.max_receipts == 40
    assert settings.download.timeout_seconds == 8.0
    assert settings.max_receipts_per_expense is None
    assert settings.publish.filename_prefix == "amplitude"


def test_missing_supabase_url_fails_fast():
    env = dict(REQUIRED)
    del env["SUPABASE_URL"]

    with pytest.raises(KeyError):
        Settings.from_env(env)


def test_verifier_choice_follows_jwt_secret():
    assert isinstance(build_verifier(Settings.from_env(REQUIRED)), SupabaseAuthVerifier)
    with_secret = Settings.from_env({**REQUIRED, "SUPABASE_JWT_SECRET": "s" * 40})
    assert isinstance(build_verifier(with_secret), SupabaseJwtVerifier)
