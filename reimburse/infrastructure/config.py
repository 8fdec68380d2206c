"""
Runtime configuration read from the environment.

Entry points call load_dotenv() and then Settings.from_env() once in their
composition root; the resulting frozen dataclasses are passed to adapter and
service constructors. Nothing else in the package reads os.environ.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from reimburse.application.services.document_publisher import PublishSettings
from reimburse.application.services.receipt_fetcher import FetchSettings


@dataclass(frozen=True)
class SupabaseSettings:
    url: str
    anon_key: str
    service_role_key: str
    jwt_secret: Optional[str] = None
    receipts_bucket: str = "receipts"
    timeout_seconds: float = 10.0

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.url.rstrip('/')}/storage/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.url.rstrip('/')}/auth/v1"


@dataclass(frozen=True)
class DownloadSettings:
    timeout_seconds: float = 10.0
    max_image_bytes: int = 10 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    supabase: SupabaseSettings
    pdf_bucket: str = "reimburse-pdfs"
    aws_region: str = "us-east-1"
    fetch: FetchSettings = field(default_factory=FetchSettings)
    download: DownloadSettings = field(default_factory=DownloadSettings)
    publish: PublishSettings = field(default_factory=PublishSettings)
    max_receipts_per_expense: Optional[int] = 20
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from *env* (defaults to os.environ).

        Raises:
            KeyError:   if a required Supabase variable is missing.
            ValueError: if a numeric variable cannot be parsed.
        """
        env = os.environ if env is None else env
        per_expense = env.get("MAX_RECEIPTS_PER_EXPENSE", "20")
        return cls(
            supabase=SupabaseSettings(
                url=env["SUPABASE_URL"],
                anon_key=env["SUPABASE_ANON_KEY"],
                service_role_key=env["SUPABASE_SERVICE_ROLE_KEY"],
                jwt_secret=env.get("SUPABASE_JWT_SECRET") or None,
                receipts_bucket=env.get("RECEIPTS_BUCKET", "receipts"),
            ),
            pdf_bucket=env.get("PDF_BUCKET_NAME", "reimburse-pdfs"),
            aws_region=env.get("AWS_REGION", env.get("AWS_DEFAULT_REGION", "us-east-1")),
            fetch=FetchSettings(
                max_receipts=int(env.get("MAX_RECEIPTS", "150")),
                concurrency=int(env.get("FETCH_CONCURRENCY", "8")),
                deadline_seconds=float(env.get("FETCH_DEADLINE_SECONDS", "120")),
            ),
            download=DownloadSettings(
                timeout_seconds=float(env.get("FETCH_TIMEOUT_SECONDS", "10")),
                max_image_bytes=int(env.get("MAX_IMAGE_BYTES", str(10 * 1024 * 1024))),
            ),
            publish=PublishSettings(
                filename_prefix=env.get("FILENAME_PREFIX", "expense"),
            ),
            max_receipts_per_expense=int(per_expense) if per_expense else None,
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
