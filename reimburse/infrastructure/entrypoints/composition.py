"""
Composition Root shared by the FastAPI app and the Lambda handler: wires every
infrastructure adapter into the application services from one Settings object.
"""

import logging

from reimburse.application.services.access_gate import AccessGate
from reimburse.application.services.document_composer import DocumentComposer
from reimburse.application.services.document_publisher import DocumentPublisher
from reimburse.application.services.receipt_fetcher import ConcurrentFetcher
from reimburse.application.use_cases.compile_receipts import CompileReceiptsUseCase
from reimburse.domain.ports.token_verifier_port import ITokenVerifier
from reimburse.infrastructure.auth.jwt_verifier import SupabaseJwtVerifier
from reimburse.infrastructure.auth.supabase_auth_verifier import SupabaseAuthVerifier
from reimburse.infrastructure.config import Settings
from reimburse.infrastructure.http.image_downloader import HttpxImageDownloader
from reimburse.infrastructure.rendering.fpdf_renderer import FpdfDocumentRenderer
from reimburse.infrastructure.storage.s3_document_store import S3DocumentStore
from reimburse.infrastructure.supabase.clients import SupabaseClientFactory
from reimburse.infrastructure.supabase.profile_directory import SupabaseProfileDirectory


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_verifier(settings: Settings) -> ITokenVerifier:
    if settings.supabase.jwt_secret:
        return SupabaseJwtVerifier(settings.supabase.jwt_secret)
    return SupabaseAuthVerifier(settings.supabase)


def build_use_case(settings: Settings) -> CompileReceiptsUseCase:
    gate = AccessGate(
        verifier=build_verifier(settings),
        profiles=SupabaseProfileDirectory(settings.supabase),
        clients=SupabaseClientFactory(settings.supabase),
    )
    fetcher = ConcurrentFetcher(
        downloader_factory=lambda: HttpxImageDownloader(settings.download),
        settings=settings.fetch,
    )
    publisher = DocumentPublisher(
        renderer=FpdfDocumentRenderer(),
        store=S3DocumentStore(settings.pdf_bucket, region=settings.aws_region),
        settings=settings.publish,
    )
    return CompileReceiptsUseCase(
        gate=gate,
        fetcher=fetcher,
        composer=DocumentComposer(),
        publisher=publisher,
        max_receipts_per_expense=settings.max_receipts_per_expense,
    )
