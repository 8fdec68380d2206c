import httpx
import pytest

from fakes import (
    FakeClientFactory,
    FakeDocumentStore,
    FakeDownloader,
    FakeProfiles,
    FakeRenderer,
    FakeVerifier,
    expense,
    png_bytes,
    receipt,
    truncated_png_bytes,
)
from reimburse.application.services.access_gate import AccessGate
from reimburse.application.services.document_composer import DocumentComposer
from reimburse.application.services.document_publisher import DocumentPublisher
from reimburse.application.services.receipt_fetcher import ConcurrentFetcher
from reimburse.application.use_cases.compile_receipts import CompileReceiptsUseCase
from reimburse.domain.entities.compilation import (
    CompilationFailed,
    CompilationRequest,
    CompilationSucceeded,
    Identity,
    Scope,
)
from reimburse.domain.errors import ErrorKind
from reimburse.infrastructure.config import DownloadSettings
from reimburse.infrastructure.http.image_downloader import HttpxImageDownloader
from reimburse.infrastructure.rendering.fpdf_renderer import FpdfDocumentRenderer


class Pipeline:
    def __init__(self, receipts, downloader=None, store=None, admins=(), fail_lookup=False, per_expense=20,
                 renderer=None):
        self.verifier = FakeVerifier({
            "user-token": Identity(user_id="user-1"),
            "admin-token": Identity(user_id="admin-1"),
        })
        self.profiles = FakeProfiles(admins=admins)
        self.clients = FakeClientFactory(receipts, fail_lookup=fail_lookup)
        self.downloader = downloader or FakeDownloader()
        self.store = store or FakeDocumentStore()
        self.renderer = renderer or FakeRenderer()
        self.use_case = CompileReceiptsUseCase(
            gate=AccessGate(self.verifier, self.profiles, self.clients),
            fetcher=ConcurrentFetcher(lambda: self.downloader),
            composer=DocumentComposer(),
            publisher=DocumentPublisher(self.renderer, self.store, clock=lambda: 1_700_000_000),
            max_receipts_per_expense=per_expense,
        )

    async def run(self, expenses, token="user-token", scope=Scope.SELF, subject_id=None):
        return await self.use_case.execute(CompilationRequest(
            expenses=tuple(expenses),
            period_label="March 2024",
            auth_token=token,
            scope=scope,
            subject_name="Jane Doe",
            subject_id=subject_id,
        ))

    @property
    def document(self):
        (document,) = self.renderer.rendered
        return document


@pytest.mark.asyncio
async def test_successful_run_returns_handle_and_stores_one_document():
    pipeline = Pipeline([receipt("r1", "e1", 1), receipt("r2", "e1", 2), receipt("r3", "e2")])

    result = await pipeline.run([expense("e1", job_no="J-1"), expense("e2", job_no="J-2")])

    assert isinstance(result, CompilationSucceeded)
    assert result.handle.filename == "expense-Jane-Doe-receipts-March-2024.pdf"
    assert list(pipeline.store.objects) == ["receipts/1700000000000-March-2024.pdf"]
    assert [b.receipt_id for b in pipeline.document.image_blocks()] == ["r1", "r2", "r3"]
    assert [c.kind for c in pipeline.clients.issued] == ["restricted"]
    assert pipeline.clients.issued[0].closed is True


@pytest.mark.asyncio
async def test_invalid_token_is_reported_without_side_effects():
    pipeline = Pipeline([receipt("r1", "e1")])

    result = await pipeline.run([expense("e1")], token="stale")

    assert result == CompilationFailed(ErrorKind.UNAUTHENTICATED, "invalid token")
    assert pipeline.clients.issued == []
    assert pipeline.downloader.requested == []
    assert pipeline.store.objects == {}


@pytest.mark.asyncio
async def test_non_admin_cross_user_export_is_forbidden_before_any_side_effect():
    pipeline = Pipeline([receipt("r1", "e1")], admins=("admin-1",))

    result = await pipeline.run([expense("e1")], scope=Scope.ADMINISTRATIVE, subject_id="user-2")

    assert isinstance(result, CompilationFailed)
    assert result.kind is ErrorKind.FORBIDDEN
    assert pipeline.clients.issued == []
    assert pipeline.downloader.requested == []
    assert pipeline.store.objects == {}


@pytest.mark.asyncio
async def test_admin_export_uses_privileged_client_and_admin_key():
    pipeline = Pipeline([receipt("r1", "e1")], admins=("admin-1",))

    result = await pipeline.run([expense("e1")], token="admin-token", scope=Scope.ADMINISTRATIVE, subject_id="user-2")

    assert isinstance(result, CompilationSucceeded)
    assert [c.kind for c in pipeline.clients.issued] == ["privileged"]
    assert list(pipeline.store.objects) == ["receipts/admin-1700000000000-March-2024.pdf"]


@pytest.mark.asyncio
async def test_zero_successful_fetches_reports_no_receipts_and_writes_nothing():
    downloader = FakeDownloader(failures=("r1.jpg", "r2.jpg"))
    pipeline = Pipeline([receipt("r1", "e1"), receipt("r2", "e2")], downloader=downloader)

    result = await pipeline.run([expense("e1"), expense("e2")])

    assert isinstance(result, CompilationFailed)
    assert result.kind is ErrorKind.NO_RECEIPTS_AVAILABLE
    assert pipeline.store.objects == {}
    assert pipeline.clients.issued[0].closed is True


@pytest.mark.asyncio
async def test_expenses_without_any_receipt_rows_report_no_receipts_without_fetching():
    pipeline = Pipeline([])

    result = await pipeline.run([expense("e1")])

    assert result.kind is ErrorKind.NO_RECEIPTS_AVAILABLE
    assert pipeline.downloader.requested == []


@pytest.mark.asyncio
async def test_empty_expense_list_reports_no_receipts():
    pipeline = Pipeline([receipt("r1", "e1")])

    result = await pipeline.run([])

    assert result.kind is ErrorKind.NO_RECEIPTS_AVAILABLE
    assert pipeline.clients.issued[0].lookups == []


@pytest.mark.asyncio
async def test_datastore_outage_is_resolve_failure():
    pipeline = Pipeline([receipt("r1", "e1")], fail_lookup=True)

    result = await pipeline.run([expense("e1")])

    assert result.kind is ErrorKind.RESOLVE_FAILURE
    assert pipeline.store.objects == {}


@pytest.mark.asyncio
async def test_storage_failure_is_persist_failed():
    pipeline = Pipeline([receipt("r1", "e1")], store=FakeDocumentStore(fail_put=True))

    result = await pipeline.run([expense("e1")])

    assert result.kind is ErrorKind.PERSIST_FAILED


@pytest.mark.asyncio
async def test_expense_with_only_failed_fetches_leaves_no_trace():
    downloader = FakeDownloader(failures=("b1.jpg",))
    pipeline = Pipeline([receipt("a1", "A", 1), receipt("a2", "A", 2), receipt("b1", "B")], downloader=downloader)

    result = await pipeline.run([expense("A", job_no="A-1"), expense("B", job_no="B-1")])

    assert isinstance(result, CompilationSucceeded)
    texts = [e.text for page in pipeline.document.pages for e in page.elements if hasattr(e, "text")]
    assert "Job No: A-1" in texts
    assert "Job No: B-1" not in texts
    assert [b.receipt_id for b in pipeline.document.image_blocks()] == ["a1", "a2"]


@pytest.mark.asyncio
async def test_per_expense_cap_keeps_the_oldest_receipts():
    pipeline = Pipeline([receipt(f"r{i}", "e1", i) for i in range(5)], per_expense=2)

    await pipeline.run([expense("e1")])

    assert [b.receipt_id for b in pipeline.document.image_blocks()] == ["r0", "r1"]


@pytest.mark.asyncio
async def test_one_oversized_image_among_nine_normal_ones_is_left_out():
    small = png_bytes(60, 40)
    large = png_bytes(60, 40) + b"\0" * 4096

    def serve(request: httpx.Request) -> httpx.Response:
        body = large if request.url.path.endswith("r4.jpg") else small
        return httpx.Response(200, content=body, headers={"content-type": "image/png"})

    downloader = HttpxImageDownloader(
        DownloadSettings(max_image_bytes=2048),
        transport=httpx.MockTransport(serve),
    )
    pipeline = Pipeline([receipt(f"r{i}", "e1", i) for i in range(10)], downloader=downloader)

    result = await pipeline.run([expense("e1")])

    assert isinstance(result, CompilationSucceeded)
    placed = [b.receipt_id for b in pipeline.document.image_blocks()]
    assert len(placed) == 9
    assert "r4" not in placed


@pytest.mark.asyncio
async def test_corrupt_receipt_is_left_out_and_the_rest_still_renders():
    good = png_bytes(60, 40)
    bad = truncated_png_bytes()

    def serve(request: httpx.Request) -> httpx.Response:
        body = bad if request.url.path.endswith("bad.jpg") else good
        return httpx.Response(200, content=body, headers={"content-type": "image/png"})

    downloader = HttpxImageDownloader(transport=httpx.MockTransport(serve))
    pipeline = Pipeline(
        [receipt("ok", "e1", 1), receipt("bad", "e1", 2), receipt("ok2", "e1", 3)],
        downloader=downloader,
        renderer=FpdfDocumentRenderer(),
    )

    result = await pipeline.run([expense("e1")])

    assert isinstance(result, CompilationSucceeded)
    ((data, content_type),) = pipeline.store.objects.values()
    assert data.startswith(b"%PDF-")
    assert content_type == "application/pdf"
