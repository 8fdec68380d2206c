"""
FastAPI entry point: HTTP front for the receipt compilation use case.

create_app() takes an already wired use case so tests can inject fakes;
create_app_from_env() is the Composition Root for real deployments.

Run locally:
    uvicorn reimburse.infrastructure.entrypoints.fastapi_app:create_app_from_env --factory --reload --port 8000
"""

from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse

from reimburse.application.use_cases.compile_receipts import CompileReceiptsUseCase
from reimburse.domain.entities.compilation import Scope
from reimburse.infrastructure.config import Settings
from reimburse.infrastructure.entrypoints.composition import build_use_case, configure_logging
from reimburse.infrastructure.entrypoints.schemas import (
    CompileRequestBody,
    bearer_token,
    render_result,
)


def create_app(use_case: CompileReceiptsUseCase) -> FastAPI:
    app = FastAPI(title="Reimburse Receipt Compiler")

    async def _compile(body: CompileRequestBody, scope: Scope, authorization: Optional[str]) -> JSONResponse:
        request = body.to_request(scope, bearer=bearer_token(authorization))
        status, payload = render_result(await use_case.execute(request))
        return JSONResponse(status_code=status, content=payload)

    @app.post("/receipts/compile")
    async def compile_own_receipts(
        body: CompileRequestBody,
        authorization: Optional[str] = Header(default=None),
    ):
        """Compile the caller's own receipts; row-level security applies."""
        return await _compile(body, Scope.SELF, authorization)

    @app.post("/admin/receipts/compile")
    async def compile_user_receipts(
        body: CompileRequestBody,
        authorization: Optional[str] = Header(default=None),
    ):
        """Compile another user's receipts; the caller must be an administrator."""
        return await _compile(body, Scope.ADMINISTRATIVE, authorization)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


def create_app_from_env() -> FastAPI:
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings)
    return create_app(build_use_case(settings))
