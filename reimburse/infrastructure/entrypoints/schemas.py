"""
Wire schemas shared by the HTTP and Lambda entry points.

Field names are camelCase on the wire. The legacy names sent by older web
clients (selectedMonth, userName, userId, userToken) are accepted as well.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from reimburse.domain.entities.compilation import (
    CompilationFailed,
    CompilationRequest,
    CompilationResult,
    Scope,
)
from reimburse.domain.entities.expense import ExpenseHeader
from reimburse.domain.errors import ErrorKind

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NO_RECEIPTS_AVAILABLE: 400,
    ErrorKind.RESOLVE_FAILURE: 502,
    ErrorKind.PERSIST_FAILED: 500,
}


class ExpenseIn(BaseModel):
    id: str
    job_no: str = ""
    date: Optional[str] = None
    details: Optional[str] = None


class CompileRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    expenses: list[ExpenseIn]
    period_label: str = Field(validation_alias=AliasChoices("periodLabel", "selectedMonth", "period_label"))
    subject_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("subjectName", "userName", "subject_name")
    )
    subject_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("subjectId", "userId", "subject_id")
    )
    auth_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("authToken", "userToken", "auth_token")
    )

    def to_request(self, scope: Scope, bearer: Optional[str] = None) -> CompilationRequest:
        return CompilationRequest(
            expenses=tuple(
                ExpenseHeader(id=e.id, job_no=e.job_no, details=e.details or "", date=e.date)
                for e in self.expenses
            ),
            period_label=self.period_label,
            auth_token=self.auth_token or bearer or "",
            scope=scope,
            subject_name=self.subject_name,
            subject_id=self.subject_id,
        )


class CompileResponse(BaseModel):
    downloadUrl: str
    filename: str


def bearer_token(header: Optional[str]) -> Optional[str]:
    if header and header.startswith("Bearer "):
        return header.split(" ", 1)[1].strip() or None
    return None


def render_result(result: CompilationResult) -> tuple[int, dict]:
    """Map a tagged result onto an HTTP status code and JSON body."""
    if isinstance(result, CompilationFailed):
        return STATUS_BY_KIND[result.kind], {"error": result.kind.value}
    handle = result.handle
    return 200, CompileResponse(downloadUrl=handle.download_url, filename=handle.filename).model_dump()
