"""
Use-case: compile a user's receipts for a period into a downloadable document.
Depends only on Domain ports and application services; no infrastructure imports.

Stages run strictly in sequence: authorize, resolve, fetch, compose, persist.
Only the fetch stage fans out.
"""

import logging
from typing import Optional

from reimburse.application.services.access_gate import AccessGate
from reimburse.application.services.document_composer import DocumentComposer
from reimburse.application.services.document_publisher import DocumentPublisher
from reimburse.application.services.receipt_fetcher import ConcurrentFetcher
from reimburse.application.services.receipt_resolver import ReceiptResolver
from reimburse.domain.entities.compilation import (
    CompilationFailed,
    CompilationRequest,
    CompilationResult,
    CompilationSucceeded,
)
from reimburse.domain.entities.expense import ReceiptRef
from reimburse.domain.errors import CompilationError, NoReceiptsAvailable

logger = logging.getLogger(__name__)


class CompileReceiptsUseCase:
    def __init__(
        self,
        gate: AccessGate,
        fetcher: ConcurrentFetcher,
        composer: DocumentComposer,
        publisher: DocumentPublisher,
        max_receipts_per_expense: Optional[int] = 20,
    ) -> None:
        """
        Args:
            gate:                     Authorizes the caller and supplies the scoped backend client.
            fetcher:                  Downloads receipt images under bounded concurrency.
            composer:                 Lays out headers and images into pages.
            publisher:                Renders, stores and signs the finished document.
            max_receipts_per_expense: Receipts beyond this many per expense are left out
                                      (None disables the cap).
        """
        self._gate = gate
        self._fetcher = fetcher
        self._composer = composer
        self._publisher = publisher
        self._max_per_expense = max_receipts_per_expense

    async def execute(self, request: CompilationRequest) -> CompilationResult:
        """Run the pipeline and return a tagged result; never raises CompilationError."""
        try:
            handle = await self._run(request)
        except CompilationError as exc:
            logger.warning("Receipt compilation failed: %s (%s)", exc.kind.value, exc.message)
            return CompilationFailed(kind=exc.kind, message=exc.message)
        return CompilationSucceeded(handle)

    async def _run(self, request: CompilationRequest):
        grant = await self._gate.authorize(request.auth_token, request.scope)
        logger.info(
            "Compiling %d expenses for %s (scope=%s, subject=%s)",
            len(request.expenses), grant.identity.user_id, grant.scope.value, request.subject_id,
        )
        try:
            expenses = list(request.expenses)
            if not expenses:
                raise NoReceiptsAvailable("no expenses provided")

            grouped = await ReceiptResolver(grant.client).resolve([e.id for e in expenses])
            selected = self._select(expenses, grouped)
            if not selected:
                raise NoReceiptsAvailable("no receipts found for the selected expenses")

            images = await self._fetcher.fetch_all(selected, grant.client)
            if not images:
                raise NoReceiptsAvailable(f"none of {len(selected)} receipts could be fetched")
        finally:
            await grant.client.aclose()

        document = self._composer.compose(
            expenses,
            grouped,
            images,
            subject_name=request.subject_name,
            period_label=request.period_label,
        )
        return await self._publisher.persist(
            document,
            request.period_label,
            subject_name=request.subject_name,
            scope=grant.scope,
        )

    def _select(self, expenses, grouped: dict[str, list[ReceiptRef]]) -> list[ReceiptRef]:
        """Flatten receipt groups in document order, applying the per-expense cap."""
        selected: list[ReceiptRef] = []
        seen: set[str] = set()
        for expense in expenses:
            if expense.id in seen:
                continue
            seen.add(expense.id)
            group = grouped.get(expense.id, [])
            if self._max_per_expense is not None and len(group) > self._max_per_expense:
                logger.warning(
                    "Expense %s has %d receipts; keeping the first %d",
                    expense.id, len(group), self._max_per_expense,
                )
                group = group[: self._max_per_expense]
            selected.extend(group)
        return selected
