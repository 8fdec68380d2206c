"""
Application service: expand expense ids into per-expense receipt groups.
Depends only on Domain ports and entities; no infrastructure imports.
"""

import logging

from reimburse.domain.entities.expense import ReceiptRef
from reimburse.domain.errors import BackendError, ResolveFailure
from reimburse.domain.ports.backend_client_port import IReceiptRepository

logger = logging.getLogger(__name__)


class ReceiptResolver:
    def __init__(self, repository: IReceiptRepository) -> None:
        self._repository = repository

    async def resolve(self, expense_ids: list[str]) -> dict[str, list[ReceiptRef]]:
        """Return receipts grouped by expense id, oldest first within a group.

        Expenses without receipts are absent from the result. Duplicate ids
        are looked up once.

        Raises:
            ResolveFailure: if the receipt lookup itself failed.
        """
        unique_ids = list(dict.fromkeys(expense_ids))
        if not unique_ids:
            return {}
        try:
            receipts = await self._repository.receipts_for(unique_ids)
        except BackendError as exc:
            raise ResolveFailure(f"receipt lookup failed: {exc}") from exc

        wanted = set(unique_ids)
        grouped: dict[str, list[ReceiptRef]] = {}
        seen: set[str] = set()
        for receipt in receipts:
            if receipt.expense_id not in wanted or receipt.id in seen:
                continue
            seen.add(receipt.id)
            grouped.setdefault(receipt.expense_id, []).append(receipt)
        for group in grouped.values():
            group.sort(key=lambda r: r.created_at)

        logger.info(
            "Resolved %d receipts across %d of %d expenses",
            len(seen), len(grouped), len(unique_ids),
        )
        return grouped
