"""
Domain entities for expenses, their receipts, and fetched receipt images.
Zero external dependencies: pure Python dataclasses only.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ExpenseHeader:
    id: str
    job_no: str
    details: str
    date: Optional[str] = None


@dataclass(frozen=True)
class ReceiptRef:
    id: str
    path: str
    expense_id: str
    created_at: datetime


@dataclass(frozen=True)
class FetchedImage:
    """Raw bytes of one receipt image plus the pixel size measured on download.

    Lives only for the duration of a compilation run.
    """

    receipt_id: str
    data: bytes
    content_type: str
    width: int
    height: int
