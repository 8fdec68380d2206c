"""
Domain entities describing one compilation run: who asked, what they asked
for, and the tagged outcome handed back to the entry points.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from reimburse.domain.entities.expense import ExpenseHeader
from reimburse.domain.errors import ErrorKind


class Scope(str, Enum):
    SELF = "self"
    ADMINISTRATIVE = "administrative"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: Optional[str] = None
    is_admin: bool = False


@dataclass(frozen=True)
class CompilationRequest:
    expenses: tuple[ExpenseHeader, ...]
    period_label: str
    auth_token: str
    scope: Scope = Scope.SELF
    subject_name: Optional[str] = None
    subject_id: Optional[str] = None


@dataclass(frozen=True)
class RetrievalHandle:
    download_url: str
    filename: str


@dataclass(frozen=True)
class CompilationSucceeded:
    handle: RetrievalHandle


@dataclass(frozen=True)
class CompilationFailed:
    kind: ErrorKind
    message: str = ""


CompilationResult = Union[CompilationSucceeded, CompilationFailed]
