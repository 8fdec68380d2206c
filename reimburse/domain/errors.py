"""
Error taxonomy for the receipt compilation pipeline.

Request-level failures derive from CompilationError and carry an ErrorKind
that the entry points turn into a response. Collaborator errors are raised by
infrastructure adapters at the port boundary and translated by the
application services.
"""

from enum import Enum


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "Unauthenticated"
    FORBIDDEN = "Forbidden"
    RESOLVE_FAILURE = "ResolveFailure"
    NO_RECEIPTS_AVAILABLE = "NoReceiptsAvailable"
    PERSIST_FAILED = "PersistFailed"


class CompilationError(Exception):
    kind: ErrorKind

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message


class Unauthenticated(CompilationError):
    kind = ErrorKind.UNAUTHENTICATED


class Forbidden(CompilationError):
    kind = ErrorKind.FORBIDDEN


class ResolveFailure(CompilationError):
    kind = ErrorKind.RESOLVE_FAILURE


class NoReceiptsAvailable(CompilationError):
    kind = ErrorKind.NO_RECEIPTS_AVAILABLE


class PersistFailed(CompilationError):
    kind = ErrorKind.PERSIST_FAILED


class BackendError(Exception):
    """The datastore or the image store could not serve a request."""


class ImageDownloadError(Exception):
    """A single receipt image could not be downloaded or decoded."""


class DocumentStoreError(Exception):
    """The finished document could not be written or signed."""
