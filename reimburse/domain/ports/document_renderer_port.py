"""
Port (interface) for encoding a CompiledDocument into its final byte format.
Infrastructure adapters (e.g. FpdfDocumentRenderer) must implement this interface.
"""

from abc import ABC, abstractmethod

from reimburse.domain.entities.document import CompiledDocument


class IDocumentRenderer(ABC):
    content_type: str = "application/octet-stream"
    extension: str = "bin"

    @abstractmethod
    def render(self, document: CompiledDocument) -> bytes:
        """Encode every page of *document* and return the resulting bytes."""
        ...
