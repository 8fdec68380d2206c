"""
Domain entities for the composed receipt document.
Every element carries an explicit position and size in millimetres, measured
from the top-left corner of its page. Rendering to bytes happens in an
IDocumentRenderer adapter.
"""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class TextBlock:
    text: str
    x: float
    y: float
    width: float
    height: float
    font_size: float = 12
    bold: bool = False
    align: str = "L"

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class ImageBlock:
    receipt_id: str
    data: bytes
    content_type: str
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height


PlacedElement = Union[TextBlock, ImageBlock]


@dataclass
class Page:
    elements: list[PlacedElement] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.elements


@dataclass
class CompiledDocument:
    page_width: float
    page_height: float
    pages: list[Page] = field(default_factory=list)

    def image_blocks(self) -> list[ImageBlock]:
        """All placed images in document order."""
        return [
            element
            for page in self.pages
            for element in page.elements
            if isinstance(element, ImageBlock)
        ]
