"""
Infrastructure adapter: fpdf2 → IDocumentRenderer.

Draws each placed element at its exact position; no layout decisions are made
here. fpdf2 is not safe to drive from several tasks at once, so rendering
happens once, after composition, on the calling task.
"""

import io
import logging

from fpdf import FPDF

from reimburse.domain.entities.document import CompiledDocument, ImageBlock, TextBlock
from reimburse.domain.ports.document_renderer_port import IDocumentRenderer

logger = logging.getLogger(__name__)


def _latin1(text: str) -> str:
    """Encode to latin-1, replacing unsupported chars; fpdf built-in fonts are latin-1 only."""
    return text.encode("latin-1", errors="replace").decode("latin-1")


class FpdfDocumentRenderer(IDocumentRenderer):
    content_type = "application/pdf"
    extension = "pdf"

    def __init__(self, font_family: str = "Helvetica") -> None:
        self._font_family = font_family

    def render(self, document: CompiledDocument) -> bytes:
        pdf = FPDF(unit="mm", format=(document.page_width, document.page_height))
        pdf.set_auto_page_break(False)
        pdf.set_margins(0, 0, 0)
        for page in document.pages:
            pdf.add_page()
            for element in page.elements:
                if isinstance(element, TextBlock):
                    self._draw_text(pdf, element)
                elif isinstance(element, ImageBlock):
                    self._draw_image(pdf, element)
        return bytes(pdf.output())

    def _draw_text(self, pdf: FPDF, block: TextBlock) -> None:
        pdf.set_font(self._font_family, "B" if block.bold else "", block.font_size)
        pdf.set_xy(block.x, block.y)
        text = _latin1(block.text)
        if pdf.get_string_width(text) > block.width:
            while len(text) > 1 and pdf.get_string_width(text + "...") > block.width:
                text = text[:-1]
            text += "..."
        pdf.cell(block.width, block.height, text, align=block.align)

    def _draw_image(self, pdf: FPDF, block: ImageBlock) -> None:
        pdf.image(
            io.BytesIO(block.data),
            x=block.x,
            y=block.y,
            w=block.width,
            h=block.height,
        )
