"""
Application service: lay out expense headers and receipt images into pages.

The layout is synchronous and deterministic. All distances are millimetres on
a page whose origin is the top-left corner. Pagination rules:
  - An expense header is only started when the header plus a minimum content
    reservation still fits on the page.
  - An image that does not fit moves to a new page if the current page holds
    other content. A group's first image takes its freshly placed header
    along, so a header never ends a page on its own. The title block does
    not count as other content: below it, an image is scaled down instead.
  - An image that is still too tall for a fresh page is scaled down to fit.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from reimburse.domain.entities.document import CompiledDocument, ImageBlock, Page, TextBlock
from reimburse.domain.entities.expense import ExpenseHeader, FetchedImage, ReceiptRef

logger = logging.getLogger(__name__)

TITLE = "Expense Receipts"


@dataclass(frozen=True)
class PageLayout:
    page_width: float = 210.0
    page_height: float = 297.0
    margin: float = 15.0
    top: float = 20.0
    title_height: float = 10.0
    line_height: float = 7.0
    preamble_gap: float = 8.0
    header_gap: float = 3.0
    min_content_height: float = 50.0
    image_spacing: float = 10.0
    group_spacing: float = 10.0
    max_image_height: Optional[float] = None

    def __post_init__(self) -> None:
        if self.content_width <= 0:
            raise ValueError("margins leave no horizontal room for content")
        if self.content_height < self.header_height + self.min_content_height:
            raise ValueError("page is too short for an expense header and its content")

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin

    @property
    def content_bottom(self) -> float:
        return self.page_height - self.margin

    @property
    def content_height(self) -> float:
        return self.content_bottom - self.top

    @property
    def header_height(self) -> float:
        return 3 * self.line_height + self.header_gap


class _Cursor:
    """Mutable layout state for a single compose() call."""

    def __init__(self, layout: PageLayout) -> None:
        self.layout = layout
        self.document = CompiledDocument(layout.page_width, layout.page_height)
        self.new_page()

    @property
    def page(self) -> Page:
        return self.document.pages[-1]

    @property
    def remaining(self) -> float:
        return self.layout.content_bottom - self.y

    def new_page(self) -> None:
        self.document.pages.append(Page())
        self.y = self.layout.top
        # Elements at the top of the page that never move with a group (the title block).
        self.pinned = 0

    def text(self, text: str, height: float, font_size: float, bold: bool = False, align: str = "L") -> None:
        self.page.elements.append(TextBlock(
            text=text,
            x=self.layout.margin,
            y=self.y,
            width=self.layout.content_width,
            height=height,
            font_size=font_size,
            bold=bold,
            align=align,
        ))
        self.y += height


class DocumentComposer:
    def __init__(self, layout: Optional[PageLayout] = None) -> None:
        self._layout = layout or PageLayout()

    def compose(
        self,
        expenses: list[ExpenseHeader],
        grouped: dict[str, list[ReceiptRef]],
        images: dict[str, FetchedImage],
        subject_name: Optional[str] = None,
        period_label: Optional[str] = None,
    ) -> CompiledDocument:
        """Build the paginated document.

        Args:
            expenses:     Expense headers in the order they must appear.
            grouped:      Receipt groups per expense id, oldest first.
            images:       Successfully fetched images keyed by receipt id.
            subject_name: Printed as "Name: ..." under the title when given.
            period_label: Printed as "Month: ..." under the title when given.
        """
        layout = self._layout
        cursor = _Cursor(layout)

        cursor.text(TITLE, layout.title_height, 18, bold=True, align="C")
        if subject_name:
            cursor.text(f"Name: {subject_name}", layout.line_height, 12)
        if period_label:
            cursor.text(f"Month: {period_label}", layout.line_height, 12)
        cursor.y += layout.preamble_gap
        cursor.pinned = len(cursor.page.elements)

        placed: set[str] = set()
        for expense in expenses:
            pending = []
            for receipt in grouped.get(expense.id, []):
                image = images.get(receipt.id)
                if image is None or receipt.id in placed:
                    continue
                if image.width <= 0 or image.height <= 0:
                    logger.warning("Receipt %s has no usable dimensions; leaving it out", receipt.id)
                    continue
                placed.add(receipt.id)
                pending.append(image)
            if not pending:
                logger.debug("Expense %s has no fetched receipts; skipping", expense.id)
                continue

            if cursor.remaining < layout.header_height + layout.min_content_height:
                cursor.new_page()
            header_start = len(cursor.page.elements)
            self._emit_header(cursor, expense)

            for index, image in enumerate(pending):
                width, height = self._fit_width(image)
                if height > cursor.remaining:
                    if index > 0:
                        cursor.new_page()
                    elif header_start > cursor.pinned:
                        del cursor.page.elements[header_start:]
                        cursor.new_page()
                        self._emit_header(cursor, expense)
                    if height > cursor.remaining:
                        scale = cursor.remaining / height
                        width, height = width * scale, cursor.remaining
                cursor.page.elements.append(ImageBlock(
                    receipt_id=image.receipt_id,
                    data=image.data,
                    content_type=image.content_type,
                    x=layout.margin,
                    y=cursor.y,
                    width=width,
                    height=height,
                ))
                cursor.y += height + layout.image_spacing

            cursor.y += layout.group_spacing

        document = cursor.document
        logger.info(
            "Composed %d pages with %d images",
            len(document.pages), len(document.image_blocks()),
        )
        return document

    def _emit_header(self, cursor: _Cursor, expense: ExpenseHeader) -> None:
        layout = self._layout
        cursor.text(f"Job No: {expense.job_no}", layout.line_height, 14, bold=True)
        cursor.text(f"Date: {expense.date or 'N/A'}", layout.line_height, 12)
        cursor.text(f"Details: {expense.details}", layout.line_height, 12)
        cursor.y += layout.header_gap

    def _fit_width(self, image: FetchedImage) -> tuple[float, float]:
        layout = self._layout
        width = layout.content_width
        height = image.height * width / image.width
        if layout.max_image_height is not None and height > layout.max_image_height:
            width = width * layout.max_image_height / height
            height = layout.max_image_height
        return width, height
