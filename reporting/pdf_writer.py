"""
PDF Writer - draws a CompositionResult onto A4 pages with ReportLab.

Layout decisions are already made by the compositor and the gallery; this
module only converts top-down mm coordinates into ReportLab's bottom-up
points and draws:

- block placements (a split block is drawn through a clip path so each page
  shows exactly its slice of the bitmap)
- placeholder tiles for blocks that failed to render or whose bitmap
  cannot be decoded
- gallery tiles, captions, header and footer text
- a quiet page frame (wordmark and page number)
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import BinaryIO, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from utils.arabic import FALLBACK_FONT_NAME, contains_arabic, register_arabic_font, shape_arabic

from .compositor import placeholder_caption
from .gallery import IMAGE_LOAD_ERROR
from .schemas import CompositionResult, GalleryCell, GalleryText, Placement

logger = logging.getLogger(__name__)


class Palette:
    """Colours used for elements drawn directly on the canvas."""
    GRAY = colors.Color(0.5, 0.5, 0.5)
    BORDER = colors.Color(0.89, 0.91, 0.94)
    PLACEHOLDER_FILL = colors.Color(0.95, 0.96, 0.97)
    PLACEHOLDER_TEXT = colors.Color(0.39, 0.45, 0.55)
    BADGE = colors.Color(0.96, 0.62, 0.04)
    RULE = colors.Color(0.23, 0.51, 0.96)
    WHITE = colors.white


class PdfDocumentWriter:
    """
    Writes composed pages to a PDF stream.

    Usage:
        writer = PdfDocumentWriter(font_path=config.arabic_font_path)
        writer.write(result, buffer, title="Property Appraisal Report")
    """

    PAGE_WIDTH, PAGE_HEIGHT = A4
    WORDMARK = "OpenBeit"

    def __init__(self, font_path: Optional[str] = None, author: str = "OpenBeit"):
        self.font_path = font_path
        self.author = author
        self._arabic_font = FALLBACK_FONT_NAME

    def write(self, result: CompositionResult, stream: BinaryIO, title: str = "") -> int:
        """Draw every page of the composition. Returns the page count."""
        self._arabic_font = register_arabic_font(self.font_path)

        pdf = canvas.Canvas(stream, pagesize=A4)
        pdf.setTitle(title)
        pdf.setAuthor(self.author)
        pdf.setSubject("Property Appraisal Report")

        page_count = max(result.page_count, 1)
        for page_index in range(page_count):
            for placement in result.placements:
                if placement.page_index == page_index:
                    self._draw_placement(pdf, placement, result.degraded_blocks)
            for page, x1, x2, y in result.gallery_rules:
                if page == page_index:
                    self._draw_rule(pdf, x1, x2, y)
            for cell in result.gallery_cells:
                if cell.page_index == page_index:
                    self._draw_cell(pdf, cell)
            for text in result.gallery_texts:
                if text.page_index == page_index:
                    self._draw_text(pdf, text)
            self._draw_page_frame(pdf, page_index + 1, page_count)
            pdf.showPage()

        pdf.save()
        logger.info("PDF written: %d pages", page_count)
        return page_count

    def to_bytes(self, result: CompositionResult, title: str = "") -> bytes:
        buffer = BytesIO()
        self.write(result, buffer, title=title)
        return buffer.getvalue()

    # =========================================================================
    # Coordinates
    # =========================================================================

    def _bottom(self, top_mm: float, height_mm: float) -> float:
        """ReportLab y (points, from the bottom) of a box's lower edge."""
        return self.PAGE_HEIGHT - (top_mm + height_mm) * mm

    # =========================================================================
    # Placements
    # =========================================================================

    def _draw_placement(self, pdf: canvas.Canvas, placement: Placement, degraded: list[str]) -> None:
        bitmap = placement.bitmap
        if bitmap.is_placeholder:
            self._draw_placeholder_box(
                pdf, placement.x, placement.y, placement.width, placement.height, bitmap.placeholder_caption
            )
            return

        full_height = bitmap.mm_height(placement.width)
        mm_per_px = full_height / bitmap.pixel_height if bitmap.pixel_height else 0
        image_top = placement.y - placement.source_top_px * mm_per_px

        try:
            image = ImageReader(BytesIO(bitmap.image_data))
            image.getSize()
        except Exception as e:
            logger.warning("Could not decode bitmap for section %s: %s", placement.block_name, e)
            if placement.block_name not in degraded:
                degraded.append(placement.block_name)
            self._draw_placeholder_box(
                pdf,
                placement.x,
                placement.y,
                placement.width,
                placement.height,
                placeholder_caption(placement.block_name),
            )
            return

        pdf.saveState()
        clip = pdf.beginPath()
        clip.rect(
            placement.x * mm,
            self._bottom(placement.y, placement.height),
            placement.width * mm,
            placement.height * mm,
        )
        pdf.clipPath(clip, stroke=0, fill=0)
        pdf.drawImage(
            image,
            placement.x * mm,
            self._bottom(image_top, full_height),
            width=placement.width * mm,
            height=full_height * mm,
        )
        pdf.restoreState()

    def _draw_placeholder_box(
        self,
        pdf: canvas.Canvas,
        x: float,
        y: float,
        width: float,
        height: float,
        caption: Optional[str],
    ) -> None:
        pdf.saveState()
        pdf.setFillColor(Palette.PLACEHOLDER_FILL)
        pdf.setStrokeColor(Palette.BORDER)
        pdf.rect(x * mm, self._bottom(y, height), width * mm, height * mm, stroke=1, fill=1)
        if caption:
            self._set_font(pdf, caption, 10)
            pdf.setFillColor(Palette.PLACEHOLDER_TEXT)
            pdf.drawCentredString(
                (x + width / 2) * mm,
                self._bottom(y, height / 2) - 3,
                shape_arabic(caption),
            )
        pdf.restoreState()

    # =========================================================================
    # Gallery
    # =========================================================================

    def _draw_cell(self, pdf: canvas.Canvas, cell: GalleryCell) -> None:
        drawn = False
        if cell.succeeded:
            try:
                pdf.drawImage(
                    ImageReader(BytesIO(cell.data)),
                    cell.x * mm,
                    self._bottom(cell.y, cell.height),
                    width=cell.width * mm,
                    height=cell.height * mm,
                    preserveAspectRatio=True,
                    anchor="c",
                )
                drawn = True
            except Exception as e:
                logger.warning("Could not draw gallery image %s: %s", cell.image.filename, e)
                cell.error = IMAGE_LOAD_ERROR

        if not drawn:
            self._draw_placeholder_box(pdf, cell.x, cell.y, cell.width, cell.height, cell.error)

        pdf.saveState()
        pdf.setStrokeColor(Palette.BORDER)
        pdf.setLineWidth(0.5)
        pdf.rect(cell.x * mm, self._bottom(cell.y, cell.height), cell.width * mm, cell.height * mm, stroke=1, fill=0)
        pdf.restoreState()

        if drawn and cell.image.is_primary:
            self._draw_primary_badge(pdf, cell)

        pdf.saveState()
        self._set_font(pdf, cell.caption, 8)
        pdf.setFillColor(Palette.PLACEHOLDER_TEXT)
        pdf.drawCentredString(
            (cell.x + cell.width / 2) * mm,
            self._bottom(cell.y + cell.height + 5, 0),
            shape_arabic(cell.caption),
        )
        pdf.restoreState()

    def _draw_primary_badge(self, pdf: canvas.Canvas, cell: GalleryCell) -> None:
        badge_width, badge_height = 18, 6
        x = cell.x + cell.width - badge_width - 2
        y = cell.y + 2
        pdf.saveState()
        pdf.setFillColor(Palette.BADGE)
        pdf.roundRect(x * mm, self._bottom(y, badge_height), badge_width * mm, badge_height * mm, 1.5 * mm, stroke=0, fill=1)
        pdf.setFillColor(Palette.WHITE)
        pdf.setFont("Helvetica-Bold", 7)
        pdf.drawCentredString((x + badge_width / 2) * mm, self._bottom(y, badge_height) + 1.8 * mm, "PRIMARY")
        pdf.restoreState()

    def _draw_rule(self, pdf: canvas.Canvas, x1: float, x2: float, y: float) -> None:
        pdf.saveState()
        pdf.setStrokeColor(Palette.RULE)
        pdf.setLineWidth(1)
        baseline = self._bottom(y, 0)
        pdf.line(x1 * mm, baseline, x2 * mm, baseline)
        pdf.restoreState()

    def _draw_text(self, pdf: canvas.Canvas, text: GalleryText) -> None:
        pdf.saveState()
        self._set_font(pdf, text.text, text.font_size)
        red, green, blue = text.color
        pdf.setFillColor(colors.Color(red / 255, green / 255, blue / 255))
        x = text.x * mm
        y = self._bottom(text.y, 0)
        shaped = shape_arabic(text.text)
        if text.align == "right":
            pdf.drawRightString(x, y, shaped)
        elif text.align == "center":
            pdf.drawCentredString(x, y, shaped)
        else:
            pdf.drawString(x, y, shaped)
        pdf.restoreState()

    # =========================================================================
    # Page Frame
    # =========================================================================

    def _draw_page_frame(self, pdf: canvas.Canvas, page_number: int, page_count: int) -> None:
        """Footer - wordmark left, page number right, quiet."""
        pdf.saveState()
        pdf.setFont("Helvetica", 7)
        pdf.setFillColor(Palette.GRAY)
        pdf.drawString(15 * mm, 5 * mm, self.WORDMARK)
        pdf.drawRightString(self.PAGE_WIDTH - 15 * mm, 5 * mm, f"{page_number} / {page_count}")
        pdf.restoreState()

    def _set_font(self, pdf: canvas.Canvas, text: Optional[str], size: float) -> None:
        font = self._arabic_font if contains_arabic(text or "") else "Helvetica"
        pdf.setFont(font, size)
