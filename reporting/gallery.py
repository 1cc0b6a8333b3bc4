"""
Image Gallery Layout - grid placement of property images.

The gallery does not go through the generic block flow. It owns its pages:
a bilingual title band, then rows of 2 (standard reports) or 3 (all other
tiers) image tiles at a 4:3 aspect ratio, each with a caption underneath.
A row that would run past the bottom margin starts a new page.

Images are resolved one at a time. A failed image never aborts the gallery;
it becomes a placeholder tile and is counted in the end-of-gallery summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from typing import TYPE_CHECKING, Optional

from reportlab.lib.utils import ImageReader

from .schemas import GalleryCell, GallerySpec, GalleryText, PropertyImage, ReportType

if TYPE_CHECKING:
    from .assets import ImageResolver


logger = logging.getLogger(__name__)


IMAGE_NOT_AVAILABLE = "Image not available"
IMAGE_LOAD_ERROR = "Error loading image"

TITLE_COLOR = (59, 130, 246)
CAPTION_COLOR = (100, 116, 139)
FOOTER_COLOR = (107, 114, 128)


@dataclass
class GalleryLayoutResult:
    """Cells, text and rules for the gallery pages, plus outcome counts."""
    cells: list[GalleryCell] = field(default_factory=list)
    texts: list[GalleryText] = field(default_factory=list)
    # (page_index, x1, x2, y) horizontal divider lines
    rules: list[tuple[int, float, float, float]] = field(default_factory=list)
    last_page: int = 0
    successes: int = 0
    failures: int = 0
    failed_images: list[tuple[int, str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successes + self.failures


class ImageGalleryLayout:
    """Lays out property images on dedicated gallery pages."""

    MARGIN = 15.0
    HEADER_HEIGHT = 25.0
    HEADER_GAP = 10.0
    GUTTER = 10.0
    ROW_SPACING = 20.0
    CAPTION_HEIGHT = 15.0
    ASPECT_RATIO = 0.75  # 4:3

    def __init__(self, page_width_mm: float = 210.0, page_height_mm: float = 297.0):
        self.page_width_mm = page_width_mm
        self.page_height_mm = page_height_mm

    @property
    def content_width(self) -> float:
        return self.page_width_mm - 2 * self.MARGIN

    @staticmethod
    def images_per_row(report_type: ReportType) -> int:
        return 2 if report_type is ReportType.STANDARD else 3

    def cell_size(self, report_type: ReportType) -> tuple[float, float]:
        """Width and height of one image tile in mm."""
        per_row = self.images_per_row(report_type)
        width = (self.content_width - self.GUTTER * (per_row - 1)) / per_row
        return width, width * self.ASPECT_RATIO

    def plan_rows(self, image_count: int, report_type: ReportType, start_page: int) -> list[tuple[int, float]]:
        """
        Compute (page_index, y) for the top of every row.

        Pure geometry; used by layout() and handy for checking pagination.
        """
        per_row = self.images_per_row(report_type)
        _, cell_height = self.cell_size(report_type)
        row_height = cell_height + self.CAPTION_HEIGHT + self.ROW_SPACING
        bottom = self.page_height_mm - self.MARGIN

        page = start_page
        y = self.MARGIN + self.HEADER_HEIGHT + self.HEADER_GAP
        rows = []
        for _ in range(0, image_count, per_row):
            if y + row_height > bottom:
                page += 1
                y = self.MARGIN
            rows.append((page, y))
            y += row_height
        return rows

    async def layout(
        self,
        spec: GallerySpec,
        start_page: int,
        resolver: "ImageResolver",
    ) -> GalleryLayoutResult:
        images = list(spec.images)
        result = GalleryLayoutResult(last_page=start_page)
        if not images:
            return result

        logger.info(
            "Generating image gallery with %d images for %s report",
            len(images),
            spec.report_type.value,
        )

        self._add_header(result, start_page)

        per_row = self.images_per_row(spec.report_type)
        cell_width, cell_height = self.cell_size(spec.report_type)
        rows = self.plan_rows(len(images), spec.report_type, start_page)

        for row_index, (page, y) in enumerate(rows):
            row_images = images[row_index * per_row:(row_index + 1) * per_row]
            for column, image in enumerate(row_images):
                number = row_index * per_row + column + 1
                x = self.MARGIN + column * (cell_width + self.GUTTER)
                cell = GalleryCell(
                    page_index=page,
                    image=image,
                    x=x,
                    y=y,
                    width=cell_width,
                    height=cell_height,
                    caption=image.filename or f"Image {number}",
                )
                await self._resolve_cell(cell, number, len(images), resolver, result)
                result.cells.append(cell)
            result.last_page = page

        self._add_footer(result)
        self._log_summary(result, spec.report_type)
        return result

    async def _resolve_cell(
        self,
        cell: GalleryCell,
        number: int,
        total: int,
        resolver: "ImageResolver",
        result: GalleryLayoutResult,
    ) -> None:
        image = cell.image
        logger.debug("Processing image %d/%d: %s", number, total, image.filename)
        try:
            data = await resolver.to_embeddable(image.url)
        except Exception as e:
            logger.error("Exception while adding image %d (%s): %s", number, image.filename, e)
            cell.error = IMAGE_LOAD_ERROR
            result.failures += 1
            result.failed_images.append((number, image.filename, f"Exception: {e}"))
            return

        if data is None:
            logger.warning("Image %d failed to convert: %s", number, image.filename)
            cell.error = IMAGE_NOT_AVAILABLE
            result.failures += 1
            result.failed_images.append((number, image.filename, "conversion returned no data"))
            return

        try:
            ImageReader(BytesIO(data)).getSize()
        except Exception as e:
            logger.warning("Image %d is not a decodable image: %s (%s)", number, image.filename, e)
            cell.error = IMAGE_LOAD_ERROR
            result.failures += 1
            result.failed_images.append((number, image.filename, f"undecodable image data: {e}"))
            return

        cell.data = data
        result.successes += 1

    def _add_header(self, result: GalleryLayoutResult, page: int) -> None:
        baseline = self.MARGIN + 8
        result.texts.append(GalleryText(
            page_index=page,
            text="صور العقار",
            x=self.page_width_mm - self.MARGIN,
            y=baseline,
            align="right",
            font_size=18,
            color=TITLE_COLOR,
        ))
        result.texts.append(GalleryText(
            page_index=page,
            text="Property Images",
            x=self.MARGIN,
            y=baseline,
            align="left",
            font_size=18,
            color=TITLE_COLOR,
        ))
        result.rules.append((
            page,
            self.MARGIN,
            self.page_width_mm - self.MARGIN,
            self.MARGIN + self.HEADER_HEIGHT,
        ))

    def _add_footer(self, result: GalleryLayoutResult) -> None:
        count = result.successes
        result.texts.append(GalleryText(
            page_index=result.last_page,
            text=f"{count} images documented / {count} صورة موثقة",
            x=self.page_width_mm / 2,
            y=self.page_height_mm - 10,
            align="center",
            font_size=10,
            color=FOOTER_COLOR,
        ))

    def _log_summary(self, result: GalleryLayoutResult, report_type: ReportType) -> None:
        rate = round(result.successes / result.total * 100) if result.total else 0
        logger.info(
            "Image gallery for %s report: %d received, %d processed, %d failed (%d%% success)",
            report_type.value,
            result.total,
            result.successes,
            result.failures,
            rate,
        )
        for number, filename, error in result.failed_images:
            logger.warning("Gallery image %d (%s) failed: %s", number, filename, error)


def normalise_images(images: Optional[list]) -> list[PropertyImage]:
    """Accept PropertyImage records, dicts, or legacy bare URLs."""
    return [PropertyImage.from_value(image, index) for index, image in enumerate(images or [])]
