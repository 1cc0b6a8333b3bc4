"""
Page Compositor - places rendered section bitmaps onto fixed-size pages.

The compositor receives content blocks in planner order, asks the block
renderer for one bitmap per block (or per chunk, for very tall blocks) and
decides where each bitmap goes:

1. Measure: bitmaps are scaled to the page width, so height in mm is
   pixel_height * page_width / pixel_width.
2. Fits: placed at the cursor, cursor advances by height + spacing.
3. Does not fit but would fit on an empty page: moved whole to a new page.
4. Taller than an empty page: split. The top slice fills the current page
   (when enough room is left), the remainder goes to a new page and is
   clipped once if it is still too tall. The next block starts on a new page.
5. Blocks whose estimated layout height exceeds chunking_threshold_px are
   never rendered as one bitmap: the source is rendered in fixed windows and
   each window is placed through steps 1-4.

Invariant: every placement satisfies y + height <= max_content_height.

Rendering failures are contained per block: the failing block is replaced by
a placeholder tile and composition carries on.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from .schemas import (
    Bitmap,
    CompositionResult,
    ContentBlock,
    Placement,
)

if TYPE_CHECKING:
    from .assets import ImageResolver
    from .gallery import ImageGalleryLayout
    from .renderers import BlockRenderer


logger = logging.getLogger(__name__)


def placeholder_caption(block_name: str) -> str:
    """Bilingual caption drawn in place of a section that could not be rendered."""
    return f"{block_name} - not available / غير متاح"


# =============================================================================
# Page Geometry
# =============================================================================


@dataclass(frozen=True)
class PageGeometry:
    """
    Page size and layout constants, all in mm unless suffixed _px.

    Defaults describe an A4 portrait page rendered from a 794px wide layout.
    """
    page_width_mm: float = 210.0
    page_height_mm: float = 297.0
    max_content_height: float = 230.0
    top_margin: float = 15.0
    block_spacing: float = 8.0
    chunk_spacing: float = 1.0

    # Near the top of a page an oversized block is split in place rather
    # than pushed to the next page.
    small_page_threshold: float = 50.0

    # A block taller than max_content_height - oversize_margin is oversized.
    oversize_margin: float = 20.0

    # A split only starts on the current page if more than this is left.
    min_split_room: float = 50.0
    split_gap: float = 10.0

    layout_width_px: int = 794
    chunk_height_px: int = 780
    chunking_threshold_px: float = 1000.0

    def __post_init__(self):
        if self.top_margin > self.oversize_margin:
            raise ValueError("top_margin must not exceed oversize_margin")
        if self.max_content_height > self.page_height_mm:
            raise ValueError("max_content_height must fit on the page")
        if self.chunk_height_mm > self.max_content_height - self.oversize_margin:
            raise ValueError("chunk_height_px must produce chunks that fit on one page")

    @property
    def chunk_height_mm(self) -> float:
        return self.chunk_height_px * self.page_width_mm / self.layout_width_px

    @property
    def oversize_limit(self) -> float:
        return self.max_content_height - self.oversize_margin


A4_GEOMETRY = PageGeometry()


def chunk_windows(total_height_px: float, chunk_height_px: float) -> list[tuple[float, float]]:
    """
    Split a layout height into consecutive (top, height) windows.

    The windows cover [0, total_height_px) exactly; only the last one may be
    shorter than chunk_height_px.
    """
    if total_height_px <= 0:
        return []
    count = math.ceil(total_height_px / chunk_height_px)
    windows = []
    for index in range(count):
        top = index * chunk_height_px
        bottom = min((index + 1) * chunk_height_px, total_height_px)
        windows.append((top, bottom - top))
    return windows


# =============================================================================
# Page Compositor
# =============================================================================


class PageCompositor:
    """
    Packs rendered blocks onto pages.

    Usage:
        compositor = PageCompositor()
        result = await compositor.compose(blocks, renderer, resolver=resolver)

    A compositor instance holds the state of one document; create a new one
    (or call reset()) for each report.
    """

    def __init__(
        self,
        geometry: PageGeometry = A4_GEOMETRY,
        gallery: Optional["ImageGalleryLayout"] = None,
    ):
        self.geometry = geometry
        self.gallery = gallery
        self.reset()

    def reset(self) -> None:
        self.result = CompositionResult()
        self.page_index = 0
        self.cursor_y = self.geometry.top_margin
        self._page_has_content = False
        self._page_closed = False

    # =========================================================================
    # Page State
    # =========================================================================

    def new_page(self) -> None:
        """Start a new page and move the cursor to its top margin."""
        self.page_index += 1
        self.result.page_count = self.page_index + 1
        self.cursor_y = self.geometry.top_margin
        self._page_has_content = False
        self._page_closed = False

    def close_page(self) -> None:
        """Force the next placement onto a new page."""
        self._page_closed = True

    def _ensure_open_page(self) -> None:
        if self._page_closed:
            self.new_page()

    # =========================================================================
    # Placement Policy
    # =========================================================================

    def place_bitmap(
        self,
        block_name: str,
        bitmap: Bitmap,
        spacing: Optional[float] = None,
    ) -> list[Placement]:
        """
        Place one bitmap, paging or splitting as needed.

        Returns the placements created, in document order.
        """
        geometry = self.geometry
        spacing = geometry.block_spacing if spacing is None else spacing
        self._ensure_open_page()

        height = bitmap.mm_height(geometry.page_width_mm)

        if self.cursor_y + height <= geometry.max_content_height:
            return [self._put(block_name, bitmap, height, spacing)]

        if height <= geometry.oversize_limit:
            logger.info(
                "Starting new page for section %s (needs %.1fmm, %.1fmm remaining)",
                block_name,
                height,
                geometry.max_content_height - self.cursor_y,
            )
            self.new_page()
            return [self._put(block_name, bitmap, height, spacing)]

        if self.cursor_y > geometry.small_page_threshold:
            self.new_page()

        logger.info("Section %s too tall for a single page (%.1fmm), splitting", block_name, height)
        return self._split_across_pages(block_name, bitmap, height)

    def _put(self, block_name: str, bitmap: Bitmap, height: float, spacing: float) -> Placement:
        placement = Placement(
            page_index=self.page_index,
            block_name=block_name,
            bitmap=bitmap,
            x=0.0,
            y=self.cursor_y,
            width=self.geometry.page_width_mm,
            height=height,
            source_top_px=0.0,
            source_height_px=float(bitmap.pixel_height),
        )
        self._record(placement)
        self.cursor_y += height + spacing
        return placement

    def _split_across_pages(self, block_name: str, bitmap: Bitmap, height: float) -> list[Placement]:
        geometry = self.geometry
        placements = []
        remaining = geometry.max_content_height - self.cursor_y

        if remaining > geometry.min_split_room:
            first_height = min(remaining - geometry.split_gap, height)
            placements.append(self._put_slice(block_name, bitmap, height, 0.0, first_height))
            self.new_page()
            placements.append(
                self._put_tail(block_name, bitmap, height, first_height, height - first_height)
            )
        else:
            self.new_page()
            placements.append(self._put_tail(block_name, bitmap, height, 0.0, height))

        self.close_page()
        return placements

    def _put_tail(
        self,
        block_name: str,
        bitmap: Bitmap,
        total_height: float,
        offset: float,
        tail_height: float,
    ) -> Placement:
        room = self.geometry.max_content_height - self.cursor_y
        if tail_height <= room:
            return self._put_slice(block_name, bitmap, total_height, offset, tail_height)

        lost = tail_height - room
        message = f"Section {block_name} clipped: {lost:.1f}mm of {total_height:.1f}mm dropped"
        logger.warning("Section extremely tall, clipping to fit page: %s", message)
        self.result.clip_warnings.append(message)
        return self._put_slice(block_name, bitmap, total_height, offset, room, clipped=True)

    def _put_slice(
        self,
        block_name: str,
        bitmap: Bitmap,
        total_height: float,
        offset: float,
        slice_height: float,
        clipped: bool = False,
    ) -> Placement:
        px_per_mm = bitmap.pixel_height / total_height
        placement = Placement(
            page_index=self.page_index,
            block_name=block_name,
            bitmap=bitmap,
            x=0.0,
            y=self.cursor_y,
            width=self.geometry.page_width_mm,
            height=slice_height,
            source_top_px=offset * px_per_mm,
            source_height_px=slice_height * px_per_mm,
            clipped=clipped,
        )
        self._record(placement)
        self.cursor_y += slice_height
        return placement

    def _record(self, placement: Placement) -> None:
        self.result.placements.append(placement)
        self.result.sequence.append(placement.block_name)
        self._page_has_content = True

    # =========================================================================
    # Composition
    # =========================================================================

    async def compose(
        self,
        blocks: Iterable[ContentBlock],
        renderer: "BlockRenderer",
        resolver: Optional["ImageResolver"] = None,
    ) -> CompositionResult:
        """
        Render and place every block in order.

        Never raises for a single block: failures are logged and the block is
        replaced by a placeholder.
        """
        self.reset()
        for block in blocks:
            logger.info("Processing section: %s", block.name)
            if block.is_gallery:
                await self._compose_gallery(block, resolver)
            else:
                await self._compose_html_block(block, renderer)
        logger.info(
            "Composition complete: %d pages, %d placements, %d degraded sections",
            self.result.page_count,
            len(self.result.placements),
            len(self.result.degraded_blocks),
        )
        return self.result

    async def _compose_html_block(self, block: ContentBlock, renderer: "BlockRenderer") -> None:
        try:
            estimated = await renderer.measure(block)
            if estimated > self.geometry.chunking_threshold_px:
                logger.info(
                    "Section %s is too tall (%.0fpx), rendering in chunks",
                    block.name,
                    estimated,
                )
                await self._render_in_chunks(block, renderer, estimated)
                return

            bitmap = await renderer.render(block)
            if bitmap.is_empty:
                raise ValueError("renderer returned an empty bitmap")
            logger.debug(
                "Section %s: canvas %dx%dpx",
                block.name,
                bitmap.pixel_width,
                bitmap.pixel_height,
            )
            self.place_bitmap(block.name, bitmap)
        except Exception as e:
            self._degrade(block.name, e)

    async def _render_in_chunks(
        self,
        block: ContentBlock,
        renderer: "BlockRenderer",
        total_height_px: float,
    ) -> None:
        windows = chunk_windows(total_height_px, self.geometry.chunk_height_px)
        for index, (top, height) in enumerate(windows):
            logger.info(
                "Rendering chunk %d/%d of %s: %.0fpx to %.0fpx",
                index + 1,
                len(windows),
                block.name,
                top,
                top + height,
            )
            bitmap = await renderer.render_window(block, top, height)
            if bitmap.is_empty:
                raise ValueError(f"renderer returned an empty bitmap for chunk {index + 1}")
            last = index == len(windows) - 1
            spacing = self.geometry.block_spacing if last else self.geometry.chunk_spacing
            self.place_bitmap(block.name, bitmap, spacing=spacing)

    async def _compose_gallery(self, block: ContentBlock, resolver: Optional["ImageResolver"]) -> None:
        if self.gallery is None or resolver is None:
            self._degrade(block.name, RuntimeError("no image gallery layout configured"))
            return

        self._ensure_open_page()
        if self._page_has_content:
            self.new_page()

        try:
            layout = await self.gallery.layout(block.render_spec, self.page_index, resolver)
        except Exception as e:
            self._degrade(block.name, e)
            return

        self.result.gallery_cells.extend(layout.cells)
        self.result.gallery_texts.extend(layout.texts)
        self.result.gallery_rules.extend(layout.rules)
        self.result.sequence.extend(block.name for _ in layout.cells)
        self.page_index = layout.last_page
        self.result.page_count = max(self.result.page_count, self.page_index + 1)
        self._page_has_content = True
        self.close_page()

    def _degrade(self, block_name: str, error: Exception) -> None:
        logger.error("Error rendering section %s: %s", block_name, error)
        self.result.degraded_blocks.append(block_name)
        self.place_bitmap(block_name, Bitmap.placeholder(placeholder_caption(block_name)))
