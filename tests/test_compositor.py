"""
Tests for the Page Compositor

Tests covering:
1. Aspect-locked scaling to page width
2. No placement ever overflows max_content_height
3. Block order preserved, split pieces contiguous
4. Move-to-next-page, split and single clip fallback
5. Chunked rendering covers the whole source height
6. Per-block failures degrade to placeholders
"""

import asyncio
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting.compositor import A4_GEOMETRY, PageCompositor, PageGeometry, chunk_windows
from reporting.gallery import ImageGalleryLayout
from reporting.schemas import (
    BlockKind,
    Bitmap,
    ContentBlock,
    GallerySpec,
    PropertyImage,
    ReportType,
)

from conftest import PNG_BYTES, StubBlockRenderer, StubImageResolver


TOLERANCE = 1e-6


def bitmap_mm(height_mm: float) -> Bitmap:
    """A bitmap that is height_mm tall once scaled to the A4 width (1px per mm)."""
    return Bitmap(pixel_width=210, pixel_height=height_mm, image_data=PNG_BYTES)


def html_block(name: str) -> ContentBlock:
    return ContentBlock(name=name, render_spec=f"<div>{name}</div>")


def assert_no_overflow(placements, geometry=A4_GEOMETRY):
    for placement in placements:
        assert placement.y >= 0
        assert placement.bottom <= geometry.max_content_height + TOLERANCE, placement


# =============================================================================
# Test: Geometry
# =============================================================================


class TestGeometry:
    """Page geometry defaults and validation."""

    def test_a4_defaults(self):
        assert A4_GEOMETRY.page_width_mm == 210
        assert A4_GEOMETRY.max_content_height == 230
        assert A4_GEOMETRY.oversize_limit == 210

    def test_chunks_fit_on_one_page(self):
        assert A4_GEOMETRY.chunk_height_mm <= A4_GEOMETRY.oversize_limit

    def test_rejects_chunks_taller_than_a_page(self):
        with pytest.raises(ValueError):
            PageGeometry(chunk_height_px=800)

    def test_rejects_top_margin_above_oversize_margin(self):
        with pytest.raises(ValueError):
            PageGeometry(top_margin=25)


# =============================================================================
# Test: Aspect Lock
# =============================================================================


class TestAspectLock:
    """Placed height equals pixel_height * page_width / pixel_width."""

    @pytest.mark.parametrize("width_px,height_px", [(794, 400), (1588, 1000), (300, 77), (2000, 1)])
    def test_placed_height_matches_scale(self, width_px, height_px):
        compositor = PageCompositor()
        bitmap = Bitmap(pixel_width=width_px, pixel_height=height_px, image_data=PNG_BYTES)
        (placement,) = compositor.place_bitmap("Block", bitmap)
        assert placement.height == pytest.approx(height_px * 210 / width_px)
        assert placement.width == 210
        assert placement.x == 0


# =============================================================================
# Test: Placement Policy
# =============================================================================


class TestPlacementPolicy:
    """Same page, next page, split and clip decisions."""

    def test_first_block_starts_at_top_margin(self):
        compositor = PageCompositor()
        (placement,) = compositor.place_bitmap("Header", bitmap_mm(50))
        assert placement.page_index == 0
        assert placement.y == pytest.approx(15)
        assert compositor.cursor_y == pytest.approx(15 + 50 + 8)

    def test_blocks_stack_with_spacing(self):
        compositor = PageCompositor()
        compositor.place_bitmap("A", bitmap_mm(40))
        (second,) = compositor.place_bitmap("B", bitmap_mm(40))
        assert second.y == pytest.approx(15 + 40 + 8)
        assert second.page_index == 0

    def test_block_that_does_not_fit_moves_whole_to_next_page(self):
        compositor = PageCompositor()
        compositor.place_bitmap("A", bitmap_mm(150))
        placements = compositor.place_bitmap("B", bitmap_mm(100))
        assert len(placements) == 1
        assert placements[0].page_index == 1
        assert placements[0].y == pytest.approx(15)
        assert not placements[0].clipped

    def test_block_exactly_filling_the_page_stays(self):
        compositor = PageCompositor()
        (placement,) = compositor.place_bitmap("Exact", bitmap_mm(215))
        assert placement.page_index == 0
        assert placement.bottom == pytest.approx(230)

    def test_oversized_block_splits_from_near_top(self):
        compositor = PageCompositor()
        first, tail = compositor.place_bitmap("Huge", bitmap_mm(400))

        assert first.page_index == 0
        assert first.y == pytest.approx(15)
        assert first.height == pytest.approx(230 - 15 - 10)
        assert first.source_top_px == pytest.approx(0)

        assert tail.page_index == 1
        assert tail.y == pytest.approx(15)
        assert tail.height == pytest.approx(400 - 205)
        assert tail.source_top_px == pytest.approx(205)
        assert first.source_height_px + tail.source_height_px == pytest.approx(400)
        assert not tail.clipped
        assert compositor.result.clip_warnings == []

    def test_block_after_split_starts_new_page(self):
        compositor = PageCompositor()
        compositor.place_bitmap("Huge", bitmap_mm(400))
        (after,) = compositor.place_bitmap("Next", bitmap_mm(20))
        assert after.page_index == 2
        assert after.y == pytest.approx(15)

    def test_oversized_block_far_down_page_starts_fresh_page(self):
        compositor = PageCompositor()
        compositor.place_bitmap("Intro", bitmap_mm(60))
        first, tail = compositor.place_bitmap("Huge", bitmap_mm(300))
        assert first.page_index == 1
        assert first.y == pytest.approx(15)
        assert tail.page_index == 2

    def test_oversized_block_near_top_splits_in_place(self):
        compositor = PageCompositor()
        compositor.place_bitmap("Intro", bitmap_mm(20))
        assert compositor.cursor_y <= A4_GEOMETRY.small_page_threshold

        first, tail = compositor.place_bitmap("Huge", bitmap_mm(300))
        assert first.page_index == 0
        assert first.y == pytest.approx(15 + 20 + 8)
        assert first.height == pytest.approx(230 - 43 - 10)
        assert tail.page_index == 1

    def test_remainder_taller_than_a_page_is_clipped_once(self):
        compositor = PageCompositor()
        first, tail = compositor.place_bitmap("Enormous", bitmap_mm(700))

        assert tail.clipped
        assert tail.bottom == pytest.approx(230)
        assert tail.height == pytest.approx(215)
        assert compositor.result.page_count == 2
        assert len(compositor.result.clip_warnings) == 1
        assert "Enormous" in compositor.result.clip_warnings[0]

    def test_split_with_little_room_starts_on_new_page(self):
        geometry = PageGeometry(small_page_threshold=250)
        compositor = PageCompositor(geometry=geometry)
        compositor.place_bitmap("Intro", bitmap_mm(180))
        placements = compositor.place_bitmap("Huge", bitmap_mm(300))

        assert [p.page_index for p in placements] == [1]
        assert placements[0].clipped
        assert placements[0].y == pytest.approx(15)

    def test_zero_height_block(self):
        compositor = PageCompositor()
        (placement,) = compositor.place_bitmap("Empty", Bitmap(794, 0, PNG_BYTES))
        assert placement.height == 0
        assert placement.page_index == 0


# =============================================================================
# Test: Invariants
# =============================================================================


PATHOLOGICAL_HEIGHTS = [0, 0.01, 1, 7.99, 205, 210, 210.01, 215, 229.99, 230, 230.01, 297, 440, 1000, 5000]


class TestInvariants:
    """No overflow and order preservation over many block sequences."""

    @pytest.mark.parametrize("seed", range(25))
    def test_random_sequences_never_overflow(self, seed):
        rng = random.Random(seed)
        compositor = PageCompositor()
        names = []
        for index in range(rng.randint(1, 40)):
            if rng.random() < 0.3:
                height = rng.choice(PATHOLOGICAL_HEIGHTS)
            else:
                height = rng.uniform(0, 260)
            name = f"Block {index}"
            names.append(name)
            compositor.place_bitmap(name, bitmap_mm(height))

        assert_no_overflow(compositor.result.placements)
        assert compositor.result.block_order() == names

    def test_pathological_heights_in_sequence(self):
        compositor = PageCompositor()
        names = [f"Block {i}" for i in range(len(PATHOLOGICAL_HEIGHTS))]
        for name, height in zip(names, PATHOLOGICAL_HEIGHTS):
            compositor.place_bitmap(name, bitmap_mm(height))

        assert_no_overflow(compositor.result.placements)
        assert compositor.result.block_order() == names

    def test_split_pieces_are_contiguous(self):
        compositor = PageCompositor()
        compositor.place_bitmap("Before", bitmap_mm(30))
        compositor.place_bitmap("Huge", bitmap_mm(400))
        compositor.place_bitmap("After", bitmap_mm(30))
        assert compositor.result.sequence == ["Before", "Huge", "Huge", "After"]

    def test_pages_are_non_decreasing(self):
        compositor = PageCompositor()
        for index, height in enumerate([100, 120, 400, 50, 700, 10]):
            compositor.place_bitmap(f"Block {index}", bitmap_mm(height))
        pages = [p.page_index for p in compositor.result.placements]
        assert pages == sorted(pages)
        assert compositor.result.page_count == pages[-1] + 1


# =============================================================================
# Test: Chunked Rendering
# =============================================================================


class TestChunking:
    """Very tall blocks are rendered in windows."""

    @pytest.mark.parametrize("total", [1, 779, 780, 781, 1001, 5000, 12345.5])
    def test_windows_cover_total_height(self, total):
        windows = chunk_windows(total, 780)
        assert sum(height for _, height in windows) == pytest.approx(total)
        assert all(0 < height <= 780 for _, height in windows)
        for (top, height), (next_top, _) in zip(windows, windows[1:]):
            assert next_top == pytest.approx(top + height)

    def test_no_windows_for_empty_content(self):
        assert chunk_windows(0, 780) == []

    def test_tall_block_is_rendered_in_chunks(self):
        renderer = StubBlockRenderer(heights={"Tall": 5000})
        compositor = PageCompositor()
        result = asyncio.run(compositor.compose([html_block("Intro"), html_block("Tall")], renderer))

        assert renderer.rendered == ["Intro"]
        assert len(renderer.windows) == 7
        tall = [p for p in result.placements if p.block_name == "Tall"]
        assert sum(p.source_height_px for p in tall) == pytest.approx(5000)
        assert not any(p.clipped for p in tall)
        assert result.clip_warnings == []
        assert_no_overflow(result.placements)

    def test_block_under_threshold_is_rendered_whole(self):
        renderer = StubBlockRenderer(heights={"Medium": 1000})
        result = asyncio.run(PageCompositor().compose([html_block("Medium")], renderer))
        assert renderer.windows == []
        assert renderer.rendered == ["Medium"]
        assert_no_overflow(result.placements)

    def test_each_window_is_placed_separately(self):
        renderer = StubBlockRenderer(heights={"Tall": 1200})
        compositor = PageCompositor()
        result = asyncio.run(compositor.compose([html_block("Tall")], renderer))
        first, second = result.placements
        assert second.page_index == 1
        assert first.height == pytest.approx(780 * 210 / 794)
        assert second.height == pytest.approx(420 * 210 / 794)


# =============================================================================
# Test: Composition
# =============================================================================


class TestCompose:
    """Async composition with stub renderers."""

    def test_order_matches_block_order(self):
        names = ["Header", "Executive Summary", "Property Details", "Quality Rating", "Certification"]
        renderer = StubBlockRenderer(heights={"Property Details": 900, "Quality Rating": 700})
        result = asyncio.run(PageCompositor().compose([html_block(n) for n in names], renderer))
        assert result.block_order() == names
        assert_no_overflow(result.placements)

    def test_failed_block_becomes_placeholder(self):
        names = ["Header", "Market Analysis", "Certification"]
        renderer = StubBlockRenderer(failing={"Market Analysis"})
        result = asyncio.run(PageCompositor().compose([html_block(n) for n in names], renderer))

        assert result.degraded_blocks == ["Market Analysis"]
        assert result.block_order() == names
        placeholders = [p for p in result.placements if p.bitmap.is_placeholder]
        assert [p.block_name for p in placeholders] == ["Market Analysis"]
        assert "not available" in placeholders[0].bitmap.placeholder_caption

    def test_empty_bitmap_becomes_placeholder(self):
        renderer = StubBlockRenderer(empty={"Header"})
        result = asyncio.run(PageCompositor().compose([html_block("Header")], renderer))
        assert result.degraded_blocks == ["Header"]

    def test_failing_measurement_becomes_placeholder(self):
        class BrokenMeasure(StubBlockRenderer):
            async def measure(self, block):
                raise TimeoutError("layout did not settle")

        result = asyncio.run(PageCompositor().compose([html_block("Header")], BrokenMeasure()))
        assert result.degraded_blocks == ["Header"]
        assert result.page_count == 1

    def test_gallery_without_layout_degrades(self):
        gallery = ContentBlock(
            name="Property Images",
            render_spec=GallerySpec(images=(), report_type=ReportType.STANDARD),
            kind=BlockKind.GALLERY,
        )
        result = asyncio.run(PageCompositor().compose([gallery], StubBlockRenderer()))
        assert result.degraded_blocks == ["Property Images"]

    def test_gallery_gets_own_pages(self):
        images = tuple(
            PropertyImage(id=f"img-{i}", url=f"https://example.com/{i}.jpg", filename=f"{i}.jpg")
            for i in range(4)
        )
        blocks = [
            html_block("Header"),
            ContentBlock(
                name="Property Images",
                render_spec=GallerySpec(images=images, report_type=ReportType.STANDARD),
                kind=BlockKind.GALLERY,
            ),
            html_block("Certification"),
        ]
        compositor = PageCompositor(gallery=ImageGalleryLayout())
        result = asyncio.run(compositor.compose(blocks, StubBlockRenderer(), resolver=StubImageResolver()))

        assert result.block_order() == ["Header", "Property Images", "Certification"]
        assert {cell.page_index for cell in result.gallery_cells} == {1}
        certification = result.placements[-1]
        assert certification.page_index == 2
        assert certification.y == pytest.approx(15)
        assert result.page_count == 3

    def test_compose_resets_state(self):
        compositor = PageCompositor()
        renderer = StubBlockRenderer(default_height=800)
        asyncio.run(compositor.compose([html_block(f"B{i}") for i in range(6)], renderer))
        result = asyncio.run(compositor.compose([html_block("Only")], renderer))
        assert result.page_count == 1
        assert [p.block_name for p in result.placements] == ["Only"]
