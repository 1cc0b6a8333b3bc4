"""
Tests for the Image Gallery Layout

Tests covering:
1. 2 per row for standard reports, 3 otherwise
2. 4:3 cells sized from the content width
3. Rows that would cross the bottom margin start a new page
4. Per-image failures become placeholder cells
5. Bilingual header and footer text
"""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting.gallery import (
    IMAGE_LOAD_ERROR,
    IMAGE_NOT_AVAILABLE,
    ImageGalleryLayout,
    normalise_images,
)
from reporting.schemas import GallerySpec, PropertyImage, ReportType

from conftest import StubImageResolver


def make_images(count: int) -> tuple:
    return tuple(
        PropertyImage(
            id=f"img-{i}",
            url=f"https://example.com/{i}.jpg",
            filename=f"photo_{i}.jpg",
            is_primary=i == 0,
            order_index=i,
        )
        for i in range(count)
    )


def run_layout(count: int, report_type: ReportType, resolver=None, start_page: int = 0):
    layout = ImageGalleryLayout()
    spec = GallerySpec(images=make_images(count), report_type=report_type)
    return asyncio.run(layout.layout(spec, start_page, resolver or StubImageResolver()))


# =============================================================================
# Test: Grid Geometry
# =============================================================================


class TestGridGeometry:
    """Cells per row and cell size."""

    def test_images_per_row_by_tier(self):
        assert ImageGalleryLayout.images_per_row(ReportType.STANDARD) == 2
        assert ImageGalleryLayout.images_per_row(ReportType.DETAILED) == 3
        assert ImageGalleryLayout.images_per_row(ReportType.COMPREHENSIVE) == 3

    @pytest.mark.parametrize("report_type,per_row", [(ReportType.STANDARD, 2), (ReportType.COMPREHENSIVE, 3)])
    def test_cells_fill_content_width(self, report_type, per_row):
        layout = ImageGalleryLayout()
        width, height = layout.cell_size(report_type)
        assert width * per_row + layout.GUTTER * (per_row - 1) == pytest.approx(180)
        assert height == pytest.approx(width * 0.75)

    def test_standard_layout_uses_two_columns(self):
        result = run_layout(3, ReportType.STANDARD)
        xs = sorted({round(cell.x, 3) for cell in result.cells})
        assert xs == [15, 110]
        assert [cell.y for cell in result.cells[:2]] == [50, 50]
        assert result.cells[2].y > result.cells[0].y

    def test_comprehensive_layout_uses_three_columns(self):
        result = run_layout(3, ReportType.COMPREHENSIVE)
        assert len({cell.y for cell in result.cells}) == 1
        assert len({cell.x for cell in result.cells}) == 3


# =============================================================================
# Test: Pagination
# =============================================================================


class TestPagination:
    """Rows never cross the bottom margin."""

    @pytest.mark.parametrize("report_type", list(ReportType))
    @pytest.mark.parametrize("count", [1, 2, 3, 6, 7, 15, 40])
    def test_rows_stay_above_bottom_margin(self, report_type, count):
        layout = ImageGalleryLayout()
        _, cell_height = layout.cell_size(report_type)
        row_height = cell_height + layout.CAPTION_HEIGHT + layout.ROW_SPACING
        rows = layout.plan_rows(count, report_type, start_page=4)

        per_row = layout.images_per_row(report_type)
        assert len(rows) == -(-count // per_row)
        for page, y in rows:
            assert page >= 4
            assert y + row_height <= 297 - 15

    def test_first_row_below_header(self):
        rows = ImageGalleryLayout().plan_rows(2, ReportType.STANDARD, start_page=0)
        assert rows == [(0, 50)]

    def test_overflowing_row_starts_new_page_at_margin(self):
        layout = ImageGalleryLayout()
        rows = layout.plan_rows(8, ReportType.STANDARD, start_page=2)
        pages = [page for page, _ in rows]
        assert pages == [2, 2, 3, 3]
        assert rows[2][1] == 15

    def test_last_page_reported(self):
        result = run_layout(8, ReportType.STANDARD, start_page=2)
        assert result.last_page == 3
        footer = result.texts[-1]
        assert footer.page_index == 3


# =============================================================================
# Test: Image Failures
# =============================================================================


class TestImageFailures:
    """Failed images become placeholders, the gallery carries on."""

    def test_missing_image_gets_not_available_caption(self):
        resolver = StubImageResolver(missing={"https://example.com/1.jpg"})
        result = run_layout(3, ReportType.STANDARD, resolver=resolver)

        assert result.successes == 2
        assert result.failures == 1
        failed = result.cells[1]
        assert failed.data is None
        assert failed.error == IMAGE_NOT_AVAILABLE
        assert not failed.succeeded

    def test_raising_resolver_gets_error_caption(self):
        resolver = StubImageResolver(broken={"https://example.com/0.jpg"})
        result = run_layout(2, ReportType.COMPREHENSIVE, resolver=resolver)

        assert result.cells[0].error == IMAGE_LOAD_ERROR
        assert result.cells[1].succeeded
        assert result.failed_images[0][0] == 1

    def test_undecodable_bytes_are_a_failure(self):
        class CorruptResolver(StubImageResolver):
            async def to_embeddable(self, url):
                if url.endswith("/1.jpg"):
                    return b"<html>not an image</html>"
                return await super().to_embeddable(url)

        result = run_layout(3, ReportType.STANDARD, resolver=CorruptResolver())

        assert result.successes == 2
        assert result.failures == 1
        assert result.cells[1].error == IMAGE_LOAD_ERROR
        assert result.cells[1].data is None
        assert result.texts[-1].text.startswith("2 images documented")

    def test_every_image_requested_once(self):
        resolver = StubImageResolver(broken={"https://example.com/2.jpg"})
        run_layout(5, ReportType.STANDARD, resolver=resolver)
        assert resolver.requested == [f"https://example.com/{i}.jpg" for i in range(5)]

    def test_empty_gallery(self):
        result = run_layout(0, ReportType.STANDARD)
        assert result.cells == []
        assert result.total == 0


# =============================================================================
# Test: Text
# =============================================================================


class TestGalleryText:
    """Header, captions and footer."""

    def test_bilingual_header(self):
        result = run_layout(1, ReportType.STANDARD, start_page=1)
        texts = {text.text: text for text in result.texts}
        assert texts["Property Images"].align == "left"
        assert texts["صور العقار"].align == "right"
        assert texts["Property Images"].page_index == 1
        assert result.rules == [(1, 15, 195, 40)]

    def test_footer_counts_successes(self):
        resolver = StubImageResolver(missing={"https://example.com/0.jpg"})
        result = run_layout(4, ReportType.STANDARD, resolver=resolver)
        assert result.texts[-1].text == "3 images documented / 3 صورة موثقة"
        assert result.texts[-1].y == 287

    def test_caption_falls_back_to_number(self):
        layout = ImageGalleryLayout()
        images = (PropertyImage(id="a", url="https://example.com/a.jpg"),)
        result = asyncio.run(
            layout.layout(GallerySpec(images=images, report_type=ReportType.STANDARD), 0, StubImageResolver())
        )
        assert result.cells[0].caption == "Image 1"
        assert result.cells[0].caption != ""


class TestNormaliseImages:
    """Mixed image inputs."""

    def test_accepts_urls_dicts_and_records(self):
        record = PropertyImage(id="r", url="https://example.com/r.jpg")
        images = normalise_images([
            "https://example.com/legacy.jpg",
            {"url": "https://example.com/d.jpg", "filename": "d.jpg", "unknown_key": 1},
            record,
        ])
        assert images[0].id == "legacy_0"
        assert images[0].filename == "property_image_1.jpg"
        assert images[1].filename == "d.jpg"
        assert images[1].id == "image_1"
        assert images[2] is record

    def test_none_is_empty(self):
        assert normalise_images(None) == []
