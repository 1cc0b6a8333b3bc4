"""
Shared fixtures and stub collaborators for the report engine tests.

The stubs stand in for the headless browser, the chart renderer and the
image resolver so the pipeline can be exercised without external services.
"""

import struct
import sys
import zlib
from pathlib import Path
from typing import Optional

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting.schemas import Bitmap, ContentBlock, create_sample_inputs


def make_png(width: int = 4, height: int = 3) -> bytes:
    """Build a valid RGB PNG filled with grey."""
    def chunk(tag: bytes, data: bytes) -> bytes:
        body = tag + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    raw = b"".join(b"\x00" + b"\x80\x80\x80" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + chunk(b"IDAT", zlib.compress(raw))
        + chunk(b"IEND", b"")
    )


PNG_BYTES = make_png()


class StubBlockRenderer:
    """
    Renders every block as a 794px wide bitmap of a configured height.

    heights maps block name -> layout height in px; failing names raise on
    render; empty names return an empty bitmap.
    """

    def __init__(self, heights=None, default_height: float = 400, failing=(), empty=()):
        self.heights = dict(heights or {})
        self.default_height = default_height
        self.failing = set(failing)
        self.empty = set(empty)
        self.rendered: list[str] = []
        self.windows: list[tuple[str, float, float]] = []

    def _height(self, block: ContentBlock) -> float:
        return self.heights.get(block.name, self.default_height)

    async def measure(self, block: ContentBlock) -> float:
        return self._height(block)

    async def render(self, block: ContentBlock) -> Bitmap:
        if block.name in self.failing:
            raise RuntimeError(f"render failed for {block.name}")
        self.rendered.append(block.name)
        if block.name in self.empty:
            return Bitmap(pixel_width=794, pixel_height=0, image_data=b"")
        return Bitmap(pixel_width=794, pixel_height=round(self._height(block)), image_data=PNG_BYTES)

    async def render_window(self, block: ContentBlock, top_px: float, height_px: float) -> Bitmap:
        if block.name in self.failing:
            raise RuntimeError(f"render failed for {block.name}")
        self.windows.append((block.name, top_px, height_px))
        return Bitmap(pixel_width=794, pixel_height=height_px, image_data=PNG_BYTES)


class StubImageResolver:
    """Returns PNG bytes, except for URLs listed as missing (None) or broken (raises)."""

    def __init__(self, missing=(), broken=()):
        self.missing = set(missing)
        self.broken = set(broken)
        self.requested: list[str] = []

    async def to_embeddable(self, url: str) -> Optional[bytes]:
        self.requested.append(url)
        if url in self.broken:
            raise IOError(f"cannot load {url}")
        if url in self.missing:
            return None
        return PNG_BYTES


class NullChartRenderer:
    """A chart renderer that never produces a chart."""

    def __init__(self):
        self.specs = []

    def render_chart(self, spec):
        self.specs.append(spec)
        return None


@pytest.fixture
def sample_inputs():
    """Sample property, appraisal, market and options."""
    return create_sample_inputs()


@pytest.fixture
def stub_renderer():
    return StubBlockRenderer()


@pytest.fixture
def stub_resolver():
    return StubImageResolver()
