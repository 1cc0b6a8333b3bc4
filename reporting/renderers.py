"""
Block renderers - turn an HTML content block into a bitmap.

The compositor only depends on the BlockRenderer protocol. The production
implementation drives headless Chromium through Playwright: every block is
loaded into a fresh page at the fixed 794px layout width, given a short
settle delay for fonts and layout, then captured as a PNG screenshot.
"""

from __future__ import annotations

import html
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Protocol

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .schemas import Bitmap, ContentBlock

logger = logging.getLogger(__name__)


LAYOUT_WIDTH_PX = 794
BLOCK_ELEMENT_ID = "report-block"


class BlockRenderer(Protocol):
    """
    Converts one content block into a bitmap.

    measure() returns the block's layout height in px at the layout width.
    render_window() renders only the [top_px, top_px + height_px) band of
    the block's layout, for chunked rendering of very tall blocks.
    """

    async def measure(self, block: ContentBlock) -> float:
        ...

    async def render(self, block: ContentBlock) -> Bitmap:
        ...

    async def render_window(self, block: ContentBlock, top_px: float, height_px: float) -> Bitmap:
        ...


# =============================================================================
# Page Shell
# =============================================================================


def build_page_shell(content: str, watermark: str = "", width_px: int = LAYOUT_WIDTH_PX) -> str:
    """Wrap a block's HTML in a full document with the watermark overlay."""
    overlay = ""
    if watermark:
        mark = html.escape(watermark)
        overlay = (
            '<div class="watermark">'
            f'<div class="watermark-text">{mark}</div>'
            f'<div class="watermark-text">{mark}</div>'
            f'<div class="watermark-text">{mark}</div>'
            "</div>"
        )
    return f"""<!DOCTYPE html>
<html lang="ar">
<head>
<meta charset="UTF-8">
<style>
  html, body {{ margin: 0; padding: 0; background: white; }}
  #{BLOCK_ELEMENT_ID} {{
    position: relative;
    width: {width_px}px;
    box-sizing: border-box;
    padding: 0 38px;
    font-family: 'Noto Sans Arabic', 'Cairo', Arial, sans-serif;
    font-size: 14px;
    line-height: 1.4;
    word-wrap: break-word;
    overflow: hidden;
    display: flow-root;
  }}
  .watermark {{
    position: absolute; top: 0; left: 0; width: 100%; height: 100%;
    pointer-events: none; z-index: 0; overflow: hidden;
  }}
  .watermark-text {{
    position: absolute; font-weight: bold; white-space: nowrap;
    color: rgba(220, 220, 220, 0.35); transform: rotate(45deg);
  }}
  .watermark-text:nth-child(1) {{ top: 15%; left: 5%; font-size: 45px; }}
  .watermark-text:nth-child(2) {{ top: 45%; left: 25%; font-size: 65px; }}
  .watermark-text:nth-child(3) {{ top: 75%; left: 55%; font-size: 50px; }}
  .content {{ position: relative; z-index: 1; }}
</style>
</head>
<body>
<div id="{BLOCK_ELEMENT_ID}">{overlay}<div class="content">{content}</div></div>
</body>
</html>"""


# =============================================================================
# Playwright Renderer
# =============================================================================


class PlaywrightBlockRenderer:
    """
    Renders HTML blocks with headless Chromium.

    Usage:
        async with PlaywrightBlockRenderer(watermark="CONFIDENTIAL") as renderer:
            bitmap = await renderer.render(block)

    One browser is shared for the lifetime of the context; each measurement
    or render gets its own page, which is always closed afterwards.
    """

    def __init__(
        self,
        watermark: str = "",
        device_scale: float = 2,
        settle_ms: int = 1000,
        measure_settle_ms: int = 100,
        width_px: int = LAYOUT_WIDTH_PX,
    ):
        self.watermark = watermark
        self.device_scale = device_scale
        self.settle_ms = settle_ms
        self.measure_settle_ms = measure_settle_ms
        self.width_px = width_px
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightBlockRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch()
        logger.debug("Headless Chromium started for block rendering")

    async def close(self) -> None:
        try:
            if self._browser is not None:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None

    @asynccontextmanager
    async def _loaded_page(self, block: ContentBlock, settle_ms: int) -> AsyncIterator[Page]:
        if self._browser is None:
            raise RuntimeError("PlaywrightBlockRenderer used outside of its async context")
        page = await self._browser.new_page(
            viewport={"width": self.width_px, "height": 1123},
            device_scale_factor=self.device_scale,
        )
        try:
            await page.set_content(build_page_shell(block.render_spec, self.watermark, self.width_px))
            await page.wait_for_timeout(settle_ms)
            yield page
        finally:
            await page.close()

    async def _content_height(self, page: Page) -> float:
        return await page.evaluate(f"document.getElementById('{BLOCK_ELEMENT_ID}').scrollHeight")

    async def measure(self, block: ContentBlock) -> float:
        async with self._loaded_page(block, self.measure_settle_ms) as page:
            height = await self._content_height(page)
        logger.debug("Measured section %s at %.0fpx", block.name, height)
        return float(height)

    async def render(self, block: ContentBlock) -> Bitmap:
        async with self._loaded_page(block, self.settle_ms) as page:
            height = await self._content_height(page)
            return await self._capture(page, 0, height)

    async def render_window(self, block: ContentBlock, top_px: float, height_px: float) -> Bitmap:
        async with self._loaded_page(block, self.settle_ms) as page:
            return await self._capture(page, top_px, height_px)

    async def _capture(self, page: Page, top_px: float, height_px: float) -> Bitmap:
        if height_px <= 0:
            return Bitmap(pixel_width=0, pixel_height=0, image_data=b"")
        data = await page.screenshot(
            type="png",
            full_page=True,
            clip={"x": 0, "y": top_px, "width": self.width_px, "height": height_px},
        )
        return Bitmap(
            pixel_width=round(self.width_px * self.device_scale),
            pixel_height=round(height_px * self.device_scale),
            image_data=data,
        )
