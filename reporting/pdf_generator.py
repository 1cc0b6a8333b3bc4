"""
OpenBeit Property Appraisal Report - PDF generation pipeline.

Generates bilingual (Arabic/English) appraisal reports from property,
appraisal and market data.

Pipeline (one linear run per report, no parallel rendering):

    inputs -> validate_report_inputs -> SectionPlanner.plan -> content blocks
           -> PageCompositor.compose (BlockRenderer, ImageGalleryLayout)
           -> PdfDocumentWriter -> PDF bytes

Library choices:
- Playwright (headless Chromium) renders each HTML section to a bitmap
- matplotlib draws the charts embedded in sections
- ReportLab draws the final pages
- requests fetches remote property images

Failure model:
- Missing identity data raises ReportValidationError before any rendering.
- A section that fails to render becomes a placeholder; the report is
  still produced and the section is listed in degraded_blocks.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from utils.config import Config

from .assets import ImageAssetResolver, ImageResolver
from .charts import MatplotlibChartRenderer
from .compositor import A4_GEOMETRY, PageCompositor, PageGeometry
from .gallery import ImageGalleryLayout
from .pdf_writer import PdfDocumentWriter
from .planner import ChartRenderer, SectionPlanner, validate_report_inputs
from .renderers import BlockRenderer, PlaywrightBlockRenderer
from .schemas import (
    AppraisalData,
    CompositionResult,
    MarketAnalysis,
    PropertyData,
    ReportOptions,
    ReportSuccess,
)

logger = logging.getLogger(__name__)


class ReportGenerator:
    """
    Generates appraisal report PDFs.

    Usage:
        generator = ReportGenerator()
        result = generator.generate_report(property_data, appraisal, market, options)
        print(result.path)

    Collaborators default to the production implementations and can be
    replaced (tests pass stub renderers).
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        renderer: Optional[BlockRenderer] = None,
        chart_renderer: Optional[ChartRenderer] = None,
        resolver: Optional[ImageResolver] = None,
        geometry: PageGeometry = A4_GEOMETRY,
        output_dir: Optional[Path] = None,
    ):
        self.config = config or Config.load()
        self.renderer = renderer
        self.chart_renderer = chart_renderer or MatplotlibChartRenderer(dpi=self.config.chart_dpi)
        self.resolver = resolver or ImageAssetResolver(timeout=self.config.image_fetch_timeout)
        self.geometry = geometry
        self.output_dir = Path(output_dir or self.config.reports_dir)

    # =========================================================================
    # Public API
    # =========================================================================

    def generate_report(
        self,
        property_data: PropertyData,
        appraisal: AppraisalData,
        market: MarketAnalysis,
        options: Optional[ReportOptions] = None,
    ) -> ReportSuccess:
        """
        Generate the report and write it to <reports_dir>/APR-<reference>.pdf.

        Raises:
            ReportValidationError: If property or appraisal identity is missing.
        """
        pdf_bytes, composition = asyncio.run(self.render(property_data, appraisal, market, options))

        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"APR-{appraisal.reference_number}.pdf"
        output_path.write_bytes(pdf_bytes)
        logger.info("Report written to %s", output_path)

        return ReportSuccess(
            path=output_path,
            pages=composition.page_count,
            degraded_blocks=list(composition.degraded_blocks),
        )

    def generate_to_buffer(
        self,
        property_data: PropertyData,
        appraisal: AppraisalData,
        market: MarketAnalysis,
        options: Optional[ReportOptions] = None,
    ) -> bytes:
        """Generate PDF and return as bytes (for testing or streaming)."""
        pdf_bytes, _ = asyncio.run(self.render(property_data, appraisal, market, options))
        return pdf_bytes

    async def render(
        self,
        property_data: PropertyData,
        appraisal: AppraisalData,
        market: MarketAnalysis,
        options: Optional[ReportOptions] = None,
    ) -> tuple[bytes, CompositionResult]:
        """Run the whole pipeline; returns the PDF and the composition behind it."""
        validate_report_inputs(property_data, appraisal)
        options = options or ReportOptions.build()

        logger.info(
            "Generating %s report for appraisal %s (property %s)",
            options.report_type.value,
            appraisal.reference_number,
            property_data.id,
        )

        blocks = SectionPlanner(chart_renderer=self.chart_renderer).plan(property_data, appraisal, market, options)
        compositor = PageCompositor(
            geometry=self.geometry,
            gallery=ImageGalleryLayout(self.geometry.page_width_mm, self.geometry.page_height_mm),
        )

        if self.renderer is not None:
            composition = await compositor.compose(blocks, self.renderer, resolver=self.resolver)
        else:
            async with self._browser_renderer(options) as renderer:
                composition = await compositor.compose(blocks, renderer, resolver=self.resolver)

        writer = PdfDocumentWriter(font_path=self.config.arabic_font_path)
        title = f"Property Appraisal Report - {appraisal.reference_number}"
        pdf_bytes = writer.to_bytes(composition, title=title)

        if composition.degraded_blocks:
            logger.warning(
                "Report %s generated with degraded sections: %s",
                appraisal.reference_number,
                ", ".join(composition.degraded_blocks),
            )
        return pdf_bytes, composition

    def _browser_renderer(self, options: ReportOptions) -> PlaywrightBlockRenderer:
        return PlaywrightBlockRenderer(
            watermark=options.watermark or self.config.default_watermark,
            device_scale=self.config.render_device_scale,
            settle_ms=self.config.render_settle_ms,
            measure_settle_ms=self.config.measure_settle_ms,
            width_px=self.geometry.layout_width_px,
        )


# =============================================================================
# Convenience Function
# =============================================================================


async def generate_report(
    property_data: PropertyData,
    appraisal: AppraisalData,
    market: MarketAnalysis,
    options: Optional[ReportOptions] = None,
    renderer: Optional[BlockRenderer] = None,
    chart_renderer: Optional[ChartRenderer] = None,
    resolver: Optional[ImageResolver] = None,
) -> bytes:
    """
    Generate an appraisal report PDF.

    This is the primary entry point for report generation.

    Args:
        property_data: The appraised property
        appraisal: The completed appraisal
        market: Market context (comparables, trends, investment figures)
        options: Report options; defaults to ReportOptions.build()
        renderer: Block renderer; a headless browser renderer when omitted

    Returns:
        The PDF document as bytes.

    Raises:
        ReportValidationError: If property or appraisal identity is missing.

    Example:
        from reporting import generate_report
        from reporting.schemas import create_sample_inputs

        property_data, appraisal, market, options = create_sample_inputs()
        pdf_bytes = await generate_report(property_data, appraisal, market, options)
    """
    generator = ReportGenerator(renderer=renderer, chart_renderer=chart_renderer, resolver=resolver)
    pdf_bytes, _ = await generator.render(property_data, appraisal, market, options)
    return pdf_bytes
