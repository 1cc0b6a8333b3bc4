"""
FastAPI application for the appraisal report engine.

Exposes report generation over HTTP. The PDF is streamed back in the
response body; nothing is persisted.

Production deployment configuration via environment variables.
"""

import logging
import os
from typing import Any, Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from reporting.assets import ImageAssetResolver, ImageResolver
from reporting.charts import MatplotlibChartRenderer
from reporting.filtering import (
    available_report_types,
    can_access_report_type,
    filter_appraisal,
    filter_market,
    filter_property_images,
    generate_report_metadata,
)
from reporting.pdf_generator import ReportGenerator
from reporting.planner import ChartRenderer
from reporting.renderers import BlockRenderer
from reporting.schemas import (
    AppraisalData,
    MarketAnalysis,
    PropertyData,
    ReportOptions,
    ReportValidationError,
)
from utils.config import Config

logger = logging.getLogger(__name__)

# =============================================================================
# Environment Configuration
# =============================================================================

IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

VERSION = "0.1.0"


# =============================================================================
# Request Models
# =============================================================================


class GenerateReportRequest(BaseModel):
    """Request body for PDF generation."""
    property: dict[str, Any]
    appraisal: dict[str, Any]
    market: dict[str, Any] = Field(default_factory=dict)
    options: dict[str, Any] = Field(default_factory=dict)
    access_level: Optional[str] = None
    apply_privacy_filter: bool = True
    generated_for: str = "api"


# =============================================================================
# Dependencies
# =============================================================================


def get_config() -> Config:
    return Config.load()


def get_block_renderer() -> Optional[BlockRenderer]:
    """None lets the generator start its own headless browser per report."""
    return None


def get_chart_renderer(config: Config = Depends(get_config)) -> ChartRenderer:
    return MatplotlibChartRenderer(dpi=config.chart_dpi)


def get_image_resolver(config: Config = Depends(get_config)) -> ImageResolver:
    return ImageAssetResolver(timeout=config.image_fetch_timeout)


def _error(status_code: int, message: str, errors: Optional[list] = None) -> JSONResponse:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(body, status_code=status_code)


# =============================================================================
# Application
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="OpenBeit Appraisal Reports",
        description="Bilingual property appraisal report generation",
        version=VERSION,
        # Production settings: disable docs/redoc for private deployment
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
    )

    @app.get("/health", include_in_schema=False)
    def health():
        """Health endpoint. No dependencies, no IO."""
        return {"status": "healthy"}

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.post("/api/generate-report")
    async def generate_report_endpoint(
        request_data: GenerateReportRequest,
        config: Config = Depends(get_config),
        renderer: Optional[BlockRenderer] = Depends(get_block_renderer),
        chart_renderer: ChartRenderer = Depends(get_chart_renderer),
        resolver: ImageResolver = Depends(get_image_resolver),
    ):
        """
        Generate an appraisal report PDF.

        Returns:
            - 200 application/pdf with the report
            - 403 if the access level does not allow the report type
            - 422 if the inputs are invalid
        """
        try:
            options = ReportOptions.from_dict(request_data.options)
            property_data = PropertyData.from_dict(request_data.property)
            appraisal = AppraisalData.from_dict(request_data.appraisal)
            market = MarketAnalysis.from_dict(request_data.market)
        except (TypeError, ValueError) as e:
            return _error(422, f"Invalid report data: {e}")

        if request_data.access_level is not None and not can_access_report_type(
            options.report_type, request_data.access_level
        ):
            allowed = [t.value for t in available_report_types(request_data.access_level)]
            logger.info(
                "Access level %s denied %s report", request_data.access_level, options.report_type.value
            )
            return _error(
                403,
                f"Report type '{options.report_type.value}' is not available for access level "
                f"'{request_data.access_level}'. Available: {', '.join(allowed)}",
            )

        if request_data.apply_privacy_filter:
            property_data.images = filter_property_images(property_data.images, options.report_type)
            appraisal = filter_appraisal(appraisal, options.report_type)
            market = filter_market(market, options.report_type)

        generator = ReportGenerator(
            config=config,
            renderer=renderer,
            chart_renderer=chart_renderer,
            resolver=resolver,
        )
        try:
            pdf_bytes, composition = await generator.render(property_data, appraisal, market, options)
        except ReportValidationError as e:
            return _error(422, "Missing required report data", errors=e.errors)

        metadata = generate_report_metadata(appraisal, options.report_type, request_data.generated_for)
        logger.info(
            "Report %s generated for %s (%s, %s privacy, %d fields filtered)",
            metadata["reference"],
            metadata["generated_for"],
            metadata["report_type"],
            metadata["privacy_level"],
            metadata["filtered_fields_count"],
        )
        filename = f"APR-{appraisal.reference_number}.pdf"
        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "X-Report-Pages": str(composition.page_count),
                "X-Degraded-Sections": ",".join(composition.degraded_blocks),
                "X-Report-Type": metadata["report_type"],
                "X-Privacy-Level": metadata["privacy_level"],
                "X-Filtered-Fields": str(metadata["filtered_fields_count"]),
                "X-Generated-At": metadata["generated_at"],
            },
        )

    @app.get("/api/health")
    async def api_health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": "production" if IS_PRODUCTION else "development",
        }

    return app


# Create app instance for uvicorn
app = create_app()
