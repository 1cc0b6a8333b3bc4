"""
Reporting module for the OpenBeit appraisal report engine.

Generates paginated bilingual (Arabic/English) property appraisal PDFs
from property, appraisal and market data.

Usage:
    from reporting import ReportGenerator
    from reporting.schemas import create_sample_inputs

    property_data, appraisal, market, options = create_sample_inputs()
    result = ReportGenerator().generate_report(property_data, appraisal, market, options)

Async usage (returns the PDF bytes):
    from reporting import generate_report

    pdf_bytes = await generate_report(property_data, appraisal, market, options)
"""

from .compositor import A4_GEOMETRY, PageCompositor, PageGeometry, chunk_windows
from .filtering import (
    REPORT_FILTERS,
    available_report_types,
    can_access_report_type,
    filter_appraisal,
    filter_market,
    filter_property_images,
)
from .gallery import ImageGalleryLayout
from .pdf_generator import ReportGenerator, generate_report
from .planner import SectionPlanner, validate_report_inputs
from .schemas import (
    AppraisalData,
    Bitmap,
    ComparableProperty,
    CompositionResult,
    ContentBlock,
    InvestmentAnalysis,
    Language,
    MarketAnalysis,
    MarketTrends,
    Placement,
    PropertyData,
    PropertyImage,
    ReportFormat,
    ReportOptions,
    ReportSuccess,
    ReportType,
    ReportValidationError,
    create_sample_inputs,
)

__all__ = [
    # Generator
    "ReportGenerator",
    "generate_report",
    # Pipeline
    "SectionPlanner",
    "validate_report_inputs",
    "PageCompositor",
    "PageGeometry",
    "A4_GEOMETRY",
    "chunk_windows",
    "ImageGalleryLayout",
    # Privacy filtering
    "REPORT_FILTERS",
    "filter_appraisal",
    "filter_market",
    "filter_property_images",
    "available_report_types",
    "can_access_report_type",
    # Schemas
    "PropertyData",
    "PropertyImage",
    "AppraisalData",
    "MarketAnalysis",
    "MarketTrends",
    "InvestmentAnalysis",
    "ComparableProperty",
    "ReportOptions",
    "Language",
    "ReportType",
    "ReportFormat",
    "ContentBlock",
    "Bitmap",
    "Placement",
    "CompositionResult",
    "ReportSuccess",
    "ReportValidationError",
    "create_sample_inputs",
]
