"""
Report privacy filtering.

Each report tier exposes a different amount of the appraisal. Filtering runs
before planning: redacted fields are removed from the records, their names
collected in AppraisalData.filtered_fields, and a privacy notice attached.
The Section Planner reads the notice to decide whether to add the Privacy
Notice section.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Iterable

from .schemas import (
    AppraisalData,
    InvestmentAnalysis,
    MarketAnalysis,
    PropertyImage,
    ReportType,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportDataFilter:
    include_personal_info: bool
    include_financial_details: bool
    include_appraiser_info: bool
    include_methodologies: bool
    include_comparables: bool
    include_investment_projections: bool
    include_images: bool
    max_images: int


REPORT_FILTERS: dict[ReportType, ReportDataFilter] = {
    ReportType.STANDARD: ReportDataFilter(
        include_personal_info=False,
        include_financial_details=False,
        include_appraiser_info=False,
        include_methodologies=False,
        include_comparables=True,
        include_investment_projections=False,
        include_images=True,
        max_images=3,
    ),
    ReportType.DETAILED: ReportDataFilter(
        include_personal_info=False,
        include_financial_details=True,
        include_appraiser_info=True,
        include_methodologies=False,
        include_comparables=True,
        include_investment_projections=True,
        include_images=True,
        max_images=6,
    ),
    ReportType.COMPREHENSIVE: ReportDataFilter(
        include_personal_info=True,
        include_financial_details=True,
        include_appraiser_info=True,
        include_methodologies=True,
        include_comparables=True,
        include_investment_projections=True,
        include_images=True,
        max_images=15,
    ),
}

PRIVACY_LEVELS = {
    ReportType.STANDARD: "high",
    ReportType.DETAILED: "medium",
    ReportType.COMPREHENSIVE: "low",
}

ACCESS_LEVELS: dict[str, list[ReportType]] = {
    "basic": [ReportType.STANDARD],
    "premium": [ReportType.STANDARD, ReportType.DETAILED],
    "enterprise": [ReportType.STANDARD, ReportType.DETAILED, ReportType.COMPREHENSIVE],
}

FILTERED_FIELD_EXPLANATIONS = {
    "client_name": "Client identity protected for privacy",
    "client_contact": "Client contact information protected",
    "client_requirements": "Specific client requirements protected",
    "appraiser_email": "Appraiser contact details protected",
    "appraiser_phone": "Appraiser phone number protected",
    "appraiser_license": "Appraiser license details protected",
    "appraiser_credentials": "Detailed appraiser credentials protected",
    "detailed_pricing": "Detailed price breakdown not included in this report type",
    "valuation_method": "Specific valuation methodologies protected",
    "calculation_details": "Detailed calculations protected",
    "comparable_properties": "Market comparables not included",
    "investment_analysis": "Investment projections not included",
    "inspection_date": "Specific inspection details protected",
}

PRIVACY_MESSAGES = {
    ReportType.STANDARD: (
        "This Standard report provides essential property valuation information "
        "with privacy protection for sensitive data."
    ),
    ReportType.DETAILED: (
        "This Detailed report includes comprehensive market analysis while "
        "protecting certain confidential information."
    ),
    ReportType.COMPREHENSIVE: (
        "This Comprehensive report includes all available information with minimal privacy filtering."
    ),
}

LICENSED_APPRAISER = "Licensed Appraiser"

# form_data keys removed with each redacted category
PERSONAL_KEYS = ("client_name", "client_contact", "client_requirements")
APPRAISER_KEYS = ("appraiser_email", "appraiser_phone", "appraiser_license", "appraiser_credentials")
PRICING_KEYS = ("land_value", "building_value", "improvement_value", "depreciation_percentage", "replacement_cost")


def _without(data: dict, keys: Iterable[str]) -> dict:
    keys = set(keys)
    return {k: v for k, v in (data or {}).items() if k not in keys}


def generate_privacy_notice(report_type: ReportType, filtered_fields: list[str]) -> str:
    name = report_type.value.capitalize()
    if not filtered_fields:
        return f"This {name} report includes all available information."
    return PRIVACY_MESSAGES[report_type]


# =============================================================================
# Filters
# =============================================================================


def filter_appraisal(appraisal: AppraisalData, report_type: ReportType) -> AppraisalData:
    """
    Return a copy of the appraisal with the tier's redactions applied.

    Identity fields (id, reference number, market value, appraisal date)
    are never filtered.
    """
    filters = REPORT_FILTERS[report_type]
    form_data = dict(appraisal.form_data or {})
    calculation_results = dict(appraisal.calculation_results or {})
    changes: dict = {}
    filtered: list[str] = []

    if not filters.include_personal_info:
        changes["client_name"] = ""
        form_data = _without(form_data, PERSONAL_KEYS)
        filtered += ["client_name", "client_contact", "client_requirements"]

    if not filters.include_appraiser_info:
        changes["appraiser_name"] = LICENSED_APPRAISER
        changes["appraiser_license"] = ""
        form_data = _without(form_data, APPRAISER_KEYS)
        filtered += ["appraiser_email", "appraiser_phone", "appraiser_license", "appraiser_credentials"]

    if not filters.include_financial_details:
        calculation_results = _without(calculation_results, PRICING_KEYS)
        form_data = _without(form_data, PRICING_KEYS + ("inspection_date",))
        filtered += ["detailed_pricing", "inspection_date"]

    if not filters.include_methodologies:
        calculation_results = {}
        form_data = _without(form_data, ("valuation_method", "calculation_details"))
        filtered += ["valuation_method", "calculation_details"]

    if not filters.include_comparables:
        filtered.append("comparable_properties")

    if not filters.include_investment_projections:
        filtered.append("investment_analysis")

    logger.info("Privacy filter for %s report removed %d fields", report_type.value, len(filtered))
    return replace(
        appraisal,
        form_data=form_data,
        calculation_results=calculation_results,
        filtered_fields=filtered,
        privacy_notice=generate_privacy_notice(report_type, filtered),
        **changes,
    )


def filter_market(market: MarketAnalysis, report_type: ReportType) -> MarketAnalysis:
    """Drop comparables and investment projections the tier does not expose."""
    filters = REPORT_FILTERS[report_type]
    changes: dict = {}
    if not filters.include_comparables:
        changes["comparable_properties"] = []
    if not filters.include_investment_projections:
        changes["investment_analysis"] = InvestmentAnalysis()
    return replace(market, **changes) if changes else market


def filter_property_images(images: list[PropertyImage], report_type: ReportType) -> list[PropertyImage]:
    """
    Order images primary first, then by document page and order index, and
    cap the count at the tier's limit.
    """
    filters = REPORT_FILTERS[report_type]
    if not filters.include_images or not images:
        return []

    ordered = sorted(images, key=lambda image: (not image.is_primary, image.document_page, image.order_index))
    selected = ordered[:filters.max_images]
    logger.info(
        "Image filtering for %s: %d of %d kept (max %d, %d primary)",
        report_type.value,
        len(selected),
        len(images),
        filters.max_images,
        sum(1 for image in selected if image.is_primary),
    )
    return selected


# =============================================================================
# Access
# =============================================================================


def available_report_types(access_level: str = "basic") -> list[ReportType]:
    return list(ACCESS_LEVELS.get(access_level, ACCESS_LEVELS["basic"]))


def can_access_report_type(report_type: ReportType, access_level: str = "basic") -> bool:
    return report_type in available_report_types(access_level)


def generate_report_metadata(appraisal: AppraisalData, report_type: ReportType, generated_for: str) -> dict:
    """Descriptive metadata attached to a generated report."""
    return {
        "report_type": report_type.value,
        "report_type_display": report_type.value.capitalize(),
        "privacy_level": PRIVACY_LEVELS[report_type],
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "generated_for": generated_for,
        "appraisal_id": appraisal.id,
        "reference": appraisal.reference_number,
        "privacy_notice": appraisal.privacy_notice,
        "filtered_fields_count": len(appraisal.filtered_fields or []),
        "disclaimer": (
            f"This {report_type.value} report has been generated with appropriate privacy filtering. "
            "Some information may be protected or excluded based on the report type selected."
        ),
    }
