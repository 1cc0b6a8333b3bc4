"""
Section Planner - decides which report sections to render, and in what order.

Inclusion rules:

    Header, Executive Summary, Property Details,
    Quality Rating, Certification           always
    Market Analysis                         include_market_comparables
    Legal Analysis                          detailed/comprehensive tier
                                            + include_legal_analysis + legal status
    Investment Analysis                     detailed/comprehensive tier
                                            + include_investment_projections
    Mortgage Analysis                       detailed/comprehensive tier
                                            + include_mortgage_analysis + eligibility
    Calculation Methods,
    Environmental Factors                   comprehensive tier
    Property Images                         include_images + at least one image
    Privacy Notice                          non-comprehensive tier + privacy notice
    Methodology                             format == comprehensive
    Certification                           always, last

Planning is a pure function of its inputs. The only collaborator is an
optional chart renderer; a chart that renders empty is left out of its
section.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from . import sections
from .charts import ChartSpec
from .filtering import FILTERED_FIELD_EXPLANATIONS
from .gallery import normalise_images
from .schemas import (
    AppraisalData,
    BlockKind,
    ContentBlock,
    GallerySpec,
    MarketAnalysis,
    PropertyData,
    ReportFormat,
    ReportOptions,
    ReportType,
    ReportValidationError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Section Names
# =============================================================================

HEADER = "Header"
EXECUTIVE_SUMMARY = "Executive Summary"
PROPERTY_DETAILS = "Property Details"
QUALITY_RATING = "Quality Rating"
MARKET_ANALYSIS = "Market Analysis"
LEGAL_ANALYSIS = "Legal Analysis"
INVESTMENT_ANALYSIS = "Investment Analysis"
MORTGAGE_ANALYSIS = "Mortgage Analysis"
CALCULATION_METHODS = "Calculation Methods"
ENVIRONMENTAL_FACTORS = "Environmental Factors"
PROPERTY_IMAGES = "Property Images"
PRIVACY_NOTICE = "Privacy Notice"
METHODOLOGY = "Methodology"
CERTIFICATION = "Certification"

SECTION_ORDER = [
    HEADER,
    EXECUTIVE_SUMMARY,
    PROPERTY_DETAILS,
    QUALITY_RATING,
    MARKET_ANALYSIS,
    LEGAL_ANALYSIS,
    INVESTMENT_ANALYSIS,
    MORTGAGE_ANALYSIS,
    CALCULATION_METHODS,
    ENVIRONMENTAL_FACTORS,
    PROPERTY_IMAGES,
    PRIVACY_NOTICE,
    METHODOLOGY,
    CERTIFICATION,
]


class ChartRenderer(Protocol):
    def render_chart(self, spec: ChartSpec) -> Optional[bytes]:
        ...


# =============================================================================
# Validation
# =============================================================================


def validate_report_inputs(property_data: PropertyData, appraisal: AppraisalData) -> None:
    """
    Check the identity fields every report needs.

    Raises:
        ReportValidationError: listing every missing field.
    """
    errors = []
    if property_data is None:
        errors.append("property record is required")
    elif not str(property_data.id or "").strip():
        errors.append("property.id is required")

    if appraisal is None:
        errors.append("appraisal record is required")
    else:
        if not str(appraisal.id or "").strip():
            errors.append("appraisal.id is required")
        if not str(appraisal.reference_number or "").strip():
            errors.append("appraisal.reference_number is required")

    if errors:
        raise ReportValidationError(errors)


# =============================================================================
# Planner
# =============================================================================


class SectionPlanner:
    """
    Builds the ordered list of content blocks for one report.

    Usage:
        planner = SectionPlanner(chart_renderer=MatplotlibChartRenderer())
        blocks = planner.plan(property_data, appraisal, market, options)
    """

    def __init__(self, chart_renderer: Optional[ChartRenderer] = None):
        self.chart_renderer = chart_renderer

    def plan(
        self,
        property_data: PropertyData,
        appraisal: AppraisalData,
        market: MarketAnalysis,
        options: ReportOptions,
    ) -> list[ContentBlock]:
        language = options.language
        detailed_tier = options.is_detailed_tier
        comprehensive_tier = options.report_type is ReportType.COMPREHENSIVE
        images = normalise_images(property_data.images)

        blocks = [
            self._block(HEADER, sections.header_section(property_data, appraisal, language)),
            self._block(
                EXECUTIVE_SUMMARY,
                sections.executive_summary_section(property_data, appraisal, market, language),
            ),
            self._block(PROPERTY_DETAILS, sections.property_details_section(property_data, appraisal, language)),
            self._block(
                QUALITY_RATING,
                sections.quality_rating_section(
                    property_data,
                    appraisal,
                    language,
                    radar_chart=self._render_chart(self._quality_chart(appraisal)),
                ),
            ),
        ]

        if options.include_market_comparables:
            blocks.append(self._block(
                MARKET_ANALYSIS,
                sections.market_analysis_section(
                    market,
                    appraisal,
                    language,
                    trend_chart=self._render_chart(self._trend_chart(market)),
                    comparison_chart=self._render_chart(self._comparison_chart(property_data, appraisal, market)),
                ),
            ))

        if detailed_tier:
            if options.include_legal_analysis and appraisal.legal_status:
                blocks.append(self._block(LEGAL_ANALYSIS, sections.legal_analysis_section(appraisal, language)))
            if options.include_investment_projections:
                blocks.append(self._block(
                    INVESTMENT_ANALYSIS,
                    sections.investment_analysis_section(
                        market,
                        property_data,
                        appraisal,
                        language,
                        breakdown_chart=self._render_chart(self._investment_chart(market)),
                    ),
                ))
            if options.include_mortgage_analysis and appraisal.mortgage_eligibility:
                blocks.append(self._block(MORTGAGE_ANALYSIS, sections.mortgage_analysis_section(appraisal, language)))

        if comprehensive_tier:
            blocks.append(self._block(
                CALCULATION_METHODS,
                sections.calculation_methods_section(property_data, appraisal, market, language),
            ))
            blocks.append(self._block(
                ENVIRONMENTAL_FACTORS,
                sections.environmental_factors_section(property_data, appraisal, language),
            ))

        if options.include_images and images:
            blocks.append(ContentBlock(
                name=PROPERTY_IMAGES,
                render_spec=GallerySpec(images=tuple(images), report_type=options.report_type),
                kind=BlockKind.GALLERY,
            ))

        if not comprehensive_tier and appraisal.privacy_notice:
            blocks.append(self._block(
                PRIVACY_NOTICE,
                sections.privacy_notice_section(
                    appraisal,
                    options.report_type,
                    language,
                    field_explanations=FILTERED_FIELD_EXPLANATIONS,
                ),
            ))

        # Keyed on format, not report_type; the two are independent options
        if options.format is ReportFormat.COMPREHENSIVE:
            blocks.append(self._block(METHODOLOGY, sections.methodology_section(appraisal, language)))

        blocks.append(self._block(CERTIFICATION, sections.certification_section(appraisal, language)))

        logger.info(
            "Planned %d sections for %s report (%s format, language %s): %s",
            len(blocks),
            options.report_type.value,
            options.format.value,
            language.value,
            ", ".join(block.name for block in blocks),
        )
        return blocks

    @staticmethod
    def _block(name: str, html: str) -> ContentBlock:
        return ContentBlock(name=name, render_spec=html)

    # =========================================================================
    # Charts
    # =========================================================================

    def _render_chart(self, spec: ChartSpec) -> Optional[bytes]:
        if self.chart_renderer is None:
            return None
        try:
            return self.chart_renderer.render_chart(spec)
        except Exception as e:
            logger.warning("Chart %r failed to render, omitting it: %s", spec.title, e)
            return None

    @staticmethod
    def _quality_chart(appraisal: AppraisalData) -> ChartSpec:
        scores = sections.quality_scores(appraisal.form_data or {})
        return ChartSpec(
            kind="radar",
            title="Quality Rating",
            labels=("Condition", "Location", "Amenities"),
            values=(scores["building_condition"], scores["location"], scores["amenities"]),
        )

    @staticmethod
    def _trend_chart(market: MarketAnalysis) -> ChartSpec:
        trends = market.market_trends
        current = trends.average_price_per_sqm
        values: tuple[float, ...] = ()
        growth_12m = 1 + trends.price_change_12months / 100
        growth_6m = 1 + trends.price_change_6months / 100
        if current and growth_12m > 0 and growth_6m > 0:
            values = (current / growth_12m, current / growth_6m, current)
        return ChartSpec(
            kind="line",
            title="Average Price per m² (EGP)",
            labels=("12 months ago", "6 months ago", "Today") if values else (),
            values=values,
            series_label="Price per m²",
        )

    @staticmethod
    def _comparison_chart(
        property_data: PropertyData,
        appraisal: AppraisalData,
        market: MarketAnalysis,
    ) -> ChartSpec:
        comps = market.comparable_properties
        subject = appraisal.market_value_estimate / property_data.area if property_data.area else None
        return ChartSpec(
            kind="bar",
            title="Comparable Price per m² (EGP)",
            labels=tuple(f"Comp {index + 1}" for index in range(len(comps))),
            values=tuple(comp.price_per_sqm for comp in comps),
            reference_value=subject,
        )

    @staticmethod
    def _investment_chart(market: MarketAnalysis) -> ChartSpec:
        investment = market.investment_analysis
        return ChartSpec(
            kind="doughnut",
            title="Annual Return Breakdown",
            labels=("Rental yield", "Appreciation"),
            values=(investment.rental_yield, investment.appreciation_rate),
        )


def section_names(blocks: list[ContentBlock]) -> list[str]:
    return [block.name for block in blocks]
