"""
Tests for report privacy filtering

Tests covering:
1. Per-tier redaction of client, appraiser and pricing data
2. Identity fields never filtered
3. Image ordering and per-tier caps
4. Access levels
5. Privacy notice flowing into the planned sections
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from reporting.filtering import (
    LICENSED_APPRAISER,
    PRIVACY_MESSAGES,
    REPORT_FILTERS,
    available_report_types,
    can_access_report_type,
    filter_appraisal,
    filter_market,
    filter_property_images,
    generate_report_metadata,
)
from reporting.planner import SectionPlanner, section_names
from reporting.schemas import InvestmentAnalysis, PropertyImage, ReportOptions, ReportType

from conftest import NullChartRenderer


def make_image(index: int, primary: bool = False, page: int = 0) -> PropertyImage:
    return PropertyImage(
        id=f"img-{index}",
        url=f"https://example.com/{index}.jpg",
        is_primary=primary,
        document_page=page,
        order_index=index,
    )


# =============================================================================
# Test: Appraisal Redaction
# =============================================================================


class TestFilterAppraisal:
    """What each tier removes from the appraisal."""

    def test_standard_redacts_people_and_pricing(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        filtered = filter_appraisal(appraisal, ReportType.STANDARD)

        assert filtered.client_name == ""
        assert filtered.appraiser_name == LICENSED_APPRAISER
        assert filtered.appraiser_license == ""
        assert filtered.calculation_results == {}
        assert "client_name" in filtered.filtered_fields
        assert "investment_analysis" in filtered.filtered_fields
        assert filtered.privacy_notice == PRIVACY_MESSAGES[ReportType.STANDARD]

    def test_detailed_keeps_appraiser(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        filtered = filter_appraisal(appraisal, ReportType.DETAILED)

        assert filtered.client_name == ""
        assert filtered.appraiser_name == "Eng. Mona Hassan"
        assert filtered.appraiser_license == "FRA-2291"
        assert filtered.calculation_results == {}
        assert "valuation_method" in filtered.filtered_fields
        assert "appraiser_license" not in filtered.filtered_fields

    def test_comprehensive_keeps_everything(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        filtered = filter_appraisal(appraisal, ReportType.COMPREHENSIVE)

        assert filtered.filtered_fields == []
        assert filtered.client_name == "Amlak Finance"
        assert filtered.calculation_results == appraisal.calculation_results
        assert filtered.privacy_notice == "This Comprehensive report includes all available information."

    @pytest.mark.parametrize("report_type", list(ReportType))
    def test_identity_is_never_filtered(self, sample_inputs, report_type):
        _, appraisal, _, _ = sample_inputs
        filtered = filter_appraisal(appraisal, report_type)

        assert filtered.id == appraisal.id
        assert filtered.reference_number == appraisal.reference_number
        assert filtered.market_value_estimate == appraisal.market_value_estimate
        assert filtered.appraisal_date == appraisal.appraisal_date

    def test_input_is_not_mutated(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        filter_appraisal(appraisal, ReportType.STANDARD)

        assert appraisal.client_name == "Amlak Finance"
        assert appraisal.calculation_results["land_value"] == 1_150_000
        assert appraisal.privacy_notice is None

    def test_personal_form_keys_removed(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        appraisal.form_data["client_contact"] = "+20 100 000 0000"
        appraisal.form_data["appraiser_phone"] = "+20 100 111 1111"

        filtered = filter_appraisal(appraisal, ReportType.STANDARD)

        assert "client_contact" not in filtered.form_data
        assert "appraiser_phone" not in filtered.form_data
        assert filtered.form_data["location_rating"] == "excellent"


class TestFilterMarket:
    """Comparables and projections by tier."""

    def test_standard_drops_investment_projections(self, sample_inputs):
        _, _, market, _ = sample_inputs
        filtered = filter_market(market, ReportType.STANDARD)

        assert filtered.investment_analysis == InvestmentAnalysis()
        assert len(filtered.comparable_properties) == 2
        assert market.investment_analysis.rental_yield == 6.8

    def test_comprehensive_unchanged(self, sample_inputs):
        _, _, market, _ = sample_inputs
        assert filter_market(market, ReportType.COMPREHENSIVE) is market


# =============================================================================
# Test: Images
# =============================================================================


class TestFilterImages:
    """Image ordering and caps."""

    def test_primary_first_then_page_then_order(self):
        images = [
            make_image(0, page=2),
            make_image(1, page=1),
            make_image(2, primary=True, page=3),
            make_image(3, page=1),
        ]
        ordered = filter_property_images(images, ReportType.COMPREHENSIVE)
        assert [image.id for image in ordered] == ["img-2", "img-1", "img-3", "img-0"]

    @pytest.mark.parametrize("report_type", list(ReportType))
    def test_capped_per_tier(self, report_type):
        images = [make_image(i) for i in range(20)]
        selected = filter_property_images(images, report_type)
        assert len(selected) == REPORT_FILTERS[report_type].max_images

    def test_caps(self):
        assert [REPORT_FILTERS[t].max_images for t in ReportType] == [3, 6, 15]

    def test_no_images(self):
        assert filter_property_images([], ReportType.STANDARD) == []


# =============================================================================
# Test: Access
# =============================================================================


class TestAccessLevels:
    """Which tiers each access level may request."""

    def test_available_types(self):
        assert available_report_types("basic") == [ReportType.STANDARD]
        assert available_report_types("premium") == [ReportType.STANDARD, ReportType.DETAILED]
        assert len(available_report_types("enterprise")) == 3

    def test_unknown_level_falls_back_to_basic(self):
        assert available_report_types("guest") == [ReportType.STANDARD]

    def test_can_access(self):
        assert can_access_report_type(ReportType.DETAILED, "premium")
        assert not can_access_report_type(ReportType.COMPREHENSIVE, "premium")
        assert can_access_report_type(ReportType.COMPREHENSIVE, "enterprise")

    def test_metadata(self, sample_inputs):
        _, appraisal, _, _ = sample_inputs
        filtered = filter_appraisal(appraisal, ReportType.STANDARD)
        metadata = generate_report_metadata(filtered, ReportType.STANDARD, generated_for="bank")

        assert metadata["privacy_level"] == "high"
        assert metadata["reference"] == "OB-2025-0147"
        assert metadata["filtered_fields_count"] == len(filtered.filtered_fields)
        assert metadata["generated_for"] == "bank"


class TestPrivacyNoticeSection:
    """A filtered appraisal carries a notice the planner turns into a section."""

    def test_filtered_standard_report_has_notice(self, sample_inputs):
        property_data, appraisal, market, _ = sample_inputs
        filtered = filter_appraisal(appraisal, ReportType.STANDARD)
        options = ReportOptions.build(report_type="standard", format="executive", language="en")

        blocks = SectionPlanner(chart_renderer=NullChartRenderer()).plan(
            property_data, filtered, filter_market(market, ReportType.STANDARD), options
        )
        names = section_names(blocks)

        assert names[-3:] == ["Property Images", "Privacy Notice", "Certification"]
        notice = next(b for b in blocks if b.name == "Privacy Notice")
        assert "Client identity protected for privacy" in notice.render_spec
