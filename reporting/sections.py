"""
Bilingual HTML builders for each report section.

Every builder returns a self-contained HTML fragment sized for a 794px wide
layout. Labels come from REPORT_TEXTS so the same builder serves English,
Arabic and side-by-side bilingual output. Optional data that is missing is
rendered as the localised "not specified" placeholder.
"""

from __future__ import annotations

import base64
import html
from datetime import date
from typing import Any, Optional

from utils.formatting import format_area, format_currency, format_number, format_percent

from .schemas import AppraisalData, Language, MarketAnalysis, PropertyData, ReportType


# =============================================================================
# Texts
# =============================================================================

REPORT_TEXTS: dict[str, dict[str, str]] = {
    "en": {
        "property_appraisal_report": "Property Appraisal Report",
        "executive_summary": "Executive Summary",
        "property_details": "Property Details",
        "quality_rating": "Comprehensive Quality Rating",
        "market_analysis": "Market Analysis",
        "legal_analysis": "Egyptian Real Estate Valuation Standards Compliance",
        "mortgage_analysis": "Mortgage Eligibility Analysis",
        "investment_analysis": "Investment Analysis",
        "calculation_methods": "Valuation Methods",
        "environmental_factors": "Environmental Factors",
        "privacy_notice": "Privacy Notice",
        "methodology": "Methodology & Professional Standards",
        "certification": "Appraiser Certification",
        "property_type": "Property Type",
        "address": "Address",
        "city": "City",
        "district": "District",
        "area": "Area",
        "bedrooms": "Bedrooms",
        "bathrooms": "Bathrooms",
        "floor": "Floor",
        "building_age": "Building Age",
        "asking_price": "Asking Price",
        "appraised_value": "Appraised Value",
        "price_per_sqm": "Price per m²",
        "reference_number": "Reference Number",
        "appraisal_date": "Appraisal Date",
        "client": "Client",
        "confidence_level": "Confidence Level",
        "comparable_sales": "Comparable Sales",
        "market_trends": "Market Trends",
        "average_market_price": "Average Market Price",
        "price_change_6m": "Price Change (6 months)",
        "price_change_12m": "Price Change (12 months)",
        "market_activity": "Market Activity",
        "days_on_market": "Average Days on Market",
        "distance": "Distance",
        "sold_date": "Sold Date",
        "price": "Price",
        "rental_yield": "Rental Yield",
        "roi_5year": "5-Year ROI",
        "roi_10year": "10-Year ROI",
        "appreciation_rate": "Appreciation Rate",
        "rental_demand": "Rental Demand",
        "ownership_status": "Ownership Status",
        "registration_number": "Registration Number",
        "eligible": "ELIGIBLE FOR MORTGAGE FINANCING",
        "not_eligible": "NOT ELIGIBLE FOR MORTGAGE FINANCING",
        "max_loan_amount": "Maximum Loan Amount",
        "interest_rate": "Interest Rate",
        "monthly_installment": "Monthly Installment",
        "down_payment": "Required Down Payment",
        "cost_approach": "Cost Approach",
        "sales_comparison": "Sales Comparison Approach",
        "income_approach": "Income Approach",
        "land_value": "Land Value",
        "building_value": "Building Value",
        "replacement_cost": "Replacement Cost",
        "depreciation": "Depreciation",
        "overall_rating": "Overall Rating",
        "building_condition": "Building Condition",
        "location": "Location",
        "amenities": "Amenities",
        "utilities": "Utilities",
        "available": "Available",
        "not_available": "Not available",
        "appraiser_signature": "Appraiser Signature",
        "license_number": "License Number",
        "report_generated": "Report generated on",
        "report_type": "Report Type",
        "protected_fields": "Protected Fields",
        "upgrade_hint": "For comprehensive details, please upgrade report type",
        "disclaimer": (
            "This report is prepared for the exclusive use of the client and should not be "
            "relied upon by third parties without written consent."
        ),
        "not_specified": "Not specified",
    },
    "ar": {
        "property_appraisal_report": "تقرير تقييم عقاري",
        "executive_summary": "الملخص التنفيذي",
        "property_details": "معلومات عن العقار",
        "quality_rating": "تقييم الجودة الشامل",
        "market_analysis": "دراسة السوق بالمنطقة",
        "legal_analysis": "الامتثال للمعايير المصرية للتقييم العقاري",
        "mortgage_analysis": "تحليل أهلية التمويل العقاري",
        "investment_analysis": "تحليل الاستثمار",
        "calculation_methods": "طرق حساب القيمة",
        "environmental_factors": "العوامل البيئية",
        "privacy_notice": "إشعار الخصوصية",
        "methodology": "المنهجية والمعايير المهنية",
        "certification": "شهادة المقيم",
        "property_type": "نوع العقار",
        "address": "العنوان",
        "city": "المدينة",
        "district": "الحي",
        "area": "المساحة",
        "bedrooms": "غرف النوم",
        "bathrooms": "دورات المياه",
        "floor": "الطابق",
        "building_age": "عمر المبنى",
        "asking_price": "السعر المطلوب",
        "appraised_value": "القيمة المقدرة",
        "price_per_sqm": "السعر لكل متر مربع",
        "reference_number": "الرقم المرجعي",
        "appraisal_date": "تاريخ التقييم",
        "client": "العميل",
        "confidence_level": "مستوى الثقة",
        "comparable_sales": "المبيعات المماثلة",
        "market_trends": "اتجاهات السوق",
        "average_market_price": "متوسط أسعار السوق",
        "price_change_6m": "تغير السعر (٦ أشهر)",
        "price_change_12m": "تغير السعر (١٢ شهر)",
        "market_activity": "نشاط السوق",
        "days_on_market": "متوسط الأيام في السوق",
        "distance": "المسافة",
        "sold_date": "تاريخ البيع",
        "price": "السعر",
        "rental_yield": "العائد الإيجاري",
        "roi_5year": "العائد على ٥ سنوات",
        "roi_10year": "العائد على ١٠ سنوات",
        "appreciation_rate": "معدل نمو القيمة",
        "rental_demand": "الطلب الإيجاري",
        "ownership_status": "حالة الملكية",
        "registration_number": "رقم التسجيل",
        "eligible": "مؤهل للحصول على تمويل عقاري ✓",
        "not_eligible": "غير مؤهل للتمويل العقاري ✗",
        "max_loan_amount": "الحد الأقصى للقرض",
        "interest_rate": "معدل الفائدة",
        "monthly_installment": "القسط الشهري",
        "down_payment": "المقدم المطلوب",
        "cost_approach": "طريقة التكلفة",
        "sales_comparison": "طريقة المقارنة بالمبيعات",
        "income_approach": "طريقة الدخل",
        "land_value": "قيمة الأرض",
        "building_value": "قيمة المباني",
        "replacement_cost": "تكلفة الإحلال",
        "depreciation": "الإهلاك",
        "overall_rating": "التقييم العام",
        "building_condition": "حالة المبنى",
        "location": "الموقع",
        "amenities": "المرافق",
        "utilities": "المرافق العامة",
        "available": "متوفر",
        "not_available": "غير متوفر",
        "appraiser_signature": "توقيع المقيم",
        "license_number": "رقم الترخيص",
        "report_generated": "تم إنشاء التقرير في",
        "report_type": "نوع التقرير",
        "protected_fields": "الحقول المحمية",
        "upgrade_hint": "للحصول على تقرير شامل، يرجى ترقية نوع التقرير",
        "disclaimer": (
            "تم إعداد هذا التقرير للاستخدام الحصري للعميل ولا ينبغي الاعتماد عليه "
            "من قبل أطراف ثالثة دون موافقة كتابية."
        ),
        "not_specified": "غير محدد",
    },
}

REPORT_TYPE_NAMES = {
    ReportType.STANDARD: {"en": "Standard", "ar": "أساسي"},
    ReportType.DETAILED: {"en": "Detailed", "ar": "مفصل"},
    ReportType.COMPREHENSIVE: {"en": "Comprehensive", "ar": "شامل"},
}

UTILITIES = [
    ("water_supply_available", "Water", "المياه"),
    ("electricity_available", "Electricity", "الكهرباء"),
    ("gas_supply_available", "Gas", "الغاز"),
    ("internet_fiber_available", "Internet", "الإنترنت"),
    ("elevator_available", "Elevator", "المصعد"),
    ("telephone_available", "Telephone", "الهاتف الأرضي"),
    ("sewage_system_available", "Sewage", "الصرف الصحي"),
]

ENVIRONMENTAL_FACTORS = [
    ("air_quality_good", "Air quality", "جودة الهواء"),
    ("noise_level_acceptable", "Noise level", "مستوى الضوضاء"),
    ("green_spaces_nearby", "Green spaces nearby", "مساحات خضراء قريبة"),
    ("flood_risk_low", "Low flood risk", "انخفاض خطر الفيضانات"),
    ("street_lighting_adequate", "Street lighting", "إنارة الشوارع"),
    ("road_conditions_good", "Road conditions", "حالة الطرق"),
    ("waste_management_good", "Waste management", "إدارة النفايات"),
    ("internet_coverage_good", "Internet coverage", "تغطية الإنترنت"),
]

BASE_STYLE = "font-family: 'Noto Sans Arabic', 'Cairo', Arial, sans-serif; padding: 20px; margin: 15px 0;"
ACCENT = "#3b82f6"


# =============================================================================
# Quality Scoring
# =============================================================================

CONDITION_SCORES = {
    "ممتاز": 95, "excellent": 95,
    "جيد جداً": 85, "very_good": 85,
    "جيد": 75, "good": 75,
    "مقبول": 60, "acceptable": 60,
    "ضعيف": 40, "poor": 40,
}

LOCATION_SCORES = {
    "ممتاز": 90, "excellent": 90,
    "جيد جداً": 80, "very_good": 80,
    "جيد": 70, "good": 70,
    "متوسط": 60, "average": 60,
    "ضعيف": 40, "poor": 40,
}

AMENITIES_SCORES = {
    "متكامل": 85, "complete": 85,
    "جيد": 70, "good": 70,
    "متوسط": 55, "average": 55,
    "أساسي": 40, "basic": 40,
    "محدود": 25, "limited": 25,
}


def condition_score(rating: Optional[str]) -> int:
    return CONDITION_SCORES.get(rating or "", 75)


def location_score(rating: Optional[str]) -> int:
    return LOCATION_SCORES.get(rating or "", 70)


def amenities_score(rating: Optional[str]) -> int:
    return AMENITIES_SCORES.get(rating or "", 55)


def quality_scores(form_data: dict) -> dict[str, int]:
    """Condition, location and amenities scores plus their rounded mean."""
    scores = {
        "building_condition": condition_score(form_data.get("overall_condition_rating")),
        "location": location_score(form_data.get("location_rating")),
        "amenities": amenities_score(form_data.get("amenities_rating")),
    }
    scores["overall"] = round(sum(scores.values()) / 3)
    return scores


def quality_grade(score: float) -> dict[str, str]:
    if score >= 90:
        return {"ar": "ممتاز", "en": "Excellent"}
    if score >= 80:
        return {"ar": "جيد جداً", "en": "Very Good"}
    if score >= 70:
        return {"ar": "جيد", "en": "Good"}
    if score >= 60:
        return {"ar": "مقبول", "en": "Acceptable"}
    return {"ar": "يحتاج تحسين", "en": "Needs Improvement"}


def score_color(score: float) -> str:
    if score >= 80:
        return "#059669"
    if score >= 60:
        return "#d97706"
    return "#dc2626"


# =============================================================================
# HTML Helpers
# =============================================================================


def _escape(value: Any) -> str:
    return html.escape(str(value), quote=True)


def text(key: str, language: Language) -> str:
    """Localised label; bilingual output joins Arabic and English."""
    if language is Language.EN:
        return REPORT_TEXTS["en"][key]
    if language is Language.AR:
        return REPORT_TEXTS["ar"][key]
    return f"{REPORT_TEXTS['ar'][key]} / {REPORT_TEXTS['en'][key]}"


def pair(en: str, ar: str, language: Language) -> str:
    if language is Language.EN:
        return en
    if language is Language.AR:
        return ar
    return f"{ar} / {en}"


def _digits(language: Language) -> str:
    return "ar" if language is Language.AR else "en"


def _or_placeholder(value: Any, language: Language) -> str:
    if value is None or value == "" or value == []:
        return _escape(text("not_specified", language))
    return _escape(value)


def _money(value: Optional[float], language: Language) -> str:
    if not value:
        return _escape(text("not_specified", language))
    return _escape(format_currency(value, _digits(language)))


def _direction(language: Language) -> str:
    return "ltr" if language is Language.EN else "rtl"


def _section(title: str, body: str, language: Language, extra_style: str = "") -> str:
    return (
        f'<div style="{BASE_STYLE} direction: {_direction(language)}; border: 1px solid #e2e8f0; '
        f'border-radius: 8px; background: #f8fafc; {extra_style}">'
        f'<h2 style="font-size: 20px; font-weight: 700; color: {ACCENT}; margin-bottom: 15px; '
        f'border-bottom: 2px solid {ACCENT}; padding-bottom: 8px;">{_escape(title)}</h2>'
        f"{body}</div>"
    )


def _row(label: str, value: str) -> str:
    return (
        '<div style="margin: 8px 0; padding: 6px 0; border-bottom: 1px solid #e2e8f0; '
        'display: flex; justify-content: space-between;">'
        f'<span style="font-weight: 600; color: #2d3748;">{_escape(label)}</span>'
        f'<span style="color: #4a5568; direction: ltr;">{value}</span></div>'
    )


def _rows(items: list[tuple[str, str]]) -> str:
    return "".join(_row(label, value) for label, value in items)


def _card(label: str, value: str, color: str = ACCENT) -> str:
    return (
        '<div style="flex: 1; min-width: 160px; padding: 14px; background: white; '
        'border-radius: 8px; text-align: center; border: 1px solid #e2e8f0;">'
        f'<div style="font-size: 13px; color: #64748b;">{_escape(label)}</div>'
        f'<div style="font-size: 20px; font-weight: 700; color: {color}; margin-top: 6px;">{value}</div>'
        "</div>"
    )


def _cards(cards: list[str]) -> str:
    return f'<div style="display: flex; flex-wrap: wrap; gap: 12px; margin: 12px 0;">{"".join(cards)}</div>'


def chart_image(png: Optional[bytes], alt: str) -> str:
    """Embed a rendered chart; an empty chart leaves no trace in the block."""
    if not png:
        return ""
    encoded = base64.b64encode(png).decode("ascii")
    return (
        '<div style="text-align: center; margin: 15px 0;">'
        f'<img src="data:image/png;base64,{encoded}" alt="{_escape(alt)}" '
        'style="max-width: 100%; height: auto;"/></div>'
    )


def _flag(value: Any, language: Language) -> tuple[str, str, str]:
    """Label, foreground and background for an available / not available flag."""
    if value:
        return "✓ " + text("available", language), "#166534", "#dcfce7"
    return "✗ " + text("not_available", language), "#dc2626", "#fef2f2"


def _flag_grid(items: list[tuple[str, str, str]], data: dict, language: Language) -> str:
    tiles = []
    for key, en, ar in items:
        label, color, background = _flag(data.get(key), language)
        tiles.append(
            f'<div style="padding: 12px; background: {background}; border-radius: 4px; text-align: center;">'
            f'<div style="font-weight: 700; color: #2d3748;">{_escape(pair(en, ar, language))}</div>'
            f'<div style="color: {color}; font-weight: 600;">{_escape(label)}</div></div>'
        )
    return (
        '<div style="display: grid; grid-template-columns: repeat(3, 1fr); gap: 10px;">'
        f'{"".join(tiles)}</div>'
    )


# =============================================================================
# Section Builders
# =============================================================================


def header_section(property_data: PropertyData, appraisal: AppraisalData, language: Language) -> str:
    digits = _digits(language)
    price_per_sqm = (
        appraisal.market_value_estimate / property_data.area if property_data.area else None
    )
    body = (
        '<div style="text-align: center; margin-bottom: 20px;">'
        '<div style="font-size: 24px; font-weight: 800; color: #2d3748;">OpenBeit</div>'
        f'<div style="font-size: 22px; font-weight: 700; color: {ACCENT}; margin-top: 10px;">'
        f'{_escape(text("property_appraisal_report", language))}</div></div>'
        + _cards([
            _card(text("appraised_value", language), _money(appraisal.market_value_estimate, language)),
            _card(
                text("price_per_sqm", language),
                _escape(format_number(price_per_sqm, digits)) if price_per_sqm else _escape(text("not_specified", language)),
            ),
            _card(text("appraisal_date", language), _or_placeholder(appraisal.appraisal_date, language)),
        ])
        + _rows([
            (text("reference_number", language), _or_placeholder(appraisal.reference_number, language)),
            (text("property_type", language), _or_placeholder(property_data.property_type, language)),
            (text("area", language), _escape(format_area(property_data.area, digits))),
            (text("client", language), _or_placeholder(appraisal.client_name, language)),
        ])
    )
    return _section(property_data.title or text("property_appraisal_report", language), body, language)


def executive_summary_section(
    property_data: PropertyData,
    appraisal: AppraisalData,
    market: MarketAnalysis,
    language: Language,
) -> str:
    digits = _digits(language)
    summary_ar = (
        f"تم تقييم العقار المتمثل في {_escape(property_data.property_type)} بمساحة "
        f"{_escape(format_area(property_data.area, 'ar'))} في منطقة {_escape(property_data.district)}، "
        f"{_escape(property_data.city)}."
    )
    summary_en = (
        f"The property, a {_escape(property_data.property_type)} with "
        f"{_escape(format_area(property_data.area, 'en'))} located in "
        f"{_escape(property_data.district)}, {_escape(property_data.city)}, has been appraised."
    )
    paragraphs = []
    if language is not Language.EN:
        paragraphs.append(f'<p style="line-height: 1.8;">{summary_ar}</p>')
    if language is not Language.AR:
        paragraphs.append(
            f'<p style="direction: ltr; text-align: left; color: #555; line-height: 1.6;">{summary_en}</p>'
        )

    trends = market.market_trends
    body = "".join(paragraphs) + _cards([
        _card(text("appraised_value", language), _money(appraisal.market_value_estimate, language)),
        _card(text("confidence_level", language), _escape(format_percent(appraisal.confidence_level, 0, digits))),
        _card(
            text("price_change_12m", language),
            _escape(format_percent(trends.price_change_12months, 1, digits)),
            score_color(60 + trends.price_change_12months * 2),
        ),
    ])
    return _section(text("executive_summary", language), body, language)


def property_details_section(property_data: PropertyData, appraisal: AppraisalData, language: Language) -> str:
    form = appraisal.form_data or {}
    digits = _digits(language)
    items = [
        (text("address", language), _or_placeholder(property_data.address, language)),
        (text("city", language), _or_placeholder(form.get("city_name") or property_data.city, language)),
        (text("district", language), _or_placeholder(form.get("district_name") or property_data.district, language)),
        (text("property_type", language), _or_placeholder(property_data.property_type, language)),
        (text("area", language), _escape(format_area(form.get("unit_area_sqm") or property_data.area, digits))),
        (text("bedrooms", language), _or_placeholder(property_data.bedrooms, language)),
        (text("bathrooms", language), _or_placeholder(property_data.bathrooms, language)),
        (text("floor", language), _or_placeholder(property_data.floor_number, language)),
        (
            text("building_age", language),
            _or_placeholder(form.get("building_age_years", property_data.building_age), language),
        ),
        (pair("Built Area", "المساحة المبنية", language), _or_placeholder(
            format_area(form["built_area_sqm"], digits) if form.get("built_area_sqm") else None, language
        )),
        (pair("Finishing Level", "مستوى التشطيب", language), _or_placeholder(form.get("finishing_level"), language)),
        (pair("Construction Type", "نوع الإنشاء", language), _or_placeholder(form.get("construction_type"), language)),
        (text("asking_price", language), _money(property_data.price, language)),
    ]
    features = ""
    if property_data.features:
        features = (
            '<ul style="margin: 12px 0;">'
            + "".join(f"<li>{_escape(feature)}</li>" for feature in property_data.features)
            + "</ul>"
        )
    utilities = (
        f'<h3 style="font-size: 17px; color: {ACCENT}; margin-top: 18px;">{_escape(text("utilities", language))}</h3>'
        + _flag_grid(UTILITIES, form, language)
    )
    return _section(text("property_details", language), _rows(items) + features + utilities, language)


def quality_rating_section(
    property_data: PropertyData,
    appraisal: AppraisalData,
    language: Language,
    radar_chart: Optional[bytes] = None,
) -> str:
    scores = quality_scores(appraisal.form_data or {})
    grade = quality_grade(scores["overall"])
    digits = _digits(language)
    overall = (
        '<div style="text-align: center; padding: 15px; background: white; border-radius: 15px; '
        'margin-bottom: 20px; border: 2px solid #e2e8f0;">'
        f'<div style="font-size: 15px; color: #64748b;">{_escape(text("overall_rating", language))}</div>'
        f'<div style="font-size: 52px; font-weight: 800; color: {score_color(scores["overall"])};">'
        f'{_escape(format_number(scores["overall"], digits))}</div>'
        f'<div style="font-size: 18px; font-weight: 700;">{_escape(pair(grade["en"], grade["ar"], language))}</div>'
        "</div>"
    )
    cards = _cards([
        _card(text(key, language), _escape(format_number(scores[key], digits)), score_color(scores[key]))
        for key in ("building_condition", "location", "amenities")
    ])
    chart = chart_image(radar_chart, "Quality radar chart")
    return _section(text("quality_rating", language), overall + cards + chart, language)


def market_analysis_section(
    market: MarketAnalysis,
    appraisal: AppraisalData,
    language: Language,
    trend_chart: Optional[bytes] = None,
    comparison_chart: Optional[bytes] = None,
) -> str:
    digits = _digits(language)
    trends = market.market_trends
    activity = {"high": ("High", "مرتفع"), "medium": ("Medium", "متوسط"), "low": ("Low", "منخفض")}
    activity_en, activity_ar = activity.get(trends.market_activity, activity["medium"])

    overview = _rows([
        (text("average_market_price", language), _escape(
            f"{format_number(trends.average_price_per_sqm, digits)} / m²"
        )),
        (text("price_change_6m", language), _escape(format_percent(trends.price_change_6months, 1, digits))),
        (text("price_change_12m", language), _escape(format_percent(trends.price_change_12months, 1, digits))),
        (text("market_activity", language), _escape(pair(activity_en, activity_ar, language))),
        (text("days_on_market", language), _escape(format_number(trends.days_on_market, digits))),
    ])

    if market.comparable_properties:
        header_cells = "".join(
            f'<th style="padding: 8px; background: {ACCENT}; color: white;">{_escape(text(key, language))}</th>'
            for key in ("address", "price", "price_per_sqm", "area", "distance", "sold_date")
        )
        body_rows = "".join(
            "<tr>"
            f'<td style="padding: 8px;">{_escape(comp.address)}</td>'
            f'<td style="padding: 8px;">{_escape(format_currency(comp.price, digits))}</td>'
            f'<td style="padding: 8px;">{_escape(format_number(comp.price_per_sqm, digits))}</td>'
            f'<td style="padding: 8px;">{_escape(format_area(comp.area, digits))}</td>'
            f'<td style="padding: 8px;">{_escape(format_number(comp.distance_km, digits, 1))} km</td>'
            f'<td style="padding: 8px;">{_or_placeholder(comp.sold_date, language)}</td>'
            "</tr>"
            for comp in market.comparable_properties
        )
        comparables = (
            f'<h3 style="font-size: 17px; color: {ACCENT}; margin-top: 18px;">'
            f'{_escape(text("comparable_sales", language))}</h3>'
            '<table style="width: 100%; border-collapse: collapse; font-size: 13px;">'
            f"<thead><tr>{header_cells}</tr></thead><tbody>{body_rows}</tbody></table>"
        )
    else:
        comparables = f'<p style="color: #64748b;">{_escape(text("not_specified", language))}</p>'

    charts = chart_image(trend_chart, "Market trend chart") + chart_image(comparison_chart, "Price comparison chart")
    return _section(text("market_analysis", language), overview + comparables + charts, language)


def legal_analysis_section(appraisal: AppraisalData, language: Language) -> str:
    form = appraisal.form_data or {}
    legal = appraisal.legal_status or {}
    standards = form.get("egyptian_legal_standards") or {}
    number = standards.get("fra_resolution_number", "39")
    year = standards.get("fra_resolution_year", "2015")
    resolution_date = standards.get("fra_resolution_date")

    paragraphs = []
    if language is not Language.EN:
        paragraphs.append(
            '<p style="line-height: 1.7;">تم اعداد هذا التقرير فى ضوء المعايير المصرية للتقييم العقاري '
            f"الصادرة بقرار مجلس ادارة الهيئة العامة للرقابة المالية رقم ({_escape(number)}) لسنة "
            f"{_escape(year)} بتاريخ {_escape(resolution_date or '19 أبريل 2015')}.</p>"
        )
    if language is not Language.AR:
        paragraphs.append(
            '<p style="direction: ltr; text-align: left; color: #555;">This report was prepared in accordance '
            "with Egyptian Real Estate Valuation Standards issued by the Financial Regulatory Authority "
            f"Board Resolution No. {_escape(number)} of {_escape(year)} dated "
            f"{_escape(resolution_date or 'April 19, 2015')}.</p>"
        )

    encumbrances = legal.get("encumbrances") or []
    items = [
        (text("ownership_status", language), _or_placeholder(
            legal.get("ownership_type") or form.get("ownership_type"), language
        )),
        (text("registration_number", language), _or_placeholder(
            legal.get("registration_number") or form.get("registration_number"), language
        )),
        (pair("Owner", "المالك", language), _or_placeholder(form.get("owner_name"), language)),
        (pair("Encumbrances", "الأعباء والقيود", language), _escape(
            ", ".join(str(e) for e in encumbrances) if encumbrances else pair("None recorded", "لا يوجد", language)
        )),
    ]
    return _section(text("legal_analysis", language), "".join(paragraphs) + _rows(items), language)


def investment_analysis_section(
    market: MarketAnalysis,
    property_data: PropertyData,
    appraisal: AppraisalData,
    language: Language,
    breakdown_chart: Optional[bytes] = None,
) -> str:
    digits = _digits(language)
    investment = market.investment_analysis
    demand = {"high": ("High", "مرتفع"), "medium": ("Medium", "متوسط"), "low": ("Low", "منخفض")}
    demand_en, demand_ar = demand.get(investment.rental_demand, demand["medium"])
    annual_rent = appraisal.market_value_estimate * investment.rental_yield / 100

    cards = _cards([
        _card(text("rental_yield", language), _escape(format_percent(investment.rental_yield, 1, digits))),
        _card(text("roi_5year", language), _escape(format_percent(investment.roi_5year, 1, digits))),
        _card(text("roi_10year", language), _escape(format_percent(investment.roi_10year, 1, digits))),
    ])
    items = _rows([
        (text("appreciation_rate", language), _escape(format_percent(investment.appreciation_rate, 1, digits))),
        (text("rental_demand", language), _escape(pair(demand_en, demand_ar, language))),
        (pair("Estimated Annual Rent", "الإيجار السنوي المقدر", language), _money(annual_rent, language)),
    ])
    chart = chart_image(breakdown_chart, "Investment breakdown chart")
    return _section(text("investment_analysis", language), cards + items + chart, language)


def mortgage_analysis_section(appraisal: AppraisalData, language: Language) -> str:
    mortgage = appraisal.mortgage_eligibility or {}
    eligible = bool(mortgage.get("eligible"))
    banner_color = ACCENT if eligible else "#dc2626"
    banner_background = "#e8f5e8" if eligible else "#fee8e8"
    banner = (
        f'<div style="margin: 12px 0; padding: 12px; background: {banner_background}; '
        'border-radius: 5px; text-align: center;">'
        f'<div style="font-size: 18px; font-weight: 700; color: {banner_color};">'
        f'{_escape(text("eligible" if eligible else "not_eligible", language))}</div></div>'
    )
    details = ""
    if eligible:
        interest = mortgage.get("interest_rate")
        details = _rows([
            (text("max_loan_amount", language), _money(mortgage.get("max_loan_amount"), language)),
            (text("interest_rate", language), _escape(
                format_percent(interest * 100, 2, _digits(language)) if interest is not None
                else text("not_specified", language)
            )),
            (text("monthly_installment", language), _money(mortgage.get("monthly_installment"), language)),
            (text("down_payment", language), _money(mortgage.get("down_payment_required"), language)),
        ])
    return _section(text("mortgage_analysis", language), banner + details, language)


def calculation_methods_section(
    property_data: PropertyData,
    appraisal: AppraisalData,
    market: MarketAnalysis,
    language: Language,
) -> str:
    calc = appraisal.calculation_results or {}
    form = appraisal.form_data or {}
    digits = _digits(language)

    def value(key: str) -> Optional[float]:
        return calc.get(key) or form.get(key)

    depreciation = value("depreciation_percentage")
    cost = _rows([
        (text("land_value", language), _money(value("land_value"), language)),
        (text("building_value", language), _money(value("building_value"), language)),
        (text("replacement_cost", language), _money(value("replacement_cost"), language)),
        (text("depreciation", language), _escape(
            format_percent(depreciation, 1, digits) if depreciation else text("not_specified", language)
        )),
        (pair("Cost Approach Value", "القيمة بطريقة التكلفة", language), _money(value("cost_approach_value"), language)),
    ])

    comps = market.comparable_properties
    average_ppsqm = sum(c.price_per_sqm for c in comps) / len(comps) if comps else None
    comparison = _rows([
        (text("comparable_sales", language), _escape(format_number(len(comps), digits))),
        (text("price_per_sqm", language), _escape(
            format_number(average_ppsqm, digits) if average_ppsqm else text("not_specified", language)
        )),
        (pair("Sales Comparison Value", "القيمة بطريقة المقارنة", language), _money(value("sales_comparison_value"), language)),
    ])
    income = _rows([
        (text("rental_yield", language), _escape(
            format_percent(market.investment_analysis.rental_yield, 1, digits)
        )),
        (pair("Income Approach Value", "القيمة بطريقة الدخل", language), _money(value("income_approach_value"), language)),
    ])

    def block(title_key: str, rows: str) -> str:
        return (
            '<div style="margin: 12px 0; padding: 12px; background: white; border-radius: 5px;">'
            f'<h3 style="font-size: 17px; font-weight: 600; color: {ACCENT};">{_escape(text(title_key, language))}</h3>'
            f"{rows}</div>"
        )

    body = block("cost_approach", cost) + block("sales_comparison", comparison) + block("income_approach", income)
    return _section(text("calculation_methods", language), body, language)


def environmental_factors_section(property_data: PropertyData, appraisal: AppraisalData, language: Language) -> str:
    form = appraisal.form_data or {}
    body = _flag_grid(ENVIRONMENTAL_FACTORS, form, language)
    if form.get("area_character") or form.get("location_description"):
        body += (
            f'<p style="margin-top: 15px; line-height: 1.7;">'
            f'{_escape(form.get("area_character") or form.get("location_description"))}</p>'
        )
    return _section(text("environmental_factors", language), body, language)


def privacy_notice_section(
    appraisal: AppraisalData,
    report_type: ReportType,
    language: Language,
    field_explanations: Optional[dict[str, str]] = None,
) -> str:
    names = REPORT_TYPE_NAMES[report_type]
    filtered = appraisal.filtered_fields or []
    explanations = field_explanations or {}

    parts = [_row(text("report_type", language), _escape(pair(names["en"], names["ar"], language)))]
    if language is not Language.EN:
        parts.append(
            f'<p style="line-height: 1.8;">هذا تقرير <strong>{_escape(names["ar"])}</strong> تم إعداده مع '
            "حماية الخصوصية المناسبة. بعض المعلومات قد تكون محمية أو مستبعدة بناءً على نوع التقرير المحدد.</p>"
        )
    if language is not Language.AR:
        parts.append(
            f'<p style="direction: ltr; text-align: left; line-height: 1.6;">This <strong>{_escape(names["en"])}'
            "</strong> report has been generated with appropriate privacy filtering. Some information may "
            "be protected or excluded based on the report type selected.</p>"
        )
    parts.append(
        '<p style="background-color: #fbbf24; padding: 10px; border-radius: 4px;">'
        f"{_escape(appraisal.privacy_notice or '')}</p>"
    )
    if filtered:
        parts.append(_row(text("protected_fields", language), _escape(format_number(len(filtered), _digits(language)))))
        parts.append(
            '<ul style="direction: ltr; text-align: left; font-size: 13px; color: #92400e;">'
            + "".join(f"<li>{_escape(explanations.get(name, name))}</li>" for name in filtered)
            + "</ul>"
        )
    parts.append(
        '<p style="text-align: center; font-weight: 700; color: #92400e; margin-top: 15px;">'
        f'{_escape(text("upgrade_hint", language))}</p>'
    )
    return _section(
        text("privacy_notice", language),
        "".join(parts),
        language,
        extra_style="border: 2px solid #f59e0b; background: #fef3c7;",
    )


def methodology_section(appraisal: AppraisalData, language: Language) -> str:
    standards = [
        ("Egyptian Real Estate Valuation Standards (FRA)", "المعايير المصرية للتقييم العقاري"),
        ("International Valuation Standards (IVS)", "معايير التقييم الدولية"),
        ("Cost, sales comparison and income approaches", "طرق التكلفة والمقارنة والدخل"),
        ("Physical inspection of the property", "المعاينة الفعلية للعقار"),
    ]
    items = "".join(
        f'<div style="margin: 8px 0;"><span style="color: {ACCENT};">✓</span> {_escape(pair(en, ar, language))}</div>'
        for en, ar in standards
    )
    valid_until = (appraisal.form_data or {}).get("appraisal_valid_until")
    validity = _row(pair("Valid Until", "صالح حتى", language), _or_placeholder(valid_until, language))
    return _section(text("methodology", language), items + validity, language)


def certification_section(appraisal: AppraisalData, language: Language, generated_on: Optional[date] = None) -> str:
    generated_on = generated_on or date.today()
    rows = _rows([
        (pair("Appraiser", "المقيم", language), _or_placeholder(appraisal.appraiser_name, language)),
        (text("license_number", language), _or_placeholder(appraisal.appraiser_license, language)),
        (text("reference_number", language), _or_placeholder(appraisal.reference_number, language)),
        (text("report_generated", language), _escape(generated_on.isoformat())),
    ])
    signature = (
        '<div style="margin-top: 30px; padding-top: 40px; border-top: 1px dashed #94a3b8; width: 40%;">'
        f'{_escape(text("appraiser_signature", language))}</div>'
    )
    disclaimer = (
        f'<p style="margin-top: 20px; font-size: 12px; color: #64748b;">{_escape(text("disclaimer", language))}</p>'
    )
    return _section(text("certification", language), rows + signature + disclaimer, language)
