"""
Canonical schemas for appraisal report generation.

These schemas define the records the Section Planner consumes (property,
appraisal, market analysis, report options) and the intermediate artefacts
passed between the planner, the block renderer and the page compositor
(content blocks, bitmaps, placements).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Errors
# =============================================================================


class ReportValidationError(ValueError):
    """Raised when mandatory identity data is missing from the report inputs."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


# =============================================================================
# Enums
# =============================================================================


class _StringEnum(Enum):
    @classmethod
    def from_string(cls, value: Any, default=None):
        """Convert string to enum member, case-insensitive."""
        if isinstance(value, cls):
            return value
        if value is None:
            return default
        normalised = str(value).lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        if default is not None:
            return default
        raise ValueError(f"Unknown {cls.__name__}: {value!r}")


class Language(_StringEnum):
    """Output language. BOTH renders Arabic and English side by side."""
    EN = "en"
    AR = "ar"
    BOTH = "both"


class ReportType(_StringEnum):
    """
    Report tier.

    Drives both section inclusion and the privacy filter applied
    to appraisal data before planning.
    """
    STANDARD = "standard"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class ReportFormat(_StringEnum):
    """Presentation format. Independent of ReportType."""
    COMPREHENSIVE = "comprehensive"
    EXECUTIVE = "executive"
    INVESTOR = "investor"


class BlockKind(Enum):
    HTML = "html"
    GALLERY = "gallery"


# =============================================================================
# Domain Records
# =============================================================================


def _known_fields(cls, data: Optional[dict]) -> dict:
    """
    Keep only the keys that name a field of the dataclass.

    Keys with a None value are dropped so the field defaults apply.
    """
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names and v is not None}


@dataclass
class PropertyImage:
    """An image attached to a property, as extracted from uploaded documents."""
    id: str
    url: str
    category: str = "general"
    source: str = "upload"
    filename: str = ""
    alt_text: str = ""
    caption: Optional[str] = None
    is_primary: bool = False
    document_page: int = 0
    mime_type: str = "image/jpeg"
    order_index: int = 0

    @classmethod
    def from_legacy(cls, url: str, index: int) -> "PropertyImage":
        """Wrap a bare image URL from older records."""
        return cls(
            id=f"legacy_{index}",
            url=url,
            category="general",
            source="legacy",
            filename=f"property_image_{index + 1}.jpg",
            alt_text=f"Property Image {index + 1}",
            caption=f"Property Image {index + 1}",
            is_primary=index == 0,
            order_index=index,
        )

    @classmethod
    def from_value(cls, value: Union[str, dict, "PropertyImage"], index: int) -> "PropertyImage":
        if isinstance(value, PropertyImage):
            return value
        if isinstance(value, str):
            return cls.from_legacy(value, index)
        data = _known_fields(cls, value)
        data.setdefault("id", f"image_{index}")
        data.setdefault("url", "")
        data.setdefault("order_index", index)
        return cls(**data)


@dataclass
class PropertyData:
    """The property being appraised."""
    id: str
    title: str = ""
    address: str = ""
    city: str = ""
    district: str = ""
    price: float = 0
    property_type: str = ""
    area: float = 0
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    floor_number: Optional[int] = None
    building_age: Optional[int] = None
    features: list[str] = field(default_factory=list)
    images: list[PropertyImage] = field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return len(self.images) > 0

    @classmethod
    def from_dict(cls, data: dict) -> "PropertyData":
        values = _known_fields(cls, data)
        values["images"] = [
            PropertyImage.from_value(image, index) for index, image in enumerate(values.get("images") or [])
        ]
        values["features"] = list(values.get("features") or [])
        values.setdefault("id", "")
        return cls(**values)


@dataclass
class AppraisalData:
    """
    A completed appraisal.

    form_data and calculation_results are free-form dictionaries captured by
    the appraiser's form; every key read from them is optional.
    """
    id: str
    reference_number: str
    appraiser_name: str = ""
    appraiser_license: str = ""
    client_name: str = ""
    appraisal_date: str = ""
    market_value_estimate: float = 0
    confidence_level: float = 0
    form_data: dict = field(default_factory=dict)
    calculation_results: dict = field(default_factory=dict)
    legal_status: Optional[dict] = None
    mortgage_eligibility: Optional[dict] = None
    privacy_notice: Optional[str] = None
    filtered_fields: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "AppraisalData":
        values = _known_fields(cls, data)
        if "reference_number" not in values and "appraisal_reference_number" in (data or {}):
            values["reference_number"] = data["appraisal_reference_number"]
        values.setdefault("id", "")
        values.setdefault("reference_number", "")
        values["form_data"] = dict(values.get("form_data") or {})
        values["calculation_results"] = dict(values.get("calculation_results") or {})
        values["filtered_fields"] = list(values.get("filtered_fields") or [])
        return cls(**values)


@dataclass
class ComparableProperty:
    address: str
    price: float
    price_per_sqm: float
    area: float
    property_type: str = ""
    distance_km: float = 0.0
    sold_date: str = ""


@dataclass
class MarketTrends:
    average_price_per_sqm: float = 0
    price_change_6months: float = 0
    price_change_12months: float = 0
    market_activity: str = "medium"  # high, medium, low
    days_on_market: int = 0


@dataclass
class InvestmentAnalysis:
    rental_yield: float = 0
    roi_5year: float = 0
    roi_10year: float = 0
    appreciation_rate: float = 0
    rental_demand: str = "medium"  # high, medium, low


@dataclass
class MarketAnalysis:
    """Market context for the appraised property."""
    comparable_properties: list[ComparableProperty] = field(default_factory=list)
    market_trends: MarketTrends = field(default_factory=MarketTrends)
    investment_analysis: InvestmentAnalysis = field(default_factory=InvestmentAnalysis)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "MarketAnalysis":
        data = data or {}
        return cls(
            comparable_properties=[
                ComparableProperty(**_known_fields(ComparableProperty, comp))
                for comp in data.get("comparable_properties") or []
            ],
            market_trends=MarketTrends(**_known_fields(MarketTrends, data.get("market_trends"))),
            investment_analysis=InvestmentAnalysis(
                **_known_fields(InvestmentAnalysis, data.get("investment_analysis"))
            ),
        )


# =============================================================================
# Report Options
# =============================================================================


TRUE_STRINGS = ("true", "1", "yes", "on")
FALSE_STRINGS = ("false", "0", "no", "off")


def _parse_flag(name: str, value) -> bool:
    """Coerce a boolean option, accepting the usual JSON and form spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError(f"Invalid value for {name}: {value!r} (expected true or false)")


@dataclass(frozen=True)
class ReportOptions:
    """
    Report options consumed by the Section Planner.

    Every field is defaulted here and only here. Build instances through
    ReportOptions.build() or ReportOptions.from_dict(); downstream code never
    applies its own fallbacks.
    """
    language: Language = Language.BOTH
    format: ReportFormat = ReportFormat.COMPREHENSIVE
    report_type: ReportType = ReportType.COMPREHENSIVE
    include_legal_analysis: bool = True
    include_mortgage_analysis: bool = True
    include_market_comparables: bool = True
    include_investment_projections: bool = True
    include_images: bool = True
    watermark: str = ""

    @classmethod
    def build(cls, **overrides) -> "ReportOptions":
        """Create options from keyword overrides, coercing enum fields."""
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown report options: {sorted(unknown)}")

        values = dict(overrides)
        if "language" in values:
            values["language"] = Language.from_string(values["language"])
        if "format" in values:
            values["format"] = ReportFormat.from_string(values["format"])
        if "report_type" in values:
            values["report_type"] = ReportType.from_string(values["report_type"])
        if values.get("watermark") is None:
            values.pop("watermark", None)
        for name in (
            "include_legal_analysis",
            "include_mortgage_analysis",
            "include_market_comparables",
            "include_investment_projections",
            "include_images",
        ):
            if name in values:
                values[name] = _parse_flag(name, values[name])
        return cls(**values)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ReportOptions":
        """
        Parse options from a JSON-style dictionary.

        Accepts the camelCase ``reportType`` key used by the web client.
        Keys with a None value fall back to the defaults.
        """
        data = dict(data or {})
        if "reportType" in data:
            data.setdefault("report_type", data.pop("reportType"))
        known = {f.name for f in fields(cls)}
        return cls.build(**{k: v for k, v in data.items() if k in known and v is not None})

    def with_changes(self, **changes) -> "ReportOptions":
        return replace(self, **changes)

    @property
    def is_detailed_tier(self) -> bool:
        """True for detailed and comprehensive report types."""
        return self.report_type in (ReportType.DETAILED, ReportType.COMPREHENSIVE)


# =============================================================================
# Pipeline Artefacts
# =============================================================================


@dataclass(frozen=True)
class GallerySpec:
    """Render spec for the image section, laid out by ImageGalleryLayout."""
    images: tuple[PropertyImage, ...]
    report_type: ReportType


@dataclass(frozen=True)
class ContentBlock:
    """A named, orderable unit of report content."""
    name: str
    render_spec: Union[str, GallerySpec]
    kind: BlockKind = BlockKind.HTML

    @property
    def is_gallery(self) -> bool:
        return self.kind is BlockKind.GALLERY


@dataclass(frozen=True)
class Bitmap:
    """
    Rendered form of a content block.

    The raster is always scaled to the page's printable width, so only the
    height varies between blocks.
    """
    pixel_width: int
    pixel_height: int
    image_data: bytes
    placeholder_caption: Optional[str] = None

    # Size of placeholder tiles, in layout pixels at 794px page width
    PLACEHOLDER_WIDTH = 794
    PLACEHOLDER_HEIGHT = 120

    @classmethod
    def placeholder(cls, caption: str) -> "Bitmap":
        """A blank "not available" tile substituted for a failed block."""
        return cls(
            pixel_width=cls.PLACEHOLDER_WIDTH,
            pixel_height=cls.PLACEHOLDER_HEIGHT,
            image_data=b"",
            placeholder_caption=caption,
        )

    @property
    def is_placeholder(self) -> bool:
        return self.placeholder_caption is not None

    @property
    def is_empty(self) -> bool:
        """True when the renderer produced nothing usable."""
        if self.is_placeholder:
            return False
        return self.pixel_width <= 0 or self.pixel_height < 0 or not self.image_data

    def mm_height(self, page_width_mm: float) -> float:
        """Height in mm when scaled (aspect-locked) to page_width_mm."""
        return self.pixel_height * page_width_mm / self.pixel_width


@dataclass(frozen=True)
class Placement:
    """
    One bitmap (or a horizontal slice of it) placed on a page.

    Coordinates are in mm, measured from the top-left of the page.
    source_top_px/source_height_px select the slice of the bitmap drawn.
    """
    page_index: int
    block_name: str
    bitmap: Bitmap
    x: float
    y: float
    width: float
    height: float
    source_top_px: float = 0.0
    source_height_px: Optional[float] = None
    clipped: bool = False

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class GalleryCell:
    """A single image tile in the gallery grid."""
    page_index: int
    image: PropertyImage
    x: float
    y: float
    width: float
    height: float
    caption: str
    data: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.data is not None and self.error is None


@dataclass
class GalleryText:
    """A line of text the gallery draws directly on the page."""
    page_index: int
    text: str
    x: float
    y: float
    align: str = "left"  # left, right, center
    font_size: float = 10
    color: tuple[int, int, int] = (107, 114, 128)


@dataclass
class CompositionResult:
    """Everything the PDF writer needs to draw the document."""
    page_count: int = 1
    placements: list[Placement] = field(default_factory=list)
    gallery_cells: list[GalleryCell] = field(default_factory=list)
    gallery_texts: list[GalleryText] = field(default_factory=list)
    gallery_rules: list[tuple[int, float, float, float]] = field(default_factory=list)
    degraded_blocks: list[str] = field(default_factory=list)
    clip_warnings: list[str] = field(default_factory=list)
    # Block name of every drawn item, in document order
    sequence: list[str] = field(default_factory=list, repr=False)

    def block_order(self) -> list[str]:
        """Block names in output order, one entry per block."""
        order: list[str] = []
        for name in self.sequence:
            if not order or order[-1] != name:
                order.append(name)
        return order


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class ReportSuccess:
    """Returned when a report PDF has been written to disk."""
    path: Any
    pages: int
    degraded_blocks: list[str] = field(default_factory=list)


# =============================================================================
# Sample Data
# =============================================================================


def create_sample_inputs() -> tuple[PropertyData, AppraisalData, MarketAnalysis, ReportOptions]:
    """Create a realistic sample appraisal for testing and demos."""
    property_data = PropertyData(
        id="PROP-1024",
        title="Apartment in New Cairo",
        address="Building 14, South 90th Street",
        city="New Cairo",
        district="Fifth Settlement",
        price=4_750_000,
        property_type="apartment",
        area=165,
        bedrooms=3,
        bathrooms=2,
        floor_number=4,
        building_age=6,
        features=["Elevator", "Covered parking", "Security"],
        images=[
            PropertyImage(
                id="img-1",
                url="https://example.com/images/facade.jpg",
                filename="facade.jpg",
                is_primary=True,
                order_index=0,
            ),
            PropertyImage(
                id="img-2",
                url="https://example.com/images/living.jpg",
                filename="living_room.jpg",
                order_index=1,
            ),
            PropertyImage(
                id="img-3",
                url="https://example.com/images/kitchen.jpg",
                filename="kitchen.jpg",
                order_index=2,
            ),
        ],
    )

    appraisal = AppraisalData(
        id="APR-7781",
        reference_number="OB-2025-0147",
        appraiser_name="Eng. Mona Hassan",
        appraiser_license="FRA-2291",
        client_name="Amlak Finance",
        appraisal_date="2025-03-18",
        market_value_estimate=4_600_000,
        confidence_level=86,
        form_data={
            "overall_condition_rating": "very_good",
            "location_rating": "excellent",
            "amenities_rating": "good",
            "built_area_sqm": 180,
            "unit_area_sqm": 165,
            "finishing_level": "fully_finished",
            "construction_type": "reinforced concrete",
            "building_age_years": 6,
            "water_supply_available": True,
            "electricity_available": True,
            "gas_supply_available": True,
            "internet_fiber_available": True,
            "elevator_available": True,
            "telephone_available": False,
            "sewage_system_available": True,
            "air_quality_good": True,
            "noise_level_acceptable": True,
            "green_spaces_nearby": True,
            "flood_risk_low": True,
            "street_lighting_adequate": True,
        },
        calculation_results={
            "land_value": 1_150_000,
            "building_value": 3_450_000,
            "replacement_cost": 3_900_000,
            "depreciation_percentage": 11.5,
            "cost_approach_value": 4_550_000,
            "sales_comparison_value": 4_640_000,
            "income_approach_value": 4_480_000,
        },
        legal_status={
            "ownership_type": "registered",
            "registration_number": "RN-55120",
            "encumbrances": [],
        },
        mortgage_eligibility={
            "eligible": True,
            "max_loan_amount": 3_220_000,
            "interest_rate": 0.185,
            "monthly_installment": 58_900,
            "down_payment_required": 1_380_000,
        },
    )

    market = MarketAnalysis(
        comparable_properties=[
            ComparableProperty(
                address="Building 9, South 90th Street",
                price=4_500_000,
                price_per_sqm=28_125,
                area=160,
                property_type="apartment",
                distance_km=0.4,
                sold_date="2025-01-12",
            ),
            ComparableProperty(
                address="Building 22, Teseen Axis",
                price=4_900_000,
                price_per_sqm=28_824,
                area=170,
                property_type="apartment",
                distance_km=1.1,
                sold_date="2024-11-03",
            ),
        ],
        market_trends=MarketTrends(
            average_price_per_sqm=28_400,
            price_change_6months=7.5,
            price_change_12months=16.2,
            market_activity="high",
            days_on_market=47,
        ),
        investment_analysis=InvestmentAnalysis(
            rental_yield=6.8,
            roi_5year=48.0,
            roi_10year=112.0,
            appreciation_rate=9.5,
            rental_demand="high",
        ),
    )

    options = ReportOptions.build(report_type="comprehensive", language="both")
    return property_data, appraisal, market, options
