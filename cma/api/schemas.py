"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from cma.errors import ValidationError
from cma.models.criteria import MatchCriteria, PropertyTypeMode
from cma.models.property import Address, ListingStatus, Property, PropertyType
from cma.models.report import ReportBranding, SectionFlags


def _parse_property_type(value: str) -> PropertyType:
    parsed = PropertyType.from_string(value)
    if parsed is None:
        raise ValidationError(f"unknown property type: {value!r}")
    return parsed


# ---- Request schemas ----

class PropertyIn(BaseModel):
    id: str
    street: str
    city: str
    state: str
    zip_code: str
    price: Decimal
    bedrooms: int | None = None
    bathrooms: Decimal | None = None
    sqft: Decimal | None = None
    property_type: str = "single_family"
    status: str = "active"
    lot_size: Decimal | None = None
    year_built: int | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    sale_date: date | None = None
    has_garage: bool | None = None
    has_basement: bool | None = None

    def to_property(self) -> Property:
        status = ListingStatus.from_string(self.status)
        if status is None:
            raise ValidationError(f"unknown listing status: {self.status!r}")
        return Property(
            id=self.id,
            address=Address(self.street, self.city, self.state, self.zip_code),
            price=self.price,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            sqft=self.sqft,
            property_type=_parse_property_type(self.property_type),
            status=status,
            lot_size=self.lot_size,
            year_built=self.year_built,
            latitude=self.latitude,
            longitude=self.longitude,
            sale_date=self.sale_date,
            has_garage=self.has_garage,
            has_basement=self.has_basement,
            source="request",
        )


class CriteriaIn(BaseModel):
    """Match criteria. Range checks happen in MatchCriteria.validate()."""

    radius_miles: Decimal = Decimal("5")
    beds_range: int = 1
    baths_range: Decimal = Decimal("1")
    sqft_range_pct: Decimal = Decimal("20")
    price_range_pct: Decimal = Decimal("20")
    age_range_years: int = 10
    lot_size_range_pct: Decimal = Decimal("20")
    sold_within_days: int = 180
    require_basement: bool = False
    require_garage: bool = False
    property_type_mode: str = Field("same", description="same | any | explicit")
    explicit_property_type: str | None = None
    include_active: bool = True
    include_pending: bool = True
    include_sold: bool = True

    def to_criteria(self) -> MatchCriteria:
        try:
            mode = PropertyTypeMode(self.property_type_mode.lower())
        except ValueError:
            raise ValidationError(f"unknown property type mode: {self.property_type_mode!r}")
        explicit = None
        if self.explicit_property_type:
            explicit = _parse_property_type(self.explicit_property_type)
        return MatchCriteria(
            radius_miles=self.radius_miles,
            beds_range=self.beds_range,
            baths_range=self.baths_range,
            sqft_range_pct=self.sqft_range_pct,
            price_range_pct=self.price_range_pct,
            age_range_years=self.age_range_years,
            lot_size_range_pct=self.lot_size_range_pct,
            sold_within_days=self.sold_within_days,
            require_basement=self.require_basement,
            require_garage=self.require_garage,
            property_type_mode=mode,
            explicit_property_type=explicit,
            include_active=self.include_active,
            include_pending=self.include_pending,
            include_sold=self.include_sold,
        )


class CriteriaRequest(BaseModel):
    subject_id: str
    criteria: CriteriaIn = Field(default_factory=CriteriaIn)


class ValuationRequest(BaseModel):
    subject: PropertyIn
    comps: list[PropertyIn] = Field(default_factory=list)
    multiplier: Decimal | None = None


class SectionFlagsIn(BaseModel):
    cover: bool = True
    table_of_contents: bool = True
    property_details: bool = True
    comps: bool = True
    adjustments: bool = True
    market_analysis: bool = False
    charts: bool = True
    notes: bool = True

    def to_flags(self) -> SectionFlags:
        return SectionFlags(**self.model_dump())


class BrandingIn(BaseModel):
    title: str = "Comparative Market Analysis"
    agent_name: str | None = None
    agent_email: str | None = None
    agent_phone: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    branding_color: str = "#071224"

    def to_branding(self) -> ReportBranding:
        return ReportBranding(**self.model_dump())


class ReportRequest(BaseModel):
    subject_id: str
    criteria: CriteriaIn = Field(default_factory=CriteriaIn)
    sections: SectionFlagsIn = Field(default_factory=SectionFlagsIn)
    notes: str | None = None
    multiplier: Decimal | None = None
    branding: BrandingIn = Field(default_factory=BrandingIn)
    save: bool = False


# ---- Response schemas ----

class SearchFilterResponse(BaseModel):
    statuses: list[str]
    min_beds: int | None = None
    max_beds: int | None = None
    min_baths: Decimal | None = None
    max_baths: Decimal | None = None
    min_sqft: int | None = None
    max_sqft: int | None = None
    min_price: int | None = None
    max_price: int | None = None
    min_year_built: int | None = None
    max_year_built: int | None = None
    min_lot_size: int | None = None
    max_lot_size: int | None = None
    property_type: str | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    radius_miles: Decimal | None = None
    zip_code: str | None = None
    require_basement: bool = False
    require_garage: bool = False
    sale_date_start: date | None = None
    sale_date_end: date | None = None
    exclude_property_id: str | None = None
    exclude_address_key: str | None = None


class PropertyResponse(BaseModel):
    id: str
    address: str
    price: Decimal
    bedrooms: int | None = None
    bathrooms: Decimal | None = None
    sqft: Decimal | None = None
    property_type: str
    status: str
    lot_size: Decimal | None = None
    year_built: int | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    sale_date: date | None = None
    price_per_sqft: Decimal | None = None
    source: str


class SourceFailureResponse(BaseModel):
    source: str
    reason: str


class CompSearchResponse(BaseModel):
    filter: SearchFilterResponse
    active: list[PropertyResponse]
    pending: list[PropertyResponse]
    sold: list[PropertyResponse]
    total: int
    degraded: bool
    failures: list[SourceFailureResponse] = []


class AdjustmentResponse(BaseModel):
    feature: str
    subject_value: Decimal | None = None
    comp_value: Decimal | None = None
    amount: Decimal | None = None


class CompAdjustmentsResponse(BaseModel):
    comp_id: str
    address: str
    price: Decimal
    adjustments: list[AdjustmentResponse]
    total: Decimal
    adjusted_value: Decimal


class ValuationSummaryResponse(BaseModel):
    sold_count: int = 0
    median_price: Decimal | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    avg_price_per_sqft: Decimal | None = None
    avg_adjusted_value: Decimal | None = None


class ValuationResponse(BaseModel):
    arv: Decimal | None = None
    mao: Decimal | None = None
    multiplier: Decimal
    sold_count: int
    adjustments: list[CompAdjustmentsResponse] = []
    summary: ValuationSummaryResponse | None = None


class TocEntryResponse(BaseModel):
    title: str
    page: int


class ReportSectionResponse(BaseModel):
    kind: str
    title: str
    enabled: bool
    page: int | None = None
    content: dict[str, Any] = {}


class ReportResponse(BaseModel):
    report_id: int | None = None
    subject_id: str
    generated_on: date | None = None
    page_count: int
    branding: BrandingIn
    toc: list[TocEntryResponse]
    sections: list[ReportSectionResponse]
    valuation: ValuationResponse
    degraded: bool = False
