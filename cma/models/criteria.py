"""Comp matching criteria and the derived, source-agnostic search filter."""

import hashlib
import json
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from enum import Enum

from cma.engine.geo import BoundingBox, bounding_box
from cma.errors import ValidationError
from cma.models.property import ListingStatus, PropertyType


class PropertyTypeMode(Enum):
    SAME = "same"  # copy the subject's type
    ANY = "any"  # no type constraint
    EXPLICIT = "explicit"  # use MatchCriteria.explicit_property_type


@dataclass(frozen=True)
class MatchCriteria:
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
    property_type_mode: PropertyTypeMode = PropertyTypeMode.SAME
    explicit_property_type: PropertyType | None = None
    include_active: bool = True
    include_pending: bool = True
    include_sold: bool = True

    @property
    def statuses(self) -> tuple[ListingStatus, ...]:
        selected = []
        if self.include_active:
            selected.append(ListingStatus.ACTIVE)
        if self.include_pending:
            selected.append(ListingStatus.PENDING)
        if self.include_sold:
            selected.append(ListingStatus.SOLD)
        return tuple(selected)

    def validate(self) -> None:
        """Raise ValidationError on negative tolerances or out-of-range percentages."""
        for name in ("radius_miles", "beds_range", "baths_range", "age_range_years", "sold_within_days"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must be non-negative")
        for name in ("sqft_range_pct", "price_range_pct", "lot_size_range_pct"):
            value = getattr(self, name)
            if value < 0 or value > 100:
                raise ValidationError(f"{name} must be between 0 and 100")
        if self.property_type_mode == PropertyTypeMode.EXPLICIT and self.explicit_property_type is None:
            raise ValidationError("explicit property type mode requires explicit_property_type")
        if not self.statuses:
            raise ValidationError("at least one listing status must be selected")


@dataclass(frozen=True)
class SearchFilter:
    """Derived query. Every bound is either None (unconstrained) or min <= max."""

    statuses: tuple[ListingStatus, ...]
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
    property_type: PropertyType | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    radius_miles: Decimal | None = None
    zip_code: str | None = None  # used only when there is no geo constraint
    require_basement: bool = False
    require_garage: bool = False
    sale_date_start: date | None = None
    sale_date_end: date | None = None
    exclude_property_id: str | None = None
    exclude_address_key: str | None = None  # Address.dedup_key of the subject

    @property
    def is_geo(self) -> bool:
        return self.latitude is not None and self.longitude is not None and self.radius_miles is not None

    def bounds(self) -> dict[str, tuple]:
        """(min, max) pairs keyed by dimension."""
        return {
            "beds": (self.min_beds, self.max_beds),
            "baths": (self.min_baths, self.max_baths),
            "sqft": (self.min_sqft, self.max_sqft),
            "price": (self.min_price, self.max_price),
            "year_built": (self.min_year_built, self.max_year_built),
            "lot_size": (self.min_lot_size, self.max_lot_size),
            "sale_date": (self.sale_date_start, self.sale_date_end),
        }

    def bounding_box(self, latitude_corrected: bool = False) -> BoundingBox | None:
        if not self.is_geo:
            return None
        return bounding_box(
            float(self.latitude),
            float(self.longitude),
            float(self.radius_miles),
            latitude_corrected=latitude_corrected,
        )

    def to_dict(self) -> dict:
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = [v.value if isinstance(v, Enum) else v for v in value]
            elif isinstance(value, (Decimal, date)):
                value = str(value)
            out[f.name] = value
        return out

    def cache_key(self) -> str:
        """Deterministic key: same filter, same key, across processes."""
        raw = json.dumps(self.to_dict(), sort_keys=True)
        return "cma:comps:" + hashlib.sha256(raw.encode()).hexdigest()[:32]
