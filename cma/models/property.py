from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum


class PropertyType(Enum):
    SINGLE_FAMILY = "single_family"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    MULTI_FAMILY = "multi_family"
    LAND = "land"

    @classmethod
    def from_string(cls, value: str | None) -> "PropertyType | None":
        """Parse enum values, display names ("Single Family") and ATTOM codes ("SFR")."""
        if not value:
            return None
        normalised = value.strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == normalised:
                return member
        return _PROPERTY_TYPE_ALIASES.get(normalised)


_PROPERTY_TYPE_ALIASES = {
    "sfr": PropertyType.SINGLE_FAMILY,
    "single_family_residence": PropertyType.SINGLE_FAMILY,
    "condominium": PropertyType.CONDO,
    "town_house": PropertyType.TOWNHOUSE,
    "mfr": PropertyType.MULTI_FAMILY,
    "multifamily": PropertyType.MULTI_FAMILY,
    "vacant_land": PropertyType.LAND,
}


class ListingStatus(Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SOLD = "sold"

    @classmethod
    def from_string(cls, value: str | None) -> "ListingStatus | None":
        if not value:
            return None
        normalised = value.strip().lower()
        for member in cls:
            if member.value == normalised:
                return member
        return None


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    state: str
    zip_code: str

    @property
    def full(self) -> str:
        return f"{self.street}, {self.city}, {self.state} {self.zip_code}"

    @property
    def dedup_key(self) -> str:
        """Street + ZIP, case and whitespace insensitive."""
        street = " ".join(self.street.lower().replace(".", "").split())
        return f"{street}|{self.zip_code.strip()[:5]}"


@dataclass(frozen=True)
class Property:
    id: str
    address: Address
    price: Decimal
    bedrooms: int | None
    bathrooms: Decimal | None
    sqft: Decimal | None
    property_type: PropertyType
    status: ListingStatus
    lot_size: Decimal | None = None
    year_built: int | None = None
    latitude: Decimal | None = None
    longitude: Decimal | None = None
    sale_date: date | None = None
    has_garage: bool | None = None
    has_basement: bool | None = None
    source: str = "local"
    external_id: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def price_per_sqft(self) -> Decimal | None:
        if not self.sqft or self.sqft <= 0 or self.price is None:
            return None
        return (self.price / self.sqft).quantize(Decimal("0.01"), ROUND_HALF_UP)
