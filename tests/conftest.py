"""Canonical test fixtures used across engine, data and API tests.

Subject: 3 bd / 2 ba / 2,200 sqft single family, $450K, built 2005, Austin TX.
Sold comps: $435K, $475K, $425K (ARV $445K, MAO at 0.70 = $311,500).
"""

from datetime import date
from decimal import Decimal

import pytest

from cma.models.comps import CompResult
from cma.models.property import Address, ListingStatus, Property, PropertyType


def build_property(
    id: str,
    street: str = "100 Main St",
    price: str = "450000",
    status: ListingStatus = ListingStatus.SOLD,
    bedrooms: int | None = 3,
    bathrooms: str | None = "2",
    sqft: str | None = "2200",
    year_built: int | None = 2005,
    latitude: str | None = "30.2672",
    longitude: str | None = "-97.7431",
    zip_code: str = "78701",
    sale_date: date | None = None,
    property_type: PropertyType = PropertyType.SINGLE_FAMILY,
    **kwargs,
) -> Property:
    return Property(
        id=id,
        address=Address(street=street, city="Austin", state="TX", zip_code=zip_code),
        price=Decimal(price),
        bedrooms=bedrooms,
        bathrooms=Decimal(bathrooms) if bathrooms is not None else None,
        sqft=Decimal(sqft) if sqft is not None else None,
        property_type=property_type,
        status=status,
        year_built=year_built,
        latitude=Decimal(latitude) if latitude is not None else None,
        longitude=Decimal(longitude) if longitude is not None else None,
        sale_date=sale_date,
        **kwargs,
    )


@pytest.fixture
def make_property():
    return build_property


@pytest.fixture
def subject() -> Property:
    """The property being valued."""
    return build_property(
        "subject-1",
        street="100 Main St",
        status=ListingStatus.ACTIVE,
        lot_size=Decimal("7000"),
    )


@pytest.fixture
def sold_comps() -> list[Property]:
    return [
        build_property(
            "sold-1", street="110 Oak Ave", price="435000", sqft="2100",
            latitude="30.2700", longitude="-97.7400", sale_date=date(2025, 4, 10),
        ),
        build_property(
            "sold-2", street="220 Elm St", price="475000", bedrooms=4, sqft="2400",
            year_built=2010, latitude="30.2650", longitude="-97.7500", sale_date=date(2025, 3, 2),
        ),
        build_property(
            "sold-3", street="330 Pine Rd", price="425000", bathrooms="1.5", year_built=2000,
            latitude="30.2600", longitude="-97.7450", sale_date=date(2025, 1, 20),
        ),
    ]


@pytest.fixture
def active_comp() -> Property:
    return build_property(
        "active-1", street="440 Cedar Ln", price="460000", status=ListingStatus.ACTIVE,
        latitude="30.2690", longitude="-97.7420",
    )


@pytest.fixture
def pending_comp() -> Property:
    return build_property(
        "pending-1", street="550 Birch Ct", price="455000", status=ListingStatus.PENDING,
        year_built=None,
    )


@pytest.fixture
def comp_result(sold_comps, active_comp, pending_comp) -> CompResult:
    return CompResult(
        active=(active_comp,),
        pending=(pending_comp,),
        sold=tuple(sold_comps),
    )
