"""Criteria deriver: subject property + tolerances -> SearchFilter.

Pure function. No I/O.
"""

import math
from datetime import date, timedelta
from decimal import Decimal

from cma.errors import ValidationError
from cma.models.criteria import MatchCriteria, PropertyTypeMode, SearchFilter
from cma.models.property import ListingStatus, Property

HUNDRED = Decimal("100")


def _pct_bounds(value: Decimal, pct: Decimal) -> tuple[int, int]:
    """floor(v * (1 - pct/100)), ceil(v * (1 + pct/100))."""
    fraction = pct / HUNDRED
    return math.floor(value * (1 - fraction)), math.ceil(value * (1 + fraction))


def _require_subject_fields(subject: Property) -> None:
    missing = [
        name
        for name in ("bedrooms", "bathrooms", "sqft", "price")
        if getattr(subject, name) is None
    ]
    if missing:
        raise ValidationError(
            f"Subject property {subject.id} is missing required fields: {', '.join(missing)}"
        )


def derive_criteria(
    subject: Property,
    criteria: MatchCriteria,
    today: date | None = None,
) -> SearchFilter:
    """Build the search filter for comps of `subject`.

    Args:
        subject: The property being valued. Must have beds, baths, sqft and price.
        criteria: Caller tolerances.
        today: Reference date for the sold window (default: today).

    Raises:
        ValidationError: subject is missing required data, a tolerance is
            negative, or no listing status is selected.
    """
    _require_subject_fields(subject)
    criteria.validate()
    today = today or date.today()

    beds = subject.bedrooms
    baths = Decimal(subject.bathrooms)
    max_beds = beds + criteria.beds_range
    # Bed floor of 1, but never above max (studios with zero tolerance)
    min_beds = min(max(1, beds - criteria.beds_range), max_beds)
    min_sqft, max_sqft = _pct_bounds(Decimal(subject.sqft), criteria.sqft_range_pct)
    min_price, max_price = _pct_bounds(Decimal(subject.price), criteria.price_range_pct)

    min_year = max_year = None
    if subject.year_built:
        min_year = subject.year_built - criteria.age_range_years
        max_year = subject.year_built + criteria.age_range_years

    min_lot = max_lot = None
    if subject.lot_size:
        min_lot, max_lot = _pct_bounds(Decimal(subject.lot_size), criteria.lot_size_range_pct)

    if criteria.property_type_mode == PropertyTypeMode.SAME:
        property_type = subject.property_type
    elif criteria.property_type_mode == PropertyTypeMode.ANY:
        property_type = None
    else:
        property_type = criteria.explicit_property_type

    latitude = longitude = radius = None
    if subject.has_coordinates:
        latitude = subject.latitude
        longitude = subject.longitude
        radius = criteria.radius_miles

    statuses = criteria.statuses
    sale_start = sale_end = None
    if ListingStatus.SOLD in statuses:
        sale_start = today - timedelta(days=criteria.sold_within_days)
        sale_end = today

    return SearchFilter(
        statuses=statuses,
        min_beds=min_beds,
        max_beds=max_beds,
        min_baths=max(Decimal("0"), baths - criteria.baths_range),
        max_baths=baths + criteria.baths_range,
        min_sqft=min_sqft,
        max_sqft=max_sqft,
        min_price=min_price,
        max_price=max_price,
        min_year_built=min_year,
        max_year_built=max_year,
        min_lot_size=min_lot,
        max_lot_size=max_lot,
        property_type=property_type,
        latitude=latitude,
        longitude=longitude,
        radius_miles=radius,
        zip_code=subject.address.zip_code or None,
        require_basement=criteria.require_basement,
        require_garage=criteria.require_garage,
        sale_date_start=sale_start,
        sale_date_end=sale_end,
        exclude_property_id=subject.id,
        exclude_address_key=subject.address.dedup_key,
    )
