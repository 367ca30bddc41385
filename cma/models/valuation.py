"""Valuation and per-comp adjustment data types."""

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from cma.models.property import Property

TWO_PLACES = Decimal("0.01")
DEFAULT_MULTIPLIER = Decimal("0.70")


class AdjustmentFeature(Enum):
    # Declaration order is the canonical row order
    SQFT = "sqft"
    BEDROOMS = "bedrooms"
    BATHROOMS = "bathrooms"
    YEAR_BUILT = "year_built"


@dataclass(frozen=True)
class AdjustmentRates:
    """Illustrative $/unit weights, not market-derived."""

    per_sqft: Decimal = Decimal("100")
    per_bedroom: Decimal = Decimal("5000")
    per_bathroom: Decimal = Decimal("7500")
    per_year: Decimal = Decimal("1000")

    def rate_for(self, feature: AdjustmentFeature) -> Decimal:
        return {
            AdjustmentFeature.SQFT: self.per_sqft,
            AdjustmentFeature.BEDROOMS: self.per_bedroom,
            AdjustmentFeature.BATHROOMS: self.per_bathroom,
            AdjustmentFeature.YEAR_BUILT: self.per_year,
        }[feature]


@dataclass(frozen=True)
class Adjustment:
    """Signed delta added to the comp's price; amount None means not applicable."""

    comp_id: str
    feature: AdjustmentFeature
    subject_value: Decimal | int | None
    comp_value: Decimal | int | None
    amount: Decimal | None

    @property
    def applicable(self) -> bool:
        return self.amount is not None


@dataclass(frozen=True)
class AdjustmentRow:
    """One line of the adjustment grid.

    `amount` is the signed dollar delta on feature rows, the summed delta on
    the total row and the adjusted comp value on the adjusted row.
    """

    label: str
    subject_value: object
    comp_value: object
    amount: Decimal | None = None


@dataclass(frozen=True)
class CompAdjustments:
    comp: Property
    adjustments: tuple[Adjustment, ...]

    @property
    def total(self) -> Decimal:
        return sum((a.amount for a in self.adjustments if a.amount is not None), Decimal("0"))

    @property
    def adjusted_value(self) -> Decimal:
        return self.comp.price + self.total

    def adjustment(self, feature: AdjustmentFeature) -> Adjustment:
        for a in self.adjustments:
            if a.feature == feature:
                return a
        raise KeyError(feature)

    def rows(self, subject: Property) -> list[AdjustmentRow]:
        """Rendering order: address, price, sqft, beds, baths, year built, total, adjusted."""
        rows = [
            AdjustmentRow("address", subject.address.street, self.comp.address.street),
            AdjustmentRow("price", subject.price, self.comp.price),
        ]
        for a in self.adjustments:
            rows.append(AdjustmentRow(a.feature.value, a.subject_value, a.comp_value, a.amount))
        rows.append(AdjustmentRow("total", None, None, self.total))
        rows.append(AdjustmentRow("adjusted", subject.price, self.comp.price, self.adjusted_value))
        return rows


@dataclass(frozen=True)
class Valuation:
    """ARV / MAO. ARV is None (not zero) when there are no sold comps."""

    arv: Decimal | None
    multiplier: Decimal = DEFAULT_MULTIPLIER
    sold_count: int = 0

    @property
    def mao(self) -> Decimal | None:
        if self.arv is None:
            return None
        return (self.arv * self.multiplier).quantize(TWO_PLACES, ROUND_HALF_UP)

    def with_multiplier(self, multiplier: Decimal) -> "Valuation":
        return replace(self, multiplier=multiplier)


@dataclass(frozen=True)
class ValuationSummary:
    sold_count: int = 0
    median_price: Decimal | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    avg_price_per_sqft: Decimal | None = None
    avg_adjusted_value: Decimal | None = None
