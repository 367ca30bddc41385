"""Valuation engine: ARV, MAO and per-comp feature adjustments.

Pure functions: Decimal in, Decimal out. No I/O.
"""

from decimal import Decimal, ROUND_HALF_UP
from statistics import median
from typing import Sequence

from cma.errors import ValidationError
from cma.models.comps import CompResult
from cma.models.property import Property
from cma.models.valuation import (
    DEFAULT_MULTIPLIER,
    TWO_PLACES,
    Adjustment,
    AdjustmentFeature,
    AdjustmentRates,
    CompAdjustments,
    Valuation,
    ValuationSummary,
)

DEFAULT_RATES = AdjustmentRates()


def _validate_multiplier(multiplier: Decimal) -> Decimal:
    multiplier = Decimal(str(multiplier))
    if multiplier < 0 or multiplier > 1:
        raise ValidationError(f"multiplier must be between 0 and 1, got {multiplier}")
    return multiplier


def compute_arv(sold: Sequence[Property]) -> Decimal | None:
    """ARV = mean sold price. None when there are no sold comps."""
    if not sold:
        return None
    total = sum((p.price for p in sold), Decimal("0"))
    return (total / len(sold)).quantize(TWO_PLACES, ROUND_HALF_UP)


def compute_mao(arv: Decimal | None, multiplier: Decimal = DEFAULT_MULTIPLIER) -> Decimal | None:
    """MAO = ARV x multiplier. None when ARV is None."""
    multiplier = _validate_multiplier(multiplier)
    return Valuation(arv=arv, multiplier=multiplier).mao


def reprice(valuation: Valuation, multiplier: Decimal) -> Valuation:
    """New Valuation with a different multiplier; ARV is carried over, not recomputed."""
    return valuation.with_multiplier(_validate_multiplier(multiplier))


def _delta(subject_value, comp_value, rate: Decimal) -> Decimal:
    diff = Decimal(str(subject_value)) - Decimal(str(comp_value))
    return (diff * rate).quantize(TWO_PLACES, ROUND_HALF_UP)


def compute_adjustments(
    subject: Property,
    comp: Property,
    rates: AdjustmentRates = DEFAULT_RATES,
) -> CompAdjustments:
    """Per-feature adjustments for one comp, in canonical order.

    Sign convention: the amount is added to the comp's price, so it is
    positive when the comp is inferior to the subject on that feature.
    Any feature missing on either side yields amount=None (not applicable).
    """
    pairs = {
        AdjustmentFeature.SQFT: (subject.sqft, comp.sqft),
        AdjustmentFeature.BEDROOMS: (subject.bedrooms, comp.bedrooms),
        AdjustmentFeature.BATHROOMS: (subject.bathrooms, comp.bathrooms),
        AdjustmentFeature.YEAR_BUILT: (subject.year_built, comp.year_built),
    }

    adjustments = []
    for feature in AdjustmentFeature:
        subject_value, comp_value = pairs[feature]
        amount = None
        if subject_value is not None and comp_value is not None:
            amount = _delta(subject_value, comp_value, rates.rate_for(feature))
        adjustments.append(
            Adjustment(
                comp_id=comp.id,
                feature=feature,
                subject_value=subject_value,
                comp_value=comp_value,
                amount=amount,
            )
        )

    return CompAdjustments(comp=comp, adjustments=tuple(adjustments))


def compute_valuation(
    subject: Property,
    comps: CompResult,
    multiplier: Decimal = DEFAULT_MULTIPLIER,
    rates: AdjustmentRates = DEFAULT_RATES,
) -> tuple[Valuation, list[CompAdjustments]]:
    """ARV/MAO from the sold bucket plus adjustments for every comp.

    Adjustments are listed sold first, then pending, then active.
    """
    multiplier = _validate_multiplier(multiplier)
    valuation = Valuation(
        arv=compute_arv(comps.sold),
        multiplier=multiplier,
        sold_count=len(comps.sold),
    )
    adjustments = [compute_adjustments(subject, comp, rates) for comp in comps.all]
    return valuation, adjustments


def summarize(comps: CompResult, adjustments: Sequence[CompAdjustments]) -> ValuationSummary:
    """Descriptive statistics over the sold comps."""
    sold = comps.sold
    if not sold:
        return ValuationSummary()

    prices = [p.price for p in sold]
    ppsf = [p.price_per_sqft for p in sold if p.price_per_sqft is not None]
    sold_ids = {p.id for p in sold}
    adjusted = [ca.adjusted_value for ca in adjustments if ca.comp.id in sold_ids]

    def _mean(values: list[Decimal]) -> Decimal | None:
        if not values:
            return None
        return (sum(values, Decimal("0")) / len(values)).quantize(TWO_PLACES, ROUND_HALF_UP)

    return ValuationSummary(
        sold_count=len(sold),
        median_price=Decimal(median(prices)).quantize(TWO_PLACES, ROUND_HALF_UP),
        min_price=min(prices),
        max_price=max(prices),
        avg_price_per_sqft=_mean(ppsf),
        avg_adjusted_value=_mean(adjusted),
    )
