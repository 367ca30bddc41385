"""Report assembler: subject + comps + valuation -> paginated ReportModel.

Pure function. The renderer receives a fully resolved model and adds no
business logic of its own.

Pagination: sections are laid out in SectionKind order, one page each.
The first enabled section is page 1 and every later enabled section is
exactly one page after the previous one. Disabled sections get no page
and no table-of-contents entry.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from cma.engine.geo import haversine_miles
from cma.engine.valuation import summarize
from cma.models.comps import CompResult
from cma.models.property import ListingStatus, Property
from cma.models.report import (
    SECTION_TITLES,
    ReportBranding,
    ReportModel,
    ReportSection,
    SectionFlags,
    SectionKind,
)
from cma.models.valuation import AdjustmentRow, CompAdjustments, Valuation

NOT_AVAILABLE = "N/A"


def format_currency(value: Decimal | None) -> str:
    if value is None:
        return NOT_AVAILABLE
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def _distance(subject: Property, comp: Property) -> Decimal | None:
    if not (subject.has_coordinates and comp.has_coordinates):
        return None
    miles = haversine_miles(
        float(subject.latitude), float(subject.longitude),
        float(comp.latitude), float(comp.longitude),
    )
    return Decimal(str(round(miles, 2)))


def _property_facts(p: Property) -> dict[str, Any]:
    return {
        "id": p.id,
        "address": p.address.full,
        "price": p.price,
        "bedrooms": p.bedrooms,
        "bathrooms": p.bathrooms,
        "sqft": p.sqft,
        "lot_size": p.lot_size,
        "year_built": p.year_built,
        "property_type": p.property_type.value,
        "status": p.status.value,
        "price_per_sqft": p.price_per_sqft,
        "sale_date": p.sale_date,
        "has_garage": p.has_garage,
        "has_basement": p.has_basement,
    }


def _cover_content(subject: Property, branding: ReportBranding, generated_on: date) -> dict[str, Any]:
    return {
        "title": branding.title,
        "address": subject.address.street,
        "city_line": f"{subject.address.city}, {subject.address.state} {subject.address.zip_code}",
        "agent": {
            "name": branding.agent_name,
            "email": branding.agent_email,
            "phone": branding.agent_phone,
        } if branding.agent_name else None,
        "client": {
            "name": branding.client_name,
            "email": branding.client_email,
        } if branding.client_name else None,
        "report_date": generated_on,
    }


def _comps_content(subject: Property, comps: CompResult) -> dict[str, Any]:
    buckets = {}
    for status in ListingStatus:
        rows = []
        for comp in comps.bucket(status):
            row = _property_facts(comp)
            row["distance_miles"] = _distance(subject, comp)
            rows.append(row)
        buckets[status.value] = rows
    return {
        "subject": _property_facts(subject),
        "buckets": buckets,
        "total": comps.total,
        "degraded": comps.degraded,
        "failures": [f.source for f in comps.failures],
    }


def _row_display(row: AdjustmentRow) -> str:
    # address and price rows have no amount column
    if row.label in ("address", "price"):
        return ""
    return format_currency(row.amount)


def _adjustments_content(subject: Property, adjustments: Sequence[CompAdjustments]) -> dict[str, Any]:
    return {
        "comps": [
            {
                "comp_id": ca.comp.id,
                "rows": [
                    {
                        "label": r.label,
                        "subject": r.subject_value,
                        "comp": r.comp_value,
                        "amount": r.amount,
                        "display": _row_display(r),
                    }
                    for r in ca.rows(subject)
                ],
                "total": ca.total,
                "adjusted_value": ca.adjusted_value,
            }
            for ca in adjustments
        ],
    }


def _charts_content(
    comps: CompResult,
    adjustments: Sequence[CompAdjustments],
    valuation: Valuation,
) -> dict[str, Any]:
    summary = summarize(comps, adjustments)
    return {
        "price_series": [
            {"label": p.address.street, "status": p.status.value, "price": p.price}
            for p in comps.all
        ],
        "adjusted_series": [
            {"label": ca.comp.address.street, "adjusted_value": ca.adjusted_value}
            for ca in adjustments
        ],
        "arv": valuation.arv,
        "mao": valuation.mao,
        "arv_display": format_currency(valuation.arv),
        "mao_display": format_currency(valuation.mao),
        "multiplier": valuation.multiplier,
        "summary": summary,
    }


def build_report(
    subject: Property,
    comps: CompResult,
    adjustments: Sequence[CompAdjustments],
    valuation: Valuation,
    flags: SectionFlags | None = None,
    notes: str | None = None,
    branding: ReportBranding | None = None,
    commentary: str | None = None,
    generated_on: date | None = None,
) -> ReportModel:
    """Assemble the paginated report model.

    The notes section also requires non-blank notes, and the market
    analysis section requires commentary text; otherwise they are treated
    as disabled.
    """
    flags = flags or SectionFlags()
    branding = branding or ReportBranding()
    generated_on = generated_on or date.today()
    notes = (notes or "").strip()

    enabled = {kind: flags.is_enabled(kind) for kind in SectionKind}
    enabled[SectionKind.NOTES] = enabled[SectionKind.NOTES] and bool(notes)
    enabled[SectionKind.MARKET_ANALYSIS] = enabled[SectionKind.MARKET_ANALYSIS] and bool(commentary)

    pages: dict[SectionKind, int] = {}
    page = 0
    for kind in SectionKind:
        if enabled[kind]:
            page += 1
            pages[kind] = page

    def content_for(kind: SectionKind) -> dict[str, Any]:
        if kind == SectionKind.COVER:
            return _cover_content(subject, branding, generated_on)
        if kind == SectionKind.TABLE_OF_CONTENTS:
            return {
                "entries": [
                    {"title": SECTION_TITLES[k], "page": p}
                    for k, p in pages.items()
                    if k not in (SectionKind.COVER, SectionKind.TABLE_OF_CONTENTS)
                ]
            }
        if kind == SectionKind.PROPERTY_DETAILS:
            return {"subject": _property_facts(subject)}
        if kind == SectionKind.COMPS:
            return _comps_content(subject, comps)
        if kind == SectionKind.ADJUSTMENTS:
            return _adjustments_content(subject, adjustments)
        if kind == SectionKind.MARKET_ANALYSIS:
            return {"commentary": commentary}
        if kind == SectionKind.CHARTS:
            return _charts_content(comps, adjustments, valuation)
        return {"text": notes}

    sections = tuple(
        ReportSection(
            kind=kind,
            title=SECTION_TITLES[kind],
            enabled=enabled[kind],
            page=pages.get(kind),
            content=content_for(kind) if enabled[kind] else {},
        )
        for kind in SectionKind
    )

    return ReportModel(sections=sections, branding=branding, generated_on=generated_on)
