"""Comp routes: criteria derivation, comp search and valuation."""

from fastapi import APIRouter, Depends

from cma.api.deps import get_service
from cma.api.schemas import (
    AdjustmentResponse,
    CompAdjustmentsResponse,
    CompSearchResponse,
    CriteriaRequest,
    PropertyResponse,
    SearchFilterResponse,
    SourceFailureResponse,
    ValuationRequest,
    ValuationResponse,
    ValuationSummaryResponse,
)
from cma.data.search import bucket_by_status
from cma.engine.valuation import summarize
from cma.models.comps import CompResult
from cma.models.criteria import SearchFilter
from cma.models.property import ListingStatus, Property
from cma.models.valuation import CompAdjustments, Valuation
from cma.service import CmaService

router = APIRouter(prefix="/api/v1/comps", tags=["comps"])


def filter_to_response(f: SearchFilter) -> SearchFilterResponse:
    return SearchFilterResponse(
        statuses=[s.value for s in f.statuses],
        min_beds=f.min_beds,
        max_beds=f.max_beds,
        min_baths=f.min_baths,
        max_baths=f.max_baths,
        min_sqft=f.min_sqft,
        max_sqft=f.max_sqft,
        min_price=f.min_price,
        max_price=f.max_price,
        min_year_built=f.min_year_built,
        max_year_built=f.max_year_built,
        min_lot_size=f.min_lot_size,
        max_lot_size=f.max_lot_size,
        property_type=f.property_type.value if f.property_type else None,
        latitude=f.latitude,
        longitude=f.longitude,
        radius_miles=f.radius_miles,
        zip_code=f.zip_code,
        require_basement=f.require_basement,
        require_garage=f.require_garage,
        sale_date_start=f.sale_date_start,
        sale_date_end=f.sale_date_end,
        exclude_property_id=f.exclude_property_id,
        exclude_address_key=f.exclude_address_key,
    )


def property_to_response(p: Property) -> PropertyResponse:
    return PropertyResponse(
        id=p.id,
        address=p.address.full,
        price=p.price,
        bedrooms=p.bedrooms,
        bathrooms=p.bathrooms,
        sqft=p.sqft,
        property_type=p.property_type.value,
        status=p.status.value,
        lot_size=p.lot_size,
        year_built=p.year_built,
        latitude=p.latitude,
        longitude=p.longitude,
        sale_date=p.sale_date,
        price_per_sqft=p.price_per_sqft,
        source=p.source,
    )


def valuation_to_response(
    valuation: Valuation,
    adjustments: list[CompAdjustments],
    comps: CompResult,
) -> ValuationResponse:
    summary = summarize(comps, adjustments)
    return ValuationResponse(
        arv=valuation.arv,
        mao=valuation.mao,
        multiplier=valuation.multiplier,
        sold_count=valuation.sold_count,
        adjustments=[
            CompAdjustmentsResponse(
                comp_id=ca.comp.id,
                address=ca.comp.address.full,
                price=ca.comp.price,
                adjustments=[
                    AdjustmentResponse(
                        feature=a.feature.value,
                        subject_value=a.subject_value,
                        comp_value=a.comp_value,
                        amount=a.amount,
                    )
                    for a in ca.adjustments
                ],
                total=ca.total,
                adjusted_value=ca.adjusted_value,
            )
            for ca in adjustments
        ],
        summary=ValuationSummaryResponse(
            sold_count=summary.sold_count,
            median_price=summary.median_price,
            min_price=summary.min_price,
            max_price=summary.max_price,
            avg_price_per_sqft=summary.avg_price_per_sqft,
            avg_adjusted_value=summary.avg_adjusted_value,
        ),
    )


@router.post("/criteria", response_model=SearchFilterResponse)
async def derive_criteria(req: CriteriaRequest, service: CmaService = Depends(get_service)):
    """Derive the comp search filter for a stored subject property."""
    subject = await service.get_subject(req.subject_id)
    search_filter = service.derive_criteria(subject, req.criteria.to_criteria())
    return filter_to_response(search_filter)


@router.post("/search", response_model=CompSearchResponse)
async def search_comps(req: CriteriaRequest, service: CmaService = Depends(get_service)):
    """Derive criteria and search every configured source for comps."""
    subject = await service.get_subject(req.subject_id)
    search_filter = service.derive_criteria(subject, req.criteria.to_criteria())
    result = await service.search_comps(search_filter)
    return CompSearchResponse(
        filter=filter_to_response(search_filter),
        active=[property_to_response(p) for p in result.active],
        pending=[property_to_response(p) for p in result.pending],
        sold=[property_to_response(p) for p in result.sold],
        total=result.total,
        degraded=result.degraded,
        failures=[SourceFailureResponse(source=f.source, reason=f.reason) for f in result.failures],
    )


@router.post("/valuation", response_model=ValuationResponse)
async def compute_valuation(req: ValuationRequest, service: CmaService = Depends(get_service)):
    """ARV / MAO and per-comp adjustments for a caller-supplied comp set."""
    subject = req.subject.to_property()
    buckets = bucket_by_status([c.to_property() for c in req.comps])
    comps = CompResult(
        active=tuple(buckets[ListingStatus.ACTIVE]),
        pending=tuple(buckets[ListingStatus.PENDING]),
        sold=tuple(buckets[ListingStatus.SOLD]),
    )
    valuation, adjustments = service.compute_valuation(subject, comps, req.multiplier)
    return valuation_to_response(valuation, adjustments, comps)
