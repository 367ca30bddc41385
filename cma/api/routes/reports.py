"""Report routes: full CMA pipeline run."""

from fastapi import APIRouter, Depends

from cma.api.deps import get_service
from cma.api.routes.comps import valuation_to_response
from cma.api.schemas import (
    BrandingIn,
    ReportRequest,
    ReportResponse,
    ReportSectionResponse,
    TocEntryResponse,
)
from cma.service import CmaRun, CmaService

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _run_to_response(run: CmaRun) -> ReportResponse:
    report = run.report
    b = report.branding
    return ReportResponse(
        report_id=run.report_id,
        subject_id=run.subject.id,
        generated_on=report.generated_on,
        page_count=report.page_count,
        branding=BrandingIn(
            title=b.title,
            agent_name=b.agent_name,
            agent_email=b.agent_email,
            agent_phone=b.agent_phone,
            client_name=b.client_name,
            client_email=b.client_email,
            branding_color=b.branding_color,
        ),
        toc=[TocEntryResponse(title=e.title, page=e.page) for e in report.toc],
        sections=[
            ReportSectionResponse(
                kind=s.kind.value,
                title=s.title,
                enabled=s.enabled,
                page=s.page,
                content=s.content,
            )
            for s in report.sections
        ],
        valuation=valuation_to_response(run.valuation, run.adjustments, run.comps),
        degraded=run.comps.degraded,
    )


@router.post("/cma", response_model=ReportResponse)
async def create_cma_report(req: ReportRequest, service: CmaService = Depends(get_service)):
    """Run the CMA pipeline for a stored subject and return the report model."""
    run = await service.run(
        req.subject_id,
        criteria=req.criteria.to_criteria(),
        flags=req.sections.to_flags(),
        notes=req.notes,
        multiplier=req.multiplier,
        branding=req.branding.to_branding(),
        save=req.save,
    )
    return _run_to_response(run)
