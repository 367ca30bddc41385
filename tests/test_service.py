"""Tests for the end-to-end CMA pipeline."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from cma.data.search import CompSearchOrchestrator
from cma.errors import NotFound, ProviderError, RenderError, ValidationError
from cma.models.criteria import MatchCriteria
from cma.models.property import ListingStatus
from cma.models.report import ReportBranding, SectionFlags, SectionKind
from cma.service import CmaService

TODAY = date(2025, 6, 1)


@pytest.fixture
def store(subject, sold_comps, active_comp, pending_comp):
    store = AsyncMock()
    store.name = "local"

    async def get_property(property_id):
        if property_id != subject.id:
            raise NotFound(property_id)
        return subject

    store.get_property.side_effect = get_property
    store.search.return_value = sold_comps + [active_comp, pending_comp]
    store.save_report.return_value = 7
    return store


@pytest.fixture
def commentary():
    return AsyncMock(return_value="Demand is steady.")


@pytest.fixture
def service(store, commentary):
    return CmaService(store, orchestrator=CompSearchOrchestrator([store]), commentary=commentary)


class TestGetSubject:
    async def test_stored_subject(self, service):
        subject = await service.get_subject("subject-1")
        assert subject.id == "subject-1"

    async def test_attom_id_falls_back_to_provider(self, store, commentary, make_property):
        provider = AsyncMock()
        provider.get_property.return_value = make_property(
            "attom:184713191", street="4529 Winona Ct", status=ListingStatus.ACTIVE, source="attom"
        )
        service = CmaService(
            store, orchestrator=CompSearchOrchestrator([store]), commentary=commentary, provider=provider
        )
        run = await service.run("attom:184713191", today=TODAY)
        provider.get_property.assert_awaited_once_with("184713191")
        assert run.subject.id == "attom:184713191"
        assert run.search_filter.exclude_property_id == "attom:184713191"

    async def test_local_id_never_hits_provider(self, store, commentary):
        provider = AsyncMock()
        service = CmaService(
            store, orchestrator=CompSearchOrchestrator([store]), commentary=commentary, provider=provider
        )
        with pytest.raises(NotFound):
            await service.get_subject("missing")
        provider.get_property.assert_not_awaited()

    async def test_provider_failure_is_not_found(self, store, commentary):
        provider = AsyncMock()
        provider.get_property.side_effect = ProviderError("attom", "HTTP 500 from /detail")
        service = CmaService(
            store, orchestrator=CompSearchOrchestrator([store]), commentary=commentary, provider=provider
        )
        with pytest.raises(NotFound):
            await service.get_subject("attom:1")

    async def test_attom_id_without_provider(self, service):
        with pytest.raises(NotFound):
            await service.get_subject("attom:1")


class TestRun:
    async def test_full_pipeline(self, service):
        run = await service.run("subject-1", multiplier=Decimal("0.70"), today=TODAY)
        assert run.search_filter.min_beds == 2
        assert len(run.comps.sold) == 3
        assert run.valuation.arv == Decimal("445000.00")
        assert run.valuation.mao == Decimal("311500.00")
        assert len(run.adjustments) == 5
        assert run.report.section(SectionKind.COVER).page == 1
        assert run.report.generated_on == TODAY
        assert run.report_id is None

    async def test_unknown_subject(self, service):
        with pytest.raises(NotFound):
            await service.run("missing", today=TODAY)

    async def test_invalid_criteria(self, service):
        with pytest.raises(ValidationError):
            await service.run("subject-1", criteria=MatchCriteria(beds_range=-1), today=TODAY)

    async def test_commentary_only_when_enabled(self, service, commentary):
        await service.run("subject-1", today=TODAY)
        commentary.assert_not_awaited()

        run = await service.run("subject-1", flags=SectionFlags(market_analysis=True), today=TODAY)
        commentary.assert_awaited_once()
        assert run.report.section(SectionKind.MARKET_ANALYSIS).content["commentary"] == "Demand is steady."

    async def test_commentary_unavailable_drops_section(self, store):
        service = CmaService(
            store,
            orchestrator=CompSearchOrchestrator([store]),
            commentary=AsyncMock(return_value=None),
        )
        run = await service.run("subject-1", flags=SectionFlags(market_analysis=True), today=TODAY)
        assert not run.report.section(SectionKind.MARKET_ANALYSIS).enabled

    async def test_provider_outage_still_produces_report(self, store, commentary):
        store.search.side_effect = RuntimeError("db down")
        service = CmaService(store, orchestrator=CompSearchOrchestrator([store]), commentary=commentary)
        run = await service.run("subject-1", today=TODAY)
        assert run.comps.degraded
        assert run.valuation.arv is None
        assert run.report.section(SectionKind.CHARTS).content["arv_display"] == "N/A"

    async def test_save(self, service, store):
        branding = ReportBranding(title="CMA for 100 Main St")
        run = await service.run("subject-1", branding=branding, today=TODAY, save=True)
        assert run.report_id == 7
        report, subject, comp_ids = store.save_report.call_args.args
        assert report.branding.title == "CMA for 100 Main St"
        assert comp_ids[:3] == ["sold-1", "sold-2", "sold-3"]

    async def test_default_multiplier_from_settings(self, service):
        run = await service.run("subject-1", today=TODAY)
        assert run.valuation.multiplier == Decimal("0.70")


class TestRenderReport:
    async def test_delegates_to_renderer(self, service):
        run = await service.run("subject-1", today=TODAY)
        renderer = MagicMock()
        renderer.render.return_value = b"%PDF-1.7"
        assert service.render_report(run.report, renderer) == b"%PDF-1.7"
        renderer.render.assert_called_once_with(run.report)

    async def test_render_error_propagates(self, service):
        run = await service.run("subject-1", today=TODAY)
        renderer = MagicMock()
        renderer.render.side_effect = RenderError("font missing")
        with pytest.raises(RenderError):
            service.render_report(run.report, renderer)
