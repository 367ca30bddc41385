"""Tests for the SQL property store, run against a SQLite file database."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from cma.data.store import SqlPropertyStore
from cma.engine.criteria import derive_criteria
from cma.engine.report import build_report
from cma.engine.valuation import compute_valuation
from cma.errors import NotFound
from cma.models.comps import CompResult
from cma.models.criteria import MatchCriteria, PropertyTypeMode
from cma.models.db import ReportRecord
from cma.models.property import ListingStatus, PropertyType

TODAY = date(2025, 6, 1)


@pytest.fixture
async def store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cma.db'}")
    store = SqlPropertyStore(engine=engine, latitude_corrected=False)
    await store.create_tables()
    yield store
    await engine.dispose()


@pytest.fixture
async def seeded(store, subject, sold_comps, active_comp, pending_comp):
    await store.add(subject, *sold_comps, active_comp, pending_comp)
    return store


class TestGetProperty:
    async def test_round_trip(self, seeded, subject):
        p = await seeded.get_property("subject-1")
        assert p.address == subject.address
        assert p.price == Decimal("450000")
        assert p.bathrooms == Decimal("2")
        assert p.lot_size == Decimal("7000")
        assert p.status == ListingStatus.ACTIVE
        assert p.source == "local"

    async def test_not_found(self, store):
        with pytest.raises(NotFound) as exc:
            await store.get_property("missing")
        assert exc.value.property_id == "missing"


class TestSearch:
    async def test_finds_all_matching_comps(self, seeded, subject):
        search_filter = derive_criteria(subject, MatchCriteria(), today=TODAY)
        results = await seeded.search(search_filter)
        assert sorted(p.id for p in results) == ["active-1", "pending-1", "sold-1", "sold-2", "sold-3"]

    async def test_subject_excluded(self, seeded, subject):
        search_filter = derive_criteria(subject, MatchCriteria(), today=TODAY)
        assert "subject-1" not in [p.id for p in await seeded.search(search_filter)]

    async def test_sold_window_only_limits_sold(self, seeded, subject):
        search_filter = derive_criteria(subject, MatchCriteria(sold_within_days=90), today=TODAY)
        ids = sorted(p.id for p in await seeded.search(search_filter))
        # sold-2 (Mar 2) and sold-3 (Jan 20) fall outside 90 days
        assert ids == ["active-1", "pending-1", "sold-1"]

    async def test_status_selection(self, seeded, subject):
        criteria = MatchCriteria(include_active=False, include_pending=False)
        ids = sorted(p.id for p in await seeded.search(derive_criteria(subject, criteria, today=TODAY)))
        assert ids == ["sold-1", "sold-2", "sold-3"]

    async def test_outside_radius_excluded(self, seeded, subject, make_property):
        far = make_property("far", street="1 Far Rd", latitude="31.5000", sale_date=date(2025, 5, 1))
        await seeded.add(far)
        search_filter = derive_criteria(subject, MatchCriteria(), today=TODAY)
        assert "far" not in [p.id for p in await seeded.search(search_filter)]

    async def test_beds_bound(self, seeded, subject):
        criteria = MatchCriteria(beds_range=0)
        ids = [p.id for p in await seeded.search(derive_criteria(subject, criteria, today=TODAY))]
        assert "sold-2" not in ids

    async def test_property_type(self, seeded, subject, make_property):
        condo = make_property(
            "condo-1", street="12 Tower Pl", property_type=PropertyType.CONDO, sale_date=date(2025, 5, 1),
        )
        await seeded.add(condo)
        same = await seeded.search(derive_criteria(subject, MatchCriteria(), today=TODAY))
        assert "condo-1" not in [p.id for p in same]
        any_type = MatchCriteria(property_type_mode=PropertyTypeMode.ANY)
        assert "condo-1" in [p.id for p in await seeded.search(derive_criteria(subject, any_type, today=TODAY))]

    async def test_zip_fallback_without_coordinates(self, seeded, make_property):
        subject = make_property("s2", street="9 Nowhere Ln", latitude=None, longitude=None, zip_code="78702")
        search_filter = derive_criteria(subject, MatchCriteria(), today=TODAY)
        assert await seeded.search(search_filter) == []


class TestSaveReport:
    async def test_saves_metadata(self, seeded, subject, sold_comps):
        comps = CompResult(sold=tuple(sold_comps))
        valuation, adjustments = compute_valuation(subject, comps)
        report = build_report(subject, comps, adjustments, valuation, generated_on=TODAY)

        report_id = await seeded.save_report(report, subject, [c.id for c in comps.all])

        async with seeded.session() as session:
            record = await session.get(ReportRecord, report_id)
        assert record.property_id == "subject-1"
        assert record.report_type == "CMA"
        assert record.page_count == report.page_count
        assert record.details["comp_ids"] == ["sold-1", "sold-2", "sold-3"]
        assert "notes" not in record.details["sections"]
