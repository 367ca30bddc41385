"""SQL-backed property store: subject lookup and local comp search."""

import logging
from dataclasses import asdict

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from cma.config import settings
from cma.errors import NotFound
from cma.models.criteria import SearchFilter
from cma.models.db import Base, PropertyRecord, ReportRecord
from cma.models.property import Address, ListingStatus, Property, PropertyType
from cma.models.report import ReportModel

logger = logging.getLogger(__name__)


def record_to_property(record: PropertyRecord) -> Property:
    return Property(
        id=record.id,
        address=Address(
            street=record.street,
            city=record.city,
            state=record.state,
            zip_code=record.zip_code,
        ),
        price=record.price,
        bedrooms=record.bedrooms,
        bathrooms=record.bathrooms,
        sqft=record.sqft,
        property_type=PropertyType(record.property_type),
        status=ListingStatus(record.status),
        lot_size=record.lot_size,
        year_built=record.year_built,
        latitude=record.latitude,
        longitude=record.longitude,
        sale_date=record.sale_date,
        has_garage=record.has_garage,
        has_basement=record.has_basement,
        source="local",
        external_id=record.external_id,
    )


def property_to_record(p: Property) -> PropertyRecord:
    return PropertyRecord(
        id=p.id,
        street=p.address.street,
        city=p.address.city,
        state=p.address.state,
        zip_code=p.address.zip_code,
        latitude=p.latitude,
        longitude=p.longitude,
        price=p.price,
        status=p.status.value,
        sale_date=p.sale_date,
        bedrooms=p.bedrooms,
        bathrooms=p.bathrooms,
        sqft=p.sqft,
        lot_size=p.lot_size,
        year_built=p.year_built,
        property_type=p.property_type.value,
        has_garage=p.has_garage,
        has_basement=p.has_basement,
        external_id=p.external_id,
    )


def filter_conditions(search_filter: SearchFilter, latitude_corrected: bool = False) -> list:
    """Translate a SearchFilter into SQLAlchemy WHERE clauses.

    Absent bounds add no clause. Rows with no year built or lot size are
    kept; those features show as not applicable in the adjustments. The
    sale-date window only constrains sold rows.
    """
    p = PropertyRecord
    conditions = [p.status.in_([s.value for s in search_filter.statuses])]

    # (column, min, max, keep rows where the column is NULL)
    ranges = [
        (p.bedrooms, search_filter.min_beds, search_filter.max_beds, False),
        (p.bathrooms, search_filter.min_baths, search_filter.max_baths, False),
        (p.sqft, search_filter.min_sqft, search_filter.max_sqft, False),
        (p.price, search_filter.min_price, search_filter.max_price, False),
        (p.year_built, search_filter.min_year_built, search_filter.max_year_built, True),
        (p.lot_size, search_filter.min_lot_size, search_filter.max_lot_size, True),
    ]
    for column, low, high, nullable in ranges:
        clauses = []
        if low is not None:
            clauses.append(column >= low)
        if high is not None:
            clauses.append(column <= high)
        if not clauses:
            continue
        if nullable:
            conditions.append(or_(column.is_(None), and_(*clauses)))
        else:
            conditions.extend(clauses)

    if search_filter.property_type is not None:
        conditions.append(p.property_type == search_filter.property_type.value)
    if search_filter.require_basement:
        conditions.append(p.has_basement.is_(True))
    if search_filter.require_garage:
        conditions.append(p.has_garage.is_(True))

    if search_filter.sale_date_start is not None and search_filter.sale_date_end is not None:
        conditions.append(
            or_(
                p.status != ListingStatus.SOLD.value,
                and_(
                    p.sale_date >= search_filter.sale_date_start,
                    p.sale_date <= search_filter.sale_date_end,
                ),
            )
        )

    box = search_filter.bounding_box(latitude_corrected=latitude_corrected)
    if box is not None:
        conditions.extend([
            p.latitude >= box.min_latitude,
            p.latitude <= box.max_latitude,
            p.longitude >= box.min_longitude,
            p.longitude <= box.max_longitude,
        ])
    elif search_filter.zip_code:
        conditions.append(p.zip_code == search_filter.zip_code)

    if search_filter.exclude_property_id is not None:
        conditions.append(p.id != search_filter.exclude_property_id)

    return conditions


class SqlPropertyStore:
    name = "local"

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        latitude_corrected: bool | None = None,
    ):
        self.engine = engine or create_async_engine(settings.database_url, echo=settings.debug)
        self.session = async_sessionmaker(self.engine, expire_on_commit=False)
        self.latitude_corrected = (
            settings.latitude_corrected_bbox if latitude_corrected is None else latitude_corrected
        )

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get_property(self, property_id: str) -> Property:
        async with self.session() as session:
            record = await session.get(PropertyRecord, property_id)
        if record is None:
            raise NotFound(property_id)
        return record_to_property(record)

    async def search(self, search_filter: SearchFilter) -> list[Property]:
        stmt = (
            select(PropertyRecord)
            .where(*filter_conditions(search_filter, self.latitude_corrected))
            .order_by(PropertyRecord.id)
        )
        async with self.session() as session:
            records = (await session.scalars(stmt)).all()
        logger.debug("Local store matched %d properties", len(records))
        return [record_to_property(r) for r in records]

    search_local = search

    async def add(self, *properties: Property) -> None:
        async with self.session() as session:
            async with session.begin():
                for p in properties:
                    await session.merge(property_to_record(p))

    async def save_report(self, report: ReportModel, subject: Property, comp_ids: list[str]) -> int:
        """Persist report metadata (not the rendered document). Returns the report id."""
        enabled = [s.kind.value for s in report.enabled_sections]
        record = ReportRecord(
            title=report.branding.title,
            property_id=subject.id,
            page_count=report.page_count,
            details={
                "subject_id": subject.id,
                "comp_ids": comp_ids,
                "sections": enabled,
                "branding": asdict(report.branding),
            },
        )
        async with self.session() as session:
            async with session.begin():
                session.add(record)
        logger.info("Saved CMA report %s for %s", record.id, subject.id)
        return record.id
