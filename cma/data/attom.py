"""ATTOM Data API client: the external market-data provider for comp search."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

import httpx

from cma.config import settings
from cma.errors import NotFound, ProviderError
from cma.models.criteria import SearchFilter
from cma.models.property import Address, ListingStatus, Property, PropertyType

logger = logging.getLogger(__name__)

ADDRESS_SEARCH = "/propertyapi/v1.0.0/property/address"
DETAIL_SEARCH = "/propertyapi/v1.0.0/property/detail"
GEO_SEARCH = "/propertyapi/v1.0.0/property/geo"

ATTOM_PROPERTY_TYPES = {
    PropertyType.SINGLE_FAMILY: "SFR",
    PropertyType.CONDO: "CONDO",
    PropertyType.TOWNHOUSE: "TOWNHOUSE",
    PropertyType.MULTI_FAMILY: "MFR",
    PropertyType.LAND: "LAND",
}


def _decimal(value) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _int(value) -> int | None:
    dec = _decimal(value)
    return int(dec) if dec is not None else None


def _attom_type(raw: str | None) -> PropertyType:
    raw = (raw or "").upper()
    if "CONDO" in raw:
        return PropertyType.CONDO
    if "TOWN" in raw:
        return PropertyType.TOWNHOUSE
    if "MFR" in raw or "MULTI" in raw:
        return PropertyType.MULTI_FAMILY
    if "LAND" in raw:
        return PropertyType.LAND
    return PropertyType.SINGLE_FAMILY


def property_from_attom(record: dict) -> Property:
    """Convert one ATTOM `property` record. Raises ValueError if unusable."""
    identifier = record.get("identifier") or {}
    attom_id = identifier.get("attomId") or identifier.get("Id")
    if attom_id is None:
        raise ValueError("record has no attomId")

    addr = record.get("address") or {}
    street = addr.get("line1") or ""
    if not street:
        raise ValueError(f"record {attom_id} has no street address")

    sale = record.get("sale") or {}
    amount = sale.get("amount")
    if isinstance(amount, dict):
        amount = amount.get("saleamt")
    price = _decimal(amount)
    if price is None:
        raise ValueError(f"record {attom_id} has no sale amount")

    sale_date = None
    sale_date_raw = sale.get("saleTransDate") or sale.get("salesearchdate")
    if sale_date_raw:
        try:
            sale_date = date.fromisoformat(str(sale_date_raw)[:10])
        except ValueError:
            logger.debug("Unparseable ATTOM sale date %r for %s", sale_date_raw, attom_id)

    building = record.get("building") or {}
    rooms = building.get("rooms") or {}
    size = building.get("size") or {}
    parking = building.get("parking") or {}
    interior = building.get("interior") or {}
    summary = record.get("summary") or {}
    lot = record.get("lot") or {}
    location = record.get("location") or {}

    garage = None
    if parking:
        garage = bool(parking.get("prkgSpaces") or parking.get("garagetype"))
    basement = None
    if interior.get("bsmtsize") is not None:
        basement = (_decimal(interior.get("bsmtsize")) or Decimal("0")) > 0

    return Property(
        id=f"attom:{attom_id}",
        address=Address(
            street=street,
            city=addr.get("locality") or "",
            state=addr.get("countrySubd") or "",
            zip_code=addr.get("postal1") or "",
        ),
        price=price,
        bedrooms=_int(rooms.get("beds")),
        bathrooms=_decimal(rooms.get("bathstotal")),
        sqft=_decimal(size.get("universalsize") or size.get("livingsize")),
        property_type=_attom_type(summary.get("proptype") or summary.get("propclass")),
        status=ListingStatus.SOLD if sale_date else ListingStatus.ACTIVE,
        lot_size=_decimal(lot.get("lotsize2") or lot.get("lotsize1")),
        year_built=_int(summary.get("yearbuilt") or building.get("yearbuilt")),
        latitude=_decimal(location.get("latitude")),
        longitude=_decimal(location.get("longitude")),
        sale_date=sale_date,
        has_garage=garage,
        has_basement=basement,
        source="attom",
        external_id=str(attom_id),
    )


class AttomClient:
    name = "attom"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.attom_api_key
        self.base_url = base_url or settings.attom_base_url
        self.timeout = timeout or settings.provider_timeout_seconds
        self._transport = transport

    @property
    def headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
        }

    async def _get(self, endpoint: str, params: dict) -> dict:
        if not self.api_key:
            raise ProviderError(self.name, "ATTOM API key is not configured")

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                resp = await client.get(endpoint, headers=self.headers, params=params)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ProviderError(self.name, f"HTTP {e.response.status_code} from {endpoint}") from e
            except httpx.HTTPError as e:
                raise ProviderError(self.name, f"request to {endpoint} failed: {e}") from e
            try:
                return resp.json()
            except ValueError as e:
                raise ProviderError(self.name, f"malformed JSON from {endpoint}") from e

    @staticmethod
    def build_params(search_filter: SearchFilter, page_size: int | None = None) -> tuple[str, dict]:
        """Choose the endpoint and translate filter bounds into query params."""
        params: dict[str, str] = {}
        if search_filter.is_geo:
            endpoint = GEO_SEARCH
            params["latitude"] = str(search_filter.latitude)
            params["longitude"] = str(search_filter.longitude)
            params["radius"] = str(search_filter.radius_miles)
        elif search_filter.zip_code:
            endpoint = ADDRESS_SEARCH
            params["postalcode"] = search_filter.zip_code
        else:
            raise ProviderError("attom", "search needs coordinates or a postal code")

        optional = {
            "minSaleAmt": search_filter.min_price,
            "maxSaleAmt": search_filter.max_price,
            "minBeds": search_filter.min_beds,
            "maxBeds": search_filter.max_beds,
            "minBathsTotal": search_filter.min_baths,
            "maxBathsTotal": search_filter.max_baths,
            "minUniversalSize": search_filter.min_sqft,
            "maxUniversalSize": search_filter.max_sqft,
            "minYearBuilt": search_filter.min_year_built,
            "maxYearBuilt": search_filter.max_year_built,
            "startSaleSearchDate": search_filter.sale_date_start,
            "endSaleSearchDate": search_filter.sale_date_end,
        }
        for key, value in optional.items():
            if value is not None:
                params[key] = str(value)

        if search_filter.property_type is not None:
            params["propertytype"] = ATTOM_PROPERTY_TYPES[search_filter.property_type]

        params["pagesize"] = str(page_size or settings.attom_page_size)
        return endpoint, params

    async def search(self, search_filter: SearchFilter) -> list[Property]:
        """Fetch candidate comps. Raises ProviderError on any failure."""
        endpoint, params = self.build_params(search_filter)
        logger.info("Searching ATTOM %s (%d params)", endpoint, len(params))
        data = await self._get(endpoint, params)

        records = data.get("property") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise ProviderError(self.name, "response has no property list")

        properties = []
        for record in records:
            try:
                properties.append(property_from_attom(record))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping unusable ATTOM record: %s", e)
        return properties

    async def get_property(self, attom_id: str) -> Property:
        """Detail lookup by ATTOM id. Raises NotFound or ProviderError."""
        data = await self._get(DETAIL_SEARCH, {"attomid": attom_id})
        records = data.get("property") if isinstance(data, dict) else None
        if not records:
            raise NotFound(attom_id)
        try:
            return property_from_attom(records[0])
        except (ValueError, TypeError, AttributeError) as e:
            raise ProviderError(self.name, f"unusable detail record for {attom_id}: {e}") from e
