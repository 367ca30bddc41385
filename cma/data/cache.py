"""Time-bounded cache for comp search results.

Two backends share one async interface: an in-process dict (default) and
Redis. Entries expire lazily: the TTL is checked on read. Concurrent
writers to the same key are last-writer-wins.
"""

import json
import logging
import threading
import time
from datetime import date
from decimal import Decimal
from typing import Callable, Protocol

import redis.asyncio as redis

from cma.config import settings
from cma.models.comps import CompResult, SourceFailure
from cma.models.property import Address, ListingStatus, Property, PropertyType

logger = logging.getLogger(__name__)


class SearchCache(Protocol):
    async def get(self, key: str) -> CompResult | None:
        ...

    async def set(self, key: str, value: CompResult, ttl_seconds: int) -> None:
        ...


# ---- JSON codec ----

def _dec(value) -> Decimal | None:
    return Decimal(value) if value is not None else None


def property_to_dict(p: Property) -> dict:
    return {
        "id": p.id,
        "address": {
            "street": p.address.street,
            "city": p.address.city,
            "state": p.address.state,
            "zip_code": p.address.zip_code,
        },
        "price": str(p.price),
        "bedrooms": p.bedrooms,
        "bathrooms": str(p.bathrooms) if p.bathrooms is not None else None,
        "sqft": str(p.sqft) if p.sqft is not None else None,
        "property_type": p.property_type.value,
        "status": p.status.value,
        "lot_size": str(p.lot_size) if p.lot_size is not None else None,
        "year_built": p.year_built,
        "latitude": str(p.latitude) if p.latitude is not None else None,
        "longitude": str(p.longitude) if p.longitude is not None else None,
        "sale_date": p.sale_date.isoformat() if p.sale_date else None,
        "has_garage": p.has_garage,
        "has_basement": p.has_basement,
        "source": p.source,
        "external_id": p.external_id,
    }


def property_from_dict(data: dict) -> Property:
    return Property(
        id=data["id"],
        address=Address(**data["address"]),
        price=Decimal(data["price"]),
        bedrooms=data["bedrooms"],
        bathrooms=_dec(data["bathrooms"]),
        sqft=_dec(data["sqft"]),
        property_type=PropertyType(data["property_type"]),
        status=ListingStatus(data["status"]),
        lot_size=_dec(data["lot_size"]),
        year_built=data["year_built"],
        latitude=_dec(data["latitude"]),
        longitude=_dec(data["longitude"]),
        sale_date=date.fromisoformat(data["sale_date"]) if data["sale_date"] else None,
        has_garage=data["has_garage"],
        has_basement=data["has_basement"],
        source=data["source"],
        external_id=data["external_id"],
    )


def comp_result_to_json(result: CompResult) -> str:
    return json.dumps({
        "active": [property_to_dict(p) for p in result.active],
        "pending": [property_to_dict(p) for p in result.pending],
        "sold": [property_to_dict(p) for p in result.sold],
        "degraded": result.degraded,
        "failures": [{"source": f.source, "reason": f.reason} for f in result.failures],
    })


def comp_result_from_json(raw: str) -> CompResult:
    data = json.loads(raw)
    return CompResult(
        active=tuple(property_from_dict(p) for p in data["active"]),
        pending=tuple(property_from_dict(p) for p in data["pending"]),
        sold=tuple(property_from_dict(p) for p in data["sold"]),
        degraded=data["degraded"],
        failures=tuple(SourceFailure(**f) for f in data["failures"]),
    )


# ---- Backends ----

class MemorySearchCache:
    """Process-local cache. Safe for concurrent readers and writers."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, CompResult]] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> CompResult | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if now >= expires_at:
                del self._entries[key]
                return None
        logger.debug("Cache hit: %s", key)
        return value

    async def set(self, key: str, value: CompResult, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl_seconds, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisSearchCache:
    """Redis-backed cache shared across processes. Redis errors read as misses."""

    def __init__(self, client: redis.Redis | None = None, url: str | None = None):
        self._client = client
        self._url = url or settings.redis_url

    def _redis(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self._url, decode_responses=True)
        return self._client

    async def get(self, key: str) -> CompResult | None:
        try:
            raw = await self._redis().get(key)
        except Exception:
            logger.warning("Redis unavailable, skipping cache for %s", key)
            return None
        if raw is None:
            return None
        try:
            value = comp_result_from_json(raw)
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            logger.warning("Unreadable cache entry for %s, treating as miss: %s", key, e)
            return None
        logger.debug("Cache hit: %s", key)
        return value

    async def set(self, key: str, value: CompResult, ttl_seconds: int) -> None:
        try:
            await self._redis().setex(key, ttl_seconds, comp_result_to_json(value))
        except Exception:
            logger.warning("Failed to write cache for %s", key)


def build_cache(backend: str | None = None) -> SearchCache:
    backend = backend or settings.cache_backend
    if backend == "redis":
        return RedisSearchCache()
    if backend == "memory":
        return MemorySearchCache()
    raise ValueError(f"Unknown cache backend: {backend}")
