"""Comp search orchestrator: filter -> bucketed CompResult.

Flow: cache lookup -> each source (time-bounded) -> drop subject -> dedup -> bucket by status -> cache.

Source failures never reach the caller. A failed or timed-out source
contributes no properties and is recorded on the result, which is then
flagged `degraded` and not cached.
"""

import asyncio
import logging
from typing import Sequence

from cma.config import settings
from cma.data.base import PropertySource
from cma.data.cache import MemorySearchCache, SearchCache
from cma.models.comps import CompResult, SourceFailure
from cma.models.criteria import SearchFilter
from cma.models.property import ListingStatus, Property

logger = logging.getLogger(__name__)


def dedupe(properties: Sequence[Property]) -> list[Property]:
    """Drop repeats of the same street + ZIP; the first occurrence wins."""
    seen: set[str] = set()
    unique = []
    for p in properties:
        key = p.address.dedup_key
        if key in seen:
            logger.debug("Dropping duplicate comp %s from %s", p.address.full, p.source)
            continue
        seen.add(key)
        unique.append(p)
    return unique


def is_subject(p: Property, search_filter: SearchFilter) -> bool:
    """Providers report the subject under their own id, so match the address too."""
    if search_filter.exclude_property_id is not None and p.id == search_filter.exclude_property_id:
        return True
    return (
        search_filter.exclude_address_key is not None
        and p.address.dedup_key == search_filter.exclude_address_key
    )


def bucket_by_status(
    properties: Sequence[Property],
    statuses: Sequence[ListingStatus] | None = None,
) -> dict[ListingStatus, list[Property]]:
    """Split properties by status, dropping unknown or unrequested statuses."""
    buckets: dict[ListingStatus, list[Property]] = {s: [] for s in ListingStatus}
    wanted = set(statuses) if statuses else set(ListingStatus)
    for p in properties:
        status = p.status if isinstance(p.status, ListingStatus) else ListingStatus.from_string(p.status)
        if status is None:
            logger.debug("Dropping comp %s with unknown status %r", p.id, p.status)
            continue
        if status not in wanted:
            continue
        buckets[status].append(p)
    return buckets


class CompSearchOrchestrator:
    def __init__(
        self,
        sources: Sequence[PropertySource],
        cache: SearchCache | None = None,
        ttl_seconds: int | None = None,
        timeout_seconds: float | None = None,
    ):
        self.sources = list(sources)
        self.cache = cache if cache is not None else MemorySearchCache()
        self.ttl_seconds = settings.search_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.timeout_seconds = (
            settings.provider_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    async def _call_source(self, source: PropertySource, search_filter: SearchFilter) -> list[Property]:
        return await asyncio.wait_for(source.search(search_filter), timeout=self.timeout_seconds)

    async def search_comps(self, search_filter: SearchFilter) -> CompResult:
        """Run the filter against every source. Never raises."""
        key = search_filter.cache_key()
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        found: list[Property] = []
        failures: list[SourceFailure] = []
        for source in self.sources:
            try:
                properties = await self._call_source(source, search_filter)
            except asyncio.TimeoutError:
                logger.warning("Comp source %s timed out after %ss", source.name, self.timeout_seconds)
                failures.append(SourceFailure(source.name, "timeout"))
                continue
            except Exception as e:
                logger.warning("Comp source %s failed: %s", source.name, e)
                failures.append(SourceFailure(source.name, str(e) or type(e).__name__))
                continue
            logger.info("Comp source %s returned %d properties", source.name, len(properties))
            found.extend(properties)

        found = [p for p in found if not is_subject(p, search_filter)]
        buckets = bucket_by_status(dedupe(found), search_filter.statuses)
        result = CompResult(
            active=tuple(buckets[ListingStatus.ACTIVE]),
            pending=tuple(buckets[ListingStatus.PENDING]),
            sold=tuple(buckets[ListingStatus.SOLD]),
            degraded=bool(failures),
            failures=tuple(failures),
        )

        if not result.degraded:
            await self.cache.set(key, result, self.ttl_seconds)
        return result
