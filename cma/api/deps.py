"""FastAPI dependency injection."""

from functools import lru_cache

from cma.data.attom import AttomClient
from cma.data.cache import build_cache
from cma.data.search import CompSearchOrchestrator
from cma.data.store import SqlPropertyStore
from cma.service import CmaService


@lru_cache
def get_store() -> SqlPropertyStore:
    return SqlPropertyStore()


@lru_cache
def get_provider() -> AttomClient:
    return AttomClient()


@lru_cache
def get_orchestrator() -> CompSearchOrchestrator:
    # One orchestrator per process so the search cache is shared across requests
    return CompSearchOrchestrator(
        sources=[get_store(), get_provider()],
        cache=build_cache(),
    )


def get_service() -> CmaService:
    return CmaService(get_store(), orchestrator=get_orchestrator(), provider=get_provider())
