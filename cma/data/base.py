"""Protocol definitions for the engine's collaborators.

Each protocol defines the interface that concrete implementations must satisfy.
"""

from typing import Protocol, runtime_checkable

from cma.models.criteria import SearchFilter
from cma.models.property import Property
from cma.models.report import ReportModel


@runtime_checkable
class PropertySource(Protocol):
    name: str

    async def search(self, search_filter: SearchFilter) -> list[Property]:
        """Return raw candidate comps matching the filter.

        May raise; the comp search orchestrator absorbs failures.
        """
        ...


@runtime_checkable
class PropertyStore(PropertySource, Protocol):
    async def get_property(self, property_id: str) -> Property:
        """Fetch a stored property. Raises NotFound."""
        ...

    async def save_report(self, report: ReportModel, subject: Property, comp_ids: list[str]) -> int:
        """Persist report metadata. Returns the new report id."""
        ...


@runtime_checkable
class ReportRenderer(Protocol):
    def render(self, report: ReportModel) -> bytes:
        """Serialize a report model (PDF, spreadsheet). Raises RenderError."""
        ...
