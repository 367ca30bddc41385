"""Report document model handed to the rendering collaborator."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class SectionKind(Enum):
    # Declaration order is the canonical page order
    COVER = "cover"
    TABLE_OF_CONTENTS = "table_of_contents"
    PROPERTY_DETAILS = "property_details"
    COMPS = "comps"
    ADJUSTMENTS = "adjustments"
    MARKET_ANALYSIS = "market_analysis"
    CHARTS = "charts"
    NOTES = "notes"


SECTION_TITLES: dict[SectionKind, str] = {
    SectionKind.COVER: "Cover",
    SectionKind.TABLE_OF_CONTENTS: "Table of Contents",
    SectionKind.PROPERTY_DETAILS: "Subject Property Details",
    SectionKind.COMPS: "Comparable Properties",
    SectionKind.ADJUSTMENTS: "Adjustment Analysis",
    SectionKind.MARKET_ANALYSIS: "Market Analysis",
    SectionKind.CHARTS: "Charts & Graphs",
    SectionKind.NOTES: "Additional Notes",
}


@dataclass(frozen=True)
class SectionFlags:
    cover: bool = True
    table_of_contents: bool = True
    property_details: bool = True
    comps: bool = True
    adjustments: bool = True
    market_analysis: bool = False
    charts: bool = True
    notes: bool = True

    def is_enabled(self, kind: SectionKind) -> bool:
        return getattr(self, kind.value)


@dataclass(frozen=True)
class ReportBranding:
    title: str = "Comparative Market Analysis"
    agent_name: str | None = None
    agent_email: str | None = None
    agent_phone: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    branding_color: str = "#071224"


@dataclass(frozen=True)
class ReportSection:
    kind: SectionKind
    title: str
    enabled: bool
    page: int | None = None
    content: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TocEntry:
    title: str
    page: int


@dataclass(frozen=True)
class ReportModel:
    sections: tuple[ReportSection, ...]
    branding: ReportBranding = field(default_factory=ReportBranding)
    generated_on: date | None = None

    @property
    def enabled_sections(self) -> tuple[ReportSection, ...]:
        return tuple(s for s in self.sections if s.enabled)

    @property
    def page_count(self) -> int:
        return len(self.enabled_sections)

    @property
    def toc(self) -> tuple[TocEntry, ...]:
        """Entries for enabled sections after the table of contents itself."""
        return tuple(
            TocEntry(title=s.title, page=s.page)
            for s in self.enabled_sections
            if s.kind not in (SectionKind.COVER, SectionKind.TABLE_OF_CONTENTS)
        )

    def section(self, kind: SectionKind) -> ReportSection:
        for s in self.sections:
            if s.kind == kind:
                return s
        raise KeyError(kind)
