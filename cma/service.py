"""CMA pipeline: orchestrates the four engine stages for one report run.

Flow: subject lookup -> derive criteria -> search comps -> valuation -> (commentary) -> report

Each run is independent. The only state shared between runs is the
search cache inside the orchestrator.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable

from cma.config import settings
from cma.data.attom import AttomClient
from cma.data.base import PropertyStore, ReportRenderer
from cma.data.cache import build_cache
from cma.data.commentary import generate_market_commentary
from cma.data.search import CompSearchOrchestrator
from cma.engine import criteria as criteria_engine
from cma.engine import report as report_engine
from cma.engine import valuation as valuation_engine
from cma.errors import NotFound, ProviderError
from cma.models.comps import CompResult
from cma.models.criteria import MatchCriteria, SearchFilter
from cma.models.property import Property
from cma.models.report import ReportBranding, ReportModel, SectionFlags
from cma.models.valuation import CompAdjustments, Valuation

logger = logging.getLogger(__name__)

CommentaryFn = Callable[[Property, CompResult, Valuation], Awaitable[str | None]]

ATTOM_ID_PREFIX = "attom:"


@dataclass(frozen=True)
class CmaRun:
    subject: Property
    search_filter: SearchFilter
    comps: CompResult
    valuation: Valuation
    adjustments: list[CompAdjustments]
    report: ReportModel
    report_id: int | None = None


class CmaService:
    def __init__(
        self,
        store: PropertyStore,
        orchestrator: CompSearchOrchestrator | None = None,
        commentary: CommentaryFn | None = None,
        provider: AttomClient | None = None,
    ):
        self.store = store
        self.provider = provider
        self.orchestrator = orchestrator or CompSearchOrchestrator(
            sources=[store, provider or AttomClient()],
            cache=build_cache(),
        )
        self.commentary = commentary or generate_market_commentary

    # ---- Exposed library interface ----

    async def get_subject(self, subject_id: str) -> Property:
        """Load the subject from the store, falling back to ATTOM for `attom:` ids.

        Raises:
            NotFound: neither the store nor the provider knows subject_id.
        """
        try:
            return await self.store.get_property(subject_id)
        except NotFound:
            if self.provider is None or not subject_id.startswith(ATTOM_ID_PREFIX):
                raise

        logger.info("Subject %s not stored locally, fetching from ATTOM", subject_id)
        try:
            return await self.provider.get_property(subject_id.removeprefix(ATTOM_ID_PREFIX))
        except ProviderError as e:
            logger.warning("ATTOM subject lookup failed for %s: %s", subject_id, e)
            raise NotFound(subject_id) from e

    def derive_criteria(
        self, subject: Property, criteria: MatchCriteria, today: date | None = None
    ) -> SearchFilter:
        return criteria_engine.derive_criteria(subject, criteria, today=today)

    async def search_comps(self, search_filter: SearchFilter) -> CompResult:
        return await self.orchestrator.search_comps(search_filter)

    def compute_valuation(
        self,
        subject: Property,
        comps: CompResult,
        multiplier: Decimal | None = None,
    ) -> tuple[Valuation, list[CompAdjustments]]:
        multiplier = settings.default_multiplier if multiplier is None else multiplier
        return valuation_engine.compute_valuation(subject, comps, multiplier)

    def build_report(
        self,
        subject: Property,
        comps: CompResult,
        adjustments: list[CompAdjustments],
        valuation: Valuation,
        flags: SectionFlags | None = None,
        notes: str | None = None,
        branding: ReportBranding | None = None,
        commentary: str | None = None,
    ) -> ReportModel:
        return report_engine.build_report(
            subject, comps, adjustments, valuation,
            flags=flags, notes=notes, branding=branding, commentary=commentary,
        )

    # ---- Full pipeline ----

    async def run(
        self,
        subject_id: str,
        criteria: MatchCriteria | None = None,
        flags: SectionFlags | None = None,
        notes: str | None = None,
        multiplier: Decimal | None = None,
        branding: ReportBranding | None = None,
        today: date | None = None,
        save: bool = False,
    ) -> CmaRun:
        """Run the full CMA pipeline for a stored (or ATTOM-listed) subject property.

        With save=True the report metadata is persisted through the store
        and its id returned on the run.

        Raises:
            NotFound: subject_id does not resolve.
            ValidationError: the subject or criteria cannot produce a filter.
        """
        criteria = criteria or MatchCriteria()
        flags = flags or SectionFlags()

        # Step 1: Subject
        subject = await self.get_subject(subject_id)

        # Step 2: Criteria
        search_filter = self.derive_criteria(subject, criteria, today=today)

        # Step 3: Comps
        comps = await self.search_comps(search_filter)
        logger.info(
            "Comps for %s: %d sold, %d pending, %d active%s",
            subject_id, len(comps.sold), len(comps.pending), len(comps.active),
            " (degraded)" if comps.degraded else "",
        )

        # Step 4: Valuation
        valuation, adjustments = self.compute_valuation(subject, comps, multiplier)

        # Step 5: Commentary, only when the section will be shown
        commentary = None
        if flags.market_analysis:
            commentary = await self.commentary(subject, comps, valuation)

        # Step 6: Report
        report = report_engine.build_report(
            subject, comps, adjustments, valuation,
            flags=flags, notes=notes, branding=branding,
            commentary=commentary, generated_on=today,
        )

        report_id = None
        if save:
            report_id = await self.store.save_report(report, subject, [c.id for c in comps.all])

        return CmaRun(
            subject=subject,
            search_filter=search_filter,
            comps=comps,
            valuation=valuation,
            adjustments=adjustments,
            report=report,
            report_id=report_id,
        )

    def render_report(self, report: ReportModel, renderer: ReportRenderer) -> bytes:
        """Hand the model to the renderer. RenderError propagates unchanged."""
        return renderer.render(report)
