"""Claude API client for the report's market-analysis commentary."""

import logging

import anthropic

from cma.config import settings
from cma.engine.report import format_currency
from cma.models.comps import CompResult
from cma.models.property import Property
from cma.models.valuation import Valuation

logger = logging.getLogger(__name__)


def build_prompt(subject: Property, comps: CompResult, valuation: Valuation) -> str:
    lines = [
        f"Subject: {subject.address.full}",
        f"Type: {subject.property_type.value}, {subject.bedrooms} bd / {subject.bathrooms} ba, "
        f"{subject.sqft} sqft, built {subject.year_built or 'unknown'}",
        f"List price: {format_currency(subject.price)}",
        f"Comps: {len(comps.sold)} sold, {len(comps.pending)} pending, {len(comps.active)} active",
        f"ARV (mean sold price): {format_currency(valuation.arv)}",
        f"MAO at {valuation.multiplier:.0%}: {format_currency(valuation.mao)}",
    ]
    if comps.sold:
        lines.append("\nRecent sales:")
        for p in comps.sold[:8]:
            sold_on = p.sale_date.isoformat() if p.sale_date else "date unknown"
            lines.append(
                f"  {p.address.street}: {format_currency(p.price)}, {p.bedrooms} bd, "
                f"{p.sqft} sqft, sold {sold_on}"
            )

    data_block = "\n".join(lines)

    return f"""You are a residential real estate analyst preparing a comparative market analysis. Based on the data below, write 2-3 short paragraphs of market commentary for the subject property.

Cover:
1. How the list price compares with the sold comps
2. What the active and pending inventory suggests about demand
3. Caveats about the comp set (size, spread, missing data)

Data:
{data_block}

No headers or bullet points. Flowing paragraphs only."""


async def generate_market_commentary(
    subject: Property,
    comps: CompResult,
    valuation: Valuation,
) -> str | None:
    """Generate market commentary. Returns None if the API key is missing or the call fails."""
    api_key = settings.anthropic_api_key
    if not api_key:
        logger.debug("Anthropic API key not configured, skipping market commentary")
        return None

    try:
        client = anthropic.AsyncAnthropic(api_key=api_key)
        message = await client.messages.create(
            model=settings.commentary_model,
            max_tokens=600,
            messages=[{"role": "user", "content": build_prompt(subject, comps, valuation)}],
        )
        return message.content[0].text
    except Exception as e:
        logger.warning("Market commentary generation failed: %s", e)
        return None
