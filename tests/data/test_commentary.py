"""Tests for AI market commentary generation."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from cma.data.commentary import build_prompt, generate_market_commentary
from cma.models.comps import CompResult
from cma.models.valuation import Valuation


def _valuation():
    return Valuation(arv=Decimal("445000.00"), multiplier=Decimal("0.70"), sold_count=3)


class TestBuildPrompt:
    def test_includes_subject_and_valuation(self, subject, comp_result):
        prompt = build_prompt(subject, comp_result, _valuation())
        assert "100 Main St, Austin, TX 78701" in prompt
        assert "ARV (mean sold price): $445,000" in prompt
        assert "MAO at 70%: $311,500" in prompt
        assert "3 sold, 1 pending, 1 active" in prompt
        assert "330 Pine Rd" in prompt

    def test_no_valuation(self, subject):
        prompt = build_prompt(subject, CompResult(), Valuation(arv=None))
        assert "ARV (mean sold price): N/A" in prompt
        assert "Recent sales" not in prompt


class TestGenerateMarketCommentary:
    async def test_no_api_key_returns_none(self, subject, comp_result):
        with patch("cma.data.commentary.settings") as mock_settings:
            mock_settings.anthropic_api_key = ""
            assert await generate_market_commentary(subject, comp_result, _valuation()) is None

    async def test_returns_text(self, subject, comp_result):
        message = MagicMock()
        message.content = [MagicMock(text="Sold prices cluster around $445K.")]
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=message)

        with patch("cma.data.commentary.settings") as mock_settings, \
             patch("cma.data.commentary.anthropic.AsyncAnthropic", return_value=client):
            mock_settings.anthropic_api_key = "sk-test"
            mock_settings.commentary_model = "claude-haiku-4-5-20251001"
            text = await generate_market_commentary(subject, comp_result, _valuation())

        assert text == "Sold prices cluster around $445K."
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-haiku-4-5-20251001"

    async def test_api_failure_returns_none(self, subject, comp_result):
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=RuntimeError("overloaded"))

        with patch("cma.data.commentary.settings") as mock_settings, \
             patch("cma.data.commentary.anthropic.AsyncAnthropic", return_value=client):
            mock_settings.anthropic_api_key = "sk-test"
            assert await generate_market_commentary(subject, comp_result, _valuation()) is None
