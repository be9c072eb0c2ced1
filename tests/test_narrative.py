"""Tests for narrative prompts, completion fan-out, and section parsing."""

from __future__ import annotations

import pytest

from models import (
    Classification,
    CompanyProfile,
    InsiderActivity,
    NewsItem,
    QuoteSnapshot,
    SentimentScore,
    SignalBundle,
    SocialSentimentSnapshot,
)
from openrouter_client import UNAVAILABLE_TEXT
from tests.conftest import OPENROUTER_SIMPLIFIED, FakeLLM
from tools.narrative import (
    CRYPTO,
    DETAILED,
    EQUITY,
    SIMPLIFIED,
    build_crypto_prompt,
    build_detailed_prompt,
    build_equity_prompt,
    build_simplified_prompt,
    compose,
    parse_sections,
)

SIMPLIFIED_REPLY = OPENROUTER_SIMPLIFIED["choices"][0]["message"]["content"]
DETAILED_REPLY = (
    "1. BUSINESS MODEL\nApple sells hardware and a growing services layer.\n\n"
    "2. KEY RESEARCH QUESTIONS\n• How fast is services revenue growing?\n\n"
    "3. RISK FACTORS\n• Regulatory pressure on the App Store"
)
NEUTRAL = SentimentScore(score=50, label="Neutral", color="#6b7280")


def _equity_bundle() -> SignalBundle:
    return SignalBundle(
        ticker="AAPL",
        classification=Classification.EQUITY,
        display_name="Apple",
        quote=QuoteSnapshot(price=190.1, change_pct=1.25, high=190.5, low=188.5, market_cap=2.95e12, pe_ratio=29.57),
        company=CompanyProfile(name="Apple Inc", description="Apple designs iPhones.", sector="TECHNOLOGY", industry="ELECTRONIC COMPUTERS"),
        news=[NewsItem(title="Apple shares surge", source="Reuters", age_hours=3, url=None)],
        insider=InsiderActivity(transactions=[], total_buys=1, total_sells=2, net_flow=-1, sentiment="Bearish"),
        social=SocialSentimentSnapshot(source="StockTwits", bullish_pct=75, bearish_pct=25, volume=20, sentiment="Bullish"),
    )


def _crypto_bundle(quote: QuoteSnapshot | None) -> SignalBundle:
    return SignalBundle(
        ticker="BTC",
        classification=Classification.CRYPTO,
        canonical_id="bitcoin",
        display_name="Bitcoin",
        quote=quote,
    )


class TestParseSections:
    def test_numbered_titles(self):
        sections = parse_sections(SIMPLIFIED_REPLY, SIMPLIFIED.titles)
        assert [s.title for s in sections] == ["WHAT THEY DO", "GOOD SIGNS", "WARNING SIGNS"]
        assert sections[0].content == "Apple makes iPhones, Macs and services."
        assert sections[1].content == "• Earnings beat estimates\n• Analysts raised targets"

    def test_windows_line_endings(self):
        text = SIMPLIFIED_REPLY.replace("\n", "\r\n")
        sections = parse_sections(text, SIMPLIFIED.titles)
        assert [s.title for s in sections] == ["WHAT THEY DO", "GOOD SIGNS", "WARNING SIGNS"]

    def test_numbers_inside_bodies_are_not_titles(self):
        text = "1. MARKET CONTEXT\nUp 2. 5% on volume.\n2. KEY WATCHPOINTS\n• ETF flows"
        sections = parse_sections(text, CRYPTO.titles)
        assert [s.title for s in sections] == ["MARKET CONTEXT", "KEY WATCHPOINTS"]
        assert sections[0].content == "Up 2. 5% on volume."

    def test_title_after_preamble_on_same_line(self):
        text = (
            "Here is the analysis. 1. MARKET CONTEXT\nBTC rose 2% overnight.\n"
            "2. KEY WATCHPOINTS\n• ETF flows\n3. RISK CONSIDERATIONS\n• Leverage\n"
            "4. RESEARCH CHECKLIST\n• Read the filings"
        )
        sections = parse_sections(text, CRYPTO.titles)
        assert [s.title for s in sections] == list(CRYPTO.titles)
        assert sections[0].content == "BTC rose 2% overnight."

    def test_positional_fallback(self):
        text = "1. Apple makes phones. 2. Strong sales. 3. China risk."
        sections = parse_sections(text, SIMPLIFIED.titles)
        assert [(s.title, s.content) for s in sections] == [
            ("WHAT THEY DO", "Apple makes phones."),
            ("GOOD SIGNS", "Strong sales."),
            ("WARNING SIGNS", "China risk."),
        ]

    @pytest.mark.parametrize("text", ["Sorry, I cannot help with that.", UNAVAILABLE_TEXT, "", None])
    def test_unparseable_reply_is_empty(self, text):
        assert parse_sections(text, EQUITY.titles) == []


class TestPrompts:
    def test_crypto_prompt_carries_market_data(self):
        quote = QuoteSnapshot(price=97123.46, change_pct=2.47, high=98000.0, low=94500.25, volume=4.1e10, market_cap=1.92e12)
        prompt = build_crypto_prompt(_crypto_bundle(quote), 75, NEUTRAL)
        assert "$97,123.46 (2.47% in 24h)" in prompt
        assert "Market Cap: $1920.00B" in prompt
        assert "Interest score: 75/100" in prompt
        assert "Limited crypto news coverage" in prompt
        for title in CRYPTO.titles:
            assert title in prompt

    def test_crypto_prompt_without_quote(self):
        prompt = build_crypto_prompt(_crypto_bundle(None), 50, NEUTRAL)
        assert "Live market data unavailable" in prompt

    def test_equity_prompt(self):
        prompt = build_equity_prompt(_equity_bundle(), 66, NEUTRAL)
        assert "Daily Change: +1.25%" in prompt
        assert "P/E Ratio: 29.57" in prompt
        assert "• Reuters (3h ago): Apple shares surge" in prompt

    def test_simplified_prompt_omits_insider_and_social(self):
        prompt = build_simplified_prompt(_equity_bundle(), 66, NEUTRAL)
        assert "complete beginner" in prompt
        assert "Insider" not in prompt
        assert "StockTwits" not in prompt
        assert "Industry" not in prompt

    def test_detailed_prompt_adds_signals(self):
        prompt = build_detailed_prompt(_equity_bundle(), 66, NEUTRAL)
        assert "Insider filings (90d): 1 buys, 2 sells (Bearish)" in prompt
        assert "StockTwits: 75% bullish of 20 recent messages" in prompt
        assert "Industry: ELECTRONIC COMPUTERS" in prompt
        assert "Market Cap: $2950.00B" in prompt

    def test_sparse_company_data(self):
        bundle = SignalBundle(ticker="XYZ", classification=Classification.EQUITY)
        prompt = build_detailed_prompt(bundle, 50, NEUTRAL)
        assert "Company operates in the financial markets" in prompt
        assert "Limited news coverage in past 72 hours" in prompt


class TestCompose:
    @pytest.mark.asyncio
    async def test_dual_variants(self):
        llm = FakeLLM(replies={"complete beginner": SIMPLIFIED_REPLY, "research guidance": DETAILED_REPLY})
        narratives = await compose(llm, (SIMPLIFIED, DETAILED), _equity_bundle(), 66, NEUTRAL)

        assert set(narratives) == {"simplified", "detailed"}
        assert narratives["simplified"][0].title == "WHAT THEY DO"
        assert [s.title for s in narratives["detailed"]] == list(DETAILED.titles)
        assert len(llm.prompts) == 2

    @pytest.mark.asyncio
    async def test_unavailable_model_gives_empty_sections(self):
        narratives = await compose(FakeLLM(), (EQUITY,), _equity_bundle(), 66, NEUTRAL)
        assert narratives == {"equity": []}

    @pytest.mark.asyncio
    async def test_no_model_wired(self):
        narratives = await compose(None, (SIMPLIFIED, DETAILED), _equity_bundle(), 66, NEUTRAL)
        assert narratives == {"simplified": [], "detailed": []}

    @pytest.mark.asyncio
    async def test_max_tokens_per_variant(self):
        seen = []

        class RecordingLLM:
            async def complete(self, prompt, max_tokens, temperature=0.25):
                seen.append(max_tokens)
                return UNAVAILABLE_TEXT

        await compose(RecordingLLM(), (SIMPLIFIED, DETAILED), _equity_bundle(), 66, NEUTRAL)
        assert sorted(seen) == [250, 300]
