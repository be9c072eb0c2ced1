"""Language-model prompts and parsing of the numbered-section replies."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass

from models import NarrativeSection, SentimentScore, SignalBundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NarrativeVariant:
    name: str
    titles: tuple[str, ...]
    max_tokens: int
    word_count: int


CRYPTO = NarrativeVariant(
    "crypto",
    ("MARKET CONTEXT", "KEY WATCHPOINTS", "RISK CONSIDERATIONS", "RESEARCH CHECKLIST"),
    max_tokens=300, word_count=90,
)
EQUITY = NarrativeVariant(
    "equity",
    ("MARKET CONTEXT", "KEY WATCHPOINTS", "RISK CONSIDERATIONS", "RESEARCH CHECKLIST"),
    max_tokens=300, word_count=100,
)
SIMPLIFIED = NarrativeVariant(
    "simplified",
    ("WHAT THEY DO", "GOOD SIGNS", "WARNING SIGNS"),
    max_tokens=250, word_count=100,
)
DETAILED = NarrativeVariant(
    "detailed",
    ("BUSINESS MODEL", "KEY RESEARCH QUESTIONS", "RISK FACTORS"),
    max_tokens=300, word_count=120,
)

# "2. KEY WATCHPOINTS" ending its line, possibly after a preamble
_TITLE_RE = re.compile(r"(?:^|(?<=\s))\d+\.[ \t]+([A-Z][A-Z \t]*?)[ \t\r]*$", re.MULTILINE)
_NUMBER_PREFIX_RE = re.compile(r"\d+\.\s+")


def parse_sections(text: str, expected_titles: tuple[str, ...]) -> list[NarrativeSection]:
    """Split a reply into ``(title, body)`` sections.

    Titles are numbered upper-case runs ending a line; each body runs to the
    next title.
    Without any such line, the text is split on the number prefixes and the
    parts are matched positionally to ``expected_titles``. Too few parts means
    no narrative: an empty list.
    """
    text = text or ""
    matches = list(_TITLE_RE.finditer(text))
    if matches:
        sections = []
        for i, match in enumerate(matches):
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            sections.append(NarrativeSection(
                title=" ".join(match.group(1).split()),
                content=text[match.end():end].strip(),
            ))
        return sections

    parts = [p.strip() for p in _NUMBER_PREFIX_RE.split(text) if p.strip()]
    if len(parts) < len(expected_titles):
        return []
    return [NarrativeSection(title=title, content=part) for title, part in zip(expected_titles, parts)]


# --- Prompt fragments ---


def _money(value: float | None) -> str:
    return f"${value:,.2f}" if value is not None else "n/a"


def _news_lines(bundle: SignalBundle, with_age: bool, empty: str) -> str:
    if not bundle.news:
        return empty
    lines = []
    for n in bundle.news:
        source = n.source or "Unknown"
        if with_age and n.age_hours is not None:
            lines.append(f"• {source} ({n.age_hours}h ago): {n.title}")
        else:
            lines.append(f"• {source}: {n.title}")
    return "\n".join(lines)


def _signals_line(interest: int, sentiment: SentimentScore, bundle: SignalBundle) -> str:
    return (
        f"- Interest score: {interest}/100, news sentiment: {sentiment.label} "
        f"({sentiment.score}/100, {len(bundle.news)} articles)"
    )


def _company_lines(bundle: SignalBundle, detailed: bool) -> list[str]:
    company = bundle.company
    quote = bundle.quote
    lines = []
    if company and company.description:
        lines.append(f"- Business: {company.description[:200]}...")
    else:
        lines.append("- Company operates in the financial markets")
    if company and company.sector:
        lines.append(f"- Sector: {company.sector}")
    if detailed and company and company.industry:
        lines.append(f"- Industry: {company.industry}")
    if quote and quote.price is not None:
        lines.append(f"- Current Price: {_money(quote.price)}")
    if quote and quote.market_cap_billions is not None:
        lines.append(f"- Market Cap: ${quote.market_cap_billions:.2f}B")
    if detailed and quote and quote.pe_ratio is not None:
        lines.append(f"- P/E Ratio: {quote.pe_ratio:.2f}")
    return lines


def _numbered(variant: NarrativeVariant, instructions: tuple[str, ...]) -> str:
    return "\n\n".join(
        f"{i}. {title}\n{text}"
        for i, (title, text) in enumerate(zip(variant.titles, instructions), start=1)
    )


# --- Prompts ---


def build_crypto_prompt(bundle: SignalBundle, interest: int, sentiment: SentimentScore) -> str:
    t = bundle.ticker
    q = bundle.quote
    if q:
        pct = f"{q.change_pct:.2f}%" if q.change_pct is not None else "n/a"
        cap = f"${q.market_cap_billions:.2f}B" if q.market_cap_billions is not None else "n/a"
        volume = f"${q.volume:,.0f}" if q.volume is not None else "n/a"
        data = (
            f"- Price: {_money(q.price)} ({pct} in 24h)\n"
            f"- 24h Range: {_money(q.low)} - {_money(q.high)}\n"
            f"- Market Cap: {cap}\n"
            f"- 24h Volume: {volume}"
        )
    else:
        data = "- Live market data unavailable"
    news = _news_lines(bundle, with_age=True, empty="• Limited crypto news coverage in past 72 hours")
    sections = _numbered(CRYPTO, (
        f"Explain the 24h price movement for {t}. What's driving this crypto specifically?",
        f"List 2-3 crypto-specific factors traders monitor for {t}. Use bullets (•).",
        "Identify 1-2 risks specific to this cryptocurrency. Use bullets (•).",
        f"One sentence: what should crypto traders verify about {t} before taking a position?",
    ))
    return f"""You're a cryptocurrency market analyst providing educational context for {t}.

CURRENT DATA:
{data}
{_signals_line(interest, sentiment, bundle)}

RECENT CRYPTO NEWS:
{news}

Write a focused 4-section analysis ({CRYPTO.word_count} words). Use numbered format:

{sections}

RULES:
- Be SPECIFIC to {t}
- NO stock market terminology
- Third-person only
- Plain text, NO markdown
- Start each section with number"""


def build_equity_prompt(bundle: SignalBundle, interest: int, sentiment: SentimentScore) -> str:
    t = bundle.ticker
    q = bundle.quote
    lines = _company_lines(bundle, detailed=True)
    if q and q.change_pct is not None:
        lines.append(f"- Daily Change: {q.change_pct:+.2f}%")
    if q and q.low is not None and q.high is not None:
        lines.append(f"- Day Range: {_money(q.low)} - {_money(q.high)}")
    lines.append(_signals_line(interest, sentiment, bundle))
    news = _news_lines(bundle, with_age=True, empty="• Limited news coverage in past 72 hours")
    sections = _numbered(EQUITY, (
        f"Explain today's price movement for {t}. What is driving this stock specifically?",
        f"List 2-3 company-specific factors investors monitor for {t}. Use bullets (•).",
        f"Identify 1-2 risks specific to {t}. Use bullets (•).",
        f"One sentence: what should an investor verify about {t} before taking a position?",
    ))
    return f"""You're a stock market analyst providing educational context for {t}.

CURRENT DATA:
{chr(10).join(lines)}

RECENT FINANCIAL NEWS:
{news}

Write a focused 4-section analysis ({EQUITY.word_count} words). Use numbered format:

{sections}

RULES:
- Be SPECIFIC to {t}
- Third-person only
- Plain text, NO markdown
- Start each section with number"""


def build_simplified_prompt(bundle: SignalBundle, interest: int, sentiment: SentimentScore) -> str:
    t = bundle.ticker
    lines = _company_lines(bundle, detailed=False)
    news = _news_lines(bundle, with_age=False, empty="• Limited news coverage")
    sections = _numbered(SIMPLIFIED, (
        f"One clear sentence explaining {t}'s business. Example: \"Apple makes iPhones and computers.\"",
        f"List 2-3 positive facts about {t} from RECENT news or current business situation. "
        "Use bullets (•). Keep it simple - what's going well RIGHT NOW?",
        f"List 2-3 concerns or risks about {t}. Use bullets (•). What should someone watch out for?",
    ))
    return f"""You're explaining {t} stock to a complete beginner in simple terms.

COMPANY INFO:
{chr(10).join(lines)}

RECENT NEWS (LAST 3 DAYS):
{news}

Write a 3-section analysis ({SIMPLIFIED.word_count} words total). Use EXACT numbered format:

{sections}

CRITICAL RULES:
- Write for a beginner - very simple language
- NO jargon or technical terms
- NEVER mention specific years or old revenue numbers
- Only use RECENT information (last 3 days of news)
- If no recent news, mention general industry trends
- Use plain text, NO markdown
- Start each section with "1.", "2.", "3.\""""


def build_detailed_prompt(bundle: SignalBundle, interest: int, sentiment: SentimentScore) -> str:
    t = bundle.ticker
    lines = _company_lines(bundle, detailed=True)
    if bundle.insider:
        lines.append(
            f"- Insider filings (90d): {bundle.insider.total_buys} buys, "
            f"{bundle.insider.total_sells} sells ({bundle.insider.sentiment})"
        )
    if bundle.social:
        lines.append(
            f"- {bundle.social.source}: {bundle.social.bullish_pct}% bullish of "
            f"{bundle.social.volume} recent messages"
        )
    lines.append(_signals_line(interest, sentiment, bundle))
    news = _news_lines(bundle, with_age=True, empty="• Limited news coverage in past 72 hours")
    sections = _numbered(DETAILED, (
        f"In 2-3 sentences, explain {t}'s current business model. What do they sell/provide? "
        "Who are their customers? What's their competitive position?",
        f"List 3-4 specific questions an investor should answer about {t} before investing. "
        "Use bullet points (•). Focus on: revenue sources, competitive position, growth drivers, "
        "and RECENT developments.",
        f"List 2-3 specific risks or concerns to verify about {t}. Use bullet points (•). "
        "Be specific to this company's current situation.",
    ))
    return f"""You're a financial analyst providing educational research guidance for {t} stock.

COMPANY INFO:
{chr(10).join(lines)}

RECENT FINANCIAL NEWS (LAST 72 HOURS):
{news}

Write a focused 3-section analysis ({DETAILED.word_count} words). Use EXACT numbered format:

{sections}

CRITICAL RULES:
- Be SPECIFIC to {t} and their actual business
- Use technical/professional language but stay current
- NEVER cite specific years or historical revenue numbers
- Only reference RECENT trends and developments
- Use plain text, NO markdown
- Third-person only
- Start each section with "1.", "2.", "3.\""""


_BUILDERS = {
    CRYPTO.name: build_crypto_prompt,
    EQUITY.name: build_equity_prompt,
    SIMPLIFIED.name: build_simplified_prompt,
    DETAILED.name: build_detailed_prompt,
}


async def _complete_variant(
    llm,
    variant: NarrativeVariant,
    bundle: SignalBundle,
    interest: int,
    sentiment: SentimentScore,
) -> list[NarrativeSection]:
    prompt = _BUILDERS[variant.name](bundle, interest, sentiment)
    text = await llm.complete(prompt, max_tokens=variant.max_tokens)
    sections = parse_sections(text, variant.titles)
    if not sections:
        logger.warning("No %s narrative sections parsed for %s", variant.name, bundle.ticker)
    return sections


async def compose(
    llm,
    variants: tuple[NarrativeVariant, ...],
    bundle: SignalBundle,
    interest: int,
    sentiment: SentimentScore,
) -> dict[str, list[NarrativeSection]]:
    """Run every variant's completion concurrently and parse the replies."""
    if llm is None:
        return {v.name: [] for v in variants}
    results = await asyncio.gather(
        *(_complete_variant(llm, v, bundle, interest, sentiment) for v in variants)
    )
    return {v.name: sections for v, sections in zip(variants, results)}
