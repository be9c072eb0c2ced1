"""Stockly - educational stock and crypto snapshot MCP server."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastmcp import FastMCP

from alphavantage_client import AlphaVantageClient
from coingecko_client import CoinGeckoClient
from newsapi_client import NewsAPIClient
from openrouter_client import DEFAULT_MODEL, OpenRouterClient
from sec_client import SecClient
from stocktwits_client import StockTwitsClient
from tools import analyze
from tools.aggregate import FULL, PROFILES, Providers
from yahoo_client import YahooClient

load_dotenv()

log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


openrouter_key = os.environ.get("OPENROUTER_API_KEY", "")
news_key = os.environ.get("NEWS_API_KEY", "")
alpha_vantage_key = os.environ.get("ALPHA_VANTAGE_KEY", "")
edgar_user_agent = os.environ.get("EDGAR_USER_AGENT", "") or "Stockly stockly@example.com"
adapter_timeout = _env_float("ADAPTER_TIMEOUT", 8.0)
llm_timeout = _env_int("LLM_TIMEOUT", 30)
profile = PROFILES.get(os.environ.get("ANALYSIS_PROFILE", "full").lower(), FULL)

providers = Providers(
    alpha_vantage=AlphaVantageClient(alpha_vantage_key, timeout=adapter_timeout),
    yahoo=YahooClient(),
    coingecko=CoinGeckoClient(timeout=adapter_timeout),
    news=NewsAPIClient(news_key, timeout=adapter_timeout),
    sec=SecClient(edgar_user_agent, timeout=adapter_timeout),
    stocktwits=StockTwitsClient(timeout=adapter_timeout),
    llm=OpenRouterClient(
        openrouter_key,
        model=os.environ.get("LLM_MODEL", DEFAULT_MODEL),
        timeout=llm_timeout,
    ),
)


@asynccontextmanager
async def lifespan(server):
    """Report provider status, then close clients on shutdown."""
    for name, configured in (
        ("OpenRouter (commentary)", bool(openrouter_key)),
        ("NewsAPI (headlines)", bool(news_key)),
        ("Alpha Vantage (quote, company info)", bool(alpha_vantage_key)),
    ):
        logger.info("%s %s", "configured:" if configured else "missing:   ", name)
    yield
    await providers.close()


mcp = FastMCP(
    "Stockly",
    instructions=(
        "Educational market snapshots. Call analyze with a stock or crypto symbol "
        "to get quotes, headlines, insider and social signals, a mechanical 0-100 "
        "interest score, news sentiment, and short commentary sections. "
        "Use classify_ticker to check whether a symbol is treated as crypto. "
        "Output is educational only and not investment advice."
    ),
    lifespan=lifespan,
)

analyze.register(mcp, providers, profile=profile, timeout=adapter_timeout)
