"""Ticker classification (equity vs crypto) and symbol resolution.

Everything here is pure: no network, and every input yields an answer.
"""

from __future__ import annotations

from models import Classification

# Symbol -> CoinGecko id
CRYPTO_IDS: dict[str, str] = {
    "BTC": "bitcoin", "ETH": "ethereum", "DOGE": "dogecoin",
    "SOL": "solana", "ADA": "cardano", "XRP": "ripple",
    "DOT": "polkadot", "MATIC": "polygon", "AVAX": "avalanche-2",
    "LINK": "chainlink", "UNI": "uniswap", "LTC": "litecoin",
    "BCH": "bitcoin-cash", "SHIB": "shiba-inu", "ATOM": "cosmos",
    "XLM": "stellar", "ALGO": "algorand", "VET": "vechain",
}

KNOWN_CRYPTO_SYMBOLS: frozenset[str] = frozenset(CRYPTO_IDS) | {
    "PEPE", "ARB", "OP", "RNDR", "AAVE", "MKR", "SNX",
}

# Names headlines tend to use instead of the ticker
COMPANY_ALIASES: dict[str, str] = {
    "AAPL": "Apple", "TSLA": "Tesla", "MSFT": "Microsoft", "GOOGL": "Google Alphabet",
    "AMZN": "Amazon", "AMD": "AMD Advanced Micro Devices", "NVDA": "NVIDIA",
    "META": "Meta Facebook", "NFLX": "Netflix", "INTC": "Intel",
}


def normalize_symbol(symbol: str | None) -> str:
    return (symbol or "").strip().upper()


def classify(symbol: str | None, explicit_hint: bool | None = None) -> Classification:
    """Crypto when hinted or when the symbol is a known crypto symbol, else equity."""
    if explicit_hint is True or normalize_symbol(symbol) in KNOWN_CRYPTO_SYMBOLS:
        return Classification.CRYPTO
    return Classification.EQUITY


def crypto_id(symbol: str | None) -> str:
    """Resolve a crypto symbol to its canonical id; unknown symbols pass through lower-cased."""
    normalized = normalize_symbol(symbol)
    return CRYPTO_IDS.get(normalized, normalized.lower())


def crypto_display_name(coin_id: str) -> str:
    """``avalanche-2`` -> ``Avalanche 2``; only the first hyphen is replaced."""
    return coin_id[:1].upper() + coin_id[1:].replace("-", " ", 1)


def company_alias(symbol: str | None) -> str | None:
    return COMPANY_ALIASES.get(normalize_symbol(symbol))


# Corporate suffixes that would match unrelated headlines
_NAME_STOPWORDS = frozenset({
    "inc", "inc.", "corp", "corp.", "corporation", "company", "holdings",
    "group", "limited", "ltd", "ltd.", "class", "common", "stock",
})


def name_tokens(name: str | None) -> list[str]:
    """Lower-cased words longer than three characters from a company name."""
    if not name:
        return []
    words = (w.strip(",()").lower() for w in name.split())
    return [w for w in words if len(w) > 3 and w not in _NAME_STOPWORDS]
