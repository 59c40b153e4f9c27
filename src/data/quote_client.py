"""Quote and USD/TWD exchange-rate feed backed by yfinance.

US symbols are passed through as-is; Taiwan listings are numeric codes
("2330") that Yahoo Finance expects with a ".TW" suffix.  Failures never
raise: missing quotes are simply left out and the exchange rate falls back
to the configured default, with a warning on stderr.
"""

import sys
from typing import Optional

import pandas as pd
import yfinance as yf

from src.core.models import HOLDING_MARKETS, Quote
from src.core.settings import load_settings

_SETTINGS = load_settings()
_TW_SUFFIX = _SETTINGS["quotes"]["tw_suffix"]
_FX_SYMBOL = _SETTINGS["exchange_rate"]["symbol"]
DEFAULT_EXCHANGE_RATE = float(_SETTINGS["exchange_rate"]["default"])

_error_warned = [False]


def _warn(message: str) -> None:
    print(f"[quote_client] Warning: {message}", file=sys.stderr)


def to_yahoo_symbol(symbol: str, market: str) -> str:
    """Map a stored symbol to its Yahoo Finance ticker."""
    symbol = symbol.strip()
    if market == "TW":
        if symbol.upper().endswith((".TW", ".TWO")):
            return symbol.upper()
        return f"{symbol}{_TW_SUFFIX}"
    return symbol.upper()


def get_quote(symbol: str, market: str = "US") -> Optional[Quote]:
    """Fetch one quote.  Returns None when no usable price is available."""
    yahoo_symbol = to_yahoo_symbol(symbol, market)
    try:
        info = yf.Ticker(yahoo_symbol).info or {}
    except Exception as e:
        if not _error_warned[0]:
            _warn(f"quote fetch error for {yahoo_symbol}: {e} (subsequent errors suppressed)")
            _error_warned[0] = True
        return None

    price = (
        info.get("regularMarketPrice")
        or info.get("currentPrice")
        or info.get("previousClose")
    )
    if not price:
        _warn(f"no price for {yahoo_symbol}")
        return None

    return Quote(
        symbol=symbol,
        name=info.get("shortName") or info.get("longName") or symbol,
        price=float(price),
        market=market,
        currency="TWD" if market == "TW" else "USD",
        change=info.get("regularMarketChange"),
        changes_percentage=info.get("regularMarketChangePercent"),
        market_cap=info.get("marketCap"),
    )


def get_quotes(symbols: list[str], market: str = "US") -> list[Quote]:
    """Fetch quotes for a single-market symbol list.

    Symbols without a quote are omitted from the result.
    """
    if market not in HOLDING_MARKETS:
        raise ValueError(
            f"Quotes are fetched per market (US or TW), got '{market}'. "
            f"Use get_mixed_quotes() for MIXED profiles."
        )
    quotes: list[Quote] = []
    for symbol in dict.fromkeys(symbols):
        quote = get_quote(symbol, market)
        if quote is not None:
            quotes.append(quote)
    return quotes


def get_mixed_quotes(us_symbols: list[str], tw_symbols: list[str]) -> list[Quote]:
    """Fetch quotes for a MIXED profile, each list against its own market."""
    return get_quotes(us_symbols, "US") + get_quotes(tw_symbols, "TW")


def get_quotes_for_holdings(holdings: list, profile_market: str) -> list[Quote]:
    """Fetch quotes for every non-bond holding of a profile.

    Bonds are priced manually and never sent to the feed.
    """
    us_symbols: list[str] = []
    tw_symbols: list[str] = []
    for h in holdings:
        if getattr(h, "asset_class", "equity") == "bond":
            continue
        market = h.market or profile_market
        if market == "TW":
            tw_symbols.append(h.symbol)
        else:
            us_symbols.append(h.symbol)
    return get_mixed_quotes(us_symbols, tw_symbols)


def get_exchange_rate(default: Optional[float] = None) -> float:
    """Latest TWD per 1 USD.

    Uses the last non-empty close of the FX pair over the past few days.
    Falls back to *default* (configured default when None) on any failure.
    """
    if default is None:
        default = DEFAULT_EXCHANGE_RATE
    try:
        hist = yf.Ticker(_FX_SYMBOL).history(period="5d")
    except Exception as e:
        _warn(f"exchange rate fetch error for {_FX_SYMBOL}: {e}, using {default}")
        return default

    if not isinstance(hist, pd.DataFrame) or hist.empty or "Close" not in hist:
        _warn(f"exchange rate for {_FX_SYMBOL} unavailable, using {default}")
        return default

    closes = hist["Close"].dropna()
    if closes.empty or float(closes.iloc[-1]) <= 0:
        _warn(f"exchange rate for {_FX_SYMBOL} unavailable, using {default}")
        return default
    return float(closes.iloc[-1])


# ---------------------------------------------------------------------------
# Quote list -> lookup maps
# ---------------------------------------------------------------------------


def quotes_to_price_map(quotes: list[Quote]) -> dict[str, float]:
    return {q.symbol: q.price for q in quotes}


def quotes_to_name_map(quotes: list[Quote]) -> dict[str, str]:
    return {q.symbol: q.name for q in quotes}
