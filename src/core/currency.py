"""USD/TWD conversion and market-to-currency resolution.

The exchange rate is always quoted as TWD per 1 USD (e.g. 32.0).
All "is this a Taiwan holding" decisions go through
resolve_original_currency() so the predicate lives in exactly one place.
"""

from typing import Optional

from src.core.models import CURRENCIES

DEFAULT_EXCHANGE_RATE = 32.0

_MARKET_TO_CURRENCY = {
    "US": "USD",
    "TW": "TWD",
}


def _check_currency(currency: str) -> None:
    if currency not in CURRENCIES:
        raise ValueError(
            f"Unsupported currency: '{currency}'. Supported: {list(CURRENCIES)}"
        )


def convert_currency(
    amount: float,
    from_currency: str,
    to_currency: str,
    rate: float = DEFAULT_EXCHANGE_RATE,
) -> float:
    """Convert *amount* between USD and TWD.

    Parameters
    ----------
    amount : float
        Amount in *from_currency*.
    from_currency, to_currency : str
        "USD" or "TWD".
    rate : float
        TWD per 1 USD.  Must be positive whenever a conversion is needed.

    Returns
    -------
    float
        Amount in *to_currency*.  Same-currency calls return *amount*
        unchanged.

    Raises
    ------
    ValueError
        Unsupported currency code, or a non-positive rate.
    """
    _check_currency(from_currency)
    _check_currency(to_currency)
    if from_currency == to_currency:
        return amount

    if rate is None or rate <= 0:
        raise ValueError(f"Exchange rate must be positive, got {rate!r}")

    if from_currency == "USD":
        return amount * rate
    return amount / rate


def currency_for_market(market: Optional[str]) -> str:
    """TW -> TWD, anything else -> USD."""
    return _MARKET_TO_CURRENCY.get(market or "", "USD")


def resolve_original_currency(holding, profile_market: Optional[str]) -> str:
    """Return the currency *holding* is natively priced in.

    The holding's own ``market`` tag wins (MIXED profiles); otherwise the
    owning profile's market decides.
    """
    market = getattr(holding, "market", None) or profile_market
    return currency_for_market(market)


def default_base_currency(market: str, requested: Optional[str] = None) -> str:
    """Reporting currency for a profile.

    Single-market profiles are fixed (US -> USD, TW -> TWD).  MIXED profiles
    use *requested* (USD when not given).
    """
    if market == "MIXED":
        base = requested or "USD"
        _check_currency(base)
        return base
    return currency_for_market(market)
