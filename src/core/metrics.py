"""Per-holding metrics aggregation with USD/TWD normalization.

compute_all_metrics() turns raw holdings plus a price map and an exchange
rate into HoldingWithMetrics records expressed in the profile's base
currency.  It is a pure recompute-from-scratch function: callers run it
again whenever holdings, prices, names or the exchange rate change.
"""

from dataclasses import fields
from typing import Optional

from src.core.currency import (
    DEFAULT_EXCHANGE_RATE,
    convert_currency,
    resolve_original_currency,
)
from src.core.models import Holding, HoldingWithMetrics
from src.core.valuation import (
    calculate_cost,
    calculate_market_value,
    calculate_pnl_percent,
    resolve_current_price,
)

_HOLDING_FIELDS = tuple(f.name for f in fields(Holding))


def _holding_fields(holding: Holding) -> dict:
    """Shallow copy of the Holding part of *holding*."""
    return {name: getattr(holding, name) for name in _HOLDING_FIELDS}


def _display_name(holding: Holding, name_map: Optional[dict]) -> str:
    if name_map and name_map.get(holding.symbol):
        return name_map[holding.symbol]
    return holding.name or holding.symbol


def calculate_holding_metrics(
    holding: Holding,
    current_price: float,
    total_market_value: float,
    original_currency: str = "USD",
) -> HoldingWithMetrics:
    """Metrics for a single holding, without currency conversion.

    The original-currency value doubles as the market value, so
    ``unrealized_pnl`` and ``original_unrealized_pnl`` are equal.
    """
    original_market_value = calculate_market_value(holding, current_price)
    weight = (
        original_market_value / total_market_value if total_market_value > 0 else 0.0
    )
    pnl = original_market_value - calculate_cost(holding)

    base = _holding_fields(holding)
    base["current_price"] = current_price
    return HoldingWithMetrics(
        **base,
        original_currency=original_currency,
        market_value=original_market_value,
        original_market_value=original_market_value,
        weight=weight,
        unrealized_pnl=pnl,
        original_unrealized_pnl=pnl,
        unrealized_pnl_percent=calculate_pnl_percent(holding, current_price),
    )


def compute_all_metrics(
    holdings: list[Holding],
    price_map: Optional[dict] = None,
    profile_market: str = "US",
    base_currency: str = "USD",
    exchange_rate: float = DEFAULT_EXCHANGE_RATE,
    name_map: Optional[dict] = None,
) -> list[HoldingWithMetrics]:
    """Compute metrics for every holding of a profile.

    Two passes: weights need the base-currency total, which is only known
    after every holding has been valued.

    Parameters
    ----------
    holdings : list[Holding]
        Positions of one profile.  Not mutated.
    price_map : dict or None
        {symbol: current_price}.  Missing symbols are valued at 0.
    profile_market : str
        "US", "TW" or "MIXED"; used when a holding has no own market tag.
    base_currency : str
        Reporting currency for ``market_value`` / ``unrealized_pnl``.
    exchange_rate : float
        TWD per 1 USD.
    name_map : dict or None
        {symbol: display name} from the quote feed.

    Returns
    -------
    list[HoldingWithMetrics]
        Same order as *holdings*.  Empty input returns an empty list.
    """
    # Pass 1: original value, converted value, running total
    total_market_value = 0.0
    preliminary: list[tuple] = []
    for holding in holdings:
        current_price = resolve_current_price(holding, price_map)
        original_currency = resolve_original_currency(holding, profile_market)
        original_market_value = calculate_market_value(holding, current_price)
        converted_market_value = convert_currency(
            original_market_value, original_currency, base_currency, exchange_rate
        )
        total_market_value += converted_market_value
        preliminary.append(
            (
                holding,
                current_price,
                original_currency,
                original_market_value,
                converted_market_value,
            )
        )

    # Pass 2: weights and converted P&L
    results: list[HoldingWithMetrics] = []
    for (
        holding,
        current_price,
        original_currency,
        original_market_value,
        converted_market_value,
    ) in preliminary:
        weight = (
            converted_market_value / total_market_value
            if total_market_value > 0
            else 0.0
        )
        original_pnl = original_market_value - calculate_cost(holding)
        converted_pnl = convert_currency(
            original_pnl, original_currency, base_currency, exchange_rate
        )

        base = _holding_fields(holding)
        base["current_price"] = current_price
        base["name"] = _display_name(holding, name_map)
        results.append(
            HoldingWithMetrics(
                **base,
                original_currency=original_currency,
                market_value=converted_market_value,
                original_market_value=original_market_value,
                weight=weight,
                unrealized_pnl=converted_pnl,
                original_unrealized_pnl=original_pnl,
                unrealized_pnl_percent=calculate_pnl_percent(holding, current_price),
            )
        )

    return results
