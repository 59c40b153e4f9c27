"""Per-holding valuation rules.

Equities are quoted per share; bonds are quoted per 100 of face value and
their ``quantity`` holds total face value.  Every function here branches
once on asset class and nothing else.
"""

from typing import Optional


def is_bond(holding) -> bool:
    return getattr(holding, "asset_class", "equity") == "bond"


def calculate_market_value(holding, current_price: float) -> float:
    """Market value in the holding's original currency.

    equity: quantity * price
    bond:   face value * (price / 100)
    """
    if is_bond(holding):
        return holding.quantity * (current_price / 100)
    return holding.quantity * current_price


def calculate_cost(holding) -> float:
    """Total cost in the holding's original currency.

    equity: quantity * cost_basis
    bond:   face value * (cost_basis / 100)
    """
    if is_bond(holding):
        return holding.quantity * (holding.cost_basis / 100)
    return holding.quantity * holding.cost_basis


def calculate_pnl_percent(holding, current_price: float) -> float:
    """Unrealized P&L as a ratio of cost (0.2 == +20%).

    Price and cost basis share the same per-unit convention for both asset
    classes, so one formula serves both.  Returns 0.0 when cost_basis <= 0.
    """
    if holding.cost_basis <= 0:
        return 0.0
    return (current_price - holding.cost_basis) / holding.cost_basis


def resolve_current_price(holding, price_map: Optional[dict]) -> float:
    """Pick the price a holding should be valued at.

    Bonds with a manually entered price use it.  Everything else is looked
    up in *price_map*; a missing or empty quote resolves to 0.0 (unpriced,
    not an error).
    """
    if is_bond(holding) and getattr(holding, "current_price", None) is not None:
        return float(holding.current_price)
    if not price_map:
        return 0.0
    return float(price_map.get(holding.symbol) or 0.0)
