"""Portfolio-level aggregation: totals, concentration and breakdowns."""

from typing import Optional

from src.core.models import (
    AssetClassBreakdown,
    BondBreakdown,
    ClassSlice,
    HoldingWithMetrics,
    MarketBreakdown,
    PortfolioSummary,
)
from src.core.valuation import calculate_cost, is_bond

TOP_HOLDINGS_COUNT = 5
CONCENTRATION_TOP_N = 3


def _ratio(value: float, total: float) -> float:
    return value / total if total > 0 else 0.0


def breakdown_by_asset_class(
    metrics: list[HoldingWithMetrics], total_market_value: float
) -> AssetClassBreakdown:
    """Split base-currency market value into equity / corp bond / UST.

    Anything that is not a bond counts as equity.  A bond with neither
    category still counts toward the bond total.
    """
    equity_value = 0.0
    bond_value = 0.0
    corp_value = 0.0
    ust_value = 0.0
    for h in metrics:
        if not is_bond(h):
            equity_value += h.market_value
            continue
        bond_value += h.market_value
        if h.bond_category == "corp":
            corp_value += h.market_value
        elif h.bond_category == "ust":
            ust_value += h.market_value

    return AssetClassBreakdown(
        equity=ClassSlice(
            market_value=equity_value,
            weight=_ratio(equity_value, total_market_value),
        ),
        bond=BondBreakdown(
            total_market_value=bond_value,
            weight=_ratio(bond_value, total_market_value),
            corp=ClassSlice(
                market_value=corp_value,
                weight=_ratio(corp_value, total_market_value),
            ),
            ust=ClassSlice(
                market_value=ust_value,
                weight=_ratio(ust_value, total_market_value),
            ),
        ),
    )


def _market_breakdown(
    holdings: list[HoldingWithMetrics],
) -> Optional[MarketBreakdown]:
    """Original-currency totals for one market bucket, None when empty."""
    if not holdings:
        return None
    market_value = sum(h.original_market_value for h in holdings)
    cost = sum(calculate_cost(h) for h in holdings)
    return MarketBreakdown(
        market_value=market_value,
        cost=cost,
        unrealized_pnl=sum(h.original_market_value - calculate_cost(h) for h in holdings),
    )


def summarize(
    metrics: list[HoldingWithMetrics],
    exchange_rate: Optional[float] = None,
) -> PortfolioSummary:
    """Aggregate a metrics list into a PortfolioSummary.

    ``total_market_value`` and ``total_unrealized_pnl`` are base-currency
    sums.  ``total_cost`` adds up each holding's cost in its own original
    currency, so for MIXED profiles it mixes USD and TWD magnitudes.

    The US and TW market breakdowns are reported in their own currency,
    unconverted.  Each bucket is None when it has no holdings.

    *exchange_rate* is passed through untouched for display.
    """
    if not metrics:
        summary = PortfolioSummary.empty()
        summary.exchange_rate = exchange_rate
        return summary

    total_market_value = sum(h.market_value for h in metrics)
    total_cost = sum(calculate_cost(h) for h in metrics)
    total_unrealized_pnl = sum(h.unrealized_pnl for h in metrics)

    ranked = sorted(metrics, key=lambda h: h.weight, reverse=True)
    concentration = sum(h.weight for h in ranked[:CONCENTRATION_TOP_N])

    us_holdings = [
        h for h in metrics if h.market == "US" or h.original_currency == "USD"
    ]
    tw_holdings = [
        h for h in metrics if h.market == "TW" or h.original_currency == "TWD"
    ]

    return PortfolioSummary(
        total_market_value=total_market_value,
        total_cost=total_cost,
        total_unrealized_pnl=total_unrealized_pnl,
        total_unrealized_pnl_percent=_ratio(total_unrealized_pnl, total_cost),
        top_holdings=ranked[:TOP_HOLDINGS_COUNT],
        total_holdings_count=len(metrics),
        concentration=concentration,
        exchange_rate=exchange_rate,
        us_breakdown=_market_breakdown(us_holdings),
        tw_breakdown=_market_breakdown(tw_holdings),
        asset_class_breakdown=breakdown_by_asset_class(metrics, total_market_value),
    )
