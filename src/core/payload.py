"""Projection of profile + metrics + summary into the advice payload."""

from src.core.models import (
    HoldingWithMetrics,
    PortfolioHoldingPayload,
    PortfolioPayload,
    PortfolioSummary,
    Profile,
)


def _holding_payload(h: HoldingWithMetrics) -> PortfolioHoldingPayload:
    return PortfolioHoldingPayload(
        symbol=h.symbol,
        name=h.name or h.symbol,
        quantity=h.quantity,
        cost_basis=h.cost_basis,
        current_price=h.current_price,
        market_value=h.market_value,
        weight=h.weight,
        unrealized_pnl=h.unrealized_pnl,
        unrealized_pnl_percent=h.unrealized_pnl_percent,
        asset_class=h.asset_class or None,
        bond_category=h.bond_category,
        coupon_rate=h.coupon_rate,
        maturity_date=h.maturity_date,
    )


def build_payload(
    profile: Profile,
    metrics: list[HoldingWithMetrics],
    summary: PortfolioSummary,
) -> PortfolioPayload:
    """Build the PortfolioPayload consumed by the advice client.

    Field selection only; no values are recomputed.
    """
    return PortfolioPayload(
        profile_name=profile.name,
        risk_level=profile.risk_level,
        market=profile.market or "US",
        base_currency=profile.base_currency or "USD",
        total_market_value=summary.total_market_value,
        total_cost=summary.total_cost,
        total_unrealized_pnl=summary.total_unrealized_pnl,
        concentration=summary.concentration,
        holdings=[_holding_payload(h) for h in metrics],
        asset_class_breakdown=summary.asset_class_breakdown,
    )
