"""Markdown output formatters for portfolio snapshots."""

from datetime import datetime
from typing import Optional

from src.core.models import (
    ASSET_CLASS_LABELS,
    BOND_CATEGORY_LABELS,
    CURRENCY_SYMBOLS,
    MARKET_LABELS,
    RISK_LEVEL_LABELS,
    HoldingWithMetrics,
    MarketBreakdown,
    PortfolioSummary,
    Profile,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def format_currency(
    value: Optional[float], currency: str = "USD", decimals: int = 2
) -> str:
    """Format an amount with its currency symbol ($1,234.56 / NT$1,234.56)."""
    if value is None:
        return "-"
    symbol = CURRENCY_SYMBOLS.get(currency, "$")
    if value < 0:
        return f"-{symbol}{abs(value):,.{decimals}f}"
    return f"{symbol}{value:,.{decimals}f}"


def format_percent(value: Optional[float], decimals: int = 2) -> str:
    """Format a ratio as a signed percentage (0.0525 -> '+5.25%')."""
    if value is None:
        return "-"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value * 100:.{decimals}f}%"


def _fmt_weight(value: Optional[float]) -> str:
    """Unsigned percentage for weights (0.25 -> '25.00%')."""
    if value is None:
        return "-"
    return f"{value * 100:.2f}%"


def _fmt_quantity(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.4f}".rstrip("0").rstrip(".")


def _pnl_indicator(value: Optional[float]) -> str:
    """Return gain/loss indicator: triangle-up for positive, triangle-down for negative."""
    if value is None:
        return ""
    if value > 0:
        return "\u25b2"  # ▲
    elif value < 0:
        return "\u25bc"  # ▼
    return ""


def _asset_label(h: HoldingWithMetrics) -> str:
    if h.asset_class == "bond":
        category = BOND_CATEGORY_LABELS.get(h.bond_category or "", "")
        return category or ASSET_CLASS_LABELS["bond"]
    return ASSET_CLASS_LABELS["equity"]


# ---------------------------------------------------------------------------
# format_holdings_table
# ---------------------------------------------------------------------------

def format_holdings_table(
    metrics: list[HoldingWithMetrics], base_currency: str = "USD"
) -> str:
    """Format per-holding metrics as a Markdown table.

    Cost and price columns use each holding's original currency (bond
    prices are per 100 face value); value and P&L columns use
    *base_currency*.
    """
    if not metrics:
        return "尚無持股。"

    lines = [
        "| 代號 | 名稱 | 類別 | 數量 | 成本 | 現價 | 市值 | 損益 | 報酬率 | 佔比 |",
        "|:-----|:-----|:-----|-----:|-----:|-----:|-----:|-----:|-------:|-----:|",
    ]

    for h in metrics:
        price_str = (
            format_currency(h.current_price, h.original_currency)
            if h.current_price
            else "-"
        )
        indicator = _pnl_indicator(h.unrealized_pnl)
        pnl_str = f"{indicator} {format_currency(h.unrealized_pnl, base_currency)}".strip()
        lines.append(
            f"| {h.symbol} | {h.name or '-'} | {_asset_label(h)} "
            f"| {_fmt_quantity(h.quantity)} "
            f"| {format_currency(h.cost_basis, h.original_currency)} "
            f"| {price_str} "
            f"| {format_currency(h.market_value, base_currency)} "
            f"| {pnl_str} "
            f"| {format_percent(h.unrealized_pnl_percent)} "
            f"| {_fmt_weight(h.weight)} |"
        )

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# format_summary
# ---------------------------------------------------------------------------

def _market_breakdown_line(
    label: str, breakdown: Optional[MarketBreakdown], currency: str
) -> Optional[str]:
    if breakdown is None:
        return None
    indicator = _pnl_indicator(breakdown.unrealized_pnl)
    return (
        f"- {label}: 市值 {format_currency(breakdown.market_value, currency)} / "
        f"成本 {format_currency(breakdown.cost, currency)} / "
        f"損益 {indicator} {format_currency(breakdown.unrealized_pnl, currency)}"
    )


def format_summary(
    summary: PortfolioSummary,
    base_currency: str = "USD",
    market: str = "US",
) -> str:
    """Format portfolio totals and breakdowns as Markdown.

    Market breakdowns (MIXED profiles only) are shown in their own
    currency; everything else is in *base_currency*.
    """
    lines: list[str] = ["### 摘要"]

    indicator = _pnl_indicator(summary.total_unrealized_pnl)
    lines.append(f"- 總市值: {format_currency(summary.total_market_value, base_currency)}")
    lines.append(f"- 總成本: {format_currency(summary.total_cost, base_currency)}")
    lines.append(
        f"- 總損益: {indicator} "
        f"{format_currency(summary.total_unrealized_pnl, base_currency)} "
        f"({format_percent(summary.total_unrealized_pnl_percent)})"
    )
    lines.append(f"- 持股數: {summary.total_holdings_count}")
    lines.append(f"- 前三大持股集中度: {_fmt_weight(summary.concentration)}")
    if summary.exchange_rate is not None:
        lines.append(f"- 匯率 USD/TWD: {summary.exchange_rate:.2f}")
    lines.append("")

    if market == "MIXED":
        breakdown_lines = [
            _market_breakdown_line(MARKET_LABELS["US"], summary.us_breakdown, "USD"),
            _market_breakdown_line(MARKET_LABELS["TW"], summary.tw_breakdown, "TWD"),
        ]
        breakdown_lines = [line for line in breakdown_lines if line]
        if breakdown_lines:
            lines.append("### 市場分布（原幣）")
            lines.extend(breakdown_lines)
            lines.append("")

    acb = summary.asset_class_breakdown
    if acb is not None and summary.total_holdings_count > 0:
        lines.append("### 資產配置")
        lines.append(
            f"- {ASSET_CLASS_LABELS['equity']}: "
            f"{format_currency(acb.equity.market_value, base_currency)} "
            f"({_fmt_weight(acb.equity.weight)})"
        )
        lines.append(
            f"- {ASSET_CLASS_LABELS['bond']}: "
            f"{format_currency(acb.bond.total_market_value, base_currency)} "
            f"({_fmt_weight(acb.bond.weight)})"
        )
        if acb.bond.total_market_value > 0:
            for key, slice_ in (("corp", acb.bond.corp), ("ust", acb.bond.ust)):
                lines.append(
                    f"  - {BOND_CATEGORY_LABELS[key]}: "
                    f"{format_currency(slice_.market_value, base_currency)} "
                    f"({_fmt_weight(slice_.weight)})"
                )
        lines.append("")

    if summary.top_holdings:
        lines.append("### 前五大持股")
        for rank, h in enumerate(summary.top_holdings, start=1):
            lines.append(f"{rank}. {h.symbol} {h.name}".rstrip() + f" ({_fmt_weight(h.weight)})")
        lines.append("")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# format_snapshot
# ---------------------------------------------------------------------------

def format_snapshot(
    profile: Profile,
    metrics: list[HoldingWithMetrics],
    summary: PortfolioSummary,
    timestamp: Optional[str] = None,
) -> str:
    """Full Markdown report: header, holdings table and summary."""
    if timestamp:
        try:
            ts_display = datetime.fromisoformat(timestamp).strftime("%Y/%m/%d %H:%M")
        except (ValueError, TypeError):
            ts_display = str(timestamp)
    else:
        ts_display = datetime.now().strftime("%Y/%m/%d %H:%M")

    market_label = MARKET_LABELS.get(profile.market, profile.market)
    risk_label = RISK_LEVEL_LABELS.get(profile.risk_level, profile.risk_level)

    lines = [
        f"## {profile.name} ({ts_display})",
        "",
        f"市場: {market_label} / 幣別: {profile.base_currency} / 風險偏好: {risk_label}",
        "",
        format_holdings_table(metrics, profile.base_currency),
        "",
        format_summary(summary, profile.base_currency, profile.market),
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# format_profile_list
# ---------------------------------------------------------------------------

def format_profile_list(profiles: list[Profile], active_profile_id: str = "") -> str:
    """Format the saved profiles as a Markdown table (active one marked)."""
    lines = [
        "## 投資組合列表",
        "",
        "| | 名稱 | 市場 | 幣別 | 風險偏好 | 持股數 | ID |",
        "|:-:|:-----|:-----|:-----|:---------|-----:|:---|",
    ]
    for p in profiles:
        mark = "*" if p.id == active_profile_id else ""
        lines.append(
            f"| {mark} | {p.name} | {MARKET_LABELS.get(p.market, p.market)} "
            f"| {p.base_currency} | {RISK_LEVEL_LABELS.get(p.risk_level, p.risk_level)} "
            f"| {len(p.holdings)} | {p.id} |"
        )
    return "\n".join(lines)
