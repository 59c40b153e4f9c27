"""Tests for src/output/portfolio_formatter.py."""

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.core.metrics import compute_all_metrics
from src.core.models import Holding, PortfolioSummary, Profile
from src.core.summary import summarize
from src.output.portfolio_formatter import (
    format_currency,
    format_holdings_table,
    format_percent,
    format_profile_list,
    format_snapshot,
    format_summary,
)


# ---------------------------------------------------------------------------
# Local fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mixed_result(mixed_profile):
    metrics = compute_all_metrics(
        mixed_profile.holdings, {"AAPL": 160.0, "2330": 650.0}, "MIXED", "USD", 32
    )
    return mixed_profile, metrics, summarize(metrics, 32)


@pytest.fixture
def bond_metrics():
    holdings = [
        Holding(id="1", symbol="AAPL", quantity=10, cost_basis=100.0, name="Apple"),
        Holding(
            id="2", symbol="T-2030", quantity=10000, cost_basis=98.5,
            asset_class="bond", bond_category="ust", current_price=99.25,
        ),
    ]
    return compute_all_metrics(holdings, {"AAPL": 120.0})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestFormatHelpers:
    def test_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(1234.5, "TWD", 0) == "NT$1,234"
        assert format_currency(-20.0, "USD") == "-$20.00"
        assert format_currency(None) == "-"

    def test_percent(self):
        assert format_percent(0.0525) == "+5.25%"
        assert format_percent(-0.12) == "-12.00%"
        assert format_percent(0.0) == "+0.00%"
        assert format_percent(None) == "-"


# ---------------------------------------------------------------------------
# format_holdings_table
# ---------------------------------------------------------------------------

class TestFormatHoldingsTable:
    def test_empty(self):
        assert format_holdings_table([]) == "尚無持股。"

    def test_rows(self, bond_metrics):
        table = format_holdings_table(bond_metrics, "USD")
        lines = table.splitlines()
        assert len(lines) == 4
        assert "| AAPL | Apple | 股票 | 10 |" in lines[2]
        assert "$1,200.00" in lines[2]
        assert "+20.00%" in lines[2]
        assert "美國公債" in lines[3]
        assert "10,000" in lines[3]
        assert "$9,925.00" in lines[3]

    def test_original_currency_prices(self, mixed_result):
        _, metrics, _ = mixed_result
        table = format_holdings_table(metrics, "USD")
        assert "NT$650.00" in table
        assert "$20,312.50" in table

    def test_unpriced_shows_dash(self):
        metrics = compute_all_metrics(
            [Holding(id="1", symbol="X", quantity=1, cost_basis=1.0)], {}
        )
        row = format_holdings_table(metrics).splitlines()[2]
        assert "| - |" in row


# ---------------------------------------------------------------------------
# format_summary
# ---------------------------------------------------------------------------

class TestFormatSummary:
    def test_mixed_shows_market_breakdowns(self, mixed_result):
        _, _, summary = mixed_result
        text = format_summary(summary, "USD", "MIXED")
        assert "總市值: $21,912.50" in text
        assert "匯率 USD/TWD: 32.00" in text
        assert "市場分布" in text
        assert "美股: 市值 $1,600.00" in text
        assert "台股: 市值 NT$650,000.00" in text
        assert "1. 2330" in text

    def test_single_market_hides_market_breakdowns(self, bond_metrics):
        text = format_summary(summarize(bond_metrics), "USD", "US")
        assert "市場分布" not in text
        assert "匯率" not in text
        assert "資產配置" in text
        assert "美國公債" in text

    def test_empty(self):
        text = format_summary(PortfolioSummary.empty())
        assert "總市值: $0.00" in text
        assert "資產配置" not in text
        assert "前五大持股" not in text


# ---------------------------------------------------------------------------
# format_snapshot / format_profile_list
# ---------------------------------------------------------------------------

class TestFormatSnapshot:
    def test_header(self, mixed_result):
        profile, metrics, summary = mixed_result
        text = format_snapshot(profile, metrics, summary, "2025-06-15T10:30:00")
        assert text.startswith("## Mixed (2025/06/15 10:30)")
        assert "市場: 混合 / 幣別: USD / 風險偏好: 平衡型" in text

    def test_bad_timestamp_shown_raw(self, mixed_result):
        profile, metrics, summary = mixed_result
        text = format_snapshot(profile, metrics, summary, "yesterday")
        assert "(yesterday)" in text


class TestFormatProfileList:
    def test_active_marked(self):
        profiles = [
            Profile(id="a", name="US", market="US"),
            Profile(id="b", name="TW", market="TW", base_currency="TWD"),
        ]
        text = format_profile_list(profiles, "b")
        lines = text.splitlines()
        assert lines[4].startswith("|  | US |")
        assert lines[5].startswith("| * | TW | 台股 | TWD |")
