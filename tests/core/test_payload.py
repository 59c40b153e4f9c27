"""Tests for src/core/payload.py -- advice payload projection."""

import pytest

from src.core.metrics import compute_all_metrics
from src.core.models import Holding, PortfolioPayload, Profile
from src.core.payload import build_payload
from src.core.summary import summarize


@pytest.fixture
def bond_profile():
    return Profile(
        id="p1",
        name="Income",
        risk_level="conservative",
        market="US",
        base_currency="USD",
        holdings=[
            Holding(id="h1", symbol="AAPL", quantity=10, cost_basis=100.0, name="Apple"),
            Holding(
                id="h2", symbol="T-2030", quantity=10000, cost_basis=98.5,
                asset_class="bond", bond_category="ust", coupon_rate=4.25,
                maturity_date="2030-05-15", current_price=99.25,
            ),
        ],
    )


def _build(profile, prices, rate=32):
    metrics = compute_all_metrics(
        profile.holdings, prices, profile.market, profile.base_currency, rate
    )
    summary = summarize(metrics)
    return metrics, summary, build_payload(profile, metrics, summary)


class TestBuildPayload:
    def test_profile_and_totals_copied(self, bond_profile):
        metrics, summary, payload = _build(bond_profile, {"AAPL": 120.0})

        assert isinstance(payload, PortfolioPayload)
        assert payload.profile_name == "Income"
        assert payload.risk_level == "conservative"
        assert payload.market == "US"
        assert payload.base_currency == "USD"
        assert payload.total_market_value == summary.total_market_value
        assert payload.total_cost == summary.total_cost
        assert payload.total_unrealized_pnl == summary.total_unrealized_pnl
        assert payload.concentration == summary.concentration
        assert payload.asset_class_breakdown == summary.asset_class_breakdown

    def test_holdings_flattened(self, bond_profile):
        metrics, _, payload = _build(bond_profile, {"AAPL": 120.0})

        assert len(payload.holdings) == 2
        aapl = payload.holdings[0]
        assert aapl.symbol == "AAPL"
        assert aapl.name == "Apple"
        assert aapl.current_price == 120.0
        assert aapl.market_value == pytest.approx(1200.0)
        assert aapl.weight == metrics[0].weight
        assert aapl.unrealized_pnl_percent == pytest.approx(0.2)

    def test_optional_fields_only_when_set(self, bond_profile):
        _, _, payload = _build(bond_profile, {"AAPL": 120.0})
        d = payload.to_dict()

        aapl, bond = d["holdings"]
        assert "bond_category" not in aapl
        assert "coupon_rate" not in aapl
        assert "maturity_date" not in aapl
        assert aapl["asset_class"] == "equity"
        assert bond["asset_class"] == "bond"
        assert bond["bond_category"] == "ust"
        assert bond["coupon_rate"] == 4.25
        assert bond["maturity_date"] == "2030-05-15"

    def test_percentages_are_ratios(self, bond_profile):
        _, _, payload = _build(bond_profile, {"AAPL": 120.0})
        for h in payload.holdings:
            assert 0.0 <= h.weight <= 1.0
        assert payload.concentration <= 1.0

    def test_mixed_profile_in_base_currency(self, mixed_profile):
        metrics, summary, payload = _build(
            mixed_profile, {"AAPL": 160.0, "2330": 650.0}
        )
        assert payload.market == "MIXED"
        assert payload.holdings[1].market_value == pytest.approx(20312.5)

    def test_payload_has_no_side_effects(self, bond_profile):
        metrics, summary, payload = _build(bond_profile, {"AAPL": 120.0})
        before = [m.to_dict() for m in metrics]
        build_payload(bond_profile, metrics, summary)
        assert [m.to_dict() for m in metrics] == before

    def test_empty_profile(self):
        profile = Profile(id="p", name="Empty")
        _, _, payload = _build(profile, {})
        assert payload.holdings == []
        assert payload.total_market_value == 0
        assert payload.to_dict()["holdings"] == []
