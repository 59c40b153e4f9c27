"""Shared pytest fixtures for the portfolio tracker test suite."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to sys.path so that `from src.xxx import yyy` works
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.core.models import Holding, Profile  # noqa: E402


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------

def make_holding(symbol="AAPL", quantity=10, cost_basis=100.0, **kwargs) -> Holding:
    """Build a Holding with a deterministic id derived from the symbol."""
    return Holding(
        id=kwargs.pop("id", f"id-{symbol}"),
        symbol=symbol,
        quantity=quantity,
        cost_basis=cost_basis,
        **kwargs,
    )


@pytest.fixture
def holding_factory():
    return make_holding


@pytest.fixture
def us_holdings() -> list[Holding]:
    return [
        make_holding("AAPL", 10, 150.0, name="Apple"),
        make_holding("MSFT", 5, 300.0, name="Microsoft"),
    ]


@pytest.fixture
def mixed_holdings() -> list[Holding]:
    """AAPL (US) and 2330 (TW) for a MIXED profile."""
    return [
        make_holding("AAPL", 10, 150.0, market="US"),
        make_holding("2330", 1000, 600.0, market="TW"),
    ]


@pytest.fixture
def bond_holding() -> Holding:
    return make_holding(
        "T-2030",
        10000,
        98.5,
        asset_class="bond",
        bond_category="ust",
        coupon_rate=4.25,
        maturity_date="2030-05-15",
        current_price=99.25,
    )


@pytest.fixture
def mixed_profile(mixed_holdings) -> Profile:
    return Profile(
        id="p-mixed",
        name="Mixed",
        risk_level="balanced",
        market="MIXED",
        base_currency="USD",
        holdings=mixed_holdings,
    )


# ---------------------------------------------------------------------------
# Store path
# ---------------------------------------------------------------------------

@pytest.fixture
def store_path(tmp_path) -> str:
    """Return a temporary JSON store path for testing."""
    return str(tmp_path / "portfolio.json")


# ---------------------------------------------------------------------------
# yfinance mock
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_yf(monkeypatch):
    """Replace yfinance.Ticker inside quote_client to avoid network calls.

    Usage in tests:
        def test_something(mock_yf):
            mock_yf.infos["AAPL"] = {"regularMarketPrice": 190.0}
            ...
    """
    from src.data import quote_client

    mock = MagicMock()
    mock.infos = {}
    mock.history = None

    def _ticker(symbol):
        ticker = MagicMock()
        ticker.info = mock.infos.get(symbol, {})
        ticker.history.return_value = mock.history
        return ticker

    mock.Ticker.side_effect = _ticker
    monkeypatch.setattr(quote_client, "yf", mock)
    return mock
