"""Core data models for the US/TW portfolio tracker.

Dataclasses providing type safety for the main domain objects.
Persisted objects (Holding, Profile) round-trip through plain dicts via
to_dict()/from_dict().  from_dict() accepts both snake_case keys and the
camelCase keys written by the browser version of the app, so old
localStorage dumps load unchanged.

Derived objects (HoldingWithMetrics, PortfolioSummary, ...) are recomputed
from scratch on every change and are never persisted.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional

# ---------------------------------------------------------------------------
# Enumerations and display labels
# ---------------------------------------------------------------------------

MARKETS = ("US", "TW", "MIXED")
HOLDING_MARKETS = ("US", "TW")
CURRENCIES = ("USD", "TWD")
RISK_LEVELS = ("conservative", "balanced", "aggressive")
ASSET_CLASSES = ("equity", "bond")
BOND_CATEGORIES = ("corp", "ust")

MARKET_LABELS = {
    "US": "美股",
    "TW": "台股",
    "MIXED": "混合",
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "TWD": "NT$",
}

ASSET_CLASS_LABELS = {
    "equity": "股票",
    "bond": "債券",
}

BOND_CATEGORY_LABELS = {
    "corp": "公司債",
    "ust": "美國公債",
}

RISK_LEVEL_LABELS = {
    "conservative": "保守型",
    "balanced": "平衡型",
    "aggressive": "積極型",
}


def _pick(d: dict, snake: str, camel: str, default=None):
    """Return d[snake] or d[camel], whichever is present."""
    if snake in d:
        return d[snake]
    if camel in d:
        return d[camel]
    return default


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass
class Holding:
    """A single position record.

    Attributes
    ----------
    id : str
        Opaque unique id, stable across edits.
    symbol : str
        Ticker symbol ("AAPL" for US, "2330" for TW).
    quantity : float
        Share count for equities; total face value for bonds.
    cost_basis : float
        Cost per share for equities; purchase price per 100 face value
        for bonds.
    name : str
        Display name (filled from the quote feed when available).
    market : str or None
        Explicit "US"/"TW" tag, only meaningful inside MIXED profiles.
    asset_class : str
        "equity" (default) or "bond".
    bond_category : str or None
        "corp" or "ust" (bonds only).
    coupon_rate : float or None
        Coupon in percent, 0-100 (bonds only).
    maturity_date : str or None
        ISO date, YYYY-MM-DD (bonds only).
    current_price : float or None
        Manually entered price per 100 face value (bonds only; there is
        no automated bond quote feed).
    note : str
        Free-form note.
    """

    id: str
    symbol: str
    quantity: float
    cost_basis: float
    name: str = ""
    market: Optional[str] = None
    asset_class: str = "equity"
    bond_category: Optional[str] = None
    coupon_rate: Optional[float] = None
    maturity_date: Optional[str] = None
    current_price: Optional[float] = None
    note: str = ""

    @property
    def is_bond(self) -> bool:
        return self.asset_class == "bond"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Holding":
        return cls(
            id=str(d.get("id", "")),
            symbol=str(d.get("symbol", "")).strip(),
            quantity=float(d.get("quantity", 0.0)),
            cost_basis=float(_pick(d, "cost_basis", "costBasis", 0.0)),
            name=d.get("name") or "",
            market=d.get("market") or None,
            asset_class=_pick(d, "asset_class", "assetClass") or "equity",
            bond_category=_pick(d, "bond_category", "bondCategory") or None,
            coupon_rate=_optional_float(_pick(d, "coupon_rate", "couponRate")),
            maturity_date=_pick(d, "maturity_date", "maturityDate") or None,
            current_price=_optional_float(
                _pick(d, "current_price", "currentPrice")
            ),
            note=d.get("note") or "",
        )


@dataclass
class Profile:
    """A named portfolio container (one account)."""

    id: str
    name: str
    risk_level: str = "balanced"
    market: str = "US"
    base_currency: str = "USD"
    holdings: list[Holding] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Profile":
        return cls(
            id=str(d.get("id", "")),
            name=d.get("name") or "",
            risk_level=_pick(d, "risk_level", "riskLevel") or "balanced",
            market=d.get("market") or "US",
            base_currency=_pick(d, "base_currency", "baseCurrency") or "USD",
            holdings=[Holding.from_dict(h) for h in d.get("holdings", [])],
        )


@dataclass
class Quote:
    """A normalized quote from the price feed."""

    symbol: str
    name: str
    price: float
    market: str
    currency: str
    change: Optional[float] = None
    changes_percentage: Optional[float] = None
    market_cap: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass
class HoldingWithMetrics(Holding):
    """A Holding extended with valuation metrics.

    ``market_value`` and ``unrealized_pnl`` are in the profile's base
    currency; the ``original_*`` fields are in ``original_currency``.
    ``unrealized_pnl_percent`` is a currency-independent ratio.
    """

    current_price: float = 0.0
    original_currency: str = "USD"
    market_value: float = 0.0
    original_market_value: float = 0.0
    weight: float = 0.0
    unrealized_pnl: float = 0.0
    original_unrealized_pnl: float = 0.0
    unrealized_pnl_percent: float = 0.0


@dataclass
class MarketBreakdown:
    """Per-market totals, reported in that market's own currency."""

    market_value: float
    cost: float
    unrealized_pnl: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ClassSlice:
    market_value: float = 0.0
    weight: float = 0.0


@dataclass
class BondBreakdown:
    total_market_value: float = 0.0
    weight: float = 0.0
    corp: ClassSlice = field(default_factory=ClassSlice)
    ust: ClassSlice = field(default_factory=ClassSlice)


@dataclass
class AssetClassBreakdown:
    """Base-currency market value and weight by asset class."""

    equity: ClassSlice = field(default_factory=ClassSlice)
    bond: BondBreakdown = field(default_factory=BondBreakdown)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PortfolioSummary:
    """Portfolio-level aggregates over a metrics list."""

    total_market_value: float
    total_cost: float
    total_unrealized_pnl: float
    total_unrealized_pnl_percent: float
    top_holdings: list[HoldingWithMetrics]
    total_holdings_count: int
    concentration: float
    exchange_rate: Optional[float] = None
    us_breakdown: Optional[MarketBreakdown] = None
    tw_breakdown: Optional[MarketBreakdown] = None
    asset_class_breakdown: AssetClassBreakdown = field(
        default_factory=AssetClassBreakdown
    )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def empty(cls) -> "PortfolioSummary":
        """Summary of a portfolio with no holdings."""
        return cls(
            total_market_value=0.0,
            total_cost=0.0,
            total_unrealized_pnl=0.0,
            total_unrealized_pnl_percent=0.0,
            top_holdings=[],
            total_holdings_count=0,
            concentration=0.0,
        )


@dataclass
class PortfolioHoldingPayload:
    symbol: str
    name: str
    quantity: float
    cost_basis: float
    current_price: float
    market_value: float
    weight: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    asset_class: Optional[str] = None
    bond_category: Optional[str] = None
    coupon_rate: Optional[float] = None
    maturity_date: Optional[str] = None

    def to_dict(self) -> dict:
        # Optional bond/asset fields are omitted when unset.
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class PortfolioPayload:
    """Input shape for the advice collaborator.

    Amounts are in ``base_currency``; weights and percentages are
    fractional ratios (0.0525, not 5.25).
    """

    profile_name: str
    risk_level: str
    market: str
    base_currency: str
    total_market_value: float
    total_cost: float
    total_unrealized_pnl: float
    concentration: float
    holdings: list[PortfolioHoldingPayload] = field(default_factory=list)
    asset_class_breakdown: Optional[AssetClassBreakdown] = None

    def to_dict(self) -> dict:
        result = {
            "profile_name": self.profile_name,
            "risk_level": self.risk_level,
            "market": self.market,
            "base_currency": self.base_currency,
            "total_market_value": self.total_market_value,
            "total_cost": self.total_cost,
            "total_unrealized_pnl": self.total_unrealized_pnl,
            "concentration": self.concentration,
            "holdings": [h.to_dict() for h in self.holdings],
        }
        if self.asset_class_breakdown is not None:
            result["asset_class_breakdown"] = self.asset_class_breakdown.to_dict()
        return result
