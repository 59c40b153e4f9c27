"""Profile and holding persistence.

Keeps every profile, the active profile id and a timestamped price cache
in one JSON file.  Each operation loads the file, applies one change and
writes it back, mirroring how the browser version treated localStorage.

The store never holds derived values (metrics, summaries); those are
recomputed from the holdings on demand.
"""

import json
import os
import time
import uuid
from typing import Optional

from src.core.currency import default_base_currency
from src.core.models import (
    ASSET_CLASSES,
    BOND_CATEGORIES,
    HOLDING_MARKETS,
    MARKETS,
    RISK_LEVELS,
    Holding,
    Profile,
)
from src.core.settings import default_store_path

DEFAULT_STORE_PATH = default_store_path()

DEFAULT_PROFILE_NAME = "我的投資組合"


def _new_id() -> str:
    return str(uuid.uuid4())


def _default_store() -> dict:
    profile = Profile(id=_new_id(), name=DEFAULT_PROFILE_NAME)
    return {
        "profiles": [profile],
        "active_profile_id": profile.id,
        "price_cache": {},
    }


def _normalize_symbol(symbol: str, market: Optional[str]) -> str:
    """US tickers are upper-cased; TW codes are kept as typed."""
    symbol = (symbol or "").strip()
    if market == "TW":
        return symbol
    return symbol.upper()


# ---------------------------------------------------------------------------
# Store I/O
# ---------------------------------------------------------------------------


def load_store(store_path: str = DEFAULT_STORE_PATH) -> dict:
    """Load the profile store.

    Returns
    -------
    dict
        {
            "profiles": list[Profile],
            "active_profile_id": str,
            "price_cache": {symbol: {"price": float, "timestamp": float}},
        }
        A missing or profile-less file is initialised with one default
        profile, which is written back so its id stays stable across calls.
    """
    store_path = os.path.normpath(store_path)
    if not os.path.exists(store_path):
        store = _default_store()
        save_store(store, store_path)
        return store

    with open(store_path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    profiles = [Profile.from_dict(p) for p in raw.get("profiles", [])]
    if not profiles:
        store = _default_store()
        store["price_cache"] = raw.get("price_cache") or raw.get("priceCache") or {}
        save_store(store, store_path)
        return store

    active_id = raw.get("active_profile_id") or raw.get("activeProfileId") or ""
    if not any(p.id == active_id for p in profiles):
        active_id = profiles[0].id

    return {
        "profiles": profiles,
        "active_profile_id": active_id,
        "price_cache": raw.get("price_cache") or raw.get("priceCache") or {},
    }


def save_store(store: dict, store_path: str = DEFAULT_STORE_PATH) -> None:
    """Write the store to JSON.

    The parent directory is created when missing.
    """
    store_path = os.path.normpath(store_path)
    directory = os.path.dirname(store_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    data = {
        "profiles": [p.to_dict() for p in store["profiles"]],
        "active_profile_id": store.get("active_profile_id", ""),
        "price_cache": store.get("price_cache", {}),
    }
    with open(store_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


# ---------------------------------------------------------------------------
# Profile operations
# ---------------------------------------------------------------------------


def get_profile(store: dict, profile_id: str) -> Profile:
    """Return the profile with *profile_id*.

    Raises
    ------
    ValueError
        No such profile.
    """
    for profile in store["profiles"]:
        if profile.id == profile_id:
            return profile
    raise ValueError(f"Profile {profile_id} does not exist.")


def get_active_profile(store: dict) -> Profile:
    return get_profile(store, store["active_profile_id"])


def set_active_profile(store_path: str, profile_id: str) -> Profile:
    store = load_store(store_path)
    profile = get_profile(store, profile_id)
    store["active_profile_id"] = profile.id
    save_store(store, store_path)
    return profile


def create_profile(
    store_path: str,
    name: str,
    market: str = "US",
    base_currency: Optional[str] = None,
    risk_level: str = "balanced",
) -> Profile:
    """Create a profile and make it the active one.

    *market* is fixed for the lifetime of the profile.  *base_currency* is
    only honoured for MIXED profiles; single-market profiles report in
    their own currency.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Profile name must not be empty.")
    if market not in MARKETS:
        raise ValueError(f"Unknown market: '{market}'. Available: {list(MARKETS)}")
    if risk_level not in RISK_LEVELS:
        raise ValueError(
            f"Unknown risk level: '{risk_level}'. Available: {list(RISK_LEVELS)}"
        )

    store = load_store(store_path)
    profile = Profile(
        id=_new_id(),
        name=name,
        risk_level=risk_level,
        market=market,
        base_currency=default_base_currency(market, base_currency),
    )
    store["profiles"].append(profile)
    store["active_profile_id"] = profile.id
    save_store(store, store_path)
    return profile


def update_profile(
    store_path: str,
    profile_id: str,
    name: Optional[str] = None,
    risk_level: Optional[str] = None,
    base_currency: Optional[str] = None,
) -> Profile:
    """Edit profile settings.  The market cannot be changed."""
    store = load_store(store_path)
    profile = get_profile(store, profile_id)

    if name is not None:
        name = name.strip()
        if not name:
            raise ValueError("Profile name must not be empty.")
        profile.name = name
    if risk_level is not None:
        if risk_level not in RISK_LEVELS:
            raise ValueError(
                f"Unknown risk level: '{risk_level}'. Available: {list(RISK_LEVELS)}"
            )
        profile.risk_level = risk_level
    if base_currency is not None:
        if profile.market != "MIXED" and base_currency != profile.base_currency:
            raise ValueError(
                f"Base currency of a {profile.market} profile is fixed to "
                f"{profile.base_currency}."
            )
        profile.base_currency = default_base_currency(profile.market, base_currency)

    save_store(store, store_path)
    return profile


def delete_profile(store_path: str, profile_id: str) -> str:
    """Delete a profile and return the new active profile id.

    Raises
    ------
    ValueError
        Unknown profile, or it is the only profile left.
    """
    store = load_store(store_path)
    get_profile(store, profile_id)
    if len(store["profiles"]) <= 1:
        raise ValueError("Cannot delete the last remaining profile.")

    store["profiles"] = [p for p in store["profiles"] if p.id != profile_id]
    if store["active_profile_id"] == profile_id:
        store["active_profile_id"] = store["profiles"][0].id
    save_store(store, store_path)
    return store["active_profile_id"]


# ---------------------------------------------------------------------------
# Holding operations
# ---------------------------------------------------------------------------


def _validate_holding(holding: Holding, profile: Profile) -> None:
    if not holding.symbol:
        raise ValueError("Symbol must not be empty.")
    if holding.quantity <= 0:
        raise ValueError(f"Quantity for {holding.symbol} must be positive.")
    if holding.cost_basis <= 0:
        raise ValueError(f"Cost basis for {holding.symbol} must be positive.")
    if holding.asset_class not in ASSET_CLASSES:
        raise ValueError(
            f"Unknown asset class: '{holding.asset_class}'. "
            f"Available: {list(ASSET_CLASSES)}"
        )
    if holding.market is not None and holding.market not in HOLDING_MARKETS:
        raise ValueError(
            f"Unknown holding market: '{holding.market}'. "
            f"Available: {list(HOLDING_MARKETS)}"
        )
    if profile.market == "MIXED" and holding.market is None:
        raise ValueError(
            f"Holding {holding.symbol} in a MIXED profile needs a market (US or TW)."
        )
    if (
        profile.market != "MIXED"
        and holding.market is not None
        and holding.market != profile.market
    ):
        raise ValueError(
            f"Holding {holding.symbol} cannot be tagged {holding.market} "
            f"in a {profile.market} profile."
        )
    if holding.is_bond:
        if holding.current_price is None or holding.current_price <= 0:
            raise ValueError(
                f"Bond {holding.symbol} needs a manually entered current price."
            )
        if (
            holding.bond_category is not None
            and holding.bond_category not in BOND_CATEGORIES
        ):
            raise ValueError(
                f"Unknown bond category: '{holding.bond_category}'. "
                f"Available: {list(BOND_CATEGORIES)}"
            )
        if holding.coupon_rate is not None and not 0 <= holding.coupon_rate <= 100:
            raise ValueError(
                f"Coupon rate for {holding.symbol} must be between 0 and 100."
            )


def _find_holding(profile: Profile, holding_id: str) -> int:
    for i, holding in enumerate(profile.holdings):
        if holding.id == holding_id:
            return i
    raise ValueError(
        f"Holding {holding_id} does not exist in profile {profile.name}."
    )


def add_holding(
    store_path: str,
    profile_id: str,
    symbol: str,
    quantity: float,
    cost_basis: float,
    market: Optional[str] = None,
    name: str = "",
    asset_class: str = "equity",
    bond_category: Optional[str] = None,
    coupon_rate: Optional[float] = None,
    maturity_date: Optional[str] = None,
    current_price: Optional[float] = None,
    note: str = "",
) -> Holding:
    """Add a new holding, or merge into an existing one with the same symbol.

    Merging keeps the existing id and recomputes a weighted-average cost:
    new_cost = (old_qty * old_cost + qty * cost) / (old_qty + qty)

    Returns
    -------
    Holding
        The added or updated holding.
    """
    store = load_store(store_path)
    profile = get_profile(store, profile_id)

    effective_market = market or (profile.market if profile.market != "MIXED" else None)
    symbol = _normalize_symbol(symbol, effective_market)

    candidate = Holding(
        id=_new_id(),
        symbol=symbol,
        quantity=float(quantity),
        cost_basis=float(cost_basis),
        name=name or symbol,
        market=market,
        asset_class=asset_class or "equity",
        bond_category=bond_category,
        coupon_rate=coupon_rate,
        maturity_date=maturity_date,
        current_price=current_price,
        note=note,
    )
    _validate_holding(candidate, profile)

    existing = None
    for holding in profile.holdings:
        if holding.symbol == symbol:
            existing = holding
            break

    if existing is not None:
        total_quantity = existing.quantity + candidate.quantity
        total_cost = (
            existing.cost_basis * existing.quantity
            + candidate.cost_basis * candidate.quantity
        )
        existing.quantity = total_quantity
        existing.cost_basis = total_cost / total_quantity
        if candidate.is_bond and candidate.current_price is not None:
            existing.current_price = candidate.current_price
        if note:
            existing.note = note
        result = existing
    else:
        profile.holdings.append(candidate)
        result = candidate

    save_store(store, store_path)
    return result


def edit_holding(store_path: str, profile_id: str, holding: Holding) -> Holding:
    """Replace the holding whose id matches *holding.id*."""
    store = load_store(store_path)
    profile = get_profile(store, profile_id)
    index = _find_holding(profile, holding.id)
    _validate_holding(holding, profile)
    profile.holdings[index] = holding
    save_store(store, store_path)
    return holding


def delete_holding(store_path: str, profile_id: str, holding_id: str) -> Holding:
    """Remove a holding and return it."""
    store = load_store(store_path)
    profile = get_profile(store, profile_id)
    index = _find_holding(profile, holding_id)
    removed = profile.holdings.pop(index)
    save_store(store, store_path)
    return removed


def update_holding_names(
    store_path: str, profile_id: str, name_map: dict[str, str]
) -> bool:
    """Apply quote-feed names to a profile's holdings.

    Returns True when at least one name changed (and the store was saved).
    """
    store = load_store(store_path)
    profile = get_profile(store, profile_id)
    changed = False
    for holding in profile.holdings:
        new_name = name_map.get(holding.symbol)
        if new_name and holding.name != new_name:
            holding.name = new_name
            changed = True
    if changed:
        save_store(store, store_path)
    return changed


# ---------------------------------------------------------------------------
# Price cache
# ---------------------------------------------------------------------------


def update_price_cache(
    store_path: str, price_map: dict[str, float], now: Optional[float] = None
) -> dict:
    """Record fresh prices with a timestamp.  Zero/empty prices are skipped."""
    if now is None:
        now = time.time()
    store = load_store(store_path)
    cache = store["price_cache"]
    for symbol, price in price_map.items():
        if price:
            cache[symbol] = {"price": float(price), "timestamp": now}
    save_store(store, store_path)
    return cache


def get_cached_prices(
    store_path: str,
    ttl_seconds: Optional[float] = None,
    now: Optional[float] = None,
) -> dict[str, float]:
    """Return {symbol: price} from the cache.

    With *ttl_seconds*, entries older than the TTL are left out.
    """
    if now is None:
        now = time.time()
    cache = load_store(store_path)["price_cache"]
    prices: dict[str, float] = {}
    for symbol, entry in cache.items():
        if ttl_seconds is not None and now - entry.get("timestamp", 0) > ttl_seconds:
            continue
        prices[symbol] = float(entry.get("price", 0.0))
    return prices
