#!/usr/bin/env python3
"""Command-line entry point for the portfolio tracker.

Usage:
  python scripts/run_portfolio.py profiles
  python scripts/run_portfolio.py create-profile "Taiwan" --market TW
  python scripts/run_portfolio.py update-profile [<profile_id>] --risk-level aggressive
  python scripts/run_portfolio.py use <profile_id>
  python scripts/run_portfolio.py add AAPL 10 150 [--market US]
  python scripts/run_portfolio.py add T-2030 10000 98.5 --bond --price 99.25 --category ust
  python scripts/run_portfolio.py edit <holding_id> --quantity 12 --cost 140
  python scripts/run_portfolio.py remove <holding_id>
  python scripts/run_portfolio.py snapshot [--offline]
  python scripts/run_portfolio.py advice
"""

import argparse
import dataclasses
import sys
from datetime import datetime
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.core import portfolio_manager as pm  # noqa: E402
from src.core.metrics import compute_all_metrics  # noqa: E402
from src.core.models import MARKETS, RISK_LEVELS  # noqa: E402
from src.core.payload import build_payload  # noqa: E402
from src.core.settings import get_setting  # noqa: E402
from src.core.summary import summarize  # noqa: E402
from src.data import advice_client, quote_client  # noqa: E402
from src.output.portfolio_formatter import (  # noqa: E402
    format_profile_list,
    format_snapshot,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _resolve_profile_id(store: dict, profile_id):
    return profile_id or store["active_profile_id"]


def _compute(store_path: str, profile_id, offline: bool = False):
    """Load a profile, refresh prices unless *offline*, compute metrics."""
    store = pm.load_store(store_path)
    profile = pm.get_profile(store, _resolve_profile_id(store, profile_id))

    ttl = get_setting("quotes", "cache_ttl_seconds")
    price_map = pm.get_cached_prices(store_path, ttl_seconds=None if offline else ttl)
    name_map: dict[str, str] = {}
    exchange_rate = float(get_setting("exchange_rate", "default"))

    if not offline:
        quotes = quote_client.get_quotes_for_holdings(profile.holdings, profile.market)
        fresh = quote_client.quotes_to_price_map(quotes)
        name_map = quote_client.quotes_to_name_map(quotes)
        price_map.update(fresh)
        if fresh:
            pm.update_price_cache(store_path, fresh)
        if name_map:
            pm.update_holding_names(store_path, profile.id, name_map)
        if profile.market == "MIXED":
            exchange_rate = quote_client.get_exchange_rate(default=exchange_rate)

    metrics = compute_all_metrics(
        profile.holdings,
        price_map,
        profile.market,
        profile.base_currency,
        exchange_rate,
        name_map=name_map,
    )
    summary = summarize(
        metrics, exchange_rate if profile.market == "MIXED" else None
    )
    return profile, metrics, summary


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_profiles(args) -> None:
    store = pm.load_store(args.store)
    print(format_profile_list(store["profiles"], store["active_profile_id"]))


def cmd_create_profile(args) -> None:
    profile = pm.create_profile(
        args.store,
        args.name,
        market=args.market,
        base_currency=args.base_currency,
        risk_level=args.risk_level,
    )
    print(f"已建立新組合: {profile.name} ({profile.id})")


def cmd_update_profile(args) -> None:
    store = pm.load_store(args.store)
    profile = pm.update_profile(
        args.store,
        _resolve_profile_id(store, args.profile_id),
        name=args.name,
        risk_level=args.risk_level,
        base_currency=args.base_currency,
    )
    print(
        f"已更新組合: {profile.name} "
        f"({profile.market} / {profile.base_currency} / {profile.risk_level})"
    )


def cmd_delete_profile(args) -> None:
    active_id = pm.delete_profile(args.store, args.profile_id)
    print(f"已刪除組合，目前組合: {active_id}")


def cmd_use(args) -> None:
    profile = pm.set_active_profile(args.store, args.profile_id)
    print(f"目前組合: {profile.name}")


def cmd_add(args) -> None:
    store = pm.load_store(args.store)
    profile_id = _resolve_profile_id(store, args.profile)
    holding = pm.add_holding(
        args.store,
        profile_id,
        args.symbol,
        args.quantity,
        args.cost,
        market=args.market,
        asset_class="bond" if args.bond else "equity",
        bond_category=args.category,
        coupon_rate=args.coupon,
        maturity_date=args.maturity,
        current_price=args.price,
        note=args.note or "",
    )
    print(
        f"已儲存 {holding.symbol}: 數量 {holding.quantity:g}, "
        f"成本 {holding.cost_basis:.4f}"
    )


def cmd_edit(args) -> None:
    """Overwrite fields of an existing holding; unset options are kept."""
    store = pm.load_store(args.store)
    profile = pm.get_profile(store, _resolve_profile_id(store, args.profile))
    current = next((h for h in profile.holdings if h.id == args.holding_id), None)
    if current is None:
        raise ValueError(
            f"Holding {args.holding_id} does not exist in profile {profile.name}."
        )

    changes = {
        "quantity": args.quantity,
        "cost_basis": args.cost,
        "name": args.name,
        "market": args.market,
        "bond_category": args.category,
        "coupon_rate": args.coupon,
        "maturity_date": args.maturity,
        "current_price": args.price,
        "note": args.note,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    holding = pm.edit_holding(
        args.store, profile.id, dataclasses.replace(current, **changes)
    )
    print(
        f"已更新 {holding.symbol}: 數量 {holding.quantity:g}, "
        f"成本 {holding.cost_basis:.4f}"
    )


def cmd_remove(args) -> None:
    store = pm.load_store(args.store)
    profile_id = _resolve_profile_id(store, args.profile)
    removed = pm.delete_holding(args.store, profile_id, args.holding_id)
    print(f"已刪除持股 {removed.symbol}")


def cmd_snapshot(args) -> None:
    profile, metrics, summary = _compute(args.store, args.profile, args.offline)
    print(format_snapshot(profile, metrics, summary, datetime.now().isoformat()))


def cmd_advice(args) -> None:
    if not advice_client.is_available():
        print(
            "[run_portfolio] Azure OpenAI is not configured; "
            "set AZURE_OPENAI_* in .env",
            file=sys.stderr,
        )
        sys.exit(1)
    profile, metrics, summary = _compute(args.store, args.profile, args.offline)
    payload = build_payload(profile, metrics, summary)
    try:
        print(advice_client.get_portfolio_advice(payload))
    except RuntimeError as e:
        print(f"[run_portfolio] Error: {e}", file=sys.stderr)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="US/TW portfolio tracker")
    parser.add_argument(
        "--store", default=pm.DEFAULT_STORE_PATH, help="Path of the JSON profile store"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("profiles", help="List profiles")
    p.set_defaults(func=cmd_profiles)

    p = sub.add_parser("create-profile", help="Create a profile")
    p.add_argument("name")
    p.add_argument("--market", choices=MARKETS, default="US")
    p.add_argument("--base-currency", choices=("USD", "TWD"), default=None)
    p.add_argument("--risk-level", choices=RISK_LEVELS, default="balanced")
    p.set_defaults(func=cmd_create_profile)

    p = sub.add_parser("update-profile", help="Edit profile settings")
    p.add_argument("profile_id", nargs="?", default=None, help="Defaults to the active profile")
    p.add_argument("--name", default=None)
    p.add_argument("--risk-level", choices=RISK_LEVELS, default=None)
    p.add_argument("--base-currency", choices=("USD", "TWD"), default=None)
    p.set_defaults(func=cmd_update_profile)

    p = sub.add_parser("delete-profile", help="Delete a profile")
    p.add_argument("profile_id")
    p.set_defaults(func=cmd_delete_profile)

    p = sub.add_parser("use", help="Switch the active profile")
    p.add_argument("profile_id")
    p.set_defaults(func=cmd_use)

    p = sub.add_parser("add", help="Add or top up a holding")
    p.add_argument("symbol")
    p.add_argument("quantity", type=float, help="Shares, or face value for bonds")
    p.add_argument("cost", type=float, help="Cost per share, or per 100 face value")
    p.add_argument("--profile", default=None)
    p.add_argument("--market", choices=("US", "TW"), default=None)
    p.add_argument("--bond", action="store_true")
    p.add_argument("--category", choices=("corp", "ust"), default=None)
    p.add_argument("--coupon", type=float, default=None)
    p.add_argument("--maturity", default=None)
    p.add_argument("--price", type=float, default=None, help="Bond price per 100 face value")
    p.add_argument("--note", default=None)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("edit", help="Edit an existing holding")
    p.add_argument("holding_id")
    p.add_argument("--profile", default=None)
    p.add_argument("--quantity", type=float, default=None)
    p.add_argument("--cost", type=float, default=None)
    p.add_argument("--name", default=None)
    p.add_argument("--market", choices=("US", "TW"), default=None)
    p.add_argument("--category", choices=("corp", "ust"), default=None)
    p.add_argument("--coupon", type=float, default=None)
    p.add_argument("--maturity", default=None)
    p.add_argument("--price", type=float, default=None, help="Bond price per 100 face value")
    p.add_argument("--note", default=None)
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("remove", help="Delete a holding")
    p.add_argument("holding_id")
    p.add_argument("--profile", default=None)
    p.set_defaults(func=cmd_remove)

    for name, func, text in (
        ("snapshot", cmd_snapshot, "Show valuation snapshot"),
        ("advice", cmd_advice, "Request an AI portfolio review"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument("--profile", default=None)
        p.add_argument(
            "--offline", action="store_true", help="Use cached prices only"
        )
        p.set_defaults(func=func)

    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except ValueError as e:
        print(f"[run_portfolio] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
