#!/usr/bin/env python3
"""Simple CLI for trying the exchange plugins locally"""

import argparse
import asyncio
import sys
from typing import List

from exchange_plugins.cache import TTLCache
from exchange_plugins.config import settings
from exchange_plugins.core.swap.errors import PluginInitError
from exchange_plugins.core.swap.models import PairHint
from exchange_plugins.logging_config import setup_logging
from exchange_plugins.providers.base import PluginIO, PluginOptions
from exchange_plugins.providers.coincap import make_coincap_plugin
from exchange_plugins.registry import RATE_PLUGIN_FACTORIES, SWAP_PLUGIN_FACTORIES, make_plugin


def parse_pairs(raw_pairs: List[str]) -> List[PairHint]:
    """Parse ``FROM/TO`` arguments, e.g. ``BTC/iso:USD``."""
    hints = []
    for raw in raw_pairs:
        from_currency, sep, to_currency = raw.partition("/")
        if not sep or not from_currency or not to_currency:
            raise ValueError(f"Invalid pair {raw!r}, expected FROM/TO")
        hints.append(PairHint(from_currency=from_currency, to_currency=to_currency))
    return hints


def plugin_options(plugin_id: str) -> PluginOptions:
    return PluginOptions(
        io=PluginIO(timeout_s=float(settings.request_timeout_seconds)),
        init_options=settings.init_options_for(plugin_id),
    )


async def cli_rates(plugin_id: str, raw_pairs: List[str]) -> int:
    """Fetch rates from one rate plugin and print them"""
    if plugin_id not in RATE_PLUGIN_FACTORIES:
        print(f"❌ Unknown rate plugin: {plugin_id}")
        return 1

    hints = parse_pairs(raw_pairs)
    try:
        if plugin_id == "coincap":
            cache = TTLCache(default_ttl=settings.coincap_asset_cache_ttl_seconds)
            plugin = make_coincap_plugin(plugin_options(plugin_id), cache)
        else:
            plugin = make_plugin(plugin_id, plugin_options(plugin_id))
    except PluginInitError as e:
        print(f"❌ {e}")
        return 1

    print(f"🔍 Fetching {len(hints)} pair(s) from {plugin_id}...")
    pairs = await plugin.fetch_rates(hints)
    if not pairs:
        print("No rates returned")
        return 0

    print("-" * 50)
    for pair in pairs:
        print(f"{pair.from_currency:>12} -> {pair.to_currency:<12} {pair.rate:,.8f}")
    return 0


def cli_plugins() -> int:
    print("Swap plugins:")
    for plugin_id in sorted(SWAP_PLUGIN_FACTORIES):
        configured = "✓" if settings.init_options_for(plugin_id) else " "
        print(f"  [{configured}] {plugin_id}")
    print("Rate plugins:")
    for plugin_id in sorted(RATE_PLUGIN_FACTORIES):
        print(f"      {plugin_id}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Exchange plugins CLI")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    rates_parser = subparsers.add_parser("rates", help="Fetch exchange rates from a rate plugin")
    rates_parser.add_argument("plugin", help="Rate plugin id (coinbase, coincap, currencyconverter)")
    rates_parser.add_argument("pairs", nargs="+", help="Pairs as FROM/TO, e.g. BTC/iso:USD")

    subparsers.add_parser("plugins", help="List registered plugins")

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "rates":
        try:
            return await cli_rates(args.plugin, args.pairs)
        except ValueError as e:
            print(f"❌ {e}")
            return 2

    if args.command == "plugins":
        return cli_plugins()

    print(f"❌ Unknown command: {args.command}")
    parser.print_help()
    return 2


def _entrypoint() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    _entrypoint()
