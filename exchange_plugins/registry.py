"""Plugin id -> factory lookup for hosts and the CLI."""

from __future__ import annotations

from typing import Callable, Dict, Union

from .providers.base import PluginOptions, RatePlugin, SwapPlugin
from .providers.changelly import make_changelly_plugin
from .providers.changenow import make_changenow_plugin
from .providers.coinbase import make_coinbase_plugin
from .providers.coincap import make_coincap_plugin
from .providers.currencyconverter import make_currencyconverter_plugin
from .providers.sideshift import make_sideshift_plugin
from .providers.zeroex import make_zeroex_plugin

Plugin = Union[SwapPlugin, RatePlugin]
PluginFactory = Callable[[PluginOptions], Plugin]

SWAP_PLUGIN_FACTORIES: Dict[str, PluginFactory] = {
    "changelly": make_changelly_plugin,
    "changenow": make_changenow_plugin,
    "sideshift": make_sideshift_plugin,
    "zeroex": make_zeroex_plugin,
}

RATE_PLUGIN_FACTORIES: Dict[str, PluginFactory] = {
    "coinbase": make_coinbase_plugin,
    "coincap": make_coincap_plugin,
    "currencyconverter": make_currencyconverter_plugin,
}

PLUGIN_FACTORIES: Dict[str, PluginFactory] = {**SWAP_PLUGIN_FACTORIES, **RATE_PLUGIN_FACTORIES}


def make_plugin(plugin_id: str, opts: PluginOptions) -> Plugin:
    try:
        factory = PLUGIN_FACTORIES[plugin_id]
    except KeyError:
        raise ValueError(f"Unknown plugin: {plugin_id}") from None
    return factory(opts)
