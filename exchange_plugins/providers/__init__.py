"""Swap and rate provider adapters."""

from .base import PluginIO, PluginOptions, RatePlugin, SwapPlugin, SwapQuoteOptions

__all__ = [
    "PluginIO",
    "PluginOptions",
    "RatePlugin",
    "SwapPlugin",
    "SwapQuoteOptions",
]
