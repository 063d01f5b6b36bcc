"""Swap and exchange-rate plugins for crypto wallets."""

__version__ = "0.1.0"
