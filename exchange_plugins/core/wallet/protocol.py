"""Wallet collaborator contract consumed by the swap plugins.

The host runtime owns wallets; plugins only call these methods and never mutate
wallet state directly. Unit conversion lives here because every currency (and
every token under a currency) carries its own multiplier.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import CurrencyInfo, ReceiveAddress, SpendInfo, WalletTransaction


@runtime_checkable
class CurrencyWallet(Protocol):
    id: str
    currency_info: CurrencyInfo

    async def get_receive_address(self, currency_code: str) -> ReceiveAddress:
        ...

    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        """Integer smallest-unit string -> display-unit decimal string."""
        ...

    async def denomination_to_native(self, exchange_amount: str, currency_code: str) -> str:
        """Display-unit decimal string -> integer smallest-unit string."""
        ...

    async def get_balance(self, currency_code: str) -> str:
        ...

    async def get_max_spendable(self, spend_info: SpendInfo) -> str:
        ...

    async def make_spend(self, spend_info: SpendInfo) -> WalletTransaction:
        ...

    async def sign_tx(self, tx: WalletTransaction) -> WalletTransaction:
        ...

    async def broadcast_tx(self, tx: WalletTransaction) -> WalletTransaction:
        ...

    async def save_tx(self, tx: WalletTransaction) -> None:
        ...
