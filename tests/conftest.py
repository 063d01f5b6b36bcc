"""Shared fixtures: an in-memory wallet and an httpx routing transport."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from exchange_plugins.core.swap import decimal_math
from exchange_plugins.core.wallet.models import (
    CurrencyInfo,
    ReceiveAddress,
    SpendInfo,
    WalletTransaction,
)
from exchange_plugins.providers.base import PluginIO, PluginOptions

USDC_CONTRACT = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
DAI_CONTRACT = "0x6b175474e89094c44da98b954eedeac495271d0f"


class FakeWallet:
    """Wallet double with per-code multipliers and an ordered call log."""

    def __init__(
        self,
        wallet_id: str,
        currency_info: CurrencyInfo,
        multipliers: Dict[str, str],
        *,
        address: str,
        segwit_address: Optional[str] = None,
        legacy_address: Optional[str] = None,
        balance: str = "0",
        max_spendable: Optional[str] = None,
        fee: str = "1000",
        call_log: Optional[List[Tuple[str, str]]] = None,
    ) -> None:
        self.id = wallet_id
        self.currency_info = currency_info
        self.multipliers = multipliers
        self.address = address
        self.segwit_address = segwit_address
        self.legacy_address = legacy_address
        self.balance = balance
        self.max_spendable = max_spendable
        self.fee = fee
        self.calls: List[Tuple[str, str]] = call_log if call_log is not None else []
        self.spends: List[SpendInfo] = []
        self._broadcasts = 0

    def _multiplier(self, currency_code: str) -> str:
        return self.multipliers[currency_code]

    async def get_receive_address(self, currency_code: str) -> ReceiveAddress:
        return ReceiveAddress(
            public_address=self.address,
            segwit_address=self.segwit_address,
            legacy_address=self.legacy_address,
        )

    async def native_to_denomination(self, native_amount: str, currency_code: str) -> str:
        multiplier = self._multiplier(currency_code)
        return decimal_math.div(native_amount, multiplier, len(multiplier) - 1)

    async def denomination_to_native(self, exchange_amount: str, currency_code: str) -> str:
        return decimal_math.to_native_int(decimal_math.mul(exchange_amount, self._multiplier(currency_code)))

    async def get_balance(self, currency_code: str) -> str:
        return self.balance

    async def get_max_spendable(self, spend_info: SpendInfo) -> str:
        self.calls.append(("get_max_spendable", spend_info.currency_code))
        if self.max_spendable is not None:
            return self.max_spendable
        return decimal_math.sub(self.balance, self.fee)

    async def make_spend(self, spend_info: SpendInfo) -> WalletTransaction:
        self.spends.append(spend_info)
        kind = "approval" if spend_info.token_approval is not None else "swap"
        self.calls.append(("make_spend", kind))
        amount = "0"
        for target in spend_info.spend_targets:
            amount = decimal_math.add(amount, target.native_amount or "0")
        is_token = spend_info.currency_code != self.currency_info.currency_code
        return WalletTransaction(
            txid="",
            currency_code=spend_info.currency_code,
            native_amount=f"-{amount}" if amount != "0" else "0",
            network_fee="0" if is_token else self.fee,
            parent_network_fee=self.fee if is_token else None,
            metadata=dict(spend_info.metadata),
            swap_data=spend_info.swap_data,
            token_approval=spend_info.token_approval,
        )

    @staticmethod
    def _kind(tx: WalletTransaction) -> str:
        return "approval" if tx.token_approval is not None else "swap"

    async def sign_tx(self, tx: WalletTransaction) -> WalletTransaction:
        self.calls.append(("sign_tx", self._kind(tx)))
        tx.signed_tx = "signed"
        return tx

    async def broadcast_tx(self, tx: WalletTransaction) -> WalletTransaction:
        self._broadcasts += 1
        self.calls.append(("broadcast_tx", self._kind(tx)))
        tx.txid = f"0xtx{self._broadcasts}"
        return tx

    async def save_tx(self, tx: WalletTransaction) -> None:
        self.calls.append(("save_tx", self._kind(tx)))


Responder = Union[Dict[str, Any], List[Any], Callable[[httpx.Request], httpx.Response], httpx.Response]


class Router:
    """Routes (method, path) to canned JSON replies and records requests."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, reply: Responder, status_code: int = 200) -> None:
        if isinstance(reply, (dict, list)):
            reply = httpx.Response(status_code, json=reply)
        self.routes[(method.upper(), path)] = reply

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.routes.get((request.method, request.url.path))
        if reply is None:
            return httpx.Response(404, json={"error": {"message": f"no route {request.url.path}"}})
        if callable(reply):
            return reply(request)
        return reply

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def body(self, index: int) -> Any:
        return json.loads(self.requests[index].content)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def call_log() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
def btc_wallet(call_log):
    """Bitcoin wallet: 1 BTC = 1e8 sats."""
    return FakeWallet(
        "btc-wallet",
        CurrencyInfo(plugin_id="bitcoin", currency_code="BTC", display_name="Bitcoin"),
        {"BTC": "100000000"},
        address="1BtcLegacyAddress",
        segwit_address="bc1qbtcsegwitaddress",
        balance="50000000",
        call_log=call_log,
    )


@pytest.fixture
def eth_wallet(call_log):
    """Ethereum wallet with USDC (6 decimals) and DAI (18 decimals)."""
    return FakeWallet(
        "eth-wallet",
        CurrencyInfo(
            plugin_id="ethereum",
            currency_code="ETH",
            display_name="Ethereum",
            tokens={"USDC": USDC_CONTRACT, "DAI": DAI_CONTRACT},
        ),
        {"ETH": "1000000000000000000", "USDC": "1000000", "DAI": "1000000000000000000"},
        address="0x50ac5cfcc81bb0872e85255d7079f8a529345d16",
        balance="2000000000000000000",
        fee="420000000000000",
        call_log=call_log,
    )


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def plugin_opts(router):
    """Build ``PluginOptions`` whose HTTP goes through ``router``."""

    def _opts(init_options: Optional[Dict[str, Any]] = None) -> PluginOptions:
        return PluginOptions(io=PluginIO(transport=router.transport()), init_options=init_options or {})

    return _opts
