"""Typed models used by the swap subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from ..wallet.models import SpendInfo, WalletTransaction
from ..wallet.protocol import CurrencyWallet
from . import decimal_math
from .errors import ProviderResponseError

QuoteFor = Literal["from", "to", "max"]
LimitSide = Literal["from", "to"]

QUOTE_DIRECTIONS = ("from", "to", "max")


@dataclass(frozen=True)
class SwapInfo:
    plugin_id: str
    display_name: str
    support_email: str = ""
    is_dex: bool = False


@dataclass(frozen=True)
class SwapRequest:
    """A user's swap request as handed over by the host. Never mutated."""

    from_wallet: CurrencyWallet
    to_wallet: CurrencyWallet
    from_currency_code: str
    to_currency_code: str
    native_amount: str
    quote_for: QuoteFor = "from"

    def __post_init__(self) -> None:
        if self.quote_for not in QUOTE_DIRECTIONS:
            raise ValueError(f"Invalid quote_for {self.quote_for!r}")
        if not decimal_math.is_integer_string(self.native_amount):
            raise ValueError(f"native_amount must be an integer string, got {self.native_amount!r}")

    def with_amount(self, native_amount: str, quote_for: QuoteFor) -> "SwapRequest":
        return replace(self, native_amount=native_amount, quote_for=quote_for)

    @property
    def quote_wallet(self) -> CurrencyWallet:
        """Wallet on the side ``native_amount`` is denominated in."""
        return self.to_wallet if self.quote_for == "to" else self.from_wallet

    @property
    def quote_currency_code(self) -> str:
        return self.to_currency_code if self.quote_for == "to" else self.from_currency_code


@dataclass(frozen=True)
class Limit:
    """Provider bounds in display units of ``side``."""

    min: Optional[str] = None
    max: Optional[str] = None
    side: LimitSide = "from"

    def validate(self, plugin_id: str) -> None:
        if self.min is not None and self.max is not None and decimal_math.gt(self.min, self.max):
            raise ProviderResponseError(
                plugin_id,
                f"minimum {self.min} exceeds maximum {self.max}",
                raw={"min": self.min, "max": self.max},
            )


@dataclass(frozen=True)
class CanonicalProviderQuote:
    """A provider response reduced to the fields the normalizer needs."""

    id: str
    from_amount_exchange: str
    to_amount_exchange: str
    deposit_address: str
    deposit_extra_id: Optional[str] = None
    min_exchange: Optional[str] = None
    max_exchange: Optional[str] = None
    is_fixed_rate: bool = False
    expires_at: Optional[datetime] = None
    order_uri: Optional[str] = None

    @property
    def limit(self) -> Limit:
        return Limit(min=self.min_exchange, max=self.max_exchange, side="from")


@dataclass
class NetworkFee:
    currency_code: str
    native_amount: str


@dataclass
class ApprovalPlan:
    """An allowance approval that must settle before the swap spend."""

    spend_info: SpendInfo
    token_contract_address: str
    spender_address: str
    native_amount: str


@dataclass
class SwapOrder:
    """Everything needed to build the host-facing quote."""

    request: SwapRequest
    swap_info: SwapInfo
    spend_info: SpendInfo
    from_native_amount: str
    to_native_amount: str
    destination_address: str
    expiration_date: Optional[datetime]
    is_estimate: bool
    quote_id: Optional[str] = None
    approval: Optional[ApprovalPlan] = None
    metadata_notes: Optional[str] = None


@dataclass
class SwapResult:
    transaction: WalletTransaction
    order_id: Optional[str]
    destination_address: str


@dataclass
class SwapQuote:
    """Quote returned to the host. ``approve`` signs and broadcasts in order."""

    from_native_amount: str
    to_native_amount: str
    network_fee: NetworkFee
    destination_address: str
    plugin_id: str
    expiration_date: Optional[datetime]
    quote_id: Optional[str]
    is_estimate: bool
    request: SwapRequest
    swap_info: SwapInfo
    transactions: List[WalletTransaction] = field(default_factory=list, repr=False)
    _approve: Optional[Callable[[Optional[Dict[str, Any]]], Awaitable[SwapResult]]] = field(
        default=None, repr=False
    )
    _close: Optional[Callable[[], Awaitable[None]]] = field(default=None, repr=False)

    async def approve(self, metadata: Optional[Dict[str, Any]] = None) -> SwapResult:
        if self._approve is None:
            raise RuntimeError(f"{self.plugin_id} quote cannot be approved")
        return await self._approve(metadata)

    async def close(self) -> None:
        if self._close is not None:
            await self._close()


@dataclass(frozen=True)
class PairHint:
    from_currency: str
    to_currency: str


@dataclass(frozen=True)
class RatePair:
    from_currency: str
    to_currency: str
    rate: float


@dataclass(frozen=True)
class ExchangeInfo:
    plugin_id: str
    display_name: str
