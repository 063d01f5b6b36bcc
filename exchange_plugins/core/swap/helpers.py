"""Request-side helpers shared by the swap adapters."""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..wallet.models import Memo
from ..wallet.protocol import CurrencyWallet
from . import decimal_math
from .errors import InsufficientFundsError, NoAmountSpecifiedError, SwapCurrencyError
from .models import SwapInfo, SwapOrder, SwapRequest

# Legacy addresses are preferred when a wallet offers one, except for these.
DONT_USE_LEGACY = {"DGB"}

CodeList = Union[str, List[str]]  # "allCodes" | "allTokens" | explicit list


@dataclass
class InvalidCurrencyCodes:
    """Currency codes a provider refuses, keyed by wallet plugin id."""

    from_codes: Dict[str, CodeList] = field(default_factory=dict)
    to_codes: Dict[str, CodeList] = field(default_factory=dict)


DEFAULT_INVALID_CODES = InvalidCurrencyCodes(
    from_codes={"ethereum": ["REP"]},
    to_codes={"ethereum": ["REP"]},
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_in_future(date: Optional[datetime], margin_seconds: int = 30) -> Optional[datetime]:
    """Push ``date`` out to at least ``margin_seconds`` from now."""

    if date is None:
        return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    target = utc_now() + timedelta(seconds=margin_seconds)
    return date if target < date else target


def expires_in(seconds: int) -> datetime:
    return utc_now() + timedelta(seconds=seconds)


async def get_address(wallet: CurrencyWallet, currency_code: str) -> str:
    info = await wallet.get_receive_address(currency_code)
    if info.segwit_address:
        return info.segwit_address
    if info.legacy_address and currency_code not in DONT_USE_LEGACY:
        return info.legacy_address
    return info.public_address


async def get_addresses(request: SwapRequest) -> Tuple[str, str]:
    """Refund (from) and payout (to) addresses, fetched concurrently."""

    from_address, to_address = await asyncio.gather(
        get_address(request.from_wallet, request.from_currency_code),
        get_address(request.to_wallet, request.to_currency_code),
    )
    return from_address, to_address


async def get_quote_amount(request: SwapRequest) -> str:
    """``native_amount`` in display units of the side ``quote_for`` names."""

    return await request.quote_wallet.native_to_denomination(
        request.native_amount, request.quote_currency_code
    )


def make_memos(extra_id: Optional[str]) -> List[Memo]:
    if extra_id is None or extra_id == "":
        return []
    return [Memo(type="text", value=extra_id)]


def network_fee_option(currency_code: str) -> str:
    return "high" if currency_code.upper() == "BTC" else "standard"


def _is_listed(codes: Dict[str, CodeList], plugin_id: str, main_code: str, code: str) -> bool:
    listed = codes.get(plugin_id)
    if listed is None:
        return False
    if listed == "allCodes":
        return True
    if listed == "allTokens":
        return main_code != code
    return code in listed


def check_invalid_codes(
    invalid_codes: InvalidCurrencyCodes,
    request: SwapRequest,
    swap_info: SwapInfo,
) -> None:
    """Raise ``SwapCurrencyError`` for disabled codes or same-asset swaps."""

    from_info = request.from_wallet.currency_info
    to_info = request.to_wallet.currency_info
    same_asset = (
        from_info.plugin_id == to_info.plugin_id
        and request.from_currency_code == request.to_currency_code
    )

    disabled = same_asset
    for table in (invalid_codes, DEFAULT_INVALID_CODES):
        disabled = disabled or _is_listed(
            table.from_codes, from_info.plugin_id, from_info.currency_code, request.from_currency_code
        )
        disabled = disabled or _is_listed(
            table.to_codes, to_info.plugin_id, to_info.currency_code, request.to_currency_code
        )

    if disabled:
        raise SwapCurrencyError(swap_info.plugin_id, request.from_currency_code, request.to_currency_code)


def get_network_codes(
    request: SwapRequest,
    mainnet_transcription: Dict[str, str],
) -> Tuple[str, str]:
    """Provider network codes for both wallets' chains."""

    from_info = request.from_wallet.currency_info
    to_info = request.to_wallet.currency_info
    return (
        mainnet_transcription.get(from_info.plugin_id, from_info.currency_code),
        mainnet_transcription.get(to_info.plugin_id, to_info.currency_code),
    )


def check_amount(request: SwapRequest, swap_info: SwapInfo) -> None:
    if request.quote_for != "max" and decimal_math.eq(request.native_amount, "0"):
        raise NoAmountSpecifiedError(swap_info.plugin_id)


FetchOrder = Callable[[SwapRequest], Awaitable[SwapOrder]]


async def get_max_swappable(fetch_order: FetchOrder, request: SwapRequest, swap_info: SwapInfo) -> SwapRequest:
    """Resolve a ``max`` request into a ``from`` request for the spendable balance.

    Quotes the full balance once to learn the provider's deposit target, then
    lets the wallet compute what it can actually send there after fees.
    """

    if request.quote_for != "max":
        return request

    balance = await request.from_wallet.get_balance(request.from_currency_code)
    if not decimal_math.gt(balance, "0"):
        raise InsufficientFundsError(request.from_currency_code, swap_info.plugin_id)

    order = await fetch_order(request.with_amount(balance, "from"))
    spend_info = copy.deepcopy(order.spend_info)
    for target in spend_info.spend_targets:
        target.native_amount = None
    max_amount = await request.from_wallet.get_max_spendable(spend_info)
    if not decimal_math.gt(max_amount, "0"):
        raise InsufficientFundsError(request.from_currency_code, swap_info.plugin_id)

    return request.with_amount(max_amount, "from")
