"""SideShift.ai swap adapter (https://sideshift.ai/api/v2)."""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..core.swap import decimal_math
from ..core.swap.errors import (
    PermissionReason,
    ProviderError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
    SwapPermissionError,
)
from ..core.swap.helpers import (
    InvalidCurrencyCodes,
    check_amount,
    check_invalid_codes,
    get_addresses,
    get_max_swappable,
    get_network_codes,
    get_quote_amount,
)
from ..core.swap.models import CanonicalProviderQuote, Limit, SwapInfo, SwapOrder, SwapQuote, SwapRequest
from ..core.swap.normalizer import NormalizerConfig, QuoteNormalizer
from ..core.swap.sequencer import TransactionSequencer
from .base import (
    PluginOptions,
    ProviderClient,
    SwapPlugin,
    SwapQuoteOptions,
    parse_init_options,
    validate_response,
)

BASE_URL = "https://sideshift.ai/api/v2"
ORDER_URI = "https://sideshift.ai/orders/"

INVALID_CURRENCY_CODES = InvalidCurrencyCodes()

MAINNET_CODE_TRANSCRIPTION = {
    "zcash": "shielded",
    "binancesmartchain": "bsc",
}

AMOUNT_TOO_LOW = "Amount too low"
AMOUNT_TOO_HIGH = "Amount too high"
METHOD_RE = re.compile(r"method", re.IGNORECASE)
DISABLED_RE = re.compile(r"disabled", re.IGNORECASE)
COUNTRY_BLOCKED_RE = re.compile(r"country-blocked", re.IGNORECASE)

NORMALIZER_CONFIG = NormalizerConfig(order_uri=ORDER_URI)


class SideShiftInitOptions(BaseModel):
    affiliate_id: str = Field(..., alias="affiliateId", min_length=1)


class ErrorMessage(BaseModel):
    message: str


class SideShiftError(BaseModel):
    error: ErrorMessage


class PairRate(BaseModel):
    rate: Decimal
    min: Decimal
    max: Decimal


class Permissions(BaseModel):
    create_shift: bool = Field(..., alias="createShift")


class FixedQuote(BaseModel):
    id: str


class FixedShift(BaseModel):
    id: str
    expires_at: datetime = Field(..., alias="expiresAt")
    deposit_address: str = Field(..., alias="depositAddress")
    deposit_memo: Optional[str] = Field(None, alias="depositMemo")
    settle_amount: Decimal = Field(..., alias="settleAmount")
    deposit_amount: Decimal = Field(..., alias="depositAmount")


def error_message(payload: Any, plugin_id: str) -> Optional[str]:
    if isinstance(payload, dict) and "error" in payload:
        return validate_response(SideShiftError, payload, plugin_id).error.message
    return None


class SideShiftPlugin(SwapPlugin):
    swap_info = SwapInfo(
        plugin_id="sideshift",
        display_name="SideShift.ai",
        support_email="help@sideshift.ai",
    )

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        init = parse_init_options(SideShiftInitOptions, opts, self.swap_info.plugin_id)
        self.affiliate_id = init.affiliate_id
        self.client = ProviderClient(self.swap_info.plugin_id, BASE_URL, self.io)
        self.normalizer = QuoteNormalizer(self.swap_info, NORMALIZER_CONFIG, logger=self.log)
        self.sequencer = TransactionSequencer(logger=self.log)

    async def raise_quote_error(self, request: SwapRequest, limit: Limit, message: str, raw: Any = None) -> None:
        """Map a SideShift error message onto the error taxonomy. Always raises."""

        plugin_id = self.swap_info.plugin_id
        if message == AMOUNT_TOO_LOW and limit.min is not None:
            native_min = await self.normalizer.to_native(request, limit.min, limit.side)
            raise SwapBelowLimitError(plugin_id, native_min, limit.side)
        if message == AMOUNT_TOO_HIGH and limit.max is not None:
            native_max = await self.normalizer.to_native(request, limit.max, limit.side)
            raise SwapAboveLimitError(plugin_id, native_max, limit.side)
        if METHOD_RE.search(message) and DISABLED_RE.search(message):
            raise SwapCurrencyError(plugin_id, request.from_currency_code, request.to_currency_code)
        if COUNTRY_BLOCKED_RE.search(message):
            raise SwapPermissionError(plugin_id, PermissionReason.GEO_RESTRICTION)
        raise ProviderError(plugin_id, message, raw=raw)

    async def fetch_pair(self, request: SwapRequest, networks: Dict[str, str]) -> Limit:
        path = "/pair/{}-{}/{}-{}".format(
            request.from_currency_code,
            networks["from"],
            request.to_currency_code,
            networks["to"],
        )
        payload = await self.client.get_json(path)
        if error_message(payload, self.swap_info.plugin_id) is not None:
            raise SwapCurrencyError(
                self.swap_info.plugin_id, request.from_currency_code, request.to_currency_code
            )
        pair = validate_response(PairRate, payload, self.swap_info.plugin_id)
        return Limit(
            min=decimal_math.to_string(pair.min),
            max=decimal_math.to_string(pair.max),
            side="from",
        )

    async def check_permissions(self) -> None:
        payload = await self.client.get_json("/permissions")
        permissions = validate_response(Permissions, payload, self.swap_info.plugin_id)
        if not permissions.create_shift:
            raise SwapPermissionError(self.swap_info.plugin_id, PermissionReason.GEO_RESTRICTION)

    async def fetch_order(self, request: SwapRequest) -> SwapOrder:
        refund_address, settle_address = await get_addresses(request)
        from_network, to_network = get_network_codes(request, MAINNET_CODE_TRANSCRIPTION)
        networks = {"from": from_network, "to": to_network}

        limit = await self.fetch_pair(request, networks)
        await self.check_permissions()

        quote_amount = await get_quote_amount(request)
        quote_body: Dict[str, Any] = {
            "depositCoin": request.from_currency_code,
            "depositNetwork": from_network,
            "settleCoin": request.to_currency_code,
            "settleNetwork": to_network,
            "affiliateId": self.affiliate_id,
        }
        quote_body["depositAmount" if request.quote_for == "from" else "settleAmount"] = quote_amount

        payload = await self.client.post_json("/quotes", quote_body)
        message = error_message(payload, self.swap_info.plugin_id)
        if message is not None:
            await self.raise_quote_error(request, limit, message, raw=payload)
        fixed_quote = validate_response(FixedQuote, payload, self.swap_info.plugin_id)

        payload = await self.client.post_json(
            "/shifts/fixed",
            {
                "quoteId": fixed_quote.id,
                "affiliateId": self.affiliate_id,
                "settleAddress": settle_address,
                "refundAddress": refund_address,
            },
        )
        message = error_message(payload, self.swap_info.plugin_id)
        if message is not None:
            await self.raise_quote_error(request, limit, message, raw=payload)
        shift = validate_response(FixedShift, payload, self.swap_info.plugin_id)

        quote = CanonicalProviderQuote(
            id=shift.id,
            from_amount_exchange=decimal_math.to_string(shift.deposit_amount),
            to_amount_exchange=decimal_math.to_string(shift.settle_amount),
            deposit_address=shift.deposit_address,
            deposit_extra_id=shift.deposit_memo,
            min_exchange=limit.min,
            max_exchange=limit.max,
            is_fixed_rate=True,
            expires_at=shift.expires_at,
        )
        return await self.normalizer.build_order(
            request,
            quote,
            payout_address=settle_address,
            refund_address=refund_address,
            limit=limit,
        )

    async def fetch_swap_quote(
        self,
        request: SwapRequest,
        user_settings: Optional[Dict[str, Any]] = None,
        opts: Optional[SwapQuoteOptions] = None,
    ) -> SwapQuote:
        check_invalid_codes(INVALID_CURRENCY_CODES, request, self.swap_info)
        check_amount(request, self.swap_info)

        request = await get_max_swappable(self.fetch_order, request, self.swap_info)
        order = await self.fetch_order(request)
        return await self.sequencer.make_quote(order)


def make_sideshift_plugin(opts: PluginOptions) -> SideShiftPlugin:
    return SideShiftPlugin(opts)
