"""Changelly swap adapter (signed JSON-RPC at https://api.changelly.com)."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..core.swap import decimal_math
from ..core.swap.errors import ProviderError, SwapCurrencyError
from ..core.swap.helpers import (
    InvalidCurrencyCodes,
    check_amount,
    check_invalid_codes,
    get_addresses,
    get_max_swappable,
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

BASE_URL = "https://api.changelly.com"
ORDER_URI = "https://changelly.com/transaction/"

INVALID_CURRENCY_CODES = InvalidCurrencyCodes()

# Wallet currency code -> Changelly currency code
CURRENCY_CODE_TRANSCRIPTION = {
    "USDT": "USDT20",
}

INVALID_PARAMS_CODE = -32602
INVALID_CURRENCY_RE = re.compile(r"Invalid currency:")

NORMALIZER_CONFIG = NormalizerConfig(
    fixed_expiration_s=5 * 60,
    estimate_expiration_s=20 * 60,
    reverse_padding="1.02",
    precision=8,
    order_uri=ORDER_URI,
)

Amount = Decimal


class ChangellyInitOptions(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)
    secret: str = Field(..., min_length=1)


class RpcError(BaseModel):
    code: int
    message: str


class RpcReply(BaseModel):
    id: Optional[Union[str, int]] = None
    result: Any = None
    error: Optional[RpcError] = None


class FixRate(BaseModel):
    id: str
    min_from: Decimal = Field(..., alias="minFrom")
    max_from: Decimal = Field(..., alias="maxFrom")
    min_to: Decimal = Field(..., alias="minTo")
    max_to: Decimal = Field(..., alias="maxTo")


class TransactionInfo(BaseModel):
    id: str
    payin_address: str = Field(..., alias="payinAddress")
    payin_extra_id: Optional[str] = Field(None, alias="payinExtraId")
    amount_expected_from: Optional[Decimal] = Field(None, alias="amountExpectedFrom")
    amount_expected_to: Optional[Decimal] = Field(None, alias="amountExpectedTo")

    @field_validator("payin_extra_id")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


@dataclass(frozen=True)
class FixRateLock:
    """Result of ``getFixRate``; ``createFixTransaction`` requires it."""

    rate_id: str
    limit: Limit


def sign_body(body: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body.encode("utf-8"), hashlib.sha512).hexdigest()


class ChangellyPlugin(SwapPlugin):
    swap_info = SwapInfo(
        plugin_id="changelly",
        display_name="Changelly",
        support_email="support@changelly.com",
    )

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        init = parse_init_options(ChangellyInitOptions, opts, self.swap_info.plugin_id)
        self._api_key = init.api_key
        self._secret = init.secret
        self.client = ProviderClient(self.swap_info.plugin_id, BASE_URL, self.io)
        self.normalizer = QuoteNormalizer(self.swap_info, NORMALIZER_CONFIG, logger=self.log)
        self.sequencer = TransactionSequencer(logger=self.log)

    async def call(
        self,
        method: str,
        params: Dict[str, Any],
        *,
        rpc_id: Union[str, int],
        promo_code: Optional[str] = None,
    ) -> RpcReply:
        body = json.dumps({"jsonrpc": "2.0", "id": rpc_id, "method": method, "params": params})
        headers = {
            "Content-Type": "application/json",
            "api-key": self._api_key,
            "sign": sign_body(body, self._secret),
        }
        if promo_code is not None:
            headers["X-Promo-Code"] = promo_code

        response = await self.client.request("POST", "/", content=body, headers=headers)
        if response.is_error:
            raise ProviderError(
                self.swap_info.plugin_id,
                f"returned error code {response.status_code}",
                raw=response.text,
            )
        return validate_response(RpcReply, self.client.decode(response), self.swap_info.plugin_id)

    def check_reply(self, reply: RpcReply, request: SwapRequest) -> Any:
        if reply.error is not None:
            if reply.error.code == INVALID_PARAMS_CODE or INVALID_CURRENCY_RE.search(reply.error.message):
                raise SwapCurrencyError(
                    self.swap_info.plugin_id, request.from_currency_code, request.to_currency_code
                )
            raise ProviderError(self.swap_info.plugin_id, reply.error.message, raw=reply.error.model_dump())
        return reply.result

    @staticmethod
    def _codes(request: SwapRequest) -> Dict[str, str]:
        return {
            "from": CURRENCY_CODE_TRANSCRIPTION.get(request.from_currency_code, request.from_currency_code),
            "to": CURRENCY_CODE_TRANSCRIPTION.get(request.to_currency_code, request.to_currency_code),
        }

    async def fetch_fix_rate(self, request: SwapRequest) -> FixRateLock:
        reply = await self.call("getFixRate", self._codes(request), rpc_id="one")
        fix_rate = validate_response(FixRate, self.check_reply(reply, request), self.swap_info.plugin_id)
        # Limits are stated in the currency of the side being quoted
        if request.quote_for == "from":
            limit = Limit(
                min=decimal_math.to_string(fix_rate.min_from),
                max=decimal_math.to_string(fix_rate.max_from),
                side="from",
            )
        else:
            limit = Limit(
                min=decimal_math.to_string(fix_rate.min_to),
                max=decimal_math.to_string(fix_rate.max_to),
                side="to",
            )
        return FixRateLock(rate_id=fix_rate.id, limit=limit)

    async def create_fix_transaction(
        self,
        request: SwapRequest,
        lock: FixRateLock,
        quote_amount: str,
        *,
        payout_address: str,
        refund_address: str,
        promo_code: Optional[str],
    ) -> TransactionInfo:
        params: Dict[str, Any] = {
            **self._codes(request),
            "address": payout_address,
            "extraId": None,
            "refundAddress": refund_address,
            "refundExtraId": None,
            "rateId": lock.rate_id,
        }
        params["amount" if request.quote_for == "from" else "amountTo"] = quote_amount
        reply = await self.call("createFixTransaction", params, rpc_id=2, promo_code=promo_code)
        return validate_response(TransactionInfo, self.check_reply(reply, request), self.swap_info.plugin_id)

    async def get_fixed_quote(self, request: SwapRequest, promo_code: Optional[str]) -> SwapOrder:
        refund_address, payout_address = await get_addresses(request)
        quote_amount = await get_quote_amount(request)

        lock = await self.fetch_fix_rate(request)
        await self.normalizer.check_limits(request, lock.limit, native_amount=request.native_amount)

        info = await self.create_fix_transaction(
            request,
            lock,
            quote_amount,
            payout_address=payout_address,
            refund_address=refund_address,
            promo_code=promo_code,
        )
        if info.amount_expected_from is None or info.amount_expected_to is None:
            raise ProviderError(self.swap_info.plugin_id, "fixed transaction is missing expected amounts", raw=info.model_dump())

        quote = CanonicalProviderQuote(
            id=info.id,
            from_amount_exchange=decimal_math.to_string(info.amount_expected_from),
            to_amount_exchange=decimal_math.to_string(info.amount_expected_to),
            deposit_address=info.payin_address,
            deposit_extra_id=info.payin_extra_id,
            is_fixed_rate=True,
        )
        return await self.normalizer.build_order(
            request,
            quote,
            payout_address=payout_address,
            refund_address=refund_address,
            limit=lock.limit,
        )

    async def get_estimate(self, request: SwapRequest, promo_code: Optional[str]) -> SwapOrder:
        refund_address, payout_address = await get_addresses(request)
        quote_amount = await get_quote_amount(request)
        codes = self._codes(request)

        # A reverse estimate asks for the from amount of the target amount
        if request.quote_for == "from":
            exchange_params = {"from": codes["from"], "to": codes["to"], "amount": quote_amount}
        else:
            exchange_params = {"from": codes["to"], "to": codes["from"], "amount": quote_amount}

        min_reply, amount_reply = await asyncio.gather(
            self.call("getMinAmount", codes, rpc_id="one"),
            self.call("getExchangeAmount", exchange_params, rpc_id="two"),
        )
        min_amount = validate_response(Amount, self.check_reply(min_reply, request), self.swap_info.plugin_id)
        limit = Limit(min=decimal_math.to_string(min_amount), side="from")
        exchange_amount = validate_response(Amount, self.check_reply(amount_reply, request), self.swap_info.plugin_id)
        exchange_amount = decimal_math.to_string(exchange_amount)

        if request.quote_for == "from":
            from_amount = quote_amount
            from_native_amount = request.native_amount
        else:
            from_amount = self.normalizer.padded_from_amount(exchange_amount)
            from_native_amount = await request.from_wallet.denomination_to_native(
                from_amount, request.from_currency_code
            )
        await self.normalizer.check_limits(request, limit, native_amount=from_native_amount)

        reply = await self.call(
            "createTransaction",
            {
                "amount": from_amount,
                **codes,
                "address": payout_address,
                "extraId": None,
                "refundAddress": refund_address,
                "refundExtraId": None,
            },
            rpc_id=3,
            promo_code=promo_code,
        )
        info = validate_response(TransactionInfo, self.check_reply(reply, request), self.swap_info.plugin_id)

        quote = CanonicalProviderQuote(
            id=info.id,
            from_amount_exchange=quote_amount if request.quote_for == "from" else exchange_amount,
            to_amount_exchange=exchange_amount if request.quote_for == "from" else quote_amount,
            deposit_address=info.payin_address,
            deposit_extra_id=info.payin_extra_id,
            min_exchange=limit.min,
            is_fixed_rate=False,
        )
        return await self.normalizer.build_order(
            request,
            quote,
            payout_address=payout_address,
            refund_address=refund_address,
            limit=limit,
        )

    async def fetch_order(self, request: SwapRequest, promo_code: Optional[str] = None) -> SwapOrder:
        return await self.normalizer.select(
            lambda: self.get_fixed_quote(request, promo_code),
            lambda: self.get_estimate(request, promo_code),
        )

    async def fetch_swap_quote(
        self,
        request: SwapRequest,
        user_settings: Optional[Dict[str, Any]] = None,
        opts: Optional[SwapQuoteOptions] = None,
    ) -> SwapQuote:
        promo_code = opts.promo_code if opts else None
        check_invalid_codes(INVALID_CURRENCY_CODES, request, self.swap_info)
        check_amount(request, self.swap_info)

        request = await get_max_swappable(
            lambda req: self.fetch_order(req, promo_code), request, self.swap_info
        )
        order = await self.fetch_order(request, promo_code)
        return await self.sequencer.make_quote(order)


def make_changelly_plugin(opts: PluginOptions) -> ChangellyPlugin:
    return ChangellyPlugin(opts)
