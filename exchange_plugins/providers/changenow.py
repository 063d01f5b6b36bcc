"""ChangeNOW swap adapter (https://api.changenow.io/v2)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from ..core.swap import decimal_math
from ..core.swap.errors import ProviderError, SwapCurrencyError
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

Flow = Literal["fixed-rate", "standard"]

BASE_URL = "https://api.changenow.io/v2"
ORDER_URI = "https://changenow.io/exchange/txs/"

INVALID_CURRENCY_CODES = InvalidCurrencyCodes(
    from_codes={},
    to_codes={"zcash": ["ZEC"]},
)

# Network names that don't match the parent currency code
MAINNET_CODE_TRANSCRIPTION = {
    "binancesmartchain": "BSC",
}

# Error codes meaning the pair (or this flow for the pair) is unavailable
CURRENCY_ERROR_CODES = {
    "pair_is_inactive",
    "fixed_rate_not_enabled",
    "not_valid_params",
    "not_valid_currency",
}

NORMALIZER_CONFIG = NormalizerConfig(
    fixed_expiration_s=60,
    estimate_expiration_s=60,
    order_uri=ORDER_URI,
)


class ChangeNowInitOptions(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)


class ChangeNowError(BaseModel):
    error: str
    message: Optional[str] = None


class MarketRange(BaseModel):
    min_amount: Decimal = Field(..., alias="minAmount")
    max_amount: Optional[Decimal] = Field(None, alias="maxAmount")


class EstimatedAmount(BaseModel):
    rate_id: Optional[str] = Field(None, alias="rateId")
    valid_until: Optional[datetime] = Field(None, alias="validUntil")


class ChangeNowOrder(BaseModel):
    id: str
    from_amount: Decimal = Field(..., alias="fromAmount")
    to_amount: Decimal = Field(..., alias="toAmount")
    payin_address: str = Field(..., alias="payinAddress")
    payin_extra_id: Optional[str] = Field(None, alias="payinExtraId")

    @field_validator("payin_extra_id")
    @classmethod
    def _blank_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


@dataclass(frozen=True)
class NetworkCodes:
    from_currency: str
    to_currency: str
    from_network: str
    to_network: str

    def params(self) -> Dict[str, str]:
        return {
            "fromCurrency": self.from_currency,
            "toCurrency": self.to_currency,
            "fromNetwork": self.from_network,
            "toNetwork": self.to_network,
        }


@dataclass(frozen=True)
class RateLock:
    """Output of the estimate call; the order call cannot be made without it."""

    flow: Flow
    is_selling: bool
    amount: str
    rate_id: Optional[str]
    valid_until: Optional[datetime]


class ChangeNowPlugin(SwapPlugin):
    swap_info = SwapInfo(
        plugin_id="changenow",
        display_name="Change NOW",
        support_email="support@changenow.io",
    )

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        init = parse_init_options(ChangeNowInitOptions, opts, self.swap_info.plugin_id)
        self.client = ProviderClient(
            self.swap_info.plugin_id,
            BASE_URL,
            self.io,
            headers={"x-changenow-api-key": init.api_key},
        )
        self.normalizer = QuoteNormalizer(self.swap_info, NORMALIZER_CONFIG, logger=self.log)
        self.sequencer = TransactionSequencer(logger=self.log)

    def _raise_for_error(self, payload: Any, request: SwapRequest) -> None:
        if not isinstance(payload, dict) or payload.get("error") is None:
            return
        err = validate_response(ChangeNowError, payload, self.swap_info.plugin_id)
        if err.error in CURRENCY_ERROR_CODES:
            raise SwapCurrencyError(self.swap_info.plugin_id, request.from_currency_code, request.to_currency_code)
        raise ProviderError(self.swap_info.plugin_id, err.message or err.error, raw=payload)

    async def fetch_range(self, request: SwapRequest, flow: Flow, codes: NetworkCodes) -> Limit:
        payload = await self.client.get_json("/exchange/range", params={"flow": flow, **codes.params()})
        self._raise_for_error(payload, request)
        market_range = validate_response(MarketRange, payload, self.swap_info.plugin_id)
        return Limit(
            min=decimal_math.to_string(market_range.min_amount),
            max=decimal_math.to_string(market_range.max_amount) if market_range.max_amount is not None else None,
            side="from",
        )

    async def fetch_rate_lock(
        self,
        request: SwapRequest,
        flow: Flow,
        is_selling: bool,
        amount: str,
        codes: NetworkCodes,
    ) -> RateLock:
        params = {
            "flow": flow,
            "useRateId": "true" if flow == "fixed-rate" else "false",
            "type": "direct" if is_selling else "reverse",
            "fromAmount" if is_selling else "toAmount": amount,
            **codes.params(),
        }
        payload = await self.client.get_json("/exchange/estimated-amount", params=params)
        self._raise_for_error(payload, request)
        estimate = validate_response(EstimatedAmount, payload, self.swap_info.plugin_id)
        return RateLock(
            flow=flow,
            is_selling=is_selling,
            amount=amount,
            rate_id=estimate.rate_id,
            valid_until=estimate.valid_until,
        )

    async def create_order(
        self,
        request: SwapRequest,
        lock: RateLock,
        codes: NetworkCodes,
        *,
        payout_address: str,
        refund_address: str,
        promo_code: Optional[str],
    ) -> ChangeNowOrder:
        body = {
            "fromCurrency": codes.from_currency,
            "toCurrency": codes.to_currency,
            "fromNetwork": codes.from_network,
            "toNetwork": codes.to_network,
            "fromAmount": lock.amount if lock.is_selling else "",
            "toAmount": "" if lock.is_selling else lock.amount,
            "type": "direct" if lock.is_selling else "reverse",
            "address": payout_address,
            "refundAddress": refund_address,
            "flow": lock.flow,
            "rateId": lock.rate_id,
            "payload": {"promoCode": promo_code},
        }
        response = await self.client.request("POST", "/exchange", json=body)
        if response.is_error:
            if "json" in response.headers.get("content-type", ""):
                self._raise_for_error(self.client.decode(response), request)
            raise ProviderError(
                self.swap_info.plugin_id,
                f"call returned error code {response.status_code}, {response.text}",
                raw=response.text,
            )
        return validate_response(ChangeNowOrder, self.client.decode(response), self.swap_info.plugin_id)

    def _to_canonical(self, order: ChangeNowOrder, lock: RateLock, limit: Optional[Limit]) -> CanonicalProviderQuote:
        return CanonicalProviderQuote(
            id=order.id,
            from_amount_exchange=decimal_math.to_string(order.from_amount),
            to_amount_exchange=decimal_math.to_string(order.to_amount),
            deposit_address=order.payin_address,
            deposit_extra_id=order.payin_extra_id,
            min_exchange=limit.min if limit else None,
            max_exchange=limit.max if limit else None,
            is_fixed_rate=lock.flow == "fixed-rate",
            expires_at=lock.valid_until,
        )

    async def _swap_sell(
        self,
        request: SwapRequest,
        flow: Flow,
        codes: NetworkCodes,
        addresses: Tuple[str, str],
        promo_code: Optional[str],
    ) -> SwapOrder:
        refund_address, payout_address = addresses
        amount = await get_quote_amount(request)

        limit = await self.fetch_range(request, flow, codes)
        await self.normalizer.check_limits(request, limit, native_amount=request.native_amount)

        lock = await self.fetch_rate_lock(request, flow, True, amount, codes)
        order = await self.create_order(
            request,
            lock,
            codes,
            payout_address=payout_address,
            refund_address=refund_address,
            promo_code=promo_code,
        )
        return await self.normalizer.build_order(
            request,
            self._to_canonical(order, lock, limit),
            payout_address=payout_address,
            refund_address=refund_address,
            limit=limit,
        )

    async def _swap_buy(
        self,
        request: SwapRequest,
        codes: NetworkCodes,
        addresses: Tuple[str, str],
        promo_code: Optional[str],
    ) -> SwapOrder:
        # Min/max are stated on the from side and are not checked for purchases
        refund_address, payout_address = addresses
        amount = await get_quote_amount(request)

        lock = await self.fetch_rate_lock(request, "fixed-rate", False, amount, codes)
        order = await self.create_order(
            request,
            lock,
            codes,
            payout_address=payout_address,
            refund_address=refund_address,
            promo_code=promo_code,
        )
        return await self.normalizer.build_order(
            request,
            self._to_canonical(order, lock, None),
            payout_address=payout_address,
            refund_address=refund_address,
            limit=Limit(),
        )

    async def fetch_order(self, request: SwapRequest, promo_code: Optional[str] = None) -> SwapOrder:
        addresses = await get_addresses(request)
        from_network, to_network = get_network_codes(request, MAINNET_CODE_TRANSCRIPTION)
        codes = NetworkCodes(
            from_currency=request.from_currency_code,
            to_currency=request.to_currency_code,
            from_network=from_network,
            to_network=to_network,
        )

        if request.quote_for == "from":
            return await self.normalizer.select(
                lambda: self._swap_sell(request, "fixed-rate", codes, addresses, promo_code),
                lambda: self._swap_sell(request, "standard", codes, addresses, promo_code),
            )
        return await self._swap_buy(request, codes, addresses, promo_code)

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


def make_changenow_plugin(opts: PluginOptions) -> ChangeNowPlugin:
    return ChangeNowPlugin(opts)
