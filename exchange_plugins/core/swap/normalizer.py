"""Quote normalization shared by the centralized swap adapters.

Adapters reduce a provider response to a :class:`CanonicalProviderQuote`; the
normalizer turns that into native amounts on the correct side, enforces the
provider limits in native units and shapes the :class:`SwapOrder` the sequencer
turns into a host quote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..wallet.models import SpendInfo, SpendTarget, SwapData
from . import decimal_math
from .errors import SwapAboveLimitError, SwapBelowLimitError, SwapCurrencyError
from .helpers import ensure_in_future, expires_in, make_memos, network_fee_option
from .models import CanonicalProviderQuote, Limit, LimitSide, SwapInfo, SwapOrder, SwapRequest

T = TypeVar("T")


@dataclass(frozen=True)
class NormalizerConfig:
    """Per-provider tuning."""

    fixed_expiration_s: int = 60
    estimate_expiration_s: int = 60
    # Multiplier on the from amount of reverse estimate quotes
    reverse_padding: Optional[str] = None
    # Fractional digits kept on padded exchange amounts
    precision: int = decimal_math.DEFAULT_PRECISION
    order_uri: Optional[str] = None


@dataclass
class NormalizedAmounts:
    from_native_amount: str
    to_native_amount: str
    is_estimate: bool
    expiration_date: Optional[datetime]


class QuoteNormalizer:
    """Turns canonical provider quotes into directionally-correct orders."""

    def __init__(
        self,
        swap_info: SwapInfo,
        config: Optional[NormalizerConfig] = None,
        *,
        logger: Optional[Any] = None,
    ) -> None:
        self.swap_info = swap_info
        self.config = config or NormalizerConfig()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def plugin_id(self) -> str:
        return self.swap_info.plugin_id

    async def to_native(self, request: SwapRequest, exchange_amount: str, side: LimitSide) -> str:
        if side == "from":
            return await request.from_wallet.denomination_to_native(exchange_amount, request.from_currency_code)
        return await request.to_wallet.denomination_to_native(exchange_amount, request.to_currency_code)

    async def check_limits(self, request: SwapRequest, limit: Limit, *, native_amount: str) -> None:
        """Compare ``native_amount`` (on ``limit.side``) against the bounds.

        Bounds are converted with the wallet of the side they are stated in, so
        the error payload is in the same native unit as the amount.
        """

        limit.validate(self.plugin_id)

        if limit.min is not None:
            native_min = await self.to_native(request, limit.min, limit.side)
            if decimal_math.lt(native_amount, native_min):
                self._logger.info(
                    "%s amount %s below minimum %s (%s side)",
                    self.plugin_id, native_amount, native_min, limit.side,
                )
                raise SwapBelowLimitError(self.plugin_id, native_min, limit.side)

        if limit.max is not None:
            native_max = await self.to_native(request, limit.max, limit.side)
            if decimal_math.gt(native_amount, native_max):
                self._logger.info(
                    "%s amount %s above maximum %s (%s side)",
                    self.plugin_id, native_amount, native_max, limit.side,
                )
                raise SwapAboveLimitError(self.plugin_id, native_max, limit.side)

    def padded_from_amount(self, from_amount_exchange: str) -> str:
        padding = self.config.reverse_padding
        if padding is None:
            return from_amount_exchange
        return decimal_math.truncate(decimal_math.mul(from_amount_exchange, padding), self.config.precision)

    def expiration(self, quote: CanonicalProviderQuote) -> Optional[datetime]:
        if quote.expires_at is not None:
            return ensure_in_future(quote.expires_at)
        window = self.config.fixed_expiration_s if quote.is_fixed_rate else self.config.estimate_expiration_s
        return expires_in(window)

    async def normalize(
        self,
        request: SwapRequest,
        quote: CanonicalProviderQuote,
        limit: Optional[Limit] = None,
    ) -> NormalizedAmounts:
        if request.quote_for == "max":
            raise ValueError("max requests must be resolved before normalizing")

        if request.quote_for == "from":
            from_native_amount = request.native_amount
            to_native_amount = await request.to_wallet.denomination_to_native(
                quote.to_amount_exchange, request.to_currency_code
            )
        else:
            from_amount = quote.from_amount_exchange
            if not quote.is_fixed_rate:
                from_amount = self.padded_from_amount(from_amount)
            from_native_amount = await request.from_wallet.denomination_to_native(
                from_amount, request.from_currency_code
            )
            to_native_amount = request.native_amount

        limit = limit if limit is not None else quote.limit
        side_amount = from_native_amount if limit.side == "from" else to_native_amount
        await self.check_limits(request, limit, native_amount=side_amount)

        return NormalizedAmounts(
            from_native_amount=from_native_amount,
            to_native_amount=to_native_amount,
            is_estimate=not quote.is_fixed_rate,
            expiration_date=self.expiration(quote),
        )

    async def select(
        self,
        fixed: Callable[[], Awaitable[T]],
        estimate: Optional[Callable[[], Awaitable[T]]] = None,
    ) -> T:
        """Prefer the rate-locked path; fall back only on pair-support errors."""

        try:
            return await fixed()
        except SwapCurrencyError as fixed_error:
            if estimate is None:
                raise
            self._logger.info("%s fixed quote unavailable, trying estimate", self.plugin_id)
            try:
                return await estimate()
            except SwapCurrencyError:
                raise fixed_error

    async def build_order(
        self,
        request: SwapRequest,
        quote: CanonicalProviderQuote,
        *,
        payout_address: str,
        refund_address: Optional[str],
        limit: Optional[Limit] = None,
    ) -> SwapOrder:
        amounts = await self.normalize(request, quote, limit)

        order_uri = quote.order_uri
        if order_uri is None and self.config.order_uri is not None:
            order_uri = self.config.order_uri + quote.id

        spend_info = SpendInfo(
            currency_code=request.from_currency_code,
            spend_targets=[
                SpendTarget(
                    public_address=quote.deposit_address,
                    native_amount=amounts.from_native_amount,
                )
            ],
            memos=make_memos(quote.deposit_extra_id),
            network_fee_option=network_fee_option(request.from_currency_code),
            swap_data=SwapData(
                order_id=quote.id,
                order_uri=order_uri,
                is_estimate=amounts.is_estimate,
                payout_address=payout_address,
                payout_currency_code=request.to_currency_code,
                payout_native_amount=amounts.to_native_amount,
                payout_wallet_id=request.to_wallet.id,
                plugin_id=self.plugin_id,
                refund_address=refund_address,
            ),
        )

        return SwapOrder(
            request=request,
            swap_info=self.swap_info,
            spend_info=spend_info,
            from_native_amount=amounts.from_native_amount,
            to_native_amount=amounts.to_native_amount,
            destination_address=payout_address,
            expiration_date=amounts.expiration_date,
            is_estimate=amounts.is_estimate,
            quote_id=quote.id,
        )
