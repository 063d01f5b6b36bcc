"""
Tests for request-side swap helpers.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from exchange_plugins.core.swap.errors import (
    InsufficientFundsError,
    NoAmountSpecifiedError,
    SwapCurrencyError,
)
from exchange_plugins.core.swap.helpers import (
    InvalidCurrencyCodes,
    check_amount,
    check_invalid_codes,
    ensure_in_future,
    get_address,
    get_addresses,
    get_max_swappable,
    get_network_codes,
)
from exchange_plugins.core.swap.models import SwapInfo, SwapOrder, SwapRequest
from exchange_plugins.core.wallet.models import CurrencyInfo, SpendInfo, SpendTarget

SWAP_INFO = SwapInfo(plugin_id="testswap", display_name="Test Swap")


def btc_to_eth(btc_wallet, eth_wallet, amount="100000000", quote_for="from"):
    return SwapRequest(
        from_wallet=btc_wallet,
        to_wallet=eth_wallet,
        from_currency_code="BTC",
        to_currency_code="ETH",
        native_amount=amount,
        quote_for=quote_for,
    )


class TestAddresses:

    @pytest.mark.asyncio
    async def test_segwit_preferred(self, btc_wallet):
        assert await get_address(btc_wallet, "BTC") == "bc1qbtcsegwitaddress"

    @pytest.mark.asyncio
    async def test_legacy_then_public(self, btc_wallet):
        btc_wallet.segwit_address = None
        assert await get_address(btc_wallet, "BTC") == "1BtcLegacyAddress"
        # DGB never uses its legacy address
        assert await get_address(btc_wallet, "DGB") == btc_wallet.address

    @pytest.mark.asyncio
    async def test_get_addresses_returns_refund_then_payout(self, btc_wallet, eth_wallet):
        refund, payout = await get_addresses(btc_to_eth(btc_wallet, eth_wallet))
        assert refund == "bc1qbtcsegwitaddress"
        assert payout == eth_wallet.address


class TestInvalidCodes:

    def test_supported_pair_passes(self, btc_wallet, eth_wallet):
        check_invalid_codes(InvalidCurrencyCodes(), btc_to_eth(btc_wallet, eth_wallet), SWAP_INFO)

    def test_explicit_code_rejected(self, btc_wallet, eth_wallet):
        codes = InvalidCurrencyCodes(to_codes={"ethereum": ["ETH"]})
        with pytest.raises(SwapCurrencyError):
            check_invalid_codes(codes, btc_to_eth(btc_wallet, eth_wallet), SWAP_INFO)

    def test_all_tokens_spares_main_code(self, btc_wallet, eth_wallet):
        codes = InvalidCurrencyCodes(to_codes={"ethereum": "allTokens"})
        check_invalid_codes(codes, btc_to_eth(btc_wallet, eth_wallet), SWAP_INFO)

        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "USDC", "100000000")
        with pytest.raises(SwapCurrencyError):
            check_invalid_codes(codes, request, SWAP_INFO)

    def test_all_codes(self, btc_wallet, eth_wallet):
        codes = InvalidCurrencyCodes(from_codes={"bitcoin": "allCodes"})
        with pytest.raises(SwapCurrencyError):
            check_invalid_codes(codes, btc_to_eth(btc_wallet, eth_wallet), SWAP_INFO)

    def test_default_disabled_codes_apply(self, btc_wallet, eth_wallet):
        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "REP", "100000000")
        with pytest.raises(SwapCurrencyError):
            check_invalid_codes(InvalidCurrencyCodes(), request, SWAP_INFO)

    def test_same_asset_rejected(self, eth_wallet):
        request = SwapRequest(eth_wallet, eth_wallet, "ETH", "ETH", "1")
        with pytest.raises(SwapCurrencyError):
            check_invalid_codes(InvalidCurrencyCodes(), request, SWAP_INFO)


class TestAmounts:

    def test_zero_amount_rejected(self, btc_wallet, eth_wallet):
        with pytest.raises(NoAmountSpecifiedError):
            check_amount(btc_to_eth(btc_wallet, eth_wallet, amount="0"), SWAP_INFO)

    def test_zero_amount_allowed_for_max(self, btc_wallet, eth_wallet):
        check_amount(btc_to_eth(btc_wallet, eth_wallet, amount="0", quote_for="max"), SWAP_INFO)

    def test_request_rejects_decimal_amount(self, btc_wallet, eth_wallet):
        with pytest.raises(ValueError):
            btc_to_eth(btc_wallet, eth_wallet, amount="1.5")

    def test_request_rejects_unknown_direction(self, btc_wallet, eth_wallet):
        with pytest.raises(ValueError):
            btc_to_eth(btc_wallet, eth_wallet, quote_for="sideways")


class TestMaxSwappable:

    def _order(self, request):
        spend = SpendInfo(
            currency_code="BTC",
            spend_targets=[SpendTarget(public_address="bc1qdeposit", native_amount=request.native_amount)],
        )
        return SwapOrder(
            request=request,
            swap_info=SWAP_INFO,
            spend_info=spend,
            from_native_amount=request.native_amount,
            to_native_amount="1",
            destination_address="0xpayout",
            expiration_date=None,
            is_estimate=False,
        )

    @pytest.mark.asyncio
    async def test_non_max_passes_through(self, btc_wallet, eth_wallet):
        request = btc_to_eth(btc_wallet, eth_wallet)
        fetch_order = AsyncMock()
        assert await get_max_swappable(fetch_order, request, SWAP_INFO) is request
        fetch_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_max_resolves_to_spendable_amount(self, btc_wallet, eth_wallet):
        btc_wallet.max_spendable = "49990000"
        request = btc_to_eth(btc_wallet, eth_wallet, amount="0", quote_for="max")
        fetch_order = AsyncMock(side_effect=self._order)

        resolved = await get_max_swappable(fetch_order, request, SWAP_INFO)

        probe = fetch_order.await_args.args[0]
        assert probe.quote_for == "from"
        assert probe.native_amount == "50000000"
        assert resolved.quote_for == "from"
        assert resolved.native_amount == "49990000"

    @pytest.mark.asyncio
    async def test_max_with_empty_balance(self, btc_wallet, eth_wallet):
        btc_wallet.balance = "0"
        request = btc_to_eth(btc_wallet, eth_wallet, amount="0", quote_for="max")

        with pytest.raises(InsufficientFundsError):
            await get_max_swappable(AsyncMock(), request, SWAP_INFO)


class TestMisc:

    def test_ensure_in_future_handles_naive_dates(self):
        naive_past = datetime(2020, 1, 1)
        result = ensure_in_future(naive_past)
        assert result.tzinfo is not None
        assert result > datetime.now(timezone.utc)

    def test_ensure_in_future_none(self):
        assert ensure_in_future(None) is None

    def test_network_codes_transcribed(self, btc_wallet, eth_wallet):
        bsc = CurrencyInfo(plugin_id="binancesmartchain", currency_code="BNB")
        eth_wallet.currency_info = bsc
        codes = get_network_codes(btc_to_eth(btc_wallet, eth_wallet), {"binancesmartchain": "BSC"})
        assert codes == ("BTC", "BSC")

    def test_future_date_untouched(self):
        later = datetime.now(timezone.utc) + timedelta(hours=1)
        assert ensure_in_future(later) == later
