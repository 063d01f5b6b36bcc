"""
Tests for the Changelly adapter (signed JSON-RPC).
"""

import hashlib
import hmac
import json

import httpx
import pytest

from exchange_plugins.core.swap.errors import (
    PluginInitError,
    ProviderError,
    SwapBelowLimitError,
    SwapCurrencyError,
)
from exchange_plugins.core.swap.models import SwapRequest
from exchange_plugins.providers.changelly import make_changelly_plugin, sign_body

SECRET = "changelly-secret"


class RpcRouter:
    """Answers JSON-RPC calls by method name and records them in order."""

    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append((body["method"], body["params"], request))
        reply = self.replies[body["method"]]
        if "error" in reply:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": reply["error"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": reply["result"]})

    def methods(self):
        return [method for method, _, _ in self.calls]

    def params(self, method):
        return next(params for name, params, _ in self.calls if name == method)


INVALID_PARAMS = {"error": {"code": -32602, "message": "Invalid params"}}

FIX_RATE = {"result": {"id": "fix-1", "minFrom": "0.01", "maxFrom": "10", "minTo": "0.2", "maxTo": "200"}}


def transaction(tx_id, amount_from=None, amount_to=None, extra_id=None):
    return {
        "result": {
            "id": tx_id,
            "payinAddress": "bc1qchangellydeposit",
            "payinExtraId": extra_id,
            "amountExpectedFrom": amount_from,
            "amountExpectedTo": amount_to,
        }
    }


@pytest.fixture
def plugin(plugin_opts):
    return make_changelly_plugin(plugin_opts({"apiKey": "cl-key", "secret": SECRET}))


@pytest.fixture
def sell_btc(btc_wallet, eth_wallet):
    return SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "100000000", "from")


@pytest.fixture
def buy_eth(btc_wallet, eth_wallet):
    return SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "1000000000000000000", "to")


def install(router, replies):
    rpc = RpcRouter(replies)
    router.add("POST", "/", rpc)
    return rpc


class TestSigning:

    def test_sign_body_is_hmac_sha512(self):
        body = '{"method":"getFixRate"}'
        expected = hmac.new(SECRET.encode(), body.encode(), hashlib.sha512).hexdigest()
        assert sign_body(body, SECRET) == expected

    @pytest.mark.asyncio
    async def test_requests_carry_key_and_signature(self, plugin, router, sell_btc):
        rpc = install(
            router,
            {"getFixRate": FIX_RATE, "createFixTransaction": transaction("tx-1", "1", "20")},
        )

        await plugin.fetch_swap_quote(sell_btc)

        request = rpc.calls[0][2]
        assert request.headers["api-key"] == "cl-key"
        assert request.headers["sign"] == sign_body(request.content.decode(), SECRET)

    def test_missing_secret(self, plugin_opts):
        with pytest.raises(PluginInitError):
            make_changelly_plugin(plugin_opts({"apiKey": "cl-key"}))


class TestFixedQuotes:

    @pytest.mark.asyncio
    async def test_fixed_sell(self, plugin, router, sell_btc):
        rpc = install(
            router,
            {"getFixRate": FIX_RATE, "createFixTransaction": transaction("tx-1", "1", "20", extra_id="")},
        )

        quote = await plugin.fetch_swap_quote(sell_btc)

        assert rpc.methods() == ["getFixRate", "createFixTransaction"]
        params = rpc.params("createFixTransaction")
        assert params["rateId"] == "fix-1"
        assert params["amount"] == "1"
        assert quote.from_native_amount == "100000000"
        assert quote.to_native_amount == "20000000000000000000"
        assert quote.is_estimate is False

    @pytest.mark.asyncio
    async def test_fixed_buy_checks_to_side_limits(self, plugin, router, buy_eth):
        rpc = install(
            router,
            {"getFixRate": FIX_RATE, "createFixTransaction": transaction("tx-2", "0.05", "1")},
        )

        quote = await plugin.fetch_swap_quote(buy_eth)

        assert rpc.params("createFixTransaction")["amountTo"] == "1"
        assert quote.to_native_amount == "1000000000000000000"
        # Fixed quotes are not padded
        assert quote.from_native_amount == "5000000"

    @pytest.mark.asyncio
    async def test_fixed_buy_below_to_minimum(self, plugin, router, btc_wallet, eth_wallet):
        install(router, {"getFixRate": FIX_RATE})
        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "100000000000000000", "to")  # 0.1 ETH

        with pytest.raises(SwapBelowLimitError) as exc_info:
            await plugin.fetch_swap_quote(request)

        assert exc_info.value.native_min == "200000000000000000"
        assert exc_info.value.direction == "to"


class TestEstimateQuotes:

    @pytest.mark.asyncio
    async def test_falls_back_to_estimate(self, plugin, router, sell_btc):
        rpc = install(
            router,
            {
                "getFixRate": INVALID_PARAMS,
                "getMinAmount": {"result": "0.01"},
                "getExchangeAmount": {"result": "19.9"},
                "createTransaction": transaction("tx-3"),
            },
        )

        quote = await plugin.fetch_swap_quote(sell_btc)

        assert rpc.methods()[0] == "getFixRate"
        assert set(rpc.methods()[1:3]) == {"getMinAmount", "getExchangeAmount"}
        assert rpc.methods()[3] == "createTransaction"
        assert quote.is_estimate is True
        assert quote.from_native_amount == "100000000"
        assert quote.to_native_amount == "19900000000000000000"

    @pytest.mark.asyncio
    async def test_reverse_estimate_padding(self, plugin, router, buy_eth):
        """Reverse estimates send T / R * 1.02 of the source currency."""
        rpc = install(
            router,
            {
                "getFixRate": INVALID_PARAMS,
                "getMinAmount": {"result": "0.01"},
                "getExchangeAmount": {"result": "0.05"},
                "createTransaction": transaction("tx-4"),
            },
        )

        quote = await plugin.fetch_swap_quote(buy_eth)

        exchange_params = rpc.params("getExchangeAmount")
        assert exchange_params == {"from": "ETH", "to": "BTC", "amount": "1"}
        assert rpc.params("createTransaction")["amount"] == "0.051"
        assert quote.from_native_amount == "5100000"
        assert quote.to_native_amount == "1000000000000000000"

    @pytest.mark.asyncio
    async def test_reverse_estimate_amount_is_truncated(self, plugin, router, buy_eth):
        rpc = install(
            router,
            {
                "getFixRate": INVALID_PARAMS,
                "getMinAmount": {"result": "0.01"},
                "getExchangeAmount": {"result": "0.0512345678"},
                "createTransaction": transaction("tx-5"),
            },
        )

        quote = await plugin.fetch_swap_quote(buy_eth)

        assert rpc.params("createTransaction")["amount"] == "0.05225925"
        assert quote.from_native_amount == "5225925"

    @pytest.mark.asyncio
    async def test_estimate_below_minimum(self, plugin, router, btc_wallet, eth_wallet):
        rpc = install(
            router,
            {
                "getFixRate": INVALID_PARAMS,
                "getMinAmount": {"result": "0.01"},
                "getExchangeAmount": {"result": "0.02"},
            },
        )
        request = SwapRequest(btc_wallet, eth_wallet, "BTC", "ETH", "100000", "from")

        with pytest.raises(SwapBelowLimitError) as exc_info:
            await plugin.fetch_swap_quote(request)

        assert exc_info.value.native_min == "1000000"
        assert "createTransaction" not in rpc.methods()

    @pytest.mark.asyncio
    async def test_invalid_currency_message(self, plugin, router, sell_btc):
        unsupported = {"error": {"code": -32600, "message": "Invalid currency: xyz"}}
        install(
            router,
            {
                "getFixRate": unsupported,
                "getMinAmount": unsupported,
                "getExchangeAmount": unsupported,
            },
        )

        with pytest.raises(SwapCurrencyError):
            await plugin.fetch_swap_quote(sell_btc)

    @pytest.mark.asyncio
    async def test_unmapped_rpc_error(self, plugin, router, sell_btc):
        install(router, {"getFixRate": {"error": {"code": -32000, "message": "Service unavailable"}}})

        with pytest.raises(ProviderError, match="Service unavailable"):
            await plugin.fetch_swap_quote(sell_btc)

    @pytest.mark.asyncio
    async def test_http_failure(self, plugin, router, sell_btc):
        router.add("POST", "/", httpx.Response(503, text="down"))

        with pytest.raises(ProviderError, match="503"):
            await plugin.fetch_swap_quote(sell_btc)

    @pytest.mark.asyncio
    async def test_usdt_is_transcribed(self, plugin, router, eth_wallet, btc_wallet):
        eth_wallet.multipliers["USDT"] = "1000000"
        rpc = install(
            router,
            {"getFixRate": FIX_RATE, "createFixTransaction": transaction("tx-5", "1", "0.00005")},
        )
        request = SwapRequest(eth_wallet, btc_wallet, "USDT", "BTC", "1000000", "from")

        quote = await plugin.fetch_swap_quote(request)

        assert rpc.params("getFixRate") == {"from": "USDT20", "to": "BTC"}
        assert quote.to_native_amount == "5000"
