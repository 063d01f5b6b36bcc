"""0x Swap adapter: same-chain EVM swaps through the allowance-holder API.

Unlike the centralized adapters there is no deposit address. The quote carries
a ready-made contract call; when the sell token's allowance is short an
``approve`` transaction is sequenced ahead of it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..core.swap import decimal_math
from ..core.swap.errors import ProviderError, ProviderResponseError, SwapCurrencyError
from ..core.swap.helpers import (
    InvalidCurrencyCodes,
    check_amount,
    check_invalid_codes,
    expires_in,
    get_address,
)
from ..core.swap.models import SwapInfo, SwapOrder, SwapQuote, SwapRequest
from ..core.swap.sequencer import AllowanceCheck, TransactionSequencer, plan_approval
from ..core.wallet.models import Memo, SpendInfo, SpendTarget, SwapData
from .base import (
    PluginOptions,
    ProviderClient,
    SwapPlugin,
    SwapQuoteOptions,
    parse_init_options,
    validate_response,
)

BASE_URL = "https://api.0x.org"
QUOTE_PATH = "/swap/allowance-holder/quote"
EXPIRATION_S = 60

# ERC-7528 native asset address convention
NATIVE_TOKEN_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

# Wallet plugin id -> EVM chain id
CHAIN_IDS = {
    "ethereum": 1,
    "optimism": 10,
    "binancesmartchain": 56,
    "polygon": 137,
    "base": 8453,
    "arbitrum": 42161,
    "avalanche": 43114,
}

INVALID_CURRENCY_CODES = InvalidCurrencyCodes()

MAX_ERROR_TEXT = 500


class ZeroExInitOptions(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)


class ZeroExErrorBody(BaseModel):
    name: str
    message: Optional[str] = None


class AllowanceIssue(BaseModel):
    actual: str
    spender: str


class QuoteIssues(BaseModel):
    allowance: Optional[AllowanceIssue] = None


class QuoteTransaction(BaseModel):
    to: str
    data: str
    value: str = "0"
    gas: Optional[str] = None
    gas_price: Optional[str] = Field(None, alias="gasPrice")


class ZeroExQuote(BaseModel):
    liquidity_available: bool = Field(True, alias="liquidityAvailable")
    buy_amount: Optional[str] = Field(None, alias="buyAmount")
    sell_amount: Optional[str] = Field(None, alias="sellAmount")
    issues: QuoteIssues = Field(default_factory=QuoteIssues)
    transaction: Optional[QuoteTransaction] = None


def check_allowance(quote: ZeroExQuote, token_contract_address: Optional[str], required_amount: str) -> Optional[AllowanceCheck]:
    """Allowance state the quote reports for the sell token.

    Native sells need no allowance, and a quote with no allowance issue means
    the current allowance already covers the sell amount.
    """
    if token_contract_address is None:
        return None
    issue = quote.issues.allowance
    if issue is None:
        return None
    return AllowanceCheck(
        token_contract_address=token_contract_address,
        spender_address=issue.spender,
        current_allowance=issue.actual,
        required_amount=required_amount,
    )


class ZeroExPlugin(SwapPlugin):
    swap_info = SwapInfo(
        plugin_id="zeroex",
        display_name="0x Swap",
        support_email="support@edge.app",
        is_dex=True,
    )

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        init = parse_init_options(ZeroExInitOptions, opts, self.swap_info.plugin_id)
        self.client = ProviderClient(
            self.swap_info.plugin_id,
            BASE_URL,
            self.io,
            headers={"0x-api-key": init.api_key, "0x-version": "v2"},
        )
        self.sequencer = TransactionSequencer(logger=self.log)

    def _currency_error(self, request: SwapRequest) -> SwapCurrencyError:
        return SwapCurrencyError(self.swap_info.plugin_id, request.from_currency_code, request.to_currency_code)

    def _token_address(self, request: SwapRequest, side: str) -> Optional[str]:
        wallet = request.from_wallet if side == "from" else request.to_wallet
        code = request.from_currency_code if side == "from" else request.to_currency_code
        try:
            return wallet.currency_info.contract_address(code)
        except KeyError as exc:
            raise self._currency_error(request) from exc

    async def fetch_quote(self, request: SwapRequest, chain_id: int, taker: str) -> ZeroExQuote:
        sell_token = self._token_address(request, "from")
        buy_token = self._token_address(request, "to")
        params = {
            "chainId": chain_id,
            "sellToken": sell_token or NATIVE_TOKEN_ADDRESS,
            "buyToken": buy_token or NATIVE_TOKEN_ADDRESS,
            "sellAmount": request.native_amount,
            "taker": taker,
        }
        response = await self.client.request("GET", QUOTE_PATH, params=params)
        if response.is_error:
            text = response.text
            if "json" in response.headers.get("content-type", ""):
                body = validate_response(ZeroExErrorBody, self.client.decode(response), self.swap_info.plugin_id)
                text = f"{body.name} {body.message or ''}".strip()
            if len(text) > MAX_ERROR_TEXT:
                text = text[:MAX_ERROR_TEXT] + "..."
            raise ProviderError(
                self.swap_info.plugin_id,
                f"HTTP {response.status_code} response: {text}",
                raw=response.text,
            )

        quote = validate_response(ZeroExQuote, self.client.decode(response), self.swap_info.plugin_id)
        if not quote.liquidity_available:
            raise self._currency_error(request)
        if quote.transaction is None or quote.buy_amount is None or quote.sell_amount is None:
            raise ProviderError(self.swap_info.plugin_id, "quote is missing transaction data", raw=quote.model_dump())
        return quote

    async def fetch_order(self, request: SwapRequest) -> SwapOrder:
        from_info = request.from_wallet.currency_info
        to_info = request.to_wallet.currency_info
        # Both sides must live on the same chain
        if from_info.plugin_id != to_info.plugin_id:
            raise self._currency_error(request)
        chain_id = CHAIN_IDS.get(from_info.plugin_id)
        if chain_id is None:
            raise self._currency_error(request)
        # The allowance-holder flow only quotes exact sell amounts
        if request.quote_for != "from":
            raise self._currency_error(request)

        taker = await get_address(request.from_wallet, request.from_currency_code)
        quote = await self.fetch_quote(request, chain_id, taker)
        if not decimal_math.eq(quote.sell_amount, request.native_amount):
            raise ProviderResponseError(
                self.swap_info.plugin_id,
                f"sellAmount {quote.sell_amount} does not match requested {request.native_amount}",
                raw=quote.model_dump(),
            )
        tx = quote.transaction

        approval = None
        check = check_allowance(quote, self._token_address(request, "from"), quote.sell_amount)
        if check is not None:
            approval = plan_approval(check, gas_currency_code=from_info.currency_code)
            self.log.info(
                "%s allowance %s below %s, adding approval",
                self.swap_info.plugin_id, check.current_allowance, check.required_amount,
            )

        custom_fee: Dict[str, str] = {}
        if tx.gas is not None and tx.gas_price is not None:
            custom_fee = {"gasLimit": tx.gas, "gasPrice": tx.gas_price}

        spend_info = SpendInfo(
            currency_code=from_info.currency_code,
            spend_targets=[SpendTarget(public_address=tx.to, native_amount=decimal_math.to_native_int(tx.value))],
            memos=[Memo(type="hex", value=tx.data[2:] if tx.data.startswith("0x") else tx.data)],
            network_fee_option="custom" if custom_fee else "standard",
            custom_network_fee=custom_fee,
            swap_data=SwapData(
                order_id=None,
                is_estimate=False,
                payout_address=taker,
                payout_currency_code=request.to_currency_code,
                payout_native_amount=quote.buy_amount,
                payout_wallet_id=request.to_wallet.id,
                plugin_id=self.swap_info.plugin_id,
                refund_address=taker,
            ),
        )

        return SwapOrder(
            request=request,
            swap_info=self.swap_info,
            spend_info=spend_info,
            from_native_amount=request.native_amount,
            to_native_amount=quote.buy_amount,
            destination_address=taker,
            expiration_date=expires_in(EXPIRATION_S),
            is_estimate=False,
            approval=approval,
        )

    async def fetch_swap_quote(
        self,
        request: SwapRequest,
        user_settings: Optional[Dict[str, Any]] = None,
        opts: Optional[SwapQuoteOptions] = None,
    ) -> SwapQuote:
        check_invalid_codes(INVALID_CURRENCY_CODES, request, self.swap_info)
        check_amount(request, self.swap_info)

        order = await self.fetch_order(request)
        return await self.sequencer.make_quote(order)


def make_zeroex_plugin(opts: PluginOptions) -> ZeroExPlugin:
    return ZeroExPlugin(opts)
