"""Coinbase exchange-rate plugin (USD quoted)."""

from __future__ import annotations

from typing import Dict, List, Sequence

import httpx
from pydantic import BaseModel

from ..core.swap.errors import ProviderError
from ..core.swap.models import ExchangeInfo, PairHint, RatePair
from .base import PluginOptions, ProviderClient, RatePlugin, validate_response

BASE_URL = "https://api.coinbase.com"


class ExchangeRates(BaseModel):
    rates: Dict[str, str]


class CoinbaseResponse(BaseModel):
    data: ExchangeRates


class CoinbasePlugin(RatePlugin):
    exchange_info = ExchangeInfo(plugin_id="coinbase", display_name="Coinbase")

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        self.client = ProviderClient(self.exchange_info.plugin_id, BASE_URL, self.io)

    async def fetch_rates(self, pairs_hint: Sequence[PairHint]) -> List[RatePair]:
        pairs: List[RatePair] = []
        try:
            payload = await self.client.get_json("/v2/exchange-rates")
            rates = validate_response(CoinbaseResponse, payload, self.exchange_info.plugin_id).data.rates
            for hint in pairs_hint:
                code = hint.from_currency
                if not rates.get(code):
                    continue
                pairs.append(RatePair(from_currency="iso:USD", to_currency=code, rate=float(rates[code])))
        except (httpx.HTTPError, ProviderError, ValueError) as exc:
            self.log.warning("Issue with Coinbase rate data structure: %s", exc)
        return pairs


def make_coinbase_plugin(opts: PluginOptions) -> CoinbasePlugin:
    return CoinbasePlugin(opts)
