"""CurrencyConverterAPI fiat rate plugin (USD base)."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.swap.errors import ProviderError
from ..core.swap.models import ExchangeInfo, PairHint, RatePair
from .base import PluginOptions, ProviderClient, RatePlugin, parse_init_options, validate_response

BASE_URL = "https://api.currconv.com/api/v7"

# Always requested alongside the hinted pairs
EXTRA_PAIRS = (
    PairHint(from_currency="iso:USD", to_currency="iso:IMP"),
    PairHint(from_currency="iso:USD", to_currency="iso:IRR"),
)


class CurrencyConverterInitOptions(BaseModel):
    api_key: str = Field(..., alias="apiKey", min_length=1)


class ConvertResponse(BaseModel):
    """Compact reply: ``{"USD_EUR": 0.92, ...}`` plus optional status/error."""

    model_config = ConfigDict(extra="allow")

    status: Optional[int] = None
    error: Optional[str] = None


def usd_query_codes(pairs_hint: Sequence[PairHint]) -> List[str]:
    codes: List[str] = []
    for hint in list(pairs_hint) + list(EXTRA_PAIRS):
        for iso_code in (hint.from_currency, hint.to_currency):
            if iso_code == "iso:USD" or not iso_code.startswith("iso:"):
                continue
            code = f"USD_{iso_code[4:].upper()}"
            if code not in codes:
                codes.append(code)
    return codes


class CurrencyConverterPlugin(RatePlugin):
    exchange_info = ExchangeInfo(plugin_id="currencyconverter", display_name="CurrencyConverterAPI")

    def __init__(self, opts: PluginOptions) -> None:
        super().__init__(opts)
        init = parse_init_options(CurrencyConverterInitOptions, opts, self.exchange_info.plugin_id)
        self._api_key = init.api_key
        self.client = ProviderClient(self.exchange_info.plugin_id, BASE_URL, self.io)

    async def fetch_rates(self, pairs_hint: Sequence[PairHint]) -> List[RatePair]:
        pairs: List[RatePair] = []
        query = ",".join(usd_query_codes(pairs_hint))
        try:
            response = await self.client.request(
                "GET",
                "/convert",
                params={"q": query, "compact": "ultra", "apiKey": self._api_key},
            )
            reply = validate_response(ConvertResponse, self.client.decode(response), self.exchange_info.plugin_id)
            if (reply.status is not None and reply.status != 200) or reply.error or response.is_error:
                raise ProviderError(
                    self.exchange_info.plugin_id,
                    f"returned with status: {reply.status or response.status_code} and error: {reply.error}",
                )
            rates: Dict[str, float] = validate_response(
                Dict[str, float], reply.model_extra or {}, self.exchange_info.plugin_id
            )
            for code, rate in rates.items():
                pairs.append(RatePair(from_currency="iso:USD", to_currency=f"iso:{code.split('_')[1]}", rate=rate))
        except (httpx.HTTPError, ProviderError, ValueError) as exc:
            self.log.warning("Failed to get %s from currencyconverterapi.com: %s", query, exc)
        return pairs


def make_currencyconverter_plugin(opts: PluginOptions) -> CurrencyConverterPlugin:
    return CurrencyConverterPlugin(opts)
