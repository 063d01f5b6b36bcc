"""Coincap rate plugin.

Coincap prices by asset id rather than ticker, so the plugin keeps a
symbol -> id map in a :class:`TTLCache` it is handed (or creates). The map is
loaded on first use and reloaded once the entry expires or is invalidated.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field

from ..cache import TTLCache
from ..core.swap.errors import ProviderError
from ..core.swap.models import ExchangeInfo, PairHint, RatePair
from .base import PluginOptions, ProviderClient, RatePlugin, validate_response

BASE_URL = "https://api.coincap.io/v2"
ASSET_MAP_KEY = "coincap:asset_ids"
ASSET_CACHE_TTL_S = 3600
BATCH_SIZE = 100


class Asset(BaseModel):
    id: str
    symbol: str


class AssetList(BaseModel):
    data: List[Asset]


class AssetPrice(BaseModel):
    symbol: str
    price_usd: str = Field(..., alias="priceUsd")


class AssetPrices(BaseModel):
    data: List[AssetPrice]


class CoincapError(BaseModel):
    error: Optional[str] = None


def batch_ids(asset_ids: Sequence[str], size: int = BATCH_SIZE) -> List[str]:
    return [",".join(asset_ids[i:i + size]) for i in range(0, len(asset_ids), size)]


class CoincapPlugin(RatePlugin):
    exchange_info = ExchangeInfo(plugin_id="coincap", display_name="Coincap")

    def __init__(self, opts: PluginOptions, asset_cache: Optional[TTLCache] = None) -> None:
        super().__init__(opts)
        self.client = ProviderClient(self.exchange_info.plugin_id, BASE_URL, self.io)
        self.asset_cache = asset_cache if asset_cache is not None else TTLCache(default_ttl=ASSET_CACHE_TTL_S)

    async def _load_asset_ids(self) -> Dict[str, str]:
        payload = await self.client.get_json("/assets/")
        assets = validate_response(AssetList, payload, self.exchange_info.plugin_id)
        return {asset.symbol: asset.id for asset in assets.data}

    async def asset_ids(self) -> Dict[str, str]:
        return await self.asset_cache.get_or_load(ASSET_MAP_KEY, self._load_asset_ids)

    async def invalidate_asset_ids(self) -> None:
        await self.asset_cache.invalidate(ASSET_MAP_KEY)

    async def _fetch_batch(self, query: str) -> List[RatePair]:
        response = await self.client.request("GET", "/assets", params={"ids": query})
        payload = self.client.decode(response)
        error = validate_response(CoincapError, payload, self.exchange_info.plugin_id).error
        if error or response.is_error:
            raise ProviderError(
                self.exchange_info.plugin_id,
                f"returned code {error or response.status_code}",
                raw=payload,
            )
        prices = validate_response(AssetPrices, payload, self.exchange_info.plugin_id)
        return [
            RatePair(from_currency=price.symbol, to_currency="iso:USD", rate=float(price.price_usd))
            for price in prices.data
        ]

    async def fetch_rates(self, pairs_hint: Sequence[PairHint]) -> List[RatePair]:
        pairs: List[RatePair] = []
        try:
            currency_map = await self.asset_ids()
        except (httpx.HTTPError, ProviderError, ValueError) as exc:
            self.log.warning("Issue loading Coincap assets: %s", exc)
            return pairs

        wanted: List[str] = []
        for hint in pairs_hint:
            code = hint.from_currency
            if code.startswith("iso:"):
                continue
            asset_id = currency_map.get(code)
            if not asset_id or asset_id in wanted:
                continue
            wanted.append(asset_id)

        # Coincap only provides prices in USD
        for query in batch_ids(wanted):
            try:
                pairs.extend(await self._fetch_batch(query))
            except (httpx.HTTPError, ProviderError, ValueError) as exc:
                self.log.warning("Issue with Coincap rate data structure: %s", exc)
        return pairs


def make_coincap_plugin(opts: PluginOptions, asset_cache: Optional[TTLCache] = None) -> CoincapPlugin:
    return CoincapPlugin(opts, asset_cache)
