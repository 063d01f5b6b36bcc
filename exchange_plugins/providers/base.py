"""Plugin contract and the HTTP client every provider adapter goes through."""

from __future__ import annotations

import json as jsonlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..core.swap.errors import PluginInitError, ProviderError, ProviderResponseError
from ..core.swap.models import ExchangeInfo, PairHint, RatePair, SwapInfo, SwapQuote, SwapRequest
from ..logging_config import get_plugin_logger

M = TypeVar("M", bound=BaseModel)


@dataclass
class PluginIO:
    """Host-supplied IO. ``transport`` replaces the network in tests."""

    transport: Optional[httpx.AsyncBaseTransport] = None
    timeout_s: float = 30.0


@dataclass
class PluginOptions:
    io: PluginIO = field(default_factory=PluginIO)
    init_options: Dict[str, Any] = field(default_factory=dict)
    log: Any = None


@dataclass
class SwapQuoteOptions:
    promo_code: Optional[str] = None


def parse_init_options(model: Type[M], opts: PluginOptions, plugin_id: str) -> M:
    """Validate ``init_options``; missing credentials fail at construction."""

    try:
        return model.model_validate(opts.init_options)
    except ValidationError as exc:
        missing = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise PluginInitError(f"{plugin_id}: missing or invalid init options ({missing})") from exc


def validate_response(schema: Any, payload: Any, plugin_id: str) -> Any:
    """Check a decoded JSON payload against ``schema`` (model or type)."""

    try:
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            return schema.model_validate(payload)
        return TypeAdapter(schema).validate_python(payload)
    except ValidationError as exc:
        raise ProviderResponseError(
            plugin_id,
            f"unexpected response shape: {exc.error_count()} validation error(s)",
            raw=payload,
        ) from exc


class ProviderClient:
    """Thin async JSON client around one provider base URL."""

    def __init__(
        self,
        plugin_id: str,
        base_url: str,
        io: PluginIO,
        *,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.plugin_id = plugin_id
        self.base_url = base_url.rstrip("/")
        self.io = io
        self._headers = {"Accept": "application/json", **(headers or {})}

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        merged_headers = {**self._headers, **(headers or {})}
        if json is not None:
            merged_headers.setdefault("Content-Type", "application/json")
        cleaned_params = {k: v for k, v in (params or {}).items() if v is not None}

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.io.timeout_s,
            transport=self.io.transport,
        ) as client:
            return await client.request(
                method,
                path,
                json=json,
                content=content,
                params=cleaned_params or None,
                headers=merged_headers,
            )

    def decode(self, response: httpx.Response) -> Any:
        """JSON body of ``response`` regardless of status code.

        Providers put their error payloads in non-2xx bodies, so status alone
        is not checked here.
        """
        try:
            return response.json()
        except (jsonlib.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProviderError(
                self.plugin_id,
                f"returned error code {response.status_code}",
                raw=response.text,
            ) from exc

    async def get_json(self, path: str, **kwargs: Any) -> Any:
        return self.decode(await self.request("GET", path, **kwargs))

    async def post_json(self, path: str, body: Any, **kwargs: Any) -> Any:
        return self.decode(await self.request("POST", path, json=body, **kwargs))


class SwapPlugin(ABC):
    """A provider that can quote and execute swaps."""

    swap_info: SwapInfo

    def __init__(self, opts: PluginOptions) -> None:
        self.io = opts.io
        self.log = opts.log or get_plugin_logger(self.swap_info.plugin_id)

    @abstractmethod
    async def fetch_swap_quote(
        self,
        request: SwapRequest,
        user_settings: Optional[Dict[str, Any]] = None,
        opts: Optional[SwapQuoteOptions] = None,
    ) -> SwapQuote:
        """Quote ``request``; raise a taxonomy error when it cannot."""


class RatePlugin(ABC):
    """A provider of exchange rates. Best effort: returns what it could fetch."""

    exchange_info: ExchangeInfo

    def __init__(self, opts: PluginOptions) -> None:
        self.io = opts.io
        self.log = opts.log or get_plugin_logger(self.exchange_info.plugin_id)

    @abstractmethod
    async def fetch_rates(self, pairs_hint: Sequence[PairHint]) -> List[RatePair]:
        """Rates for ``pairs_hint`` (the plugin may return more or fewer)."""
