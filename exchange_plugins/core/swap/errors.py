"""
Swap Error Taxonomy

Closed set of errors a swap plugin may raise. Hosts match on the class (or on
``category``) to render a message; nothing here is meant to be string-matched.
Transport failures from httpx are not wrapped and propagate unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class SwapErrorCategory(str, Enum):
    """Categories of swap failures."""

    CURRENCY = "currency"                  # Pair not supported by the provider
    BELOW_LIMIT = "below_limit"            # Amount under provider minimum
    ABOVE_LIMIT = "above_limit"            # Amount over provider maximum
    PERMISSION = "permission"              # Geo restriction, KYC, lockout
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NO_AMOUNT = "no_amount"
    PROVIDER = "provider"                  # Unmapped provider error payload
    RESPONSE = "response"                  # Provider payload failed validation


class PermissionReason(str, Enum):
    GEO_RESTRICTION = "geoRestriction"
    NO_VERIFICATION = "noVerification"
    MUST_WAIT = "mustWait"
    NOT_AUTHORIZED = "notAuthorized"


class SwapError(Exception):
    """Base class for every error in the taxonomy."""

    category: SwapErrorCategory = SwapErrorCategory.PROVIDER

    def __init__(self, message: str, plugin_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.plugin_id = plugin_id


class SwapCurrencyError(SwapError):
    """The provider does not support this currency pair."""

    category = SwapErrorCategory.CURRENCY

    def __init__(self, plugin_id: str, from_currency_code: str, to_currency_code: str):
        super().__init__(
            f"{plugin_id} does not support {from_currency_code} to {to_currency_code}",
            plugin_id,
        )
        self.from_currency_code = from_currency_code
        self.to_currency_code = to_currency_code


class SwapBelowLimitError(SwapError):
    """Requested amount is under the provider minimum.

    ``native_min`` is always expressed in native units of the ``direction``
    side, never the raw provider value.
    """

    category = SwapErrorCategory.BELOW_LIMIT

    def __init__(self, plugin_id: str, native_min: Optional[str] = None, direction: str = "from"):
        super().__init__(f"{plugin_id} amount below minimum {native_min}", plugin_id)
        self.native_min = native_min
        self.direction = direction


class SwapAboveLimitError(SwapError):
    """Requested amount is over the provider maximum (native units)."""

    category = SwapErrorCategory.ABOVE_LIMIT

    def __init__(self, plugin_id: str, native_max: Optional[str] = None, direction: str = "from"):
        super().__init__(f"{plugin_id} amount above maximum {native_max}", plugin_id)
        self.native_max = native_max
        self.direction = direction


class SwapPermissionError(SwapError):
    category = SwapErrorCategory.PERMISSION

    def __init__(self, plugin_id: str, reason: PermissionReason = PermissionReason.GEO_RESTRICTION):
        super().__init__(f"{plugin_id} permission denied: {reason.value}", plugin_id)
        self.reason = reason


class InsufficientFundsError(SwapError):
    category = SwapErrorCategory.INSUFFICIENT_FUNDS

    def __init__(self, currency_code: str, plugin_id: Optional[str] = None):
        super().__init__(f"Insufficient {currency_code} funds", plugin_id)
        self.currency_code = currency_code


class NoAmountSpecifiedError(SwapError):
    category = SwapErrorCategory.NO_AMOUNT

    def __init__(self, plugin_id: Optional[str] = None):
        super().__init__("No amount specified", plugin_id)


class ProviderError(SwapError):
    """A provider error payload with no mapping; carries the raw message."""

    category = SwapErrorCategory.PROVIDER

    def __init__(self, plugin_id: str, message: str, raw: Any = None):
        super().__init__(f"{plugin_id} error: {message}", plugin_id)
        self.raw = raw


class ProviderResponseError(ProviderError):
    """A provider response did not match the expected schema."""

    category = SwapErrorCategory.RESPONSE


class PluginInitError(Exception):
    """Plugin construction failed, usually for missing credentials."""


__all__ = [
    "SwapErrorCategory",
    "PermissionReason",
    "SwapError",
    "SwapCurrencyError",
    "SwapBelowLimitError",
    "SwapAboveLimitError",
    "SwapPermissionError",
    "InsufficientFundsError",
    "NoAmountSpecifiedError",
    "ProviderError",
    "ProviderResponseError",
    "PluginInitError",
]
