"""Swap quote normalization, sequencing and error taxonomy."""

from .errors import (
    InsufficientFundsError,
    NoAmountSpecifiedError,
    PermissionReason,
    PluginInitError,
    ProviderError,
    ProviderResponseError,
    SwapAboveLimitError,
    SwapBelowLimitError,
    SwapCurrencyError,
    SwapError,
    SwapErrorCategory,
    SwapPermissionError,
)
from .models import (
    ApprovalPlan,
    CanonicalProviderQuote,
    ExchangeInfo,
    Limit,
    NetworkFee,
    PairHint,
    RatePair,
    SwapInfo,
    SwapOrder,
    SwapQuote,
    SwapRequest,
    SwapResult,
)
from .normalizer import NormalizerConfig, QuoteNormalizer
from .sequencer import AllowanceCheck, TransactionSequencer, plan_approval

__all__ = [
    "AllowanceCheck",
    "ApprovalPlan",
    "CanonicalProviderQuote",
    "ExchangeInfo",
    "InsufficientFundsError",
    "Limit",
    "NetworkFee",
    "NoAmountSpecifiedError",
    "NormalizerConfig",
    "PairHint",
    "PermissionReason",
    "PluginInitError",
    "ProviderError",
    "ProviderResponseError",
    "QuoteNormalizer",
    "RatePair",
    "SwapAboveLimitError",
    "SwapBelowLimitError",
    "SwapCurrencyError",
    "SwapError",
    "SwapErrorCategory",
    "SwapInfo",
    "SwapOrder",
    "SwapPermissionError",
    "SwapQuote",
    "SwapRequest",
    "SwapResult",
    "TransactionSequencer",
    "plan_approval",
]
