"""Wallet collaborator types."""

from .models import (
    CurrencyInfo,
    Memo,
    ReceiveAddress,
    SpendInfo,
    SpendTarget,
    SwapData,
    TokenApproval,
    WalletTransaction,
)
from .protocol import CurrencyWallet

__all__ = [
    "CurrencyInfo",
    "CurrencyWallet",
    "Memo",
    "ReceiveAddress",
    "SpendInfo",
    "SpendTarget",
    "SwapData",
    "TokenApproval",
    "WalletTransaction",
]
