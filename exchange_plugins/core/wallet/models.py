"""Value objects exchanged with the host wallet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CurrencyInfo:
    """Static description of the wallet's chain and its known tokens."""

    plugin_id: str
    currency_code: str
    display_name: str = ""
    # Token currency code -> contract address
    tokens: Dict[str, str] = field(default_factory=dict)

    def contract_address(self, currency_code: str) -> Optional[str]:
        if currency_code == self.currency_code:
            return None
        address = self.tokens.get(currency_code)
        if address is None:
            raise KeyError(f"Unknown token {currency_code} on {self.plugin_id}")
        return address


@dataclass
class ReceiveAddress:
    public_address: str
    legacy_address: Optional[str] = None
    segwit_address: Optional[str] = None


@dataclass
class Memo:
    type: str  # "text" | "hex" | "number"
    value: str


@dataclass
class SpendTarget:
    public_address: str
    native_amount: Optional[str] = None
    unique_identifier: Optional[str] = None


@dataclass
class SwapData:
    """Order metadata saved alongside the deposit transaction."""

    order_id: Optional[str]
    is_estimate: bool
    payout_address: str
    payout_currency_code: str
    payout_native_amount: str
    payout_wallet_id: str
    plugin_id: str
    order_uri: Optional[str] = None
    refund_address: Optional[str] = None


@dataclass
class TokenApproval:
    """Marks a spend as an ERC-20 allowance approval."""

    token_contract_address: str
    spender_address: str
    native_amount: str


@dataclass
class SpendInfo:
    currency_code: str
    spend_targets: List[SpendTarget] = field(default_factory=list)
    memos: List[Memo] = field(default_factory=list)
    network_fee_option: str = "standard"
    # Set with network_fee_option="custom", e.g. {"gasLimit": ..., "gasPrice": ...}
    custom_network_fee: Dict[str, str] = field(default_factory=dict)
    swap_data: Optional[SwapData] = None
    token_approval: Optional[TokenApproval] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class WalletTransaction:
    txid: str
    currency_code: str
    native_amount: str
    network_fee: str = "0"
    parent_network_fee: Optional[str] = None
    signed_tx: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    swap_data: Optional[SwapData] = None
    token_approval: Optional[TokenApproval] = None

    @property
    def fee_in_parent_currency(self) -> str:
        """Fee paid in the chain's gas currency."""
        return self.parent_network_fee if self.parent_network_fee is not None else self.network_fee
