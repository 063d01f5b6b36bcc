"""
Transaction sequencing for swap quotes.

Builds the ordered transaction list behind a quote (optional allowance
approval, then the swap) and the ``approve`` closure that signs, broadcasts
and saves each one strictly in that order. The swap transaction is always
last; broadcasting it before the approval settles fails on-chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..wallet.models import Memo, SpendInfo, SpendTarget, TokenApproval, WalletTransaction
from . import decimal_math
from .models import ApprovalPlan, NetworkFee, SwapOrder, SwapQuote, SwapResult

ERC20_APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)


def _encode_uint256(value: int) -> str:
    return format(value, "064x")


def _encode_address(address: str) -> str:
    addr = address.lower().replace("0x", "")
    return addr.zfill(64)


def encode_approve_calldata(spender_address: str, native_amount: str) -> str:
    """ABI-encode ``approve(spender, amount)``."""

    return (
        ERC20_APPROVE_SELECTOR
        + _encode_address(spender_address)
        + _encode_uint256(int(native_amount))
    )


@dataclass(frozen=True)
class AllowanceCheck:
    """Result of an allowance lookup; required input for planning an approval."""

    token_contract_address: str
    spender_address: str
    current_allowance: str
    required_amount: str

    @property
    def sufficient(self) -> bool:
        return decimal_math.gte(self.current_allowance, self.required_amount)


def plan_approval(check: AllowanceCheck, *, gas_currency_code: str) -> Optional[ApprovalPlan]:
    """Approval spend for exactly the required amount, or None if covered.

    Approvals spend only the chain's gas currency: a zero-value call to the
    token contract carrying the encoded ``approve`` data.
    """

    if check.sufficient:
        return None

    calldata = encode_approve_calldata(check.spender_address, check.required_amount)
    spend_info = SpendInfo(
        currency_code=gas_currency_code,
        spend_targets=[SpendTarget(public_address=check.token_contract_address, native_amount="0")],
        memos=[Memo(type="hex", value=calldata[2:])],
        token_approval=TokenApproval(
            token_contract_address=check.token_contract_address,
            spender_address=check.spender_address,
            native_amount=check.required_amount,
        ),
    )
    return ApprovalPlan(
        spend_info=spend_info,
        token_contract_address=check.token_contract_address,
        spender_address=check.spender_address,
        native_amount=check.required_amount,
    )


class TransactionSequencer:
    """Turns a :class:`SwapOrder` into a host quote with an ordered ``approve``."""

    def __init__(self, *, logger: Optional[Any] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    async def build_transactions(self, order: SwapOrder) -> List[WalletTransaction]:
        wallet = order.request.from_wallet
        transactions: List[WalletTransaction] = []
        if order.approval is not None:
            transactions.append(await wallet.make_spend(order.approval.spend_info))
        transactions.append(await wallet.make_spend(order.spend_info))
        return transactions

    async def make_quote(self, order: SwapOrder) -> SwapQuote:
        request = order.request
        wallet = request.from_wallet
        swap_info = order.swap_info
        transactions = await self.build_transactions(order)
        swap_tx = transactions[-1]

        fee = "0"
        for tx in transactions:
            fee = decimal_math.add(fee, tx.fee_in_parent_currency)

        logger = self._logger

        async def approve(metadata: Optional[Dict[str, Any]] = None) -> SwapResult:
            swap_tx.metadata = {**(metadata or {}), **swap_tx.metadata}
            if order.metadata_notes is not None:
                existing = swap_tx.metadata.get("notes")
                swap_tx.metadata["notes"] = order.metadata_notes + (f"\n\n{existing}" if existing else "")

            last: Optional[WalletTransaction] = None
            for index, tx in enumerate(transactions):
                signed = await wallet.sign_tx(tx)
                broadcasted = await wallet.broadcast_tx(signed)
                await wallet.save_tx(broadcasted)
                logger.info(
                    "%s broadcast tx %d/%d txid=%s",
                    swap_info.plugin_id, index + 1, len(transactions), broadcasted.txid,
                )
                last = broadcasted

            if last is None:
                raise RuntimeError(f"{swap_info.plugin_id} quote has no transactions")
            order_id = order.quote_id
            if order_id is None and swap_info.is_dex:
                order_id = last.txid
            return SwapResult(
                transaction=last,
                order_id=order_id,
                destination_address=order.destination_address,
            )

        async def close() -> None:
            return None

        return SwapQuote(
            from_native_amount=order.from_native_amount,
            to_native_amount=order.to_native_amount,
            network_fee=NetworkFee(
                currency_code=wallet.currency_info.currency_code,
                native_amount=fee,
            ),
            destination_address=order.destination_address,
            plugin_id=swap_info.plugin_id,
            expiration_date=order.expiration_date,
            quote_id=order.quote_id,
            is_estimate=order.is_estimate,
            request=request,
            swap_info=swap_info,
            transactions=transactions,
            _approve=approve,
            _close=close,
        )
