"""
Result packaging for finished transactions.
"""

from __future__ import annotations

from typing import Any

from txbuilder.models import (
    AccountTxPair,
    FeeDecision,
    FeeLeg,
    SignedTransaction,
    TransactionPlan,
    TransactionResult,
)


def inscription_id(txid: str, output_index: int = 0) -> str:
    return f"{txid}i{output_index}"


def report_utxo(
    plan: TransactionPlan,
    decision: FeeDecision,
    signed: SignedTransaction,
    metadata: dict[str, Any] | None = None,
) -> TransactionResult:
    network_fee = plan.fee
    protocol_fee = decision.charged
    return TransactionResult(
        encoded_transaction=signed.encoded,
        txid=signed.txid,
        network_fee=network_fee,
        protocol_fee=protocol_fee,
        total_fee=network_fee + protocol_fee,
        metadata=metadata,
    )


def report_account(
    pair: AccountTxPair,
    decision: FeeDecision,
    primary: SignedTransaction,
    fee: SignedTransaction | None = None,
    metadata: dict[str, Any] | None = None,
) -> TransactionResult:
    """Network fee is the worst-case gas cost of both legs."""
    network_fee = pair.primary.max_gas_cost
    fee_leg = None
    if pair.fee is not None and fee is not None:
        network_fee += pair.fee.max_gas_cost
        fee_leg = FeeLeg(encoded_transaction=fee.encoded, txid=fee.txid, value=pair.fee.value)

    protocol_fee = decision.charged
    return TransactionResult(
        encoded_transaction=primary.encoded,
        txid=primary.txid,
        network_fee=network_fee,
        protocol_fee=protocol_fee,
        total_fee=network_fee + protocol_fee,
        metadata=metadata,
        fee_leg=fee_leg,
    )
