"""
Account-model (EVM) transaction builder.

Each transfer is paired with a protocol-fee transaction sent from the same
account at the next nonce. Both are priced from one snapshot of the nonce
and gas market, fetched concurrently.
"""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from txbuilder.account import abi
from txbuilder.account.signer import AccountSigner
from txbuilder.address import is_valid_account_address, is_valid_account_key
from txbuilder.backends.base import AccountBackend
from txbuilder.constants import NATIVE_TRANSFER_GAS
from txbuilder.errors import ValidationError
from txbuilder.estimator import gas_cost
from txbuilder.fees import FeePolicy
from txbuilder.models import (
    AccountTxFields,
    AccountTxPair,
    FeeDecision,
    GasOptions,
    NFTTransferOptions,
    SubmissionReceipt,
    TransactionResult,
    TransferKind,
    TxParameterSnapshot,
)
from txbuilder.plan import PlanSession, PlanState
from txbuilder.reporter import report_account


class AccountTransactionBuilder:
    def __init__(
        self,
        backend: AccountBackend,
        signer: AccountSigner,
        fee_policy: FeePolicy,
        chain_id: int = 1,
    ):
        self.backend = backend
        self.signer = signer
        self.fee_policy = fee_policy
        self.chain_id = chain_id

    async def snapshot(self, sender: str) -> TxParameterSnapshot:
        nonce, gas_market = await asyncio.gather(
            self.backend.get_transaction_count(sender),
            self.backend.get_gas_market(),
        )
        return TxParameterSnapshot(nonce=nonce, gas_market=gas_market)

    async def build_native_transfer(
        self,
        sender: str,
        recipient: str,
        value: int,
        private_key: str,
        gas: GasOptions | None = None,
    ) -> TransactionResult:
        """
        Send ``value`` wei, minus the percentage protocol fee, to ``recipient``.

        The protocol fee travels in the paired fee transaction, so the
        recipient receives ``value - fee``.
        """
        self._validate(sender, private_key, recipient=recipient)
        if value <= 0:
            raise ValidationError(f"Value must be positive, got {value}")

        decision = self.fee_policy.percentage(value)
        return await self._build(
            TransferKind.NATIVE,
            sender,
            private_key,
            to=recipient,
            value=value - decision.charged,
            data=b"",
            decision=decision,
            gas=gas,
            metadata=None,
        )

    async def build_token_transfer(
        self,
        sender: str,
        contract: str,
        recipient: str,
        amount: int,
        private_key: str,
        gas: GasOptions | None = None,
    ) -> TransactionResult:
        """ERC-20 transfer(recipient, amount)."""
        self._validate(sender, private_key, recipient=recipient, contract=contract)
        if amount <= 0:
            raise ValidationError(f"Amount must be positive, got {amount}")

        return await self._build(
            TransferKind.TOKEN,
            sender,
            private_key,
            to=contract,
            value=0,
            data=abi.erc20_transfer(recipient, amount),
            decision=self.fee_policy.flat(),
            gas=gas,
            metadata={
                "standard": "erc20",
                "contract": contract,
                "recipient": recipient,
                "amount": amount,
            },
        )

    async def build_nft_transfer(
        self,
        sender: str,
        contract: str,
        recipient: str,
        token_id: int,
        private_key: str,
        options: NFTTransferOptions | None = None,
    ) -> TransactionResult:
        """ERC-721 transferFrom, or safeTransferFrom when ``options.safe``."""
        self._validate(sender, private_key, recipient=recipient, contract=contract)
        if token_id < 0:
            raise ValidationError(f"Invalid token id: {token_id}")

        options = options or NFTTransferOptions()
        return await self._build(
            TransferKind.TOKEN,
            sender,
            private_key,
            to=contract,
            value=0,
            data=abi.erc721_transfer(sender, recipient, token_id, options.safe, options.data),
            decision=self.fee_policy.flat(),
            gas=options,
            metadata={
                "standard": "erc721",
                "contract": contract,
                "recipient": recipient,
                "token_id": token_id,
            },
        )

    async def build_multi_token_transfer(
        self,
        sender: str,
        contract: str,
        recipient: str,
        token_id: int,
        amount: int,
        private_key: str,
        data: bytes = b"",
        gas: GasOptions | None = None,
    ) -> TransactionResult:
        """ERC-1155 safeTransferFrom(sender, recipient, id, amount, data)."""
        self._validate(sender, private_key, recipient=recipient, contract=contract)
        if token_id < 0:
            raise ValidationError(f"Invalid token id: {token_id}")
        if amount <= 0:
            raise ValidationError(f"Amount must be positive, got {amount}")

        return await self._build(
            TransferKind.TOKEN,
            sender,
            private_key,
            to=contract,
            value=0,
            data=abi.erc1155_transfer(sender, recipient, token_id, amount, data),
            decision=self.fee_policy.flat(),
            gas=gas,
            metadata={
                "standard": "erc1155",
                "contract": contract,
                "recipient": recipient,
                "token_id": token_id,
                "amount": amount,
            },
        )

    async def submit(self, result: TransactionResult) -> SubmissionReceipt:
        """Broadcast the primary transaction only."""
        txid = await self.backend.send_raw_transaction(result.encoded_transaction)
        return SubmissionReceipt(txid=txid)

    async def submit_with_fee(self, result: TransactionResult) -> SubmissionReceipt:
        """
        Broadcast the primary transaction, then its fee leg.

        The fee leg spends the next nonce, so it is only sent once the
        primary has been accepted. A failed primary broadcast propagates
        and the fee leg is never sent.
        """
        txid = await self.backend.send_raw_transaction(result.encoded_transaction)
        logger.info(f"Primary transaction submitted: {txid}")

        fee_txid = None
        if result.fee_leg is not None:
            fee_txid = await self.backend.send_raw_transaction(
                result.fee_leg.encoded_transaction
            )
            logger.info(f"Fee transaction submitted: {fee_txid}")

        return SubmissionReceipt(txid=txid, fee_txid=fee_txid)

    async def _build(
        self,
        kind: TransferKind,
        sender: str,
        private_key: str,
        to: str,
        value: int,
        data: bytes,
        decision: FeeDecision,
        gas: GasOptions | None,
        metadata: dict[str, Any] | None,
    ) -> TransactionResult:
        gas = gas or GasOptions()
        session = PlanSession(kind)

        try:
            session.advance(PlanState.FUNDING)
            snapshot = await self.snapshot(sender)
            max_fee = gas.max_fee_per_gas or snapshot.gas_market.max_fee_per_gas
            priority_fee = (
                gas.max_priority_fee_per_gas or snapshot.gas_market.max_priority_fee_per_gas
            )

            if gas.gas_limit is not None:
                gas_limit = gas.gas_limit
            elif data:
                gas_limit = await self.backend.estimate_gas(sender, to, data, value)
            else:
                gas_limit = NATIVE_TRANSFER_GAS

            session.advance(PlanState.COMPOSING)
            primary = AccountTxFields(
                chain_id=self.chain_id,
                nonce=snapshot.nonce,
                to=to,
                value=value,
                gas_limit=gas_limit,
                max_fee_per_gas=max_fee,
                max_priority_fee_per_gas=priority_fee,
                data=data,
            )
            fee_fields = None
            if decision.required:
                fee_fields = AccountTxFields(
                    chain_id=self.chain_id,
                    nonce=snapshot.nonce + 1,
                    to=self.fee_policy.collector_address,
                    value=decision.amount,
                    gas_limit=NATIVE_TRANSFER_GAS,
                    max_fee_per_gas=max_fee,
                    max_priority_fee_per_gas=priority_fee,
                )
            pair = AccountTxPair(primary=primary, fee=fee_fields)
            logger.debug(
                f"Priced nonce {primary.nonce}: gas {gas_limit}, max fee {max_fee}, "
                f"worst case {gas_cost(gas_limit, max_fee)} wei"
            )

            session.advance(PlanState.BALANCED)
            signed_primary = self.signer.sign(pair.primary, private_key)
            signed_fee = self.signer.sign(pair.fee, private_key) if pair.fee else None

            session.advance(PlanState.SIGNED)
            result = report_account(pair, decision, signed_primary, signed_fee, metadata)
            logger.info(
                f"Built {kind.value} transaction {result.txid} "
                f"(fee leg: {result.fee_leg.txid if result.fee_leg else 'none'})"
            )
            return result

        except Exception as e:
            session.reject(str(e))
            raise

    def _validate(
        self,
        sender: str,
        private_key: str,
        recipient: str | None = None,
        contract: str | None = None,
    ) -> None:
        if not is_valid_account_address(sender):
            raise ValidationError(f"Invalid sender address: {sender}")
        if not is_valid_account_key(private_key):
            raise ValidationError("Invalid private key")
        if recipient is not None and not is_valid_account_address(recipient):
            raise ValidationError(f"Invalid recipient address: {recipient}")
        if contract is not None and not is_valid_account_address(contract):
            raise ValidationError(f"Invalid contract address: {contract}")
