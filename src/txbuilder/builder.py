"""
UTXO transaction builder.

Every transfer kind runs through the same pipeline, tracked by a PlanSession:

* VALIDATING: request checks and the protocol fee decision.
* FUNDING: fee rate, unit fetch and the provisional output list whose total
  sets the funding target, then input selection.
* COMPOSING: final layout over the chosen inputs, with the change decision.
* BALANCED: the plan is fixed and handed to the signer.
* SIGNED, then SUBMITTED when broadcast.

Kind-specific behavior lives in a table of hooks keyed by TransferKind.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from txbuilder.address import is_valid_address, is_valid_wif
from txbuilder.assembler import OutputAssembler
from txbuilder.backends.base import UtxoBackend
from txbuilder.constants import DUST_THRESHOLD, INSCRIPTION_POSTAGE, MAX_FEE_RATE
from txbuilder.envelopes import (
    InscriptionEnvelope,
    OverlayEnvelope,
    OverlayOperation,
    TokenTransferEnvelope,
)
from txbuilder.errors import InvalidFeeConfigError, ValidationError
from txbuilder.estimator import inscription_cost
from txbuilder.fees import FeePolicy
from txbuilder.models import (
    DataOutput,
    FeeDecision,
    FeeMode,
    FeePriority,
    InscriptionRequest,
    NativeTransfer,
    OutputSpec,
    OverlayIssuance,
    OverlayTransfer,
    PaymentOutput,
    SignedTransaction,
    SpendableUnit,
    TokenTransfer,
    TransactionResult,
    TransferKind,
    TransferRequest,
)
from txbuilder.plan import PlanSession, PlanState, fund
from txbuilder.reporter import inscription_id, report_utxo
from txbuilder.selection import CoinSelector
from txbuilder.signing import UtxoSigner

FeeRateHint = float | FeePriority | None


@dataclass
class Composition:
    """Kind-specific outputs and funding constraints for one request."""

    leading: list[OutputSpec]
    auxiliary: list[OutputSpec] = field(default_factory=list)
    reserved: list[SpendableUnit] = field(default_factory=list)
    funding_floor: int = 0


@dataclass
class BuildContext:
    request: Any
    sender: str
    envelope: Any = None
    decision: FeeDecision | None = None
    fee_rate: float = 0.0
    units: list[SpendableUnit] = field(default_factory=list)
    composition: Composition | None = None


@dataclass(frozen=True)
class VariantHooks:
    validate: Callable[[UtxoTransactionBuilder, BuildContext], Any]
    fee_mode: FeeMode
    fee_basis: Callable[[Any], int]
    compose: Callable[[UtxoTransactionBuilder, BuildContext], Composition]
    metadata: Callable[[BuildContext, SignedTransaction], dict[str, Any] | None]


class UtxoTransactionBuilder:
    """
    Builds and signs UTXO-chain transfers.

    Only plain units fund a transaction; inscription, overlay and token
    units are never spent as fee inputs.
    """

    def __init__(
        self,
        backend: UtxoBackend,
        signer: UtxoSigner,
        fee_policy: FeePolicy,
        network: str = "mainnet",
        selector: CoinSelector | None = None,
        assembler: OutputAssembler | None = None,
        default_priority: FeePriority = FeePriority.MEDIUM,
    ):
        self.backend = backend
        self.signer = signer
        self.fee_policy = fee_policy
        self.network = network
        self.selector = selector or CoinSelector()
        self.assembler = assembler or OutputAssembler()
        self.default_priority = default_priority

        # A required fee below dust could never be paid as an output
        min_enforceable = fee_policy.schedule.min_enforceable
        if min_enforceable < self.assembler.dust_threshold:
            raise InvalidFeeConfigError(
                f"min_enforceable {min_enforceable} is below the dust threshold "
                f"{self.assembler.dust_threshold}"
            )

    async def build_native_transfer(
        self,
        sender: str,
        recipient: str,
        amount: int,
        private_key: str,
        fee_rate: FeeRateHint = None,
    ) -> TransactionResult:
        return await self.build(NativeTransfer(recipient, amount), sender, private_key, fee_rate)

    async def build_token_transfer(
        self,
        sender: str,
        asset_id: str,
        quantity: int,
        destination: str,
        private_key: str,
        symbol: str = "",
        fee_rate: FeeRateHint = None,
    ) -> TransactionResult:
        request = TokenTransfer(asset_id, quantity, destination, symbol=symbol)
        return await self.build(request, sender, private_key, fee_rate)

    async def build_inscription(
        self,
        sender: str,
        content_type: str,
        content: bytes | str,
        private_key: str,
        fee_rate: FeeRateHint = None,
    ) -> TransactionResult:
        request = InscriptionRequest(content_type, content)
        return await self.build(request, sender, private_key, fee_rate)

    async def build_overlay_transfer(
        self,
        sender: str,
        asset: str,
        quantity: int,
        destination: str,
        private_key: str,
        memo: str = "",
        fee_rate: FeeRateHint = None,
    ) -> TransactionResult:
        request = OverlayTransfer(asset, quantity, destination, memo=memo)
        return await self.build(request, sender, private_key, fee_rate)

    async def build_overlay_issuance(
        self,
        sender: str,
        asset: str,
        quantity: int,
        private_key: str,
        description: str = "",
        fee_rate: FeeRateHint = None,
    ) -> TransactionResult:
        request = OverlayIssuance(asset, quantity, description=description)
        return await self.build(request, sender, private_key, fee_rate)

    async def build(
        self,
        request: TransferRequest,
        sender: str,
        private_key: str,
        fee_rate: FeeRateHint = None,
        submit: bool = False,
        session: PlanSession | None = None,
    ) -> TransactionResult:
        """
        Run one request through the pipeline.

        Args:
            request: Transfer variant
            sender: Address owning the funding units, receives change
            private_key: WIF key for the sender
            fee_rate: Explicit sat/vB rate, or a priority resolved against the fee market
            submit: Broadcast the signed transaction
            session: Optional session to observe plan state

        Returns:
            TransactionResult for the signed (and possibly broadcast) transaction
        """
        session = session or PlanSession(request.kind)
        hooks = VARIANT_HOOKS[request.kind]
        ctx = BuildContext(request=request, sender=sender)

        try:
            self._validate_common(sender, private_key, fee_rate)
            ctx.envelope = hooks.validate(self, ctx)
            ctx.decision = self.fee_policy.evaluate(hooks.fee_basis(request), hooks.fee_mode)

            session.advance(PlanState.FUNDING)
            ctx.fee_rate = await self._resolve_fee_rate(fee_rate)
            ctx.units = await self.backend.get_spendable_units(sender)
            ctx.composition = hooks.compose(self, ctx)

            # Provisional outputs only price the selection; change is decided later
            outputs = self.assembler.provisional_outputs(
                ctx.composition.leading,
                ctx.decision,
                self.fee_policy.collector_address,
                ctx.composition.auxiliary,
            )
            selection = fund(
                self.selector,
                ctx.units,
                outputs,
                ctx.fee_rate,
                reserved=ctx.composition.reserved,
                funding_floor=ctx.composition.funding_floor,
            )

            session.advance(PlanState.COMPOSING)
            inputs = list(ctx.composition.reserved) + selection.units
            plan = self.assembler.balance(inputs, outputs, sender, ctx.fee_rate)

            session.advance(PlanState.BALANCED)
            signed = self.signer.sign(plan, private_key)

            session.advance(PlanState.SIGNED)
            result = report_utxo(plan, ctx.decision, signed, hooks.metadata(ctx, signed))
            logger.info(
                f"Built {request.kind.value} transaction {result.txid}: "
                f"network fee {result.network_fee}, protocol fee {result.protocol_fee}"
            )

            if submit:
                await self.backend.broadcast_transaction(result.encoded_transaction)
                session.advance(PlanState.SUBMITTED)

            return result

        except Exception as e:
            session.reject(str(e))
            raise

    async def broadcast(self, result: TransactionResult) -> str:
        return await self.backend.broadcast_transaction(result.encoded_transaction)

    def _validate_common(self, sender: str, private_key: str, fee_rate: FeeRateHint) -> None:
        if not is_valid_address(sender, self.network):
            raise ValidationError(f"Invalid sender address: {sender}")
        if not is_valid_wif(private_key, self.network):
            raise ValidationError("Invalid private key for network")
        if fee_rate is not None and not isinstance(fee_rate, FeePriority):
            self._check_fee_rate(float(fee_rate))

    def _check_fee_rate(self, rate: float) -> None:
        if not 0 < rate <= MAX_FEE_RATE:
            raise ValidationError(f"Fee rate must be in (0, {MAX_FEE_RATE}] sat/vB, got {rate}")

    async def _resolve_fee_rate(self, hint: FeeRateHint) -> float:
        if isinstance(hint, FeePriority) or hint is None:
            priority = hint or self.default_priority
            market = await self.backend.get_fee_market()
            rate = market.rate_for(priority)
            logger.debug(f"Using {priority.value} fee rate {rate} sat/vB")
            self._check_fee_rate(rate)
            return rate
        return float(hint)

    def _require_destination(self, address: str, label: str = "recipient") -> None:
        if not is_valid_address(address, self.network):
            raise ValidationError(f"Invalid {label} address: {address}")


# Native transfer


def _validate_native(builder: UtxoTransactionBuilder, ctx: BuildContext) -> None:
    request: NativeTransfer = ctx.request
    builder._require_destination(request.recipient)
    if request.amount <= 0:
        raise ValidationError(f"Amount must be positive, got {request.amount}")
    if request.amount < builder.assembler.dust_threshold:
        raise ValidationError(
            f"Amount {request.amount} is below dust threshold {builder.assembler.dust_threshold}"
        )


def _compose_native(builder: UtxoTransactionBuilder, ctx: BuildContext) -> Composition:
    request: NativeTransfer = ctx.request
    return Composition(leading=[PaymentOutput(request.recipient, request.amount)])


# Fungible token transfer


def _validate_token(builder: UtxoTransactionBuilder, ctx: BuildContext) -> TokenTransferEnvelope:
    request: TokenTransfer = ctx.request
    builder._require_destination(request.destination, "destination")
    return TokenTransferEnvelope(request.asset_id, request.quantity, request.symbol)


def _compose_token(builder: UtxoTransactionBuilder, ctx: BuildContext) -> Composition:
    request: TokenTransfer = ctx.request
    token_unit = builder.selector.select_token_unit(ctx.units, request.asset_id, request.quantity)

    auxiliary: list[OutputSpec] = []
    if token_unit.asset_quantity > request.quantity:
        # Remaining token balance needs an output back to the sender
        auxiliary.append(PaymentOutput(ctx.sender, DUST_THRESHOLD))

    return Composition(
        leading=[PaymentOutput(request.destination, DUST_THRESHOLD)],
        auxiliary=auxiliary,
        reserved=[token_unit],
    )


def _token_metadata(ctx: BuildContext, signed: SignedTransaction) -> dict[str, Any]:
    request: TokenTransfer = ctx.request
    envelope: TokenTransferEnvelope = ctx.envelope
    return {
        **envelope.metadata(),
        "sender": ctx.sender,
        "recipient": request.recipient or request.destination,
        "destination": request.destination,
    }


# Data inscription


def _validate_inscription(
    builder: UtxoTransactionBuilder, ctx: BuildContext
) -> InscriptionEnvelope:
    request: InscriptionRequest = ctx.request
    return InscriptionEnvelope.from_request(request.content_type, request.content)


def _compose_inscription(builder: UtxoTransactionBuilder, ctx: BuildContext) -> Composition:
    envelope: InscriptionEnvelope = ctx.envelope
    floor = inscription_cost(envelope, ctx.fee_rate) + ctx.decision.charged
    return Composition(
        leading=[DataOutput(envelope.to_script(), INSCRIPTION_POSTAGE)],
        funding_floor=floor,
    )


def _inscription_metadata(ctx: BuildContext, signed: SignedTransaction) -> dict[str, Any]:
    envelope: InscriptionEnvelope = ctx.envelope
    return {
        "content_type": envelope.content_type,
        "content_length": len(envelope.content),
        "inscription_id": inscription_id(signed.txid, 0),
    }


# Asset overlay


def _validate_overlay_transfer(
    builder: UtxoTransactionBuilder, ctx: BuildContext
) -> OverlayEnvelope:
    request: OverlayTransfer = ctx.request
    builder._require_destination(request.destination, "destination")
    return OverlayEnvelope(OverlayOperation.SEND, request.asset, request.quantity, request.memo)


def _validate_overlay_issuance(
    builder: UtxoTransactionBuilder, ctx: BuildContext
) -> OverlayEnvelope:
    request: OverlayIssuance = ctx.request
    return OverlayEnvelope(
        OverlayOperation.ISSUANCE, request.asset, request.quantity, request.description
    )


def _compose_overlay_transfer(builder: UtxoTransactionBuilder, ctx: BuildContext) -> Composition:
    request: OverlayTransfer = ctx.request
    envelope: OverlayEnvelope = ctx.envelope
    builder.selector.require_overlay_balance(ctx.units, request.asset, request.quantity)
    return Composition(
        leading=[
            DataOutput(envelope.to_script()),
            PaymentOutput(request.destination, DUST_THRESHOLD),
        ]
    )


def _compose_overlay_issuance(builder: UtxoTransactionBuilder, ctx: BuildContext) -> Composition:
    envelope: OverlayEnvelope = ctx.envelope
    return Composition(leading=[DataOutput(envelope.to_script())])


def _overlay_metadata(ctx: BuildContext, signed: SignedTransaction) -> dict[str, Any]:
    envelope: OverlayEnvelope = ctx.envelope
    metadata: dict[str, Any] = {
        "operation": envelope.operation.value,
        "asset": envelope.asset,
        "quantity": envelope.quantity,
    }
    if envelope.operation == OverlayOperation.SEND:
        metadata["memo"] = envelope.memo
        metadata["destination"] = ctx.request.destination
    else:
        metadata["description"] = envelope.memo
        metadata["destination"] = ctx.sender
    return metadata


def _no_metadata(ctx: BuildContext, signed: SignedTransaction) -> None:
    return None


def _no_fee_basis(request: Any) -> int:
    return 0


VARIANT_HOOKS: dict[TransferKind, VariantHooks] = {
    TransferKind.NATIVE: VariantHooks(
        validate=_validate_native,
        fee_mode=FeeMode.PERCENTAGE,
        fee_basis=lambda request: request.amount,
        compose=_compose_native,
        metadata=_no_metadata,
    ),
    TransferKind.TOKEN: VariantHooks(
        validate=_validate_token,
        fee_mode=FeeMode.FLAT,
        fee_basis=_no_fee_basis,
        compose=_compose_token,
        metadata=_token_metadata,
    ),
    TransferKind.INSCRIPTION: VariantHooks(
        validate=_validate_inscription,
        fee_mode=FeeMode.FLAT,
        fee_basis=_no_fee_basis,
        compose=_compose_inscription,
        metadata=_inscription_metadata,
    ),
    TransferKind.OVERLAY_TRANSFER: VariantHooks(
        validate=_validate_overlay_transfer,
        fee_mode=FeeMode.FLAT,
        fee_basis=_no_fee_basis,
        compose=_compose_overlay_transfer,
        metadata=_overlay_metadata,
    ),
    TransferKind.OVERLAY_ISSUANCE: VariantHooks(
        validate=_validate_overlay_issuance,
        fee_mode=FeeMode.FLAT,
        fee_basis=_no_fee_basis,
        compose=_compose_overlay_issuance,
        metadata=_overlay_metadata,
    ),
}
