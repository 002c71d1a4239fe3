"""
Core data models.

Transaction internals are plain dataclasses, frozen where they are inputs to
a build. Configuration-like values and results that are handed back to
callers use Pydantic for validation and serialization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from eth_utils import to_checksum_address
from pydantic import BaseModel, ConfigDict, Field

from txbuilder.constants import DUST_THRESHOLD, EIP1559_TX_TYPE


class UnitCategory(str, Enum):
    PLAIN = "plain"
    INSCRIPTION = "inscription"
    ASSET_OVERLAY = "asset-overlay"
    TOKEN = "token"


# Units that carry protocol state are never used to pay for a transaction
NON_FUNDING_CATEGORIES = frozenset(
    {UnitCategory.INSCRIPTION, UnitCategory.ASSET_OVERLAY, UnitCategory.TOKEN}
)


class FeeMode(str, Enum):
    PERCENTAGE = "percentage"
    FLAT = "flat"


class FeePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class SpendableUnit:
    """An unspent output owned by the sender."""

    txid: str
    vout: int
    value: int
    scriptpubkey: str = ""
    category: UnitCategory = UnitCategory.PLAIN
    asset_id: str | None = None  # Token id for TOKEN units
    asset_quantity: int = 0  # Token quantity bound to this output

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


class FeeSchedule(BaseModel):
    """Protocol fee configuration.

    Range checks live in FeePolicy so a bad schedule fails with
    InvalidFeeConfigError when the policy is built.
    """

    model_config = ConfigDict(frozen=True)

    collector_address: str
    percentage_rate: str | float = "0"
    flat_fee: int = 0
    min_enforceable: int = DUST_THRESHOLD


@dataclass(frozen=True)
class FeeDecision:
    amount: int
    required: bool
    mode: FeeMode = FeeMode.PERCENTAGE

    @property
    def charged(self) -> int:
        """Amount actually collected; waived fees are zero."""
        return self.amount if self.required else 0


@dataclass(frozen=True)
class PaymentOutput:
    address: str
    value: int


@dataclass(frozen=True)
class DataOutput:
    """Data-carrying output. ``payload`` is the full locking script."""

    payload: bytes
    value: int = 0


@dataclass(frozen=True)
class ChangeOutput:
    address: str
    value: int


OutputSpec = Union[PaymentOutput, DataOutput, ChangeOutput]


@dataclass
class TransactionPlan:
    """Ordered inputs and outputs of a UTXO transaction ready for signing."""

    inputs: list[SpendableUnit] = field(default_factory=list)
    outputs: list[OutputSpec] = field(default_factory=list)
    estimated_cost: int = 0
    change_amount: int = 0

    @property
    def input_total(self) -> int:
        return sum(unit.value for unit in self.inputs)

    @property
    def output_total(self) -> int:
        return sum(out.value for out in self.outputs)

    @property
    def fee(self) -> int:
        """Miner fee: everything not assigned to an output."""
        return self.input_total - self.output_total

    def is_balanced(self) -> bool:
        return self.fee >= self.estimated_cost >= 0


@dataclass(frozen=True)
class FeeMarket:
    """Fee rates in sat/vB."""

    low: float
    medium: float
    high: float

    def rate_for(self, priority: FeePriority) -> float:
        return {
            FeePriority.LOW: self.low,
            FeePriority.MEDIUM: self.medium,
            FeePriority.HIGH: self.high,
        }[priority]


@dataclass(frozen=True)
class GasMarket:
    """EIP-1559 fee market quote in wei per gas."""

    base_fee_per_gas: int
    max_priority_fee_per_gas: int

    @property
    def max_fee_per_gas(self) -> int:
        return 2 * self.base_fee_per_gas + self.max_priority_fee_per_gas


@dataclass(frozen=True)
class TxParameterSnapshot:
    """Nonce and gas market fetched together for one submission."""

    nonce: int
    gas_market: GasMarket


class TransferKind(str, Enum):
    NATIVE = "native"
    TOKEN = "token"
    INSCRIPTION = "inscription"
    OVERLAY_TRANSFER = "overlay-transfer"
    OVERLAY_ISSUANCE = "overlay-issuance"


@dataclass(frozen=True)
class NativeTransfer:
    kind: ClassVar[TransferKind] = TransferKind.NATIVE

    recipient: str
    amount: int


@dataclass(frozen=True)
class TokenTransfer:
    kind: ClassVar[TransferKind] = TransferKind.TOKEN

    asset_id: str
    quantity: int
    destination: str
    symbol: str = ""
    recipient: str = ""  # Display name or account of the recipient, defaults to destination


@dataclass(frozen=True)
class InscriptionRequest:
    kind: ClassVar[TransferKind] = TransferKind.INSCRIPTION

    content_type: str
    content: bytes | str


@dataclass(frozen=True)
class OverlayTransfer:
    kind: ClassVar[TransferKind] = TransferKind.OVERLAY_TRANSFER

    asset: str
    quantity: int
    destination: str
    memo: str = ""


@dataclass(frozen=True)
class OverlayIssuance:
    kind: ClassVar[TransferKind] = TransferKind.OVERLAY_ISSUANCE

    asset: str
    quantity: int
    description: str = ""


TransferRequest = Union[
    NativeTransfer, TokenTransfer, InscriptionRequest, OverlayTransfer, OverlayIssuance
]


@dataclass(frozen=True)
class GasOptions:
    """Caller overrides for account-model pricing."""

    gas_limit: int | None = None
    max_fee_per_gas: int | None = None
    max_priority_fee_per_gas: int | None = None


@dataclass(frozen=True)
class NFTTransferOptions(GasOptions):
    safe: bool = False
    data: bytes = b""


@dataclass(frozen=True)
class AccountTxFields:
    """Unsigned EIP-1559 transaction fields."""

    chain_id: int
    nonce: int
    to: str
    value: int
    gas_limit: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    data: bytes = b""

    @property
    def max_gas_cost(self) -> int:
        return self.gas_limit * self.max_fee_per_gas

    def to_dict(self) -> dict[str, Any]:
        tx: dict[str, Any] = {
            "type": EIP1559_TX_TYPE,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "to": to_checksum_address(self.to),
            "value": self.value,
            "gas": self.gas_limit,
            "maxFeePerGas": self.max_fee_per_gas,
            "maxPriorityFeePerGas": self.max_priority_fee_per_gas,
        }
        if self.data:
            tx["data"] = self.data
        return tx


@dataclass(frozen=True)
class AccountTxPair:
    primary: AccountTxFields
    fee: AccountTxFields | None = None

    def __post_init__(self) -> None:
        if self.fee is not None and self.fee.nonce != self.primary.nonce + 1:
            raise ValueError("Fee transaction nonce must follow the primary nonce")


@dataclass(frozen=True)
class SignedTransaction:
    """Output of a signing collaborator."""

    encoded: str
    txid: str


class FeeLeg(BaseModel):
    """Signed account-model fee transaction paired with a primary transfer."""

    encoded_transaction: str
    txid: str
    value: int = Field(..., ge=0)


class TransactionResult(BaseModel):
    encoded_transaction: str
    txid: str
    network_fee: int = Field(..., ge=0)
    protocol_fee: int = Field(default=0, ge=0)
    total_fee: int = Field(..., ge=0)
    metadata: dict[str, Any] | None = None
    fee_leg: FeeLeg | None = None


class SubmissionReceipt(BaseModel):
    txid: str
    fee_txid: str | None = None
