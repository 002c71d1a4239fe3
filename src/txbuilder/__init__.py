"""
txbuilder - Transaction assembly for UTXO and account-model chains

Selects inputs, prices fees, lays out outputs and signs transfers for
bitcoin (native, token, inscription and asset-overlay) and EVM chains.
"""

__version__ = "0.1.0"

from txbuilder.account import AccountTransactionBuilder, EthAccountSigner
from txbuilder.builder import UtxoTransactionBuilder
from txbuilder.constants import DUST_THRESHOLD
from txbuilder.errors import (
    BroadcastError,
    InsufficientFundsError,
    InsufficientProtocolBalanceError,
    InvalidFeeConfigError,
    NetworkError,
    NoSpendableUnitsError,
    PayloadTooLargeError,
    SelectionError,
    SigningError,
    TxBuilderError,
    ValidationError,
)
from txbuilder.fees import FeePolicy
from txbuilder.models import (
    FeeDecision,
    FeeMode,
    FeePriority,
    FeeSchedule,
    SpendableUnit,
    TransactionPlan,
    TransactionResult,
    UnitCategory,
)
from txbuilder.selection import CoinSelector
from txbuilder.signing import P2WPKHSigner

__all__ = [
    "AccountTransactionBuilder",
    "BroadcastError",
    "CoinSelector",
    "DUST_THRESHOLD",
    "EthAccountSigner",
    "FeeDecision",
    "FeeMode",
    "FeePolicy",
    "FeePriority",
    "FeeSchedule",
    "InsufficientFundsError",
    "InsufficientProtocolBalanceError",
    "InvalidFeeConfigError",
    "NetworkError",
    "NoSpendableUnitsError",
    "P2WPKHSigner",
    "PayloadTooLargeError",
    "SelectionError",
    "SigningError",
    "SpendableUnit",
    "TransactionPlan",
    "TransactionResult",
    "TxBuilderError",
    "UnitCategory",
    "UtxoTransactionBuilder",
    "ValidationError",
    "__version__",
]
