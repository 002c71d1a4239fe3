"""
Error taxonomy for transaction assembly.

Every failure surfaced to a caller is a subclass of TxBuilderError so it can
be matched by type. Collaborator failures are wrapped once and re-raised.
"""

from __future__ import annotations


class TxBuilderError(Exception):
    """Base class for all transaction builder errors."""

    pass


class ValidationError(TxBuilderError):
    """Malformed address, amount, fee rate, key or payload.

    Raised before any network or selection work happens.
    """

    pass


class InvalidFeeConfigError(ValidationError):
    pass


class PayloadTooLargeError(ValidationError):
    """Data payload exceeds the protocol maximum."""

    pass


class SelectionError(TxBuilderError):
    pass


class NoSpendableUnitsError(SelectionError):
    """No spendable units remain after filtering excluded categories."""

    pass


class InsufficientFundsError(SelectionError):
    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Insufficient funds: need {required}, have {available}")


class InsufficientProtocolBalanceError(SelectionError):
    """No asset-bearing unit covers the requested quantity."""

    pass


class NetworkError(TxBuilderError):
    pass


class BroadcastError(NetworkError):
    pass


class SigningError(TxBuilderError):
    pass
