"""
Signing collaborators for account-model transactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from eth_account import Account

from txbuilder.errors import SigningError
from txbuilder.models import AccountTxFields, SignedTransaction


class AccountSigner(ABC):
    @abstractmethod
    def sign(self, fields: AccountTxFields, private_key: str) -> SignedTransaction:
        """Sign one transaction; raises SigningError on failure."""


class EthAccountSigner(AccountSigner):
    """EIP-1559 (type 2) signing with eth-account."""

    def sign(self, fields: AccountTxFields, private_key: str) -> SignedTransaction:
        try:
            signed = Account.sign_transaction(fields.to_dict(), private_key)
        except Exception as e:
            raise SigningError(f"Failed to sign transaction nonce {fields.nonce}: {e}") from e

        return SignedTransaction(
            encoded="0x" + bytes(signed.raw_transaction).hex(),
            txid="0x" + bytes(signed.hash).hex(),
        )

    def address_for(self, private_key: str) -> str:
        try:
            return Account.from_key(private_key).address
        except Exception as e:
            raise SigningError(f"Invalid private key: {e}") from e
