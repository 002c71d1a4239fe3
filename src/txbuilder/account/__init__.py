"""
Account-model (EVM) transfers: native value, ERC-20, ERC-721 and ERC-1155.
"""

from txbuilder.account.builder import AccountTransactionBuilder
from txbuilder.account.signer import AccountSigner, EthAccountSigner

__all__ = [
    "AccountSigner",
    "AccountTransactionBuilder",
    "EthAccountSigner",
]
