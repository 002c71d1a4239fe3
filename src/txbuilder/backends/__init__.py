"""
Chain backends.

Available backends:
- MempoolBackend: Esplora / mempool.space REST API for the UTXO chain
- JsonRpcBackend: Ethereum JSON-RPC node for the account chain
"""

from txbuilder.backends.base import AccountBackend, UtxoBackend
from txbuilder.backends.evm_rpc import JsonRpcBackend
from txbuilder.backends.mempool import MempoolBackend

__all__ = [
    "AccountBackend",
    "JsonRpcBackend",
    "MempoolBackend",
    "UtxoBackend",
]
