"""
Collaborator interfaces for chain access.

The builders only ever talk to these abstractions. Implementations wrap
their own transport errors in NetworkError or BroadcastError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from txbuilder.models import FeeMarket, GasMarket, SpendableUnit


class UtxoBackend(ABC):
    """UTXO-chain data source and broadcaster."""

    @abstractmethod
    async def get_spendable_units(self, address: str) -> list[SpendableUnit]:
        """Get unspent outputs owned by address"""

    @abstractmethod
    async def get_fee_market(self) -> FeeMarket:
        """Get current fee rates in sat/vB"""

    @abstractmethod
    async def broadcast_transaction(self, tx_hex: str) -> str:
        """Broadcast transaction, returns txid"""

    async def close(self) -> None:
        """Close backend connection"""
        pass


class AccountBackend(ABC):
    """Account-chain (EVM) JSON-RPC surface."""

    @abstractmethod
    async def get_transaction_count(self, address: str) -> int:
        """Next nonce for address, including pending transactions"""

    @abstractmethod
    async def get_gas_market(self) -> GasMarket:
        """Current base fee and priority fee in wei"""

    @abstractmethod
    async def estimate_gas(self, sender: str, to: str, data: bytes, value: int = 0) -> int:
        """Gas units needed to execute a call"""

    @abstractmethod
    async def send_raw_transaction(self, raw_tx: str) -> str:
        """Broadcast signed transaction, returns transaction hash"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
