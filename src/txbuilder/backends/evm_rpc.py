"""
Ethereum JSON-RPC backend.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from txbuilder.backends.base import AccountBackend
from txbuilder.errors import BroadcastError, NetworkError
from txbuilder.models import GasMarket

DEFAULT_RPC_TIMEOUT = 30.0


class JsonRpcBackend(AccountBackend):
    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def _rpc_call(self, method: str, params: list | None = None) -> Any:
        """
        Make a JSON-RPC call.

        Raises:
            NetworkError: On transport failures and RPC error replies
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self.client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise NetworkError(f"RPC call {method} failed: {e}") from e

        if data.get("error"):
            error_info = data["error"]
            error_code = error_info.get("code", "unknown")
            error_msg = error_info.get("message", str(error_info))
            raise NetworkError(f"RPC error {error_code}: {error_msg}")

        return data.get("result")

    async def get_transaction_count(self, address: str) -> int:
        result = await self._rpc_call("eth_getTransactionCount", [address, "pending"])
        return int(result, 16)

    async def get_gas_market(self) -> GasMarket:
        block = await self._rpc_call("eth_getBlockByNumber", ["latest", False])
        if not block or "baseFeePerGas" not in block:
            raise NetworkError("Latest block has no base fee (pre-London chain?)")
        priority = await self._rpc_call("eth_maxPriorityFeePerGas")
        return GasMarket(
            base_fee_per_gas=int(block["baseFeePerGas"], 16),
            max_priority_fee_per_gas=int(priority, 16),
        )

    async def estimate_gas(self, sender: str, to: str, data: bytes, value: int = 0) -> int:
        call = {"from": sender, "to": to, "data": "0x" + data.hex(), "value": hex(value)}
        result = await self._rpc_call("eth_estimateGas", [call])
        return int(result, 16)

    async def send_raw_transaction(self, raw_tx: str) -> str:
        try:
            tx_hash = await self._rpc_call("eth_sendRawTransaction", [raw_tx])
        except NetworkError as e:
            raise BroadcastError(f"Broadcast failed: {e}") from e
        logger.info(f"Broadcast transaction: {tx_hash}")
        return tx_hash

    async def close(self) -> None:
        await self.client.aclose()
