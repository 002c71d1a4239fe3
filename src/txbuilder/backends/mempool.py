"""
Esplora / mempool.space REST backend.

Unit categories come from optional indexer fields on each UTXO entry
(``isInscription``, ``isOverlay`` with ``overlayAsset`` and
``overlayAmount``, ``isRune`` with ``runeId`` and ``runeAmount``).
Entries without them are plain.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from txbuilder.address import address_to_scriptpubkey
from txbuilder.backends.base import UtxoBackend
from txbuilder.constants import API_ENDPOINTS
from txbuilder.errors import BroadcastError, NetworkError
from txbuilder.models import FeeMarket, SpendableUnit, UnitCategory

DEFAULT_TIMEOUT = 30.0


def parse_unit(entry: dict[str, Any], scriptpubkey: str) -> SpendableUnit:
    category = UnitCategory.PLAIN
    asset_id = None
    asset_quantity = 0

    if entry.get("isInscription"):
        category = UnitCategory.INSCRIPTION
    elif entry.get("isOverlay"):
        category = UnitCategory.ASSET_OVERLAY
        asset_id = entry.get("overlayAsset")
        asset_quantity = int(entry.get("overlayAmount", 0))
    elif entry.get("isRune"):
        category = UnitCategory.TOKEN
        asset_id = entry.get("runeId")
        asset_quantity = int(entry.get("runeAmount", 0))

    return SpendableUnit(
        txid=entry["txid"],
        vout=int(entry["vout"]),
        value=int(entry["value"]),
        scriptpubkey=scriptpubkey,
        category=category,
        asset_id=asset_id,
        asset_quantity=asset_quantity,
    )


class MempoolBackend(UtxoBackend):
    def __init__(
        self,
        base_url: str | None = None,
        network: str = "mainnet",
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.network = network
        self.base_url = (base_url or API_ENDPOINTS.get(network, API_ENDPOINTS["mainnet"])).rstrip(
            "/"
        )
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _api_call(self, method: str, endpoint: str, content: str | None = None) -> Any:
        url = f"{self.base_url}/{endpoint}"
        try:
            if method == "GET":
                response = await self.client.get(url)
            elif method == "POST":
                response = await self.client.post(url, content=content)
            else:
                raise ValueError(f"Unsupported HTTP method: {method}")

            response.raise_for_status()
            return response

        except httpx.HTTPError as e:
            logger.error(f"Mempool API call failed: {endpoint} - {e}")
            raise

    async def get_spendable_units(self, address: str) -> list[SpendableUnit]:
        try:
            response = await self._api_call("GET", f"address/{address}/utxo")
            entries = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise NetworkError(f"Failed to fetch UTXOs for {address}: {e}") from e

        scriptpubkey = address_to_scriptpubkey(address).hex()
        units = [parse_unit(entry, scriptpubkey) for entry in entries]
        logger.debug(f"Fetched {len(units)} UTXOs for {address}")
        return units

    async def get_fee_market(self) -> FeeMarket:
        try:
            response = await self._api_call("GET", "v1/fees/recommended")
            data = response.json()
            return FeeMarket(
                low=float(data["hourFee"]),
                medium=float(data["halfHourFee"]),
                high=float(data["fastestFee"]),
            )
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise NetworkError(f"Failed to fetch fee rates: {e}") from e

    async def broadcast_transaction(self, tx_hex: str) -> str:
        try:
            response = await self._api_call("POST", "tx", content=tx_hex)
        except httpx.HTTPError as e:
            raise BroadcastError(f"Broadcast failed: {e}") from e

        txid = response.text.strip()
        logger.info(f"Broadcast transaction: {txid}")
        return txid

    async def close(self) -> None:
        await self.client.aclose()
