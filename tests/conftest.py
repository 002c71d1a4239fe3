"""
Shared fixtures for txbuilder tests.

Keys are derived from fixed secrets so addresses and scripts never need to
be hard-coded.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import base58
import pytest
from coincurve import PrivateKey
from eth_account import Account

from txbuilder.address import (
    is_valid_account_address,
    is_valid_address,
    pubkey_to_p2wpkh_address,
    pubkey_to_p2wpkh_script,
)
from txbuilder.fees import FeePolicy
from txbuilder.models import (
    FeeMarket,
    FeeSchedule,
    GasMarket,
    SignedTransaction,
    SpendableUnit,
    UnitCategory,
)

NETWORK = "regtest"
SENDER_SECRET = bytes.fromhex("11" * 32)
COLLECTOR_SECRET = bytes.fromhex("22" * 32)
RECIPIENT_SECRET = bytes.fromhex("33" * 32)
FAKE_TXID = "ff" * 32


def regtest_wif(secret: bytes) -> str:
    return base58.b58encode_check(bytes([0xEF]) + secret + b"\x01").decode()


def p2wpkh_address(secret: bytes) -> str:
    pubkey = PrivateKey(secret).public_key.format(compressed=True)
    return pubkey_to_p2wpkh_address(pubkey, NETWORK)


def p2wpkh_script_hex(secret: bytes) -> str:
    pubkey = PrivateKey(secret).public_key.format(compressed=True)
    return pubkey_to_p2wpkh_script(pubkey).hex()


def _make_unit(
    value: int,
    index: int = 0,
    category: UnitCategory = UnitCategory.PLAIN,
    asset_id: str | None = None,
    asset_quantity: int = 0,
    scriptpubkey: str | None = None,
) -> SpendableUnit:
    if scriptpubkey is None:
        scriptpubkey = p2wpkh_script_hex(SENDER_SECRET)
    return SpendableUnit(
        txid=f"{index:02x}" * 32,
        vout=index,
        value=value,
        scriptpubkey=scriptpubkey,
        category=category,
        asset_id=asset_id,
        asset_quantity=asset_quantity,
    )


@pytest.fixture
def make_unit():
    """Factory for spendable units locked to the sender key."""
    return _make_unit


@pytest.fixture
def sender_wif() -> str:
    return regtest_wif(SENDER_SECRET)


@pytest.fixture
def sender_address() -> str:
    return p2wpkh_address(SENDER_SECRET)


@pytest.fixture
def sender_script() -> str:
    return p2wpkh_script_hex(SENDER_SECRET)


@pytest.fixture
def collector_address() -> str:
    return p2wpkh_address(COLLECTOR_SECRET)


@pytest.fixture
def recipient_address() -> str:
    return p2wpkh_address(RECIPIENT_SECRET)


@pytest.fixture
def fee_schedule(collector_address: str) -> FeeSchedule:
    return FeeSchedule(
        collector_address=collector_address,
        percentage_rate="0.5",
        flat_fee=10_000,
        min_enforceable=546,
    )


@pytest.fixture
def fee_policy(fee_schedule: FeeSchedule) -> FeePolicy:
    return FeePolicy(fee_schedule, lambda address: is_valid_address(address, NETWORK))


@pytest.fixture
def utxo_backend() -> AsyncMock:
    backend = AsyncMock()
    backend.get_spendable_units.return_value = []
    backend.get_fee_market.return_value = FeeMarket(low=2.0, medium=5.0, high=20.0)
    backend.broadcast_transaction.return_value = FAKE_TXID
    return backend


@pytest.fixture
def mock_signer() -> MagicMock:
    signer = MagicMock()
    signer.sign.return_value = SignedTransaction(encoded="00" * 10, txid=FAKE_TXID)
    return signer


# Account model


ETH_SENDER_KEY = "0x" + "11" * 32
ETH_COLLECTOR_KEY = "0x" + "22" * 32
ETH_RECIPIENT_KEY = "0x" + "33" * 32
TOKEN_CONTRACT = "0x" + "ab" * 20


@pytest.fixture
def eth_sender_key() -> str:
    return ETH_SENDER_KEY


@pytest.fixture
def token_contract() -> str:
    return TOKEN_CONTRACT


@pytest.fixture
def eth_sender() -> str:
    return Account.from_key(ETH_SENDER_KEY).address


@pytest.fixture
def eth_collector() -> str:
    return Account.from_key(ETH_COLLECTOR_KEY).address


@pytest.fixture
def eth_recipient() -> str:
    return Account.from_key(ETH_RECIPIENT_KEY).address


@pytest.fixture
def gas_market() -> GasMarket:
    return GasMarket(base_fee_per_gas=10 * 10**9, max_priority_fee_per_gas=2 * 10**9)


@pytest.fixture
def account_backend(gas_market: GasMarket) -> AsyncMock:
    backend = AsyncMock()
    backend.get_transaction_count.return_value = 7
    backend.get_gas_market.return_value = gas_market
    backend.estimate_gas.return_value = 60_000
    backend.send_raw_transaction.side_effect = lambda raw: "0xhash-" + raw
    return backend


@pytest.fixture
def account_fee_policy(eth_collector: str) -> FeePolicy:
    schedule = FeeSchedule(
        collector_address=eth_collector,
        percentage_rate="0.5",
        flat_fee=10**15,
        min_enforceable=1,
    )
    return FeePolicy(schedule, is_valid_account_address)
