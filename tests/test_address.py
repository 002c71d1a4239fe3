"""
Tests for address and key syntax helpers.
"""

from __future__ import annotations

import base58
import pytest

from txbuilder.address import (
    address_to_scriptpubkey,
    decode_wif,
    is_valid_account_address,
    is_valid_account_key,
    is_valid_address,
    is_valid_wif,
)
from txbuilder.errors import ValidationError

P2WPKH_MAINNET = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
P2WSH_TESTNET = "tb1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3q0sl5k7"
P2PKH_MAINNET = "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN2"
P2SH_MAINNET = "3J98t1WpEZ73CNmQviecrnyiWrnqRhWNLy"


class TestAddressToScriptPubKey:
    def test_p2wpkh(self) -> None:
        script = address_to_scriptpubkey(P2WPKH_MAINNET)
        assert script.hex() == "0014751e76e8199196d454941c45d1b3a323f1433bd6"

    def test_p2wsh(self) -> None:
        script = address_to_scriptpubkey(P2WSH_TESTNET)
        assert script[:2] == b"\x00\x20"
        assert len(script) == 34

    def test_p2pkh(self) -> None:
        script = address_to_scriptpubkey(P2PKH_MAINNET)
        assert script[:3] == b"\x76\xa9\x14"
        assert script[-2:] == b"\x88\xac"

    def test_p2sh(self) -> None:
        script = address_to_scriptpubkey(P2SH_MAINNET)
        assert script[:2] == b"\xa9\x14"
        assert script[-1:] == b"\x87"

    def test_regtest_address(self, sender_address: str, sender_script: str) -> None:
        assert sender_address.startswith("bcrt1q")
        assert address_to_scriptpubkey(sender_address).hex() == sender_script

    @pytest.mark.parametrize(
        "address",
        [
            "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t5",  # bad checksum
            "1BvBMSEYstWetqTFn5Au4m4GFg7xJaNVN3",  # bad checksum
            "0OIl",
        ],
    )
    def test_invalid(self, address: str) -> None:
        with pytest.raises(ValidationError):
            address_to_scriptpubkey(address)


class TestIsValidAddress:
    def test_network_match(self) -> None:
        assert is_valid_address(P2WPKH_MAINNET, "mainnet")
        assert is_valid_address(P2PKH_MAINNET, "mainnet")
        assert is_valid_address(P2SH_MAINNET, "mainnet")
        assert is_valid_address(P2WSH_TESTNET, "testnet")
        assert is_valid_address(P2WSH_TESTNET, "signet")

    def test_network_mismatch(self, sender_address: str) -> None:
        assert not is_valid_address(P2WPKH_MAINNET, "testnet")
        assert not is_valid_address(P2PKH_MAINNET, "regtest")
        assert not is_valid_address(P2WSH_TESTNET, "mainnet")
        assert not is_valid_address(sender_address, "testnet")

    def test_garbage(self) -> None:
        assert not is_valid_address("", "mainnet")
        assert not is_valid_address("hello world", "mainnet")


class TestWif:
    def test_known_mainnet_key(self) -> None:
        wif = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
        assert decode_wif(wif, "mainnet") == (1).to_bytes(32, "big")
        assert is_valid_wif(wif, "mainnet")
        assert not is_valid_wif(wif, "regtest")

    def test_regtest_key(self, sender_wif: str) -> None:
        assert decode_wif(sender_wif, "regtest") == bytes.fromhex("11" * 32)

    def test_uncompressed_rejected(self) -> None:
        wif = base58.b58encode_check(b"\xef" + b"\x11" * 32).decode()
        with pytest.raises(ValidationError, match="compressed"):
            decode_wif(wif, "regtest")

    def test_bad_checksum(self) -> None:
        assert not is_valid_wif("KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWm", "mainnet")


class TestAccountSyntax:
    def test_account_address(self, eth_sender: str) -> None:
        assert is_valid_account_address(eth_sender)
        assert is_valid_account_address(eth_sender.lower())
        assert not is_valid_account_address("0x1234")
        assert not is_valid_account_address("")

    def test_account_key(self, eth_sender_key: str) -> None:
        assert is_valid_account_key(eth_sender_key)
        assert is_valid_account_key(eth_sender_key[2:])
        assert not is_valid_account_key("0x" + "zz" * 32)
        assert not is_valid_account_key("0x1234")
