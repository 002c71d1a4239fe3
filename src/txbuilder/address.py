"""
Address and key syntax helpers.

Only syntax is checked here: checksum, version byte or HRP, and program
length. Whether an address is spendable is the network's business.
"""

from __future__ import annotations

import hashlib
import re

import base58
import bech32
from eth_utils import is_address

from txbuilder.errors import ValidationError

NETWORK_HRP = {"mainnet": "bc", "testnet": "tb", "signet": "tb", "regtest": "bcrt"}

# Base58 version bytes accepted per network (P2PKH, P2SH)
NETWORK_BASE58_VERSIONS = {
    "mainnet": (0x00, 0x05),
    "testnet": (0x6F, 0xC4),
    "signet": (0x6F, 0xC4),
    "regtest": (0x6F, 0xC4),
}

WIF_VERSION = {"mainnet": 0x80, "testnet": 0xEF, "signet": 0xEF, "regtest": 0xEF}

_HEX_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def _split_hrp(address: str) -> str:
    return address.rsplit("1", 1)[0].lower()


def address_to_scriptpubkey(address: str) -> bytes:
    """
    Convert an address to its locking script.

    Supports P2WPKH, P2WSH, P2TR, P2PKH and P2SH on any network.
    """
    if address.lower().startswith(("bc1", "tb1", "bcrt1")):
        hrp = _split_hrp(address)
        witver, witprog = bech32.decode(hrp, address)
        if witver is None or witprog is None:
            raise ValidationError(f"Invalid bech32 address: {address}")

        program = bytes(witprog)
        if witver == 0:
            if len(program) == 20:
                # P2WPKH: OP_0 <20-byte-pubkeyhash>
                return bytes([0x00, 0x14]) + program
            if len(program) == 32:
                # P2WSH: OP_0 <32-byte-scripthash>
                return bytes([0x00, 0x20]) + program
        elif witver == 1 and len(program) == 32:
            # P2TR: OP_1 <32-byte-pubkey>
            return bytes([0x51, 0x20]) + program

        raise ValidationError(f"Unsupported witness program in {address}")

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValidationError(f"Invalid base58 address: {address}") from e

    if len(decoded) != 21:
        raise ValidationError(f"Invalid address payload length: {address}")

    version, payload = decoded[0], decoded[1:]
    if version in (0x00, 0x6F):
        # OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
        return bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    if version in (0x05, 0xC4):
        # OP_HASH160 <20> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValidationError(f"Unknown address version: {version}")


def is_valid_address(address: str, network: str = "mainnet") -> bool:
    """Check that an address decodes and belongs to ``network``."""
    if not address:
        return False

    if address.lower().startswith(("bc1", "tb1", "bcrt1")):
        if _split_hrp(address) != NETWORK_HRP[network]:
            return False
    else:
        try:
            decoded = base58.b58decode_check(address)
        except ValueError:
            return False
        if not decoded or decoded[0] not in NETWORK_BASE58_VERSIONS[network]:
            return False

    try:
        address_to_scriptpubkey(address)
    except ValidationError:
        return False
    return True


def pubkey_to_p2wpkh_script(pubkey: bytes) -> bytes:
    """Create P2WPKH scriptPubKey (OP_0 <20-byte-hash>)"""
    return bytes([0x00, 0x14]) + hash160(pubkey)


def pubkey_to_p2wpkh_address(pubkey: bytes, network: str = "mainnet") -> str:
    if len(pubkey) != 33:
        raise ValidationError(f"Invalid compressed pubkey length: {len(pubkey)}")
    address = bech32.encode(NETWORK_HRP[network], 0, hash160(pubkey))
    if address is None:
        raise ValidationError("Failed to encode P2WPKH address")
    return address


def decode_wif(wif: str, network: str = "mainnet") -> bytes:
    """
    Decode a compressed WIF private key.

    Returns:
        The 32-byte secret
    """
    try:
        decoded = base58.b58decode_check(wif)
    except ValueError as e:
        raise ValidationError("Invalid WIF checksum") from e

    if len(decoded) != 34 or decoded[-1] != 0x01:
        raise ValidationError("Only compressed WIF keys are supported")
    if decoded[0] != WIF_VERSION[network]:
        raise ValidationError(f"WIF key is not for {network}")

    return decoded[1:33]


def is_valid_wif(wif: str, network: str = "mainnet") -> bool:
    try:
        decode_wif(wif, network)
    except ValidationError:
        return False
    return True


def is_valid_account_address(address: str) -> bool:
    return bool(address) and is_address(address)


def is_valid_account_key(key: str) -> bool:
    return bool(_HEX_KEY_RE.match(key or ""))
