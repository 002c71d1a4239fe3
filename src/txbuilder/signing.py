"""
Signing collaborators for UTXO plans.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from coincurve import PrivateKey
from loguru import logger

from txbuilder.address import decode_wif, pubkey_to_p2wpkh_address, pubkey_to_p2wpkh_script
from txbuilder.errors import SigningError, ValidationError
from txbuilder.models import SignedTransaction, TransactionPlan
from txbuilder.transaction import RawTransaction, encode_varint, hash256, serialize_output

SIGHASH_ALL = 1


class UtxoSigner(ABC):
    @abstractmethod
    def sign(self, plan: TransactionPlan, private_key: str) -> SignedTransaction:
        """Sign every input of ``plan``; raises SigningError on failure."""


def compute_sighash_segwit(
    tx: RawTransaction,
    input_index: int,
    script_code: bytes,
    value: int,
    sighash_type: int = SIGHASH_ALL,
) -> bytes:
    """BIP143 signature hash."""
    if input_index >= len(tx.inputs):
        raise SigningError("Input index out of range")

    hash_prevouts = hash256(b"".join(inp.outpoint for inp in tx.inputs))
    hash_sequence = hash256(b"".join(inp.sequence.to_bytes(4, "little") for inp in tx.inputs))
    hash_outputs = hash256(b"".join(serialize_output(out) for out in tx.outputs))

    target = tx.inputs[input_index]
    preimage = (
        tx.version.to_bytes(4, "little")
        + hash_prevouts
        + hash_sequence
        + target.outpoint
        + encode_varint(len(script_code))
        + script_code
        + value.to_bytes(8, "little")
        + target.sequence.to_bytes(4, "little")
        + hash_outputs
        + tx.locktime.to_bytes(4, "little")
        + sighash_type.to_bytes(4, "little")
    )
    return hash256(preimage)


def create_p2wpkh_script_code(pubkey_hash: bytes) -> bytes:
    """P2PKH-shaped scriptCode used for P2WPKH sighashes."""
    # OP_DUP OP_HASH160 PUSH20 <pkh> OP_EQUALVERIFY OP_CHECKSIG
    return b"\x76\xa9\x14" + pubkey_hash + b"\x88\xac"


class P2WPKHSigner(UtxoSigner):
    """Signs plans whose inputs all pay to the P2WPKH script of one WIF key."""

    def __init__(self, network: str = "mainnet"):
        self.network = network

    def address_for(self, wif: str) -> str:
        key = self._load_key(wif)
        return pubkey_to_p2wpkh_address(key.public_key.format(compressed=True), self.network)

    def sign(self, plan: TransactionPlan, private_key: str) -> SignedTransaction:
        key = self._load_key(private_key)
        pubkey = key.public_key.format(compressed=True)
        own_script = pubkey_to_p2wpkh_script(pubkey)
        script_code = create_p2wpkh_script_code(own_script[2:])

        tx = RawTransaction.from_plan(plan)
        witnesses: list[list[bytes]] = []
        for index, inp in enumerate(tx.inputs):
            if inp.scriptpubkey != own_script:
                raise SigningError(
                    f"Input {inp.txid}:{inp.vout} is not locked to the signing key"
                )
            sighash = compute_sighash_segwit(tx, index, script_code, inp.value)
            try:
                # sighash is already SHA256d, hasher=None skips hashing
                signature = key.sign(sighash, hasher=None)
            except Exception as e:
                raise SigningError(f"Failed to sign input {index}: {e}") from e
            witnesses.append([signature + bytes([SIGHASH_ALL]), pubkey])

        encoded = tx.serialize(witnesses).hex()
        txid = tx.txid()
        logger.debug(f"Signed {len(witnesses)} inputs, txid {txid}")
        return SignedTransaction(encoded=encoded, txid=txid)

    def _load_key(self, wif: str) -> PrivateKey:
        try:
            return PrivateKey(decode_wif(wif, self.network))
        except (ValidationError, ValueError) as e:
            raise SigningError(f"Invalid private key: {e}") from e
