"""
Raw transaction serialization.

Builds version 2 segwit transactions from a TransactionPlan. Input txids
are given in RPC (big-endian) hex and reversed on the wire.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from txbuilder.address import address_to_scriptpubkey
from txbuilder.models import DataOutput, TransactionPlan

SEQUENCE_FINAL = 0xFFFFFFFF


@dataclass
class TxIn:
    txid: str
    vout: int
    value: int
    scriptpubkey: bytes = b""
    sequence: int = SEQUENCE_FINAL

    @property
    def outpoint(self) -> bytes:
        return serialize_outpoint(self.txid, self.vout)


@dataclass
class TxOut:
    value: int
    script: bytes


@dataclass
class RawTransaction:
    inputs: list[TxIn] = field(default_factory=list)
    outputs: list[TxOut] = field(default_factory=list)
    version: int = 2
    locktime: int = 0

    @classmethod
    def from_plan(cls, plan: TransactionPlan) -> RawTransaction:
        inputs = [
            TxIn(
                txid=unit.txid,
                vout=unit.vout,
                value=unit.value,
                scriptpubkey=bytes.fromhex(unit.scriptpubkey),
            )
            for unit in plan.inputs
        ]
        outputs = []
        for out in plan.outputs:
            if isinstance(out, DataOutput):
                outputs.append(TxOut(value=out.value, script=out.payload))
            else:
                outputs.append(TxOut(value=out.value, script=address_to_scriptpubkey(out.address)))
        return cls(inputs=inputs, outputs=outputs)

    def serialize(self, witnesses: list[list[bytes]] | None = None) -> bytes:
        """Serialize, in segwit format when witnesses are given."""
        result = struct.pack("<I", self.version)
        if witnesses is not None:
            # Marker and flag for SegWit
            result += bytes([0x00, 0x01])

        result += encode_varint(len(self.inputs))
        for inp in self.inputs:
            # Empty scriptSig, native segwit only
            result += inp.outpoint + bytes([0x00]) + struct.pack("<I", inp.sequence)

        result += encode_varint(len(self.outputs))
        for out in self.outputs:
            result += serialize_output(out)

        if witnesses is not None:
            for stack in witnesses:
                result += encode_varint(len(stack))
                for item in stack:
                    result += encode_varint(len(item)) + item

        result += struct.pack("<I", self.locktime)
        return result

    def txid(self) -> str:
        """Txid over the non-witness serialization, in RPC byte order."""
        return hash256(self.serialize())[::-1].hex()


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def serialize_outpoint(txid: str, vout: int) -> bytes:
    return bytes.fromhex(txid)[::-1] + struct.pack("<I", vout)


def serialize_output(out: TxOut) -> bytes:
    return struct.pack("<Q", out.value) + encode_varint(len(out.script)) + out.script
