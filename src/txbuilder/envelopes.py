"""
Protocol envelopes carried by data outputs.

An envelope is built once from caller input and knows how to serialize
itself into the locking script of its data output.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any

from txbuilder.constants import (
    INSCRIPTION_MARKER,
    MAX_INSCRIPTION_CONTENT_SIZE,
    MAX_TOKEN_SYMBOL_LENGTH,
    OP_RETURN_MAX_SIZE,
    OVERLAY_MARKER,
    OVERLAY_OP_ISSUANCE,
    OVERLAY_OP_SEND,
)
from txbuilder.errors import PayloadTooLargeError, ValidationError

OP_FALSE = 0x00
OP_IF = 0x63
OP_ENDIF = 0x68
OP_RETURN = 0x6A
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E

MAX_QUANTITY = 2**64 - 1


def push_data(data: bytes) -> bytes:
    """Encode a data push with the smallest length prefix."""
    length = len(data)
    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", length) + data
    return bytes([OP_PUSHDATA4]) + struct.pack("<I", length) + data


class OverlayOperation(str, Enum):
    SEND = "send"
    ISSUANCE = "issuance"

    @property
    def tag(self) -> int:
        return OVERLAY_OP_SEND if self is OverlayOperation.SEND else OVERLAY_OP_ISSUANCE


@dataclass(frozen=True)
class InscriptionEnvelope:
    """Bare-script inscription: OP_FALSE OP_IF "stamp" <type> <content> OP_ENDIF."""

    content_type: str
    content: bytes

    def __post_init__(self) -> None:
        if not self.content_type:
            raise ValidationError("Content type is required")
        if not self.content:
            raise ValidationError("Inscription content is empty")
        if len(self.content) > MAX_INSCRIPTION_CONTENT_SIZE:
            raise PayloadTooLargeError(
                f"Content size {len(self.content)} exceeds maximum "
                f"{MAX_INSCRIPTION_CONTENT_SIZE}"
            )

    @classmethod
    def from_request(cls, content_type: str, content: bytes | str) -> InscriptionEnvelope:
        raw = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        return cls(content_type=content_type, content=raw)

    @property
    def content_type_bytes(self) -> bytes:
        return self.content_type.encode("utf-8")

    def to_script(self) -> bytes:
        return (
            bytes([OP_FALSE, OP_IF])
            + push_data(INSCRIPTION_MARKER)
            + push_data(self.content_type_bytes)
            + push_data(self.content)
            + bytes([OP_ENDIF])
        )


@dataclass(frozen=True)
class OverlayEnvelope:
    """
    Asset-overlay message embedded in an OP_RETURN output.

    Payload layout: marker, operation tag, len(asset), asset,
    quantity (u64 big-endian), len(memo), memo.
    """

    operation: OverlayOperation
    asset: str
    quantity: int
    memo: str = ""

    def __post_init__(self) -> None:
        if not self.asset:
            raise ValidationError("Asset name is required")
        if self.quantity <= 0 or self.quantity > MAX_QUANTITY:
            raise ValidationError(f"Invalid asset quantity: {self.quantity}")
        size = len(self.payload())
        if size > OP_RETURN_MAX_SIZE:
            raise PayloadTooLargeError(
                f"Overlay payload is {size} bytes, limit is {OP_RETURN_MAX_SIZE}"
            )

    def payload(self) -> bytes:
        asset = self.asset.encode("utf-8")
        memo = self.memo.encode("utf-8")
        if len(asset) > 0xFF or len(memo) > 0xFF:
            raise PayloadTooLargeError("Asset name or memo too long")
        return (
            OVERLAY_MARKER
            + bytes([self.operation.tag, len(asset)])
            + asset
            + struct.pack(">Q", self.quantity)
            + bytes([len(memo)])
            + memo
        )

    def to_script(self) -> bytes:
        return bytes([OP_RETURN]) + push_data(self.payload())


@dataclass(frozen=True)
class TokenTransferEnvelope:
    """Fungible-token transfer details. Reported only, nothing is written on chain."""

    asset_id: str
    quantity: int
    symbol: str = ""

    def __post_init__(self) -> None:
        if not self.asset_id:
            raise ValidationError("Token id is required")
        if self.quantity <= 0:
            raise ValidationError(f"Invalid token quantity: {self.quantity}")
        if len(self.symbol) > MAX_TOKEN_SYMBOL_LENGTH:
            raise ValidationError(
                f"Token symbol longer than {MAX_TOKEN_SYMBOL_LENGTH} characters"
            )

    def metadata(self) -> dict[str, Any]:
        return {"symbol": self.symbol, "asset_id": self.asset_id, "quantity": self.quantity}
