"""
Calldata for token-standard transfers.
"""

from __future__ import annotations

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

ERC20_TRANSFER = "transfer(address,uint256)"
ERC721_TRANSFER_FROM = "transferFrom(address,address,uint256)"
ERC721_SAFE_TRANSFER_FROM = "safeTransferFrom(address,address,uint256)"
ERC721_SAFE_TRANSFER_FROM_DATA = "safeTransferFrom(address,address,uint256,bytes)"
ERC1155_SAFE_TRANSFER_FROM = "safeTransferFrom(address,address,uint256,uint256,bytes)"


def encode_call(signature: str, arg_types: list[str], args: list) -> bytes:
    return function_signature_to_4byte_selector(signature) + encode(arg_types, args)


def erc20_transfer(recipient: str, amount: int) -> bytes:
    return encode_call(
        ERC20_TRANSFER, ["address", "uint256"], [to_checksum_address(recipient), amount]
    )


def erc721_transfer(
    sender: str, recipient: str, token_id: int, safe: bool = False, data: bytes = b""
) -> bytes:
    """transferFrom, or safeTransferFrom when ``safe`` (with ``data`` if any)."""
    parties = [to_checksum_address(sender), to_checksum_address(recipient)]
    if not safe:
        return encode_call(
            ERC721_TRANSFER_FROM, ["address", "address", "uint256"], parties + [token_id]
        )
    if data:
        return encode_call(
            ERC721_SAFE_TRANSFER_FROM_DATA,
            ["address", "address", "uint256", "bytes"],
            parties + [token_id, data],
        )
    return encode_call(
        ERC721_SAFE_TRANSFER_FROM, ["address", "address", "uint256"], parties + [token_id]
    )


def erc1155_transfer(
    sender: str, recipient: str, token_id: int, amount: int, data: bytes = b""
) -> bytes:
    return encode_call(
        ERC1155_SAFE_TRANSFER_FROM,
        ["address", "address", "uint256", "uint256", "bytes"],
        [to_checksum_address(sender), to_checksum_address(recipient), token_id, amount, data],
    )
