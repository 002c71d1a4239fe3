"""
Protocol constants for transaction assembly.

Size constants describe native segwit (P2WPKH) spends. They are estimates
used for fee pricing, not exact serialized sizes.
"""

from __future__ import annotations

# Standard P2PKH dust limit in Bitcoin Core
DUST_THRESHOLD = 546  # satoshis

DEFAULT_FEE_RATE = 5  # sat/vB
MAX_FEE_RATE = 500

# Protocol fee defaults
MIN_PERCENTAGE_FEE = 0
MAX_PERCENTAGE_FEE = 100
DEFAULT_PERCENTAGE_FEE = "0.5"
DEFAULT_FLAT_FEE = 10_000  # sats

# Size estimation (vbytes)
PER_INPUT_BYTES = 68
PER_OUTPUT_BYTES = 31
DATA_OUTPUT_BYTES = 43  # base cost of a data-carrying output, payload bytes are added on top
FIXED_OVERHEAD_BYTES = 10

# Inscription funding: base overhead added to the content-type and content lengths
INSCRIPTION_BASE_BYTES = 100
INSCRIPTION_POSTAGE = DUST_THRESHOLD
INSCRIPTION_MARKER = b"stamp"
MAX_INSCRIPTION_CONTENT_SIZE = 1024 * 400  # 400KB

# Asset overlay (Counterparty-style OP_RETURN messages)
OVERLAY_MARKER = b"CNTRPRTY"
OVERLAY_OP_SEND = 0x00
OVERLAY_OP_ISSUANCE = 0x14
OP_RETURN_MAX_SIZE = 80

# Fungible token transfers
MAX_TOKEN_SYMBOL_LENGTH = 32

# Account model (EVM)
NATIVE_TRANSFER_GAS = 21_000
EIP1559_TX_TYPE = 2

API_ENDPOINTS = {
    "mainnet": "https://mempool.space/api",
    "testnet": "https://mempool.space/testnet/api",
    "signet": "https://mempool.space/signet/api",
}
