"""
Transaction size and cost estimation.

All functions are pure: the same counts and payload sizes always give the
same estimate.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from txbuilder.constants import (
    DATA_OUTPUT_BYTES,
    FIXED_OVERHEAD_BYTES,
    INSCRIPTION_BASE_BYTES,
    INSCRIPTION_POSTAGE,
    PER_INPUT_BYTES,
    PER_OUTPUT_BYTES,
)
from txbuilder.envelopes import InscriptionEnvelope
from txbuilder.models import DataOutput, OutputSpec


def estimate_size(
    num_inputs: int, num_plain_outputs: int, data_payload_sizes: Sequence[int] = ()
) -> int:
    """Estimated virtual size in vbytes."""
    data_bytes = sum(DATA_OUTPUT_BYTES + size for size in data_payload_sizes)
    return (
        num_inputs * PER_INPUT_BYTES
        + num_plain_outputs * PER_OUTPUT_BYTES
        + data_bytes
        + FIXED_OVERHEAD_BYTES
    )


def estimate_fee(
    num_inputs: int,
    num_plain_outputs: int,
    fee_rate: float,
    data_payload_sizes: Sequence[int] = (),
) -> int:
    """Miner fee in satoshis, rounded up."""
    size = estimate_size(num_inputs, num_plain_outputs, data_payload_sizes)
    return math.ceil(size * fee_rate)


def estimate_plan_fee(num_inputs: int, outputs: Sequence[OutputSpec], fee_rate: float) -> int:
    """Miner fee for a concrete output list."""
    payload_sizes = [len(out.payload) for out in outputs if isinstance(out, DataOutput)]
    plain = len(outputs) - len(payload_sizes)
    return estimate_fee(num_inputs, plain, fee_rate, payload_sizes)


def inscription_cost(envelope: InscriptionEnvelope, fee_rate: float) -> int:
    """Postage plus the fee for carrying the inscription bytes."""
    size = INSCRIPTION_BASE_BYTES + len(envelope.content_type_bytes) + len(envelope.content)
    return INSCRIPTION_POSTAGE + math.ceil(size * fee_rate)


def gas_cost(gas_limit: int, max_fee_per_gas: int) -> int:
    """Worst-case account-model fee in wei."""
    return gas_limit * max_fee_per_gas
