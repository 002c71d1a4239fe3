"""
Plan lifecycle and funding.

A PlanSession tracks one request through
VALIDATING -> FUNDING -> COMPOSING -> BALANCED -> SIGNED -> SUBMITTED.
Any failure moves it to REJECTED with the reason; the error itself is
re-raised to the caller untouched.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from loguru import logger

from txbuilder.estimator import estimate_plan_fee
from txbuilder.models import NON_FUNDING_CATEGORIES, OutputSpec, SpendableUnit, TransferKind
from txbuilder.selection import CoinSelector, Selection


class PlanState(str, Enum):
    VALIDATING = "validating"
    FUNDING = "funding"
    COMPOSING = "composing"
    BALANCED = "balanced"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    REJECTED = "rejected"


_ORDER = [
    PlanState.VALIDATING,
    PlanState.FUNDING,
    PlanState.COMPOSING,
    PlanState.BALANCED,
    PlanState.SIGNED,
    PlanState.SUBMITTED,
]


class PlanSession:
    def __init__(self, kind: TransferKind | None = None):
        self.kind = kind
        self.state = PlanState.VALIDATING
        self.reason: str | None = None
        self.history: list[PlanState] = [PlanState.VALIDATING]

    def advance(self, state: PlanState) -> None:
        if self.state == PlanState.REJECTED:
            raise RuntimeError("Cannot advance a rejected plan")
        if _ORDER.index(state) != _ORDER.index(self.state) + 1:
            raise RuntimeError(f"Invalid plan transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        logger.debug(f"Plan[{self._label}] -> {state.value}")

    def reject(self, reason: str) -> None:
        logger.warning(f"Plan[{self._label}] rejected during {self.state.value}: {reason}")
        self.state = PlanState.REJECTED
        self.reason = reason
        self.history.append(PlanState.REJECTED)

    @property
    def is_terminal(self) -> bool:
        return self.state in (PlanState.SUBMITTED, PlanState.REJECTED)

    @property
    def _label(self) -> str:
        return self.kind.value if self.kind else "plan"


def fund(
    selector: CoinSelector,
    units: Sequence[SpendableUnit],
    outputs: Sequence[OutputSpec],
    fee_rate: float,
    reserved: Sequence[SpendableUnit] = (),
    funding_floor: int = 0,
) -> Selection:
    """
    Select plain units paying for ``outputs`` and the miner fee.

    Reserved inputs (the token unit of a token transfer) are always spent
    and count toward the total. The estimate starts from one funding input
    and is redone with the real input count until the selection covers it;
    the selector raises when funds run out.
    """
    reserved_value = sum(unit.value for unit in reserved)
    output_total = sum(out.value for out in outputs)
    num_inputs = len(reserved) + 1

    while True:
        fee = estimate_plan_fee(num_inputs, outputs, fee_rate)
        target = max(funding_floor, output_total + fee - reserved_value)
        selection = selector.select(units, target, exclude=NON_FUNDING_CATEGORIES)

        used = len(reserved) + len(selection.units)
        if used <= num_inputs:
            return selection

        logger.debug(f"Selection needs {used} inputs, re-estimating (assumed {num_inputs})")
        num_inputs = used
