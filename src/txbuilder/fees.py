"""
Protocol fee policy.

A FeePolicy wraps an immutable FeeSchedule and decides, per request, how
much the protocol collector is owed and whether that amount is worth an
output of its own.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from loguru import logger

from txbuilder.constants import MAX_PERCENTAGE_FEE, MIN_PERCENTAGE_FEE
from txbuilder.errors import InvalidFeeConfigError
from txbuilder.models import FeeDecision, FeeMode, FeeSchedule


class FeePolicy:
    def __init__(self, schedule: FeeSchedule, validate_destination: Callable[[str], bool]):
        try:
            rate = Decimal(str(schedule.percentage_rate))
        except InvalidOperation as e:
            raise InvalidFeeConfigError(
                f"Invalid percentage rate: {schedule.percentage_rate}"
            ) from e

        if not rate.is_finite() or not MIN_PERCENTAGE_FEE <= rate <= MAX_PERCENTAGE_FEE:
            raise InvalidFeeConfigError(
                f"Percentage rate must be between {MIN_PERCENTAGE_FEE} and "
                f"{MAX_PERCENTAGE_FEE}, got {schedule.percentage_rate}"
            )
        if schedule.flat_fee < 0:
            raise InvalidFeeConfigError(f"Flat fee must be >= 0, got {schedule.flat_fee}")
        if schedule.min_enforceable < 0:
            raise InvalidFeeConfigError("Minimum enforceable fee must be >= 0")
        if not validate_destination(schedule.collector_address):
            raise InvalidFeeConfigError(
                f"Invalid fee collector address: {schedule.collector_address}"
            )

        self.schedule = schedule
        self._rate = rate

    @property
    def collector_address(self) -> str:
        return self.schedule.collector_address

    def evaluate(self, value: int, mode: FeeMode) -> FeeDecision:
        if mode == FeeMode.PERCENTAGE:
            amount = int(
                (Decimal(value) * self._rate / 100).to_integral_value(rounding=ROUND_FLOOR)
            )
        else:
            amount = self.schedule.flat_fee

        required = amount > 0 and amount >= self.schedule.min_enforceable
        if amount > 0 and not required:
            logger.debug(
                f"Protocol fee {amount} below {self.schedule.min_enforceable}, waived"
            )
        return FeeDecision(amount=amount, required=required, mode=mode)

    def percentage(self, value: int) -> FeeDecision:
        return self.evaluate(value, FeeMode.PERCENTAGE)

    def flat(self) -> FeeDecision:
        return self.evaluate(0, FeeMode.FLAT)
