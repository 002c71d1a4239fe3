"""
Output assembly and change accounting.

Outputs are laid out in a fixed order:
1. primary payment and/or data outputs
2. protocol fee output, when the fee decision requires one
3. auxiliary outputs (token change marker)
4. change, last, and only when it is at least the dust threshold
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from txbuilder.constants import DUST_THRESHOLD
from txbuilder.errors import InsufficientFundsError, ValidationError
from txbuilder.estimator import estimate_plan_fee
from txbuilder.models import (
    ChangeOutput,
    DataOutput,
    FeeDecision,
    OutputSpec,
    PaymentOutput,
    SpendableUnit,
    TransactionPlan,
)


class OutputAssembler:
    def __init__(self, dust_threshold: int = DUST_THRESHOLD):
        self.dust_threshold = dust_threshold

    def provisional_outputs(
        self,
        leading: Sequence[OutputSpec],
        fee_decision: FeeDecision,
        collector_address: str,
        auxiliary: Sequence[OutputSpec] = (),
    ) -> list[OutputSpec]:
        """Ordered outputs without change."""
        outputs: list[OutputSpec] = list(leading)
        if fee_decision.required:
            outputs.append(PaymentOutput(address=collector_address, value=fee_decision.amount))
        outputs.extend(auxiliary)

        for out in outputs:
            self._check_dust(out)
        return outputs

    def balance(
        self,
        inputs: Sequence[SpendableUnit],
        outputs: Sequence[OutputSpec],
        change_address: str,
        fee_rate: float,
    ) -> TransactionPlan:
        """
        Attach change to a funded output list.

        The fee is estimated on the provisional outputs first. If what is
        left could pay for a change output, the fee is estimated once more
        with change included; change that no longer reaches the dust
        threshold after that correction is left to the miner.
        """
        outputs = list(outputs)
        input_total = sum(unit.value for unit in inputs)
        output_total = sum(out.value for out in outputs)

        estimated = estimate_plan_fee(len(inputs), outputs, fee_rate)
        remainder = input_total - output_total - estimated
        if remainder < 0:
            raise InsufficientFundsError(required=output_total + estimated, available=input_total)

        change = 0
        if remainder >= self.dust_threshold:
            with_change = estimate_plan_fee(
                len(inputs), outputs + [ChangeOutput(address=change_address, value=0)], fee_rate
            )
            candidate = input_total - output_total - with_change
            if candidate >= self.dust_threshold:
                change = candidate
                estimated = with_change
                outputs.append(ChangeOutput(address=change_address, value=change))
            else:
                logger.debug(f"Change {candidate} below dust after re-estimate, folded into fee")
        elif remainder > 0:
            logger.debug(f"Remainder {remainder} below dust, folded into fee")

        plan = TransactionPlan(
            inputs=list(inputs), outputs=outputs, estimated_cost=estimated, change_amount=change
        )
        logger.debug(
            f"Balanced plan: in={plan.input_total} out={plan.output_total} "
            f"fee={plan.fee} change={change}"
        )
        return plan

    def _check_dust(self, out: OutputSpec) -> None:
        if isinstance(out, DataOutput):
            if 0 < out.value < self.dust_threshold:
                raise ValidationError(f"Data output value {out.value} is below dust")
            return
        if out.value < self.dust_threshold:
            raise ValidationError(
                f"Output to {out.address} of {out.value} is below dust threshold "
                f"{self.dust_threshold}"
            )
