"""
Coin selection.

Greedy largest-first: deterministic and simple. It does not try to
minimise change or avoid linking outputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from loguru import logger

from txbuilder.errors import (
    InsufficientFundsError,
    InsufficientProtocolBalanceError,
    NoSpendableUnitsError,
)
from txbuilder.models import SpendableUnit, UnitCategory


@dataclass(frozen=True)
class Selection:
    units: list[SpendableUnit] = field(default_factory=list)
    total: int = 0


class CoinSelector:
    def select(
        self,
        units: Sequence[SpendableUnit],
        target: int,
        exclude: Iterable[UnitCategory] = (),
    ) -> Selection:
        """
        Pick units, largest first, until their total reaches ``target``.

        Args:
            units: Candidate units
            target: Value to reach in satoshis
            exclude: Categories that must never be spent

        Returns:
            Selection with the chosen units in selection order
        """
        excluded = set(exclude)
        eligible = [unit for unit in units if unit.category not in excluded]
        if not eligible:
            raise NoSpendableUnitsError(
                f"No spendable units among {len(units)} candidates"
            )

        # sorted() is stable, so equal values keep their fetch order
        eligible = sorted(eligible, key=lambda u: u.value, reverse=True)

        selected: list[SpendableUnit] = []
        total = 0
        for unit in eligible:
            selected.append(unit)
            total += unit.value
            if total >= target:
                break

        if total < target:
            raise InsufficientFundsError(required=target, available=total)

        logger.debug(f"Selected {len(selected)} units totalling {total} for target {target}")
        return Selection(units=selected, total=total)

    def select_token_unit(
        self, units: Sequence[SpendableUnit], asset_id: str, quantity: int
    ) -> SpendableUnit:
        """Return the first token unit of ``asset_id`` holding at least ``quantity``."""
        for unit in units:
            if (
                unit.category == UnitCategory.TOKEN
                and unit.asset_id == asset_id
                and unit.asset_quantity >= quantity
            ):
                return unit

        held = sum(
            u.asset_quantity
            for u in units
            if u.category == UnitCategory.TOKEN and u.asset_id == asset_id
        )
        raise InsufficientProtocolBalanceError(
            f"No single unit holds {quantity} of {asset_id} (total held: {held})"
        )

    def require_overlay_balance(
        self, units: Sequence[SpendableUnit], asset: str, quantity: int
    ) -> int:
        """
        Check that overlay units of ``asset`` carry at least ``quantity``.

        Overlay balances belong to the address, so nothing is selected for
        spending. Returns the total held.
        """
        held = sum(
            u.asset_quantity
            for u in units
            if u.category == UnitCategory.ASSET_OVERLAY and u.asset_id == asset
        )
        if held < quantity:
            raise InsufficientProtocolBalanceError(
                f"Overlay balance of {asset} is {held}, {quantity} requested"
            )
        return held
