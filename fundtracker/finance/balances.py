"""Mini README: Derived balances for funds and the unallocated pool.

Structure:
    * MovementKind - enum describing how money enters or leaves a fund.
    * FundMovement - dated, signed contribution to a single fund.
    * unallocated_balance - receipts minus automatic and manual distributions.
    * fund_balance - initial balance plus the signed sum of movements.

Nothing here is stored: balances are recomputed from persisted rows on every
read so deleting a row is reflected immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from .distribution import Number, to_money


class MovementKind(str, Enum):
    """Enumerate the ways money moves in or out of a fund."""

    DISTRIBUTION = "distribution"
    MANUAL_DISTRIBUTION = "manual_distribution"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    COST = "cost"

    @property
    def is_income(self) -> bool:
        return self in {
            MovementKind.DISTRIBUTION,
            MovementKind.MANUAL_DISTRIBUTION,
            MovementKind.TRANSFER_IN,
        }


@dataclass(slots=True, frozen=True)
class FundMovement:
    """A single amount flowing into or out of a fund on a given date."""

    fund_id: str
    kind: MovementKind
    amount: float
    occurred_on: date

    @property
    def signed_amount(self) -> Decimal:
        value = to_money(self.amount)
        return value if self.kind.is_income else -value


def _total(values: Iterable[Number]) -> Decimal:
    return sum((to_money(value) for value in values), Decimal("0"))


def unallocated_balance(
    receipt_amounts: Iterable[Number],
    distribution_amounts: Iterable[Number],
    manual_distribution_amounts: Iterable[Number],
) -> float:
    """Return money received but not yet assigned to any fund."""

    remaining = (
        _total(receipt_amounts)
        - _total(distribution_amounts)
        - _total(manual_distribution_amounts)
    )
    return float(remaining)


def fund_balance(
    fund_id: str,
    initial_balance: Number,
    movements: Iterable[FundMovement],
    *,
    before: Optional[date] = None,
) -> float:
    """Return the balance of ``fund_id``, optionally only counting movements before a date."""

    balance = to_money(initial_balance)
    for movement in movements:
        if movement.fund_id != fund_id:
            continue
        if before is not None and movement.occurred_on >= before:
            continue
        balance += movement.signed_amount
    return float(balance)
