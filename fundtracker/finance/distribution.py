"""Mini README: Percentage based fund distribution calculator.

Structure:
    * FundShare - fund identifier, display name, and target percentage.
    * Allocation - amount assigned to one fund from a single receipt.
    * to_money / percentage_of - decimal helpers shared by balances and reports.
    * allocate - split an amount across fund shares.

Amounts are computed with ``Decimal`` and rounded half-up to cents, then
handed back as floats for JSON responses. Percentages are never required to
total 100; whatever is not covered stays unallocated.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Union

from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[int, float, str, Decimal]


def to_money(value: Number) -> Decimal:
    """Convert an arbitrary numeric value to a cent-rounded ``Decimal``."""

    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def percentage_of(part: Number, total: Number) -> float:
    """Return ``part`` as a percentage of ``total``; zero totals yield 0."""

    total_decimal = to_money(total)
    if total_decimal == 0:
        return 0.0
    share = to_money(part) / total_decimal * HUNDRED
    return float(share.quantize(CENTS, rounding=ROUND_HALF_UP))


@dataclass(slots=True, frozen=True)
class FundShare:
    """A fund taking part in automatic distributions."""

    fund_id: str
    name: str
    percentage: float


@dataclass(slots=True, frozen=True)
class Allocation:
    """Amount assigned to a fund from a receipt or the unallocated pool."""

    fund_id: str
    fund_name: str
    percentage: float
    amount: float


def allocate(amount: Number, shares: Iterable[FundShare]) -> List[Allocation]:
    """Split ``amount`` across ``shares`` proportionally to their percentages.

    Each allocation is ``round(amount * percentage / 100, 2)``. Shares with a
    zero (or negative) percentage are skipped, and an empty share list yields
    no allocations so the whole amount stays unallocated.
    """

    base = to_money(amount)
    allocations: List[Allocation] = []
    for share in shares:
        percentage = Decimal(repr(float(share.percentage)))
        if percentage <= 0:
            LOGGER.debug("Skipping fund %s with %.2f%% share", share.fund_id, share.percentage)
            continue
        portion = (base * percentage / HUNDRED).quantize(CENTS, rounding=ROUND_HALF_UP)
        allocations.append(
            Allocation(
                fund_id=share.fund_id,
                fund_name=share.name,
                percentage=float(percentage),
                amount=float(portion),
            )
        )
    LOGGER.debug("Allocated %s across %s funds", base, len(allocations))
    return allocations


def allocation_total(allocations: Iterable[Allocation]) -> float:
    """Sum allocation amounts without float drift."""

    return float(sum((to_money(allocation.amount) for allocation in allocations), Decimal("0")))
