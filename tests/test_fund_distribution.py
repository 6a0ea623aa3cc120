"""Mini README: Tests for the fund distribution calculator and balance helpers.

Structure:
    * allocation tests - percentage splits, rounding, and empty fund sets.
    * unallocated tests - receipts minus automatic and manual distributions.
    * fund balance tests - signed movements and the ``before`` cut-off.
"""

from __future__ import annotations

from datetime import date

import pytest

from fundtracker.finance import (
    FundMovement,
    FundShare,
    MovementKind,
    allocate,
    allocation_total,
    fund_balance,
    percentage_of,
    unallocated_balance,
)


def test_allocate_splits_receipt_sixty_forty() -> None:
    """A 1000 receipt over 60/40 funds yields 600 and 400 with nothing left over."""

    shares = [FundShare("fund_a", "Operations", 60.0), FundShare("fund_b", "Reserve", 40.0)]

    allocations = allocate(1000, shares)

    assert [(item.fund_id, item.amount) for item in allocations] == [("fund_a", 600.0), ("fund_b", 400.0)]
    assert unallocated_balance([1000], [item.amount for item in allocations], []) == pytest.approx(0.0)


@pytest.mark.parametrize("amount", [0.01, 99.99, 1234.57, 100000.0])
def test_allocations_sum_to_receipt_when_percentages_total_hundred(amount: float) -> None:
    shares = [
        FundShare("a", "A", 33.33),
        FundShare("b", "B", 33.33),
        FundShare("c", "C", 33.34),
    ]

    total = allocation_total(allocate(amount, shares))

    assert total == pytest.approx(amount, abs=0.02)


def test_allocate_rounds_half_up_to_cents() -> None:
    allocations = allocate(10.05, [FundShare("a", "A", 50.0)])

    assert allocations[0].amount == pytest.approx(5.03)


def test_allocate_without_active_funds_leaves_everything_unallocated() -> None:
    allocations = allocate(1000, [])

    assert allocations == []
    assert unallocated_balance([1000], [], []) == pytest.approx(1000.0)


def test_shortfall_percentages_leave_the_remainder_unallocated() -> None:
    """Funds totalling 75% leave a quarter of each receipt unallocated."""

    shares = [FundShare("a", "A", 50.0), FundShare("b", "B", 25.0)]
    receipts = [400.0, 1000.0]
    distributed = [item.amount for receipt in receipts for item in allocate(receipt, shares)]

    assert unallocated_balance(receipts, distributed, []) == pytest.approx(0.25 * sum(receipts))


def test_zero_percentage_funds_are_skipped() -> None:
    allocations = allocate(500, [FundShare("a", "A", 0.0), FundShare("b", "B", 100.0)])

    assert [item.fund_id for item in allocations] == ["b"]


def test_manual_distributions_reduce_unallocated_balance() -> None:
    before = unallocated_balance([1000.0], [600.0], [150.0, 50.0])
    after_delete = unallocated_balance([1000.0], [600.0], [150.0])

    assert before == pytest.approx(200.0)
    assert after_delete - before == pytest.approx(50.0)


def test_percentage_of_handles_zero_total() -> None:
    assert percentage_of(10, 0) == 0.0
    assert percentage_of(1, 3) == pytest.approx(33.33)


def test_fund_balance_applies_signed_movements() -> None:
    movements = [
        FundMovement("a", MovementKind.DISTRIBUTION, 600.0, date(2024, 1, 10)),
        FundMovement("a", MovementKind.MANUAL_DISTRIBUTION, 50.0, date(2024, 1, 12)),
        FundMovement("a", MovementKind.TRANSFER_OUT, 100.0, date(2024, 2, 1)),
        FundMovement("a", MovementKind.COST, 25.5, date(2024, 2, 3)),
        FundMovement("b", MovementKind.TRANSFER_IN, 100.0, date(2024, 2, 1)),
    ]

    assert fund_balance("a", 10.0, movements) == pytest.approx(534.5)
    assert fund_balance("b", 0, movements) == pytest.approx(100.0)
    assert fund_balance("a", 10.0, movements, before=date(2024, 2, 1)) == pytest.approx(660.0)
