"""Mini README: Tests for the date-ranged report aggregators.

These tests check that each report filters rows by its inclusive date range,
that group totals add up to the report total, that percentages are shares of
that total, and that empty ranges produce empty reports.
"""

from __future__ import annotations

from datetime import date

import pytest

from fundtracker.finance import (
    CostEntry,
    DateRange,
    FundInfo,
    FundMovement,
    MovementKind,
    ReceiptEntry,
    build_expense_report,
    build_fund_balance_report,
    build_sponsor_report,
)

JANUARY = DateRange(date(2024, 1, 1), date(2024, 1, 31))


def _costs():
    return [
        CostEntry(300.0, date(2024, 1, 5), "cat_food", "Food", "Groceries"),
        CostEntry(100.0, date(2024, 1, 20), "cat_food", "Food", "Groceries"),
        CostEntry(100.0, date(2024, 1, 31), "cat_food", "Food", "Bakery"),
        CostEntry(500.0, date(2024, 1, 1), "cat_rent", "Rent", "Hall rent"),
        CostEntry(75.0, date(2024, 1, 15), None, None, "Stamps"),
        CostEntry(999.0, date(2024, 2, 1), "cat_rent", "Rent", "Hall rent"),
    ]


def test_date_range_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        DateRange(date(2024, 2, 1), date(2024, 1, 1))


def test_expense_report_groups_by_category_with_shares() -> None:
    report = build_expense_report(_costs(), JANUARY)

    labels = [group.label for group in report.groups]
    assert labels == ["Food", "Rent", "Uncategorised"]
    assert report.total == pytest.approx(1075.0)
    assert sum(group.total for group in report.groups) == pytest.approx(report.total)

    food = report.groups[0]
    assert food.total == pytest.approx(500.0)
    assert food.count == 3
    assert food.percentage == pytest.approx(46.51)
    assert [(item.name, item.amount, item.percentage) for item in food.items] == [
        ("Groceries", 400.0, 80.0),
        ("Bakery", 100.0, 20.0),
    ]


def test_expense_report_for_empty_range_is_empty() -> None:
    report = build_expense_report(_costs(), DateRange(date(2023, 1, 1), date(2023, 12, 31)))

    assert report.is_empty
    assert report.total == 0.0
    assert report.as_dict()["groups"] == []


def test_sponsor_report_counts_donations_and_groups_anonymous_receipts() -> None:
    receipts = [
        ReceiptEntry(250.0, date(2024, 1, 3), "sp_1", "Alice"),
        ReceiptEntry(750.0, date(2024, 1, 9), "sp_1", "Alice"),
        ReceiptEntry(1000.0, date(2024, 1, 10), "sp_2", "Bob"),
        ReceiptEntry(500.0, date(2024, 1, 11), None, None),
        ReceiptEntry(4000.0, date(2023, 12, 31), "sp_2", "Bob"),
    ]

    report = build_sponsor_report(receipts, JANUARY)
    by_label = {group.label: group for group in report.groups}

    assert report.total == pytest.approx(2500.0)
    assert by_label["Alice"].count == 2
    assert by_label["Alice"].details["average"] == pytest.approx(500.0)
    assert by_label["Bob"].percentage == pytest.approx(40.0)
    assert by_label["No sponsor"].total == pytest.approx(500.0)
    assert sum(group.percentage for group in report.groups) == pytest.approx(100.0)


def test_fund_balance_report_tracks_opening_income_expenses_and_difference() -> None:
    funds = [
        FundInfo("fund_ops", "Operations", 100.0, 60.0, True),
        FundInfo("fund_res", "Reserve", 0.0, 30.0, True),
        FundInfo("fund_old", "Archive", 50.0, 10.0, False),
    ]
    movements = [
        FundMovement("fund_ops", MovementKind.DISTRIBUTION, 300.0, date(2023, 12, 20)),
        FundMovement("fund_ops", MovementKind.DISTRIBUTION, 600.0, date(2024, 1, 10)),
        FundMovement("fund_res", MovementKind.DISTRIBUTION, 300.0, date(2024, 1, 10)),
        FundMovement("fund_ops", MovementKind.TRANSFER_OUT, 200.0, date(2024, 1, 15)),
        FundMovement("fund_res", MovementKind.TRANSFER_IN, 200.0, date(2024, 1, 15)),
        FundMovement("fund_ops", MovementKind.COST, 50.0, date(2024, 1, 20)),
    ]
    receipts = [ReceiptEntry(1000.0, date(2024, 1, 10), None, None)]

    report = build_fund_balance_report(funds, movements, receipts, JANUARY)
    by_label = {group.label: group for group in report.groups}

    assert set(by_label) == {"Operations", "Reserve"}
    ops = by_label["Operations"].details
    assert ops["opening_balance"] == pytest.approx(400.0)
    assert ops["income"] == pytest.approx(600.0)
    assert ops["expenses"] == pytest.approx(250.0)
    assert ops["closing_balance"] == pytest.approx(750.0)
    assert by_label["Reserve"].details["closing_balance"] == pytest.approx(500.0)
    assert report.total == pytest.approx(sum(group.total for group in report.groups))

    assert report.summary["receipts"] == pytest.approx(1000.0)
    assert report.summary["distributed"] == pytest.approx(900.0)
    assert report.summary["difference"] == pytest.approx(100.0)
    assert report.summary["total_fund_percentage"] == pytest.approx(90.0)
    assert report.summary["percentage_difference"] == pytest.approx(10.0)


def test_fund_balance_report_without_activity_has_no_groups() -> None:
    funds = [FundInfo("fund_ops", "Operations", 100.0, 100.0, True)]

    report = build_fund_balance_report(funds, [], [], JANUARY)

    assert report.groups == []
    assert report.total == 0.0
    assert report.summary["difference"] == 0.0
