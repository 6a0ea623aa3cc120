"""Mini README: Date-ranged report aggregators.

Structure:
    * DateRange - inclusive reporting window with validation.
    * CostEntry / ReceiptEntry / FundInfo - plain rows fed in by the repository.
    * ReportItem / ReportGroup / Report - structured output with ``as_dict``.
    * build_expense_report - costs grouped by category, items by nomenclature.
    * build_sponsor_report - receipts grouped by sponsor.
    * build_fund_balance_report - per-fund opening, income, expenses, closing.

Every report filters its rows by the date range, groups them, and computes
group totals plus their share of the report total. The report total is always
the sum of the group totals; an empty range yields no groups and a zero total.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from ..logging_utils import get_logger
from .balances import FundMovement, MovementKind
from .distribution import percentage_of, to_money

LOGGER = get_logger(__name__)

UNCATEGORISED_LABEL = "Uncategorised"
NO_SPONSOR_LABEL = "No sponsor"


@dataclass(slots=True, frozen=True)
class DateRange:
    """Inclusive reporting window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Report start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    def __contains__(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(slots=True, frozen=True)
class CostEntry:
    amount: float
    occurred_on: date
    category_id: Optional[str]
    category_name: Optional[str]
    item_name: str


@dataclass(slots=True, frozen=True)
class ReceiptEntry:
    amount: float
    occurred_on: date
    sponsor_id: Optional[str]
    sponsor_name: Optional[str]


@dataclass(slots=True, frozen=True)
class FundInfo:
    fund_id: str
    name: str
    initial_balance: float
    percentage: float
    is_active: bool


@dataclass(slots=True)
class ReportItem:
    """Line inside a group, e.g. one nomenclature entry within a category."""

    name: str
    amount: float
    percentage: float

    def as_dict(self) -> Dict[str, object]:
        return {"name": self.name, "amount": self.amount, "percentage": self.percentage}


@dataclass(slots=True)
class ReportGroup:
    """Aggregated totals for one category, sponsor, or fund."""

    key: Optional[str]
    label: str
    total: float
    percentage: float = 0.0
    count: int = 0
    items: List[ReportItem] = field(default_factory=list)
    details: Dict[str, float] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "key": self.key,
            "label": self.label,
            "total": self.total,
            "percentage": self.percentage,
            "count": self.count,
            "items": [item.as_dict() for item in self.items],
        }
        payload.update(self.details)
        return payload


@dataclass(slots=True)
class Report:
    """A complete report ready to be serialised for the API."""

    kind: str
    period: DateRange
    groups: List[ReportGroup]
    total: float
    summary: Dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.groups

    def as_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind,
            "date_from": self.period.start.isoformat(),
            "date_to": self.period.end.isoformat(),
            "groups": [group.as_dict() for group in self.groups],
            "total": self.total,
            "summary": dict(self.summary),
        }


def _finalise_groups(groups: Sequence[ReportGroup]) -> float:
    """Attach share-of-total to each group and return the report total."""

    total = sum((to_money(group.total) for group in groups), Decimal("0"))
    for group in groups:
        group.percentage = percentage_of(group.total, total)
    return float(total)


def build_expense_report(costs: Iterable[CostEntry], period: DateRange) -> Report:
    """Group costs inside ``period`` by category, listing items by nomenclature."""

    categories: Dict[Optional[str], Dict[str, object]] = {}
    for cost in costs:
        if cost.occurred_on not in period:
            continue
        bucket = categories.setdefault(
            cost.category_id,
            {"label": cost.category_name or UNCATEGORISED_LABEL, "count": 0, "items": {}},
        )
        bucket["count"] += 1
        items: Dict[str, Decimal] = bucket["items"]
        items[cost.item_name] = items.get(cost.item_name, Decimal("0")) + to_money(cost.amount)

    groups: List[ReportGroup] = []
    for category_id, bucket in categories.items():
        items = bucket["items"]
        category_total = sum(items.values(), Decimal("0"))
        report_items = [
            ReportItem(name=name, amount=float(amount), percentage=percentage_of(amount, category_total))
            for name, amount in sorted(items.items(), key=lambda pair: (-pair[1], pair[0]))
        ]
        groups.append(
            ReportGroup(
                key=category_id,
                label=str(bucket["label"]),
                total=float(category_total),
                count=int(bucket["count"]),
                items=report_items,
            )
        )
    groups.sort(key=lambda group: (-group.total, group.label))
    total = _finalise_groups(groups)
    LOGGER.debug("Expense report %s..%s -> %s categories", period.start, period.end, len(groups))
    return Report(kind="expenses", period=period, groups=groups, total=total)


def build_sponsor_report(receipts: Iterable[ReceiptEntry], period: DateRange) -> Report:
    """Group receipts inside ``period`` by sponsor with donation counts."""

    sponsors: Dict[Optional[str], ReportGroup] = {}
    for receipt in receipts:
        if receipt.occurred_on not in period:
            continue
        group = sponsors.get(receipt.sponsor_id)
        if group is None:
            group = ReportGroup(
                key=receipt.sponsor_id,
                label=receipt.sponsor_name or NO_SPONSOR_LABEL,
                total=0.0,
            )
            sponsors[receipt.sponsor_id] = group
        group.total = float(to_money(group.total) + to_money(receipt.amount))
        group.count += 1

    groups = sorted(sponsors.values(), key=lambda group: (-group.total, group.label))
    for group in groups:
        group.details["average"] = float(to_money(Decimal(repr(group.total)) / group.count))
    total = _finalise_groups(groups)
    LOGGER.debug("Sponsor report %s..%s -> %s sponsors", period.start, period.end, len(groups))
    return Report(kind="sponsors", period=period, groups=groups, total=total)


def build_fund_balance_report(
    funds: Iterable[FundInfo],
    movements: Iterable[FundMovement],
    receipts: Iterable[ReceiptEntry],
    period: DateRange,
) -> Report:
    """Summarise each fund's activity inside ``period``.

    Funds without movements inside the window are left out. The ``summary``
    carries the distribution difference: receipts in range against what was
    distributed automatically, plus how far active fund percentages are from 100.
    """

    fund_list = list(funds)
    movement_list = list(movements)

    groups: List[ReportGroup] = []
    for fund in fund_list:
        opening = to_money(fund.initial_balance)
        income = Decimal("0")
        expenses = Decimal("0")
        active_in_range = False
        for movement in movement_list:
            if movement.fund_id != fund.fund_id or movement.occurred_on > period.end:
                continue
            if movement.occurred_on < period.start:
                opening += movement.signed_amount
                continue
            active_in_range = True
            if movement.kind.is_income:
                income += to_money(movement.amount)
            else:
                expenses += to_money(movement.amount)
        if not active_in_range:
            continue
        groups.append(
            ReportGroup(
                key=fund.fund_id,
                label=fund.name,
                total=float(income),
                details={
                    "opening_balance": float(opening),
                    "income": float(income),
                    "expenses": float(expenses),
                    "closing_balance": float(opening + income - expenses),
                },
            )
        )
    groups.sort(key=lambda group: group.label.lower())
    total = _finalise_groups(groups)

    received = sum(
        (to_money(receipt.amount) for receipt in receipts if receipt.occurred_on in period),
        Decimal("0"),
    )
    distributed = sum(
        (
            to_money(movement.amount)
            for movement in movement_list
            if movement.kind is MovementKind.DISTRIBUTION and movement.occurred_on in period
        ),
        Decimal("0"),
    )
    active_percentage = sum(
        (Decimal(repr(float(fund.percentage))) for fund in fund_list if fund.is_active),
        Decimal("0"),
    )
    summary = {
        "receipts": float(received),
        "distributed": float(distributed),
        "difference": float(received - distributed),
        "total_fund_percentage": float(active_percentage),
        "percentage_difference": float(Decimal("100") - active_percentage),
    }
    if groups:
        summary.update(
            {
                "opening_balance": float(sum((to_money(g.details["opening_balance"]) for g in groups), Decimal("0"))),
                "expenses": float(sum((to_money(g.details["expenses"]) for g in groups), Decimal("0"))),
                "closing_balance": float(sum((to_money(g.details["closing_balance"]) for g in groups), Decimal("0"))),
            }
        )
    if active_percentage != 100:
        LOGGER.info("Active fund percentages total %s%%; difference reported", active_percentage)
    return Report(kind="fund-balance", period=period, groups=groups, total=total, summary=summary)
