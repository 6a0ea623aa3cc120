"""Mini README: Fund distribution and reporting arithmetic for Fundtracker.

This package holds the framework-free logic: splitting receipts across funds
by percentage, deriving fund and unallocated balances, and aggregating
date-ranged reports. Inputs are plain dataclasses so the helpers can be unit
tested without a database or web server; the storage repository adapts ORM
rows into these shapes.
"""

from .balances import FundMovement, MovementKind, fund_balance, unallocated_balance
from .distribution import Allocation, FundShare, allocate, allocation_total, percentage_of, to_money
from .reports import (
    CostEntry,
    DateRange,
    FundInfo,
    ReceiptEntry,
    Report,
    ReportGroup,
    ReportItem,
    build_expense_report,
    build_fund_balance_report,
    build_sponsor_report,
)

__all__ = [
    "Allocation",
    "CostEntry",
    "DateRange",
    "FundInfo",
    "FundMovement",
    "FundShare",
    "MovementKind",
    "ReceiptEntry",
    "Report",
    "ReportGroup",
    "ReportItem",
    "allocate",
    "allocation_total",
    "build_expense_report",
    "build_fund_balance_report",
    "build_sponsor_report",
    "fund_balance",
    "percentage_of",
    "to_money",
    "unallocated_balance",
]
