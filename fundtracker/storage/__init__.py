"""Mini README: Relational persistence for Fundtracker.

Exports the SQLAlchemy models, engine/session helpers, and the repositories
that every other layer uses to read and write records. Swapping SQLite for
PostgreSQL only requires a different ``database_url`` setting.
"""

from .database import build_engine, build_session_factory, init_db, session_scope
from .models import (
    Base,
    Cost,
    ExpenseCategory,
    ExpenseNomenclature,
    Fund,
    FundDistribution,
    FundTransfer,
    ManualFundDistribution,
    Receipt,
    Sponsor,
    User,
)
from .repository import FinanceRepository, UserRepository

__all__ = [
    "Base",
    "Cost",
    "ExpenseCategory",
    "ExpenseNomenclature",
    "FinanceRepository",
    "Fund",
    "FundDistribution",
    "FundTransfer",
    "ManualFundDistribution",
    "Receipt",
    "Sponsor",
    "User",
    "UserRepository",
    "build_engine",
    "build_session_factory",
    "init_db",
    "session_scope",
]
