"""Mini README: SQLAlchemy schema for Fundtracker.

Structure:
    * Base - declarative base shared by every table.
    * User - login identity; every other row is owned by a user.
    * Sponsor, Receipt - incoming money and who gave it.
    * Fund, FundDistribution, ManualFundDistribution, FundTransfer - fund buckets
      and the rows that move money into, out of, and between them.
    * ExpenseCategory, ExpenseNomenclature, Cost - outgoing money and its labels.

Money columns are ``NUMERIC(12, 2)`` returned as floats; percentages are
``NUMERIC(5, 2)``. Identifiers are prefixed random strings generated by
``new_id``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def new_id(prefix: str) -> str:
    """Return an opaque identifier such as ``fund_3f2a9c41d0b7``."""

    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    """Naive UTC timestamp; the columns store no zone."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def _money() -> Numeric:
    return Numeric(12, 2, asdecimal=False)


def _id_column(prefix: str) -> Column:
    return Column(String(40), primary_key=True, default=lambda: new_id(prefix))


def _owner_column() -> Column:
    return Column(String(40), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


class TimestampMixin:
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = _id_column("user")
    username = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)  # bcrypt hash, never plain text
    first_name = Column(String(100))
    last_name = Column(String(100))


class Sponsor(TimestampMixin, Base):
    __tablename__ = "sponsors"

    id = _id_column("sponsor")
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False, default="")
    is_active = Column(Boolean, default=True, nullable=False)
    user_id = _owner_column()

    receipts = relationship("Receipt", back_populates="sponsor")


class Fund(TimestampMixin, Base):
    __tablename__ = "funds"

    id = _id_column("fund")
    name = Column(String(255), nullable=False)
    description = Column(String(500))
    percentage = Column(Numeric(5, 2, asdecimal=False), default=0, nullable=False)
    initial_balance = Column(_money(), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    user_id = _owner_column()

    distributions = relationship(
        "FundDistribution", back_populates="fund", cascade="all, delete-orphan"
    )
    manual_distributions = relationship(
        "ManualFundDistribution", back_populates="fund", cascade="all, delete-orphan"
    )
    outgoing_transfers = relationship(
        "FundTransfer",
        foreign_keys="FundTransfer.from_fund_id",
        back_populates="from_fund",
        cascade="all",
    )
    incoming_transfers = relationship(
        "FundTransfer",
        foreign_keys="FundTransfer.to_fund_id",
        back_populates="to_fund",
        cascade="all",
    )
    costs = relationship("Cost", back_populates="fund")


class Receipt(TimestampMixin, Base):
    __tablename__ = "receipts"

    id = _id_column("receipt")
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    amount = Column(_money(), nullable=False)
    sponsor_id = Column(String(40), ForeignKey("sponsors.id", ondelete="SET NULL"))
    user_id = _owner_column()

    sponsor = relationship("Sponsor", back_populates="receipts")
    distributions = relationship(
        "FundDistribution", back_populates="receipt", cascade="all, delete-orphan"
    )

    @property
    def sponsor_name(self):
        return self.sponsor.name if self.sponsor else None


class FundDistribution(Base):
    """Automatic share of a receipt assigned to a fund."""

    __tablename__ = "fund_distributions"

    id = _id_column("fund_dist")
    receipt_id = Column(String(40), ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False, index=True)
    fund_id = Column(String(40), ForeignKey("funds.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(_money(), nullable=False)
    percentage = Column(Numeric(5, 2, asdecimal=False), nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    receipt = relationship("Receipt", back_populates="distributions")
    fund = relationship("Fund", back_populates="distributions")

    @property
    def fund_name(self):
        return self.fund.name if self.fund else None


class ManualFundDistribution(TimestampMixin, Base):
    """User-entered allocation of unallocated money into one fund."""

    __tablename__ = "manual_fund_distributions"

    id = _id_column("manual_dist")
    fund_id = Column(String(40), ForeignKey("funds.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(_money(), nullable=False)
    date = Column(Date, nullable=False, index=True)
    comment = Column(String(500))
    user_id = _owner_column()

    fund = relationship("Fund", back_populates="manual_distributions")

    @property
    def fund_name(self):
        return self.fund.name if self.fund else None


class FundTransfer(Base):
    __tablename__ = "fund_transfers"

    id = _id_column("transfer")
    from_fund_id = Column(String(40), ForeignKey("funds.id", ondelete="CASCADE"), nullable=False)
    to_fund_id = Column(String(40), ForeignKey("funds.id", ondelete="CASCADE"), nullable=False)
    amount = Column(_money(), nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500))
    user_id = _owner_column()
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    from_fund = relationship("Fund", foreign_keys=[from_fund_id], back_populates="outgoing_transfers")
    to_fund = relationship("Fund", foreign_keys=[to_fund_id], back_populates="incoming_transfers")

    @property
    def from_fund_name(self):
        return self.from_fund.name if self.from_fund else None

    @property
    def to_fund_name(self):
        return self.to_fund.name if self.to_fund else None


class ExpenseCategory(TimestampMixin, Base):
    __tablename__ = "expense_categories"

    id = _id_column("category")
    name = Column(String(255), nullable=False)
    description = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
    user_id = _owner_column()

    costs = relationship("Cost", back_populates="category")


class ExpenseNomenclature(TimestampMixin, Base):
    __tablename__ = "expense_nomenclature"

    id = _id_column("nomenclature")
    name = Column(String(255), nullable=False)
    description = Column(String(500))
    is_active = Column(Boolean, default=True, nullable=False)
    user_id = _owner_column()

    costs = relationship("Cost", back_populates="nomenclature")


class Cost(TimestampMixin, Base):
    __tablename__ = "costs"

    id = _id_column("cost")
    date = Column(Date, nullable=False, index=True)
    description = Column(String(500), nullable=False, default="")
    amount = Column(_money(), nullable=False)
    category_id = Column(String(40), ForeignKey("expense_categories.id", ondelete="SET NULL"))
    nomenclature_id = Column(String(40), ForeignKey("expense_nomenclature.id", ondelete="SET NULL"))
    fund_id = Column(String(40), ForeignKey("funds.id", ondelete="SET NULL"))
    user_id = _owner_column()

    category = relationship("ExpenseCategory", back_populates="costs")
    nomenclature = relationship("ExpenseNomenclature", back_populates="costs")
    fund = relationship("Fund", back_populates="costs")

    @property
    def category_name(self):
        return self.category.name if self.category else None

    @property
    def nomenclature_name(self):
        return self.nomenclature.name if self.nomenclature else None

    @property
    def fund_name(self):
        return self.fund.name if self.fund else None
