"""Mini README: Query layer for Fundtracker records.

Structure:
    * UserRepository - lookup and creation of login identities.
    * FinanceRepository - user-scoped CRUD for sponsors, funds, receipts,
      costs, transfers, manual distributions, categories, and nomenclature,
      plus the derived views (balances, history, dashboard, reports).

Missing records raise ``KeyError`` and rule violations raise ``ValueError``;
the web layer translates them into 404 and 400 responses. Each mutating call
commits its own unit of work. Recording a receipt distributes it across the
active funds in the same transaction.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from sqlalchemy.orm import Session

from ..finance import (
    CostEntry,
    DateRange,
    FundInfo,
    FundMovement,
    FundShare,
    MovementKind,
    ReceiptEntry,
    Report,
    allocate,
    build_expense_report,
    build_fund_balance_report,
    build_sponsor_report,
    fund_balance,
    to_money,
    unallocated_balance,
)
from ..logging_utils import get_logger
from .models import (
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

LOGGER = get_logger(__name__)


class UserRepository:
    """Persist and look up users independently of any session owner."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, user_id: str) -> Optional[User]:
        return self._session.get(User, user_id)

    def get_by_username(self, username: str) -> Optional[User]:
        return self._session.query(User).filter(User.username == username).first()

    def create(
        self,
        username: str,
        password_hash: str,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if self.get_by_username(username) is not None:
            raise ValueError(f"User '{username}' already exists")
        user = User(
            username=username,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
        )
        self._session.add(user)
        self._session.commit()
        LOGGER.info("Registered user %s (%s)", username, user.id)
        return user


class FinanceRepository:
    """CRUD accessors and aggregate queries scoped to a single user."""

    def __init__(self, session: Session, user_id: str) -> None:
        self._session = session
        self.user_id = user_id

    # ------------------------------------------------------------------ helpers
    def _query(self, model: Type[Any]):
        return self._session.query(model).filter(model.user_id == self.user_id)

    def _get(self, model: Type[Any], record_id: str, label: str):
        record = self._query(model).filter(model.id == record_id).first()
        if record is None:
            raise KeyError(f"{label} {record_id} not found")
        return record

    def _require_reference(self, model: Type[Any], record_id: Optional[str], label: str) -> None:
        """Reject payloads pointing at records the user does not own."""

        if record_id is None:
            return
        if self._query(model).filter(model.id == record_id).first() is None:
            raise ValueError(f"Unknown {label.lower()} '{record_id}'")

    def _add(self, record):
        record.user_id = self.user_id
        self._session.add(record)
        self._session.commit()
        return record

    def _apply(self, record, changes: Mapping[str, Any]):
        for key, value in changes.items():
            setattr(record, key, value)
        self._session.commit()
        return record

    def _delete(self, record) -> None:
        self._session.delete(record)
        self._session.commit()

    # ----------------------------------------------------------------- sponsors
    def list_sponsors(self, search: Optional[str] = None) -> List[Sponsor]:
        query = self._query(Sponsor)
        if search:
            query = query.filter(Sponsor.name.ilike(f"%{search}%"))
        return query.order_by(Sponsor.name).all()

    def get_sponsor(self, sponsor_id: str) -> Sponsor:
        return self._get(Sponsor, sponsor_id, "Sponsor")

    def create_sponsor(self, *, name: str, phone: str = "", is_active: bool = True) -> Sponsor:
        sponsor = self._add(Sponsor(name=name, phone=phone, is_active=is_active))
        LOGGER.info("Created sponsor %s", sponsor.id)
        return sponsor

    def update_sponsor(self, sponsor_id: str, changes: Mapping[str, Any]) -> Sponsor:
        return self._apply(self.get_sponsor(sponsor_id), changes)

    def delete_sponsor(self, sponsor_id: str) -> None:
        self._delete(self.get_sponsor(sponsor_id))
        LOGGER.info("Deleted sponsor %s", sponsor_id)

    # -------------------------------------------------------------------- funds
    def list_funds(self, *, active_only: bool = False) -> List[Fund]:
        query = self._query(Fund)
        if active_only:
            query = query.filter(Fund.is_active.is_(True))
        return query.order_by(Fund.name).all()

    def get_fund(self, fund_id: str) -> Fund:
        return self._get(Fund, fund_id, "Fund")

    def create_fund(
        self,
        *,
        name: str,
        percentage: float = 0.0,
        description: Optional[str] = None,
        initial_balance: float = 0.0,
        is_active: bool = True,
    ) -> Fund:
        fund = self._add(
            Fund(
                name=name,
                percentage=percentage,
                description=description,
                initial_balance=initial_balance,
                is_active=is_active,
            )
        )
        LOGGER.info("Created fund %s (%.2f%%)", fund.id, fund.percentage)
        return fund

    def update_fund(self, fund_id: str, changes: Mapping[str, Any]) -> Fund:
        return self._apply(self.get_fund(fund_id), changes)

    def delete_fund(self, fund_id: str) -> None:
        self._delete(self.get_fund(fund_id))
        LOGGER.info("Deleted fund %s with its distributions and transfers", fund_id)

    def total_fund_percentage(self) -> float:
        return float(sum((to_money(fund.percentage) for fund in self.list_funds(active_only=True)), to_money(0)))

    # ----------------------------------------------------------------- receipts
    def list_receipts(
        self,
        search: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Receipt]:
        query = self._query(Receipt)
        if search:
            query = query.filter(Receipt.description.ilike(f"%{search}%"))
        if date_from:
            query = query.filter(Receipt.date >= date_from)
        if date_to:
            query = query.filter(Receipt.date <= date_to)
        return query.order_by(Receipt.date.desc(), Receipt.created_at.desc()).all()

    def get_receipt(self, receipt_id: str) -> Receipt:
        return self._get(Receipt, receipt_id, "Receipt")

    def create_receipt(
        self,
        *,
        date: date,
        amount: float,
        description: str = "",
        sponsor_id: Optional[str] = None,
    ) -> Receipt:
        self._require_reference(Sponsor, sponsor_id, "Sponsor")
        receipt = Receipt(
            date=date,
            amount=amount,
            description=description,
            sponsor_id=sponsor_id,
            user_id=self.user_id,
        )
        self._session.add(receipt)
        self._distribute_receipt(receipt)
        self._session.commit()
        LOGGER.info(
            "Recorded receipt %s for %.2f across %s funds",
            receipt.id,
            receipt.amount,
            len(receipt.distributions),
        )
        return receipt

    def update_receipt(self, receipt_id: str, changes: Mapping[str, Any]) -> Receipt:
        receipt = self.get_receipt(receipt_id)
        if "sponsor_id" in changes:
            self._require_reference(Sponsor, changes["sponsor_id"], "Sponsor")
        amount_changed = "amount" in changes and to_money(changes["amount"]) != to_money(receipt.amount)
        for key, value in changes.items():
            setattr(receipt, key, value)
        if amount_changed:
            self._distribute_receipt(receipt)
            LOGGER.info("Receipt %s amount changed; redistributed", receipt_id)
        self._session.commit()
        return receipt

    def delete_receipt(self, receipt_id: str) -> None:
        self._delete(self.get_receipt(receipt_id))
        LOGGER.info("Deleted receipt %s and its distributions", receipt_id)

    def receipt_distributions(self, receipt_id: str) -> List[FundDistribution]:
        return list(self.get_receipt(receipt_id).distributions)

    def _distribute_receipt(self, receipt: Receipt) -> None:
        """Replace the receipt's automatic distributions using current active funds."""

        receipt.distributions.clear()
        shares = [
            FundShare(fund_id=fund.id, name=fund.name, percentage=fund.percentage)
            for fund in self.list_funds(active_only=True)
        ]
        for allocation in allocate(receipt.amount, shares):
            receipt.distributions.append(
                FundDistribution(
                    fund_id=allocation.fund_id,
                    amount=allocation.amount,
                    percentage=allocation.percentage,
                )
            )
        if not shares:
            LOGGER.warning("No active funds; receipt amount %.2f left unallocated", receipt.amount)

    # --------------------------------------------------- categories/nomenclature
    def list_categories(self) -> List[ExpenseCategory]:
        return self._query(ExpenseCategory).order_by(ExpenseCategory.name).all()

    def get_category(self, category_id: str) -> ExpenseCategory:
        return self._get(ExpenseCategory, category_id, "Expense category")

    def create_category(self, *, name: str, description: Optional[str] = None, is_active: bool = True) -> ExpenseCategory:
        category = self._add(ExpenseCategory(name=name, description=description, is_active=is_active))
        LOGGER.info("Created expense category %s", category.id)
        return category

    def update_category(self, category_id: str, changes: Mapping[str, Any]) -> ExpenseCategory:
        return self._apply(self.get_category(category_id), changes)

    def delete_category(self, category_id: str) -> None:
        self._delete(self.get_category(category_id))
        LOGGER.info("Deleted expense category %s", category_id)

    def list_nomenclature(self) -> List[ExpenseNomenclature]:
        return self._query(ExpenseNomenclature).order_by(ExpenseNomenclature.name).all()

    def get_nomenclature(self, nomenclature_id: str) -> ExpenseNomenclature:
        return self._get(ExpenseNomenclature, nomenclature_id, "Nomenclature item")

    def create_nomenclature(
        self, *, name: str, description: Optional[str] = None, is_active: bool = True
    ) -> ExpenseNomenclature:
        item = self._add(ExpenseNomenclature(name=name, description=description, is_active=is_active))
        LOGGER.info("Created nomenclature item %s", item.id)
        return item

    def update_nomenclature(self, nomenclature_id: str, changes: Mapping[str, Any]) -> ExpenseNomenclature:
        return self._apply(self.get_nomenclature(nomenclature_id), changes)

    def delete_nomenclature(self, nomenclature_id: str) -> None:
        self._delete(self.get_nomenclature(nomenclature_id))
        LOGGER.info("Deleted nomenclature item %s", nomenclature_id)

    # -------------------------------------------------------------------- costs
    def list_costs(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Cost]:
        query = self._query(Cost)
        if search:
            query = query.filter(Cost.description.ilike(f"%{search}%"))
        if category_id:
            query = query.filter(Cost.category_id == category_id)
        if date_from:
            query = query.filter(Cost.date >= date_from)
        if date_to:
            query = query.filter(Cost.date <= date_to)
        return query.order_by(Cost.date.desc(), Cost.created_at.desc()).all()

    def get_cost(self, cost_id: str) -> Cost:
        return self._get(Cost, cost_id, "Cost")

    def _check_cost_references(self, values: Mapping[str, Any]) -> None:
        self._require_reference(ExpenseCategory, values.get("category_id"), "Expense category")
        self._require_reference(ExpenseNomenclature, values.get("nomenclature_id"), "Nomenclature item")
        self._require_reference(Fund, values.get("fund_id"), "Fund")

    def create_cost(
        self,
        *,
        date: date,
        amount: float,
        description: str = "",
        category_id: Optional[str] = None,
        nomenclature_id: Optional[str] = None,
        fund_id: Optional[str] = None,
    ) -> Cost:
        values = {"category_id": category_id, "nomenclature_id": nomenclature_id, "fund_id": fund_id}
        self._check_cost_references(values)
        cost = self._add(Cost(date=date, amount=amount, description=description, **values))
        LOGGER.info("Recorded cost %s for %.2f", cost.id, cost.amount)
        return cost

    def update_cost(self, cost_id: str, changes: Mapping[str, Any]) -> Cost:
        cost = self.get_cost(cost_id)
        self._check_cost_references(changes)
        return self._apply(cost, changes)

    def delete_cost(self, cost_id: str) -> None:
        self._delete(self.get_cost(cost_id))
        LOGGER.info("Deleted cost %s", cost_id)

    # ---------------------------------------------------------- fund transfers
    def list_transfers(self) -> List[FundTransfer]:
        return self._query(FundTransfer).order_by(FundTransfer.date.desc(), FundTransfer.created_at.desc()).all()

    def get_transfer(self, transfer_id: str) -> FundTransfer:
        return self._get(FundTransfer, transfer_id, "Fund transfer")

    def create_transfer(
        self,
        *,
        from_fund_id: str,
        to_fund_id: str,
        amount: float,
        date: date,
        description: Optional[str] = None,
    ) -> FundTransfer:
        if from_fund_id == to_fund_id:
            raise ValueError("Source and destination funds must differ")
        self._require_reference(Fund, from_fund_id, "Fund")
        self._require_reference(Fund, to_fund_id, "Fund")
        transfer = self._add(
            FundTransfer(
                from_fund_id=from_fund_id,
                to_fund_id=to_fund_id,
                amount=amount,
                date=date,
                description=description,
            )
        )
        LOGGER.info("Transferred %.2f from %s to %s", amount, from_fund_id, to_fund_id)
        return transfer

    def delete_transfer(self, transfer_id: str) -> None:
        self._delete(self.get_transfer(transfer_id))
        LOGGER.info("Deleted fund transfer %s", transfer_id)

    # ------------------------------------------------------ manual distributions
    def list_manual_distributions(self) -> List[ManualFundDistribution]:
        return (
            self._query(ManualFundDistribution)
            .order_by(ManualFundDistribution.date.desc(), ManualFundDistribution.created_at.desc())
            .all()
        )

    def get_manual_distribution(self, distribution_id: str) -> ManualFundDistribution:
        return self._get(ManualFundDistribution, distribution_id, "Manual distribution")

    def create_manual_distribution(
        self,
        *,
        fund_id: str,
        amount: float,
        date: date,
        comment: Optional[str] = None,
    ) -> ManualFundDistribution:
        self._require_reference(Fund, fund_id, "Fund")
        available = to_money(self.unallocated_amount())
        if to_money(amount) > available:
            raise ValueError(f"Only {available} is unallocated; cannot distribute {to_money(amount)}")
        distribution = self._add(
            ManualFundDistribution(fund_id=fund_id, amount=amount, date=date, comment=comment)
        )
        LOGGER.info("Manually distributed %.2f into fund %s", amount, fund_id)
        return distribution

    def delete_manual_distribution(self, distribution_id: str) -> None:
        self._delete(self.get_manual_distribution(distribution_id))
        LOGGER.info("Deleted manual distribution %s", distribution_id)

    def distribute_unallocated(self, on_date: date, comment: Optional[str] = None) -> List[ManualFundDistribution]:
        """Spread the current unallocated balance over active funds by percentage."""

        available = self.unallocated_amount()
        if to_money(available) <= 0:
            raise ValueError("There are no unallocated funds to distribute")
        shares = [
            FundShare(fund_id=fund.id, name=fund.name, percentage=fund.percentage)
            for fund in self.list_funds(active_only=True)
        ]
        allocations = allocate(available, shares)
        if not allocations:
            raise ValueError("No active funds with a percentage to distribute into")
        created = []
        for allocation in allocations:
            distribution = ManualFundDistribution(
                fund_id=allocation.fund_id,
                amount=allocation.amount,
                date=on_date,
                comment=comment or f"Automatic split at {allocation.percentage:g}%",
                user_id=self.user_id,
            )
            self._session.add(distribution)
            created.append(distribution)
        self._session.commit()
        LOGGER.info("Distributed %.2f of unallocated funds across %s funds", available, len(created))
        return created

    # ----------------------------------------------------------- derived views
    def _auto_distributions(self):
        return (
            self._session.query(FundDistribution)
            .join(Receipt, FundDistribution.receipt_id == Receipt.id)
            .filter(Receipt.user_id == self.user_id)
        )

    def unallocated_amount(self) -> float:
        receipts = (amount for (amount,) in self._query(Receipt).with_entities(Receipt.amount))
        automatic = (amount for (amount,) in self._auto_distributions().with_entities(FundDistribution.amount))
        manual = (
            amount
            for (amount,) in self._query(ManualFundDistribution).with_entities(ManualFundDistribution.amount)
        )
        return unallocated_balance(receipts, automatic, manual)

    def fund_movements(self) -> List[FundMovement]:
        """Collect every dated amount entering or leaving the user's funds."""

        movements: List[FundMovement] = []
        for distribution, receipt_date in self._auto_distributions().with_entities(
            FundDistribution, Receipt.date
        ):
            movements.append(
                FundMovement(distribution.fund_id, MovementKind.DISTRIBUTION, distribution.amount, receipt_date)
            )
        for manual in self._query(ManualFundDistribution):
            movements.append(
                FundMovement(manual.fund_id, MovementKind.MANUAL_DISTRIBUTION, manual.amount, manual.date)
            )
        for transfer in self._query(FundTransfer):
            movements.append(FundMovement(transfer.to_fund_id, MovementKind.TRANSFER_IN, transfer.amount, transfer.date))
            movements.append(FundMovement(transfer.from_fund_id, MovementKind.TRANSFER_OUT, transfer.amount, transfer.date))
        for cost in self._query(Cost).filter(Cost.fund_id.isnot(None)):
            movements.append(FundMovement(cost.fund_id, MovementKind.COST, cost.amount, cost.date))
        return movements

    def funds_with_balances(self) -> List[Dict[str, Any]]:
        movements = self.fund_movements()
        return [
            {"fund": fund, "balance": fund_balance(fund.id, fund.initial_balance, movements)}
            for fund in self.list_funds()
        ]

    def distribution_history(self) -> List[Dict[str, Any]]:
        """Automatic and manual distributions together, newest first."""

        entries: List[Dict[str, Any]] = []
        for distribution in self._auto_distributions():
            receipt = distribution.receipt
            entries.append(
                {
                    "id": distribution.id,
                    "kind": "automatic",
                    "fund_id": distribution.fund_id,
                    "fund_name": distribution.fund_name,
                    "amount": distribution.amount,
                    "percentage": distribution.percentage,
                    "date": receipt.date,
                    "source": receipt.description or receipt.id,
                    "receipt_id": receipt.id,
                }
            )
        for manual in self.list_manual_distributions():
            entries.append(
                {
                    "id": manual.id,
                    "kind": "manual",
                    "fund_id": manual.fund_id,
                    "fund_name": manual.fund_name,
                    "amount": manual.amount,
                    "percentage": None,
                    "date": manual.date,
                    "source": manual.comment or "Manual distribution",
                    "receipt_id": None,
                }
            )
        entries.sort(key=lambda entry: (entry["date"], entry["id"]), reverse=True)
        return entries

    def dashboard_stats(self) -> Dict[str, Any]:
        total_receipts = sum(
            (to_money(amount) for (amount,) in self._query(Receipt).with_entities(Receipt.amount)), to_money(0)
        )
        total_costs = sum((to_money(amount) for (amount,) in self._query(Cost).with_entities(Cost.amount)), to_money(0))
        return {
            "total_receipts": float(total_receipts),
            "total_costs": float(total_costs),
            "net_balance": float(total_receipts - total_costs),
            "active_sponsors": self._query(Sponsor).filter(Sponsor.is_active.is_(True)).count(),
            "active_funds": self._query(Fund).filter(Fund.is_active.is_(True)).count(),
            "total_fund_percentage": self.total_fund_percentage(),
            "unallocated_amount": self.unallocated_amount(),
        }

    def recent_activity(self, limit: int = 5) -> Dict[str, List[Any]]:
        receipts = self._query(Receipt).order_by(Receipt.created_at.desc()).limit(limit).all()
        costs = self._query(Cost).order_by(Cost.created_at.desc()).limit(limit).all()
        return {"recent_receipts": receipts, "recent_costs": costs}

    # ------------------------------------------------------------------ reports
    def expense_report(self, period: DateRange) -> Report:
        entries = [
            CostEntry(
                amount=cost.amount,
                occurred_on=cost.date,
                category_id=cost.category_id,
                category_name=cost.category_name,
                item_name=cost.nomenclature_name or cost.description or "Unnamed expense",
            )
            for cost in self.list_costs(date_from=period.start, date_to=period.end)
        ]
        return build_expense_report(entries, period)

    def _receipt_entries(self, receipts: Iterable[Receipt]) -> List[ReceiptEntry]:
        return [
            ReceiptEntry(
                amount=receipt.amount,
                occurred_on=receipt.date,
                sponsor_id=receipt.sponsor_id,
                sponsor_name=receipt.sponsor_name,
            )
            for receipt in receipts
        ]

    def sponsor_report(self, period: DateRange) -> Report:
        receipts = self.list_receipts(date_from=period.start, date_to=period.end)
        return build_sponsor_report(self._receipt_entries(receipts), period)

    def fund_balance_report(self, period: DateRange) -> Report:
        funds = [
            FundInfo(
                fund_id=fund.id,
                name=fund.name,
                initial_balance=fund.initial_balance,
                percentage=fund.percentage,
                is_active=fund.is_active,
            )
            for fund in self.list_funds()
        ]
        receipts = self._receipt_entries(self.list_receipts(date_from=period.start, date_to=period.end))
        return build_fund_balance_report(funds, self.fund_movements(), receipts, period)
