"""Mini README: Tests for the SQLAlchemy-backed finance repository.

Structure:
    * receipt distribution - automatic splits created, recomputed, and removed.
    * unallocated tracking - manual distributions, deletion, and the
      distribute-everything helper.
    * fund balances, scoping, and reports over persisted rows.
"""

from __future__ import annotations

from datetime import date

import pytest

from fundtracker.finance import DateRange
from fundtracker.interface.auth import hash_password
from fundtracker.storage import FinanceRepository, User, UserRepository, build_session_factory, session_scope


def _funds(repo: FinanceRepository, *percentages: float):
    return [
        repo.create_fund(name=f"Fund {index}", percentage=percentage)
        for index, percentage in enumerate(percentages, start=1)
    ]


def test_receipt_is_distributed_across_active_funds(repo: FinanceRepository) -> None:
    first, second = _funds(repo, 60, 40)

    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=1000, description="Donation")

    amounts = {item.fund_id: item.amount for item in repo.receipt_distributions(receipt.id)}
    assert amounts == {first.id: pytest.approx(600.0), second.id: pytest.approx(400.0)}
    assert repo.unallocated_amount() == pytest.approx(0.0)


def test_inactive_funds_do_not_receive_distributions(repo: FinanceRepository) -> None:
    active, inactive = _funds(repo, 50, 50)
    repo.update_fund(inactive.id, {"is_active": False})

    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=200)

    assert [item.fund_id for item in repo.receipt_distributions(receipt.id)] == [active.id]
    assert repo.unallocated_amount() == pytest.approx(100.0)


def test_receipt_without_active_funds_is_fully_unallocated(repo: FinanceRepository) -> None:
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)

    assert repo.unallocated_amount() == pytest.approx(1000.0)


def test_updating_receipt_amount_redistributes(repo: FinanceRepository) -> None:
    (fund,) = _funds(repo, 100)
    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=100)

    repo.update_receipt(receipt.id, {"amount": 250})

    distributions = repo.receipt_distributions(receipt.id)
    assert len(distributions) == 1
    assert distributions[0].fund_id == fund.id
    assert distributions[0].amount == pytest.approx(250.0)


def test_percentage_is_captured_at_receipt_time(repo: FinanceRepository) -> None:
    (fund,) = _funds(repo, 80)
    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=100)

    repo.update_fund(fund.id, {"percentage": 20})

    distribution = repo.receipt_distributions(receipt.id)[0]
    assert distribution.percentage == pytest.approx(80.0)
    assert distribution.amount == pytest.approx(80.0)


def test_deleting_receipt_removes_its_distributions(repo: FinanceRepository) -> None:
    _funds(repo, 100)
    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=300)

    repo.delete_receipt(receipt.id)

    assert repo.distribution_history() == []
    assert repo.unallocated_amount() == pytest.approx(0.0)
    with pytest.raises(KeyError):
        repo.get_receipt(receipt.id)


def test_deleting_manual_distribution_restores_unallocated(repo: FinanceRepository) -> None:
    (fund,) = _funds(repo, 50)
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)
    manual = repo.create_manual_distribution(fund_id=fund.id, amount=120.5, date=date(2024, 3, 2))
    before = repo.unallocated_amount()

    repo.delete_manual_distribution(manual.id)

    assert before == pytest.approx(379.5)
    assert repo.unallocated_amount() - before == pytest.approx(120.5)


def test_manual_distribution_cannot_exceed_unallocated(repo: FinanceRepository) -> None:
    (fund,) = _funds(repo, 90)
    repo.create_receipt(date=date(2024, 3, 1), amount=100)

    with pytest.raises(ValueError):
        repo.create_manual_distribution(fund_id=fund.id, amount=10.01, date=date(2024, 3, 2))


def test_distribute_unallocated_splits_remaining_balance(repo: FinanceRepository) -> None:
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)
    first, second = _funds(repo, 70, 30)

    created = repo.distribute_unallocated(date(2024, 3, 5))

    assert sorted(item.amount for item in created) == [pytest.approx(300.0), pytest.approx(700.0)]
    assert repo.unallocated_amount() == pytest.approx(0.0)
    with pytest.raises(ValueError):
        repo.distribute_unallocated(date(2024, 3, 6))


def test_fund_balances_include_transfers_and_costs(repo: FinanceRepository) -> None:
    ops, reserve = _funds(repo, 50, 50)
    repo.update_fund(ops.id, {"initial_balance": 100})
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)
    repo.create_transfer(from_fund_id=ops.id, to_fund_id=reserve.id, amount=200, date=date(2024, 3, 2))
    repo.create_cost(date=date(2024, 3, 3), amount=50, fund_id=ops.id)

    balances = {entry["fund"].id: entry["balance"] for entry in repo.funds_with_balances()}

    assert balances[ops.id] == pytest.approx(350.0)
    assert balances[reserve.id] == pytest.approx(700.0)


def test_transfer_between_same_fund_is_rejected(repo: FinanceRepository) -> None:
    (fund,) = _funds(repo, 100)

    with pytest.raises(ValueError):
        repo.create_transfer(from_fund_id=fund.id, to_fund_id=fund.id, amount=10, date=date(2024, 3, 1))


def test_records_are_scoped_to_their_owner(repo: FinanceRepository, session) -> None:
    sponsor = repo.create_sponsor(name="Alice", phone="555-0100")
    other_user = UserRepository(session).create("auditor", hash_password("another-pass"))
    other = FinanceRepository(session, other_user.id)

    assert other.list_sponsors() == []
    with pytest.raises(KeyError):
        other.get_sponsor(sponsor.id)
    with pytest.raises(ValueError):
        other.create_receipt(date=date(2024, 3, 1), amount=10, sponsor_id=sponsor.id)


def test_deleting_sponsor_keeps_receipts(repo: FinanceRepository) -> None:
    sponsor = repo.create_sponsor(name="Alice")
    receipt = repo.create_receipt(date=date(2024, 3, 1), amount=10, sponsor_id=sponsor.id)

    repo.delete_sponsor(sponsor.id)

    assert repo.get_receipt(receipt.id).sponsor_id is None


def test_dashboard_stats_summarise_totals(repo: FinanceRepository) -> None:
    _funds(repo, 60, 30)
    repo.create_sponsor(name="Alice")
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)
    repo.create_cost(date=date(2024, 3, 2), amount=120)

    stats = repo.dashboard_stats()

    assert stats["total_receipts"] == pytest.approx(1000.0)
    assert stats["total_costs"] == pytest.approx(120.0)
    assert stats["net_balance"] == pytest.approx(880.0)
    assert stats["active_sponsors"] == 1
    assert stats["active_funds"] == 2
    assert stats["total_fund_percentage"] == pytest.approx(90.0)
    assert stats["unallocated_amount"] == pytest.approx(100.0)


def test_reports_use_persisted_rows(repo: FinanceRepository) -> None:
    category = repo.create_category(name="Utilities")
    item = repo.create_nomenclature(name="Electricity")
    repo.create_cost(date=date(2024, 4, 3), amount=80, category_id=category.id, nomenclature_id=item.id)
    repo.create_cost(date=date(2024, 4, 9), amount=20, description="Batteries")
    period = DateRange(date(2024, 4, 1), date(2024, 4, 30))

    report = repo.expense_report(period)

    assert report.total == pytest.approx(100.0)
    assert [(group.label, group.percentage) for group in report.groups] == [
        ("Utilities", 80.0),
        ("Uncategorised", 20.0),
    ]
    assert report.groups[0].items[0].name == "Electricity"
    assert repo.sponsor_report(period).is_empty


def test_session_scope_rolls_back_on_error(engine) -> None:
    factory = build_session_factory(engine)

    with pytest.raises(RuntimeError):
        with session_scope(factory) as session:
            session.add(User(username="ghost", password_hash="unused"))
            raise RuntimeError("abort")

    with session_scope(factory) as session:
        assert UserRepository(session).get_by_username("ghost") is None


def test_deleting_fund_cascades_distributions_and_transfers(repo: FinanceRepository) -> None:
    doomed, kept = _funds(repo, 60, 40)
    repo.create_receipt(date=date(2024, 3, 1), amount=1000)
    repo.create_transfer(from_fund_id=kept.id, to_fund_id=doomed.id, amount=100, date=date(2024, 3, 2))
    cost = repo.create_cost(date=date(2024, 3, 3), amount=50, fund_id=doomed.id)

    repo.delete_fund(doomed.id)

    with pytest.raises(KeyError):
        repo.get_fund(doomed.id)
    assert repo.list_transfers() == []
    assert repo.get_cost(cost.id).fund_id is None
    assert repo.unallocated_amount() == pytest.approx(600.0)
    assert {entry["fund_id"] for entry in repo.distribution_history()} == {kept.id}
    balances = {entry["fund"].id: entry["balance"] for entry in repo.funds_with_balances()}
    assert balances == {kept.id: pytest.approx(400.0)}
