"""Mini README: JSON REST endpoints under ``/api``.

Structure:
    * build_api_router - wires CRUD routes for sponsors, funds, receipts,
      costs, fund transfers, manual distributions, expense categories and
      nomenclature, plus derived views (balances, history, dashboard, reports).

Every route requires a logged in user and works through a user-scoped
``FinanceRepository``. Repository ``KeyError``s become 404 responses and
``ValueError``s become 400 responses. ORM rows are converted to response
models before the request's database session closes.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..configuration import FundtrackerSettings
from ..finance import DateRange
from ..logging_utils import get_logger
from ..storage import FinanceRepository
from .dependencies import get_repository
from .schemas import (
    ActivityOut,
    CatalogueCreate,
    CatalogueOut,
    CatalogueUpdate,
    CostCreate,
    CostOut,
    CostUpdate,
    DashboardStatsOut,
    DistributeUnallocatedRequest,
    DistributionOut,
    FundBalanceOut,
    FundCreate,
    FundOut,
    FundUpdate,
    HistoryEntryOut,
    ManualDistributionCreate,
    ManualDistributionOut,
    ReceiptCreate,
    ReceiptOut,
    ReceiptUpdate,
    ReportOut,
    SponsorCreate,
    SponsorOut,
    SponsorUpdate,
    TransferCreate,
    TransferOut,
    UnallocatedOut,
)

LOGGER = get_logger(__name__)

NO_CONTENT = status.HTTP_204_NO_CONTENT


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate repository errors into HTTP responses."""

    try:
        yield
    except KeyError as error:
        message = error.args[0] if error.args else "Not found"
        LOGGER.debug("Not found: %s", message)
        raise HTTPException(status_code=404, detail=message) from error
    except ValueError as error:
        LOGGER.warning("Rejected request: %s", error)
        raise HTTPException(status_code=400, detail=str(error)) from error


def _period(date_from: date, date_to: date) -> DateRange:
    with domain_errors():
        return DateRange(date_from, date_to)


def build_api_router(settings: FundtrackerSettings) -> APIRouter:
    """Create the authenticated JSON API."""

    router = APIRouter(prefix="/api")

    # ------------------------------------------------------------- sponsors
    @router.get("/sponsors", response_model=List[SponsorOut])
    def list_sponsors(
        search: Optional[str] = None, repo: FinanceRepository = Depends(get_repository)
    ) -> List[SponsorOut]:
        return [SponsorOut.model_validate(sponsor) for sponsor in repo.list_sponsors(search)]

    @router.get("/sponsors/{sponsor_id}", response_model=SponsorOut)
    def get_sponsor(sponsor_id: str, repo: FinanceRepository = Depends(get_repository)) -> SponsorOut:
        with domain_errors():
            return SponsorOut.model_validate(repo.get_sponsor(sponsor_id))

    @router.post("/sponsors", status_code=201, response_model=SponsorOut)
    def create_sponsor(payload: SponsorCreate, repo: FinanceRepository = Depends(get_repository)) -> SponsorOut:
        return SponsorOut.model_validate(repo.create_sponsor(**payload.model_dump()))

    @router.put("/sponsors/{sponsor_id}", response_model=SponsorOut)
    def update_sponsor(
        sponsor_id: str, payload: SponsorUpdate, repo: FinanceRepository = Depends(get_repository)
    ) -> SponsorOut:
        with domain_errors():
            sponsor = repo.update_sponsor(sponsor_id, payload.model_dump(exclude_unset=True))
            return SponsorOut.model_validate(sponsor)

    @router.delete("/sponsors/{sponsor_id}", status_code=NO_CONTENT)
    def delete_sponsor(sponsor_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_sponsor(sponsor_id)
        return Response(status_code=NO_CONTENT)

    # ---------------------------------------------------------------- funds
    @router.get("/funds", response_model=List[FundOut])
    def list_funds(
        active_only: bool = False, repo: FinanceRepository = Depends(get_repository)
    ) -> List[FundOut]:
        return [FundOut.model_validate(fund) for fund in repo.list_funds(active_only=active_only)]

    @router.get("/funds-with-balances", response_model=List[FundBalanceOut])
    def funds_with_balances(repo: FinanceRepository = Depends(get_repository)) -> List[FundBalanceOut]:
        return [
            FundBalanceOut(**FundOut.model_validate(entry["fund"]).model_dump(), balance=entry["balance"])
            for entry in repo.funds_with_balances()
        ]

    @router.get("/funds/{fund_id}", response_model=FundOut)
    def get_fund(fund_id: str, repo: FinanceRepository = Depends(get_repository)) -> FundOut:
        with domain_errors():
            return FundOut.model_validate(repo.get_fund(fund_id))

    @router.post("/funds", status_code=201, response_model=FundOut)
    def create_fund(payload: FundCreate, repo: FinanceRepository = Depends(get_repository)) -> FundOut:
        return FundOut.model_validate(repo.create_fund(**payload.model_dump()))

    @router.put("/funds/{fund_id}", response_model=FundOut)
    def update_fund(fund_id: str, payload: FundUpdate, repo: FinanceRepository = Depends(get_repository)) -> FundOut:
        with domain_errors():
            return FundOut.model_validate(repo.update_fund(fund_id, payload.model_dump(exclude_unset=True)))

    @router.delete("/funds/{fund_id}", status_code=NO_CONTENT)
    def delete_fund(fund_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_fund(fund_id)
        return Response(status_code=NO_CONTENT)

    # ------------------------------------------------------------- receipts
    @router.get("/receipts", response_model=List[ReceiptOut])
    def list_receipts(
        search: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        repo: FinanceRepository = Depends(get_repository),
    ) -> List[ReceiptOut]:
        receipts = repo.list_receipts(search, date_from, date_to)
        return [ReceiptOut.model_validate(receipt) for receipt in receipts]

    @router.get("/receipts/{receipt_id}", response_model=ReceiptOut)
    def get_receipt(receipt_id: str, repo: FinanceRepository = Depends(get_repository)) -> ReceiptOut:
        with domain_errors():
            return ReceiptOut.model_validate(repo.get_receipt(receipt_id))

    @router.get("/receipts/{receipt_id}/distributions", response_model=List[DistributionOut])
    def receipt_distributions(
        receipt_id: str, repo: FinanceRepository = Depends(get_repository)
    ) -> List[DistributionOut]:
        with domain_errors():
            distributions = repo.receipt_distributions(receipt_id)
            return [DistributionOut.model_validate(item) for item in distributions]

    @router.post("/receipts", status_code=201, response_model=ReceiptOut)
    def create_receipt(payload: ReceiptCreate, repo: FinanceRepository = Depends(get_repository)) -> ReceiptOut:
        """Record a receipt and distribute it across the active funds."""

        with domain_errors():
            return ReceiptOut.model_validate(repo.create_receipt(**payload.model_dump()))

    @router.put("/receipts/{receipt_id}", response_model=ReceiptOut)
    def update_receipt(
        receipt_id: str, payload: ReceiptUpdate, repo: FinanceRepository = Depends(get_repository)
    ) -> ReceiptOut:
        with domain_errors():
            receipt = repo.update_receipt(receipt_id, payload.model_dump(exclude_unset=True))
            return ReceiptOut.model_validate(receipt)

    @router.delete("/receipts/{receipt_id}", status_code=NO_CONTENT)
    def delete_receipt(receipt_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_receipt(receipt_id)
        return Response(status_code=NO_CONTENT)

    # ---------------------------------------------- categories/nomenclature
    @router.get("/expense-categories", response_model=List[CatalogueOut])
    def list_categories(repo: FinanceRepository = Depends(get_repository)) -> List[CatalogueOut]:
        return [CatalogueOut.model_validate(category) for category in repo.list_categories()]

    @router.post("/expense-categories", status_code=201, response_model=CatalogueOut)
    def create_category(payload: CatalogueCreate, repo: FinanceRepository = Depends(get_repository)) -> CatalogueOut:
        return CatalogueOut.model_validate(repo.create_category(**payload.model_dump()))

    @router.put("/expense-categories/{category_id}", response_model=CatalogueOut)
    def update_category(
        category_id: str, payload: CatalogueUpdate, repo: FinanceRepository = Depends(get_repository)
    ) -> CatalogueOut:
        with domain_errors():
            category = repo.update_category(category_id, payload.model_dump(exclude_unset=True))
            return CatalogueOut.model_validate(category)

    @router.delete("/expense-categories/{category_id}", status_code=NO_CONTENT)
    def delete_category(category_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_category(category_id)
        return Response(status_code=NO_CONTENT)

    @router.get("/expense-nomenclature", response_model=List[CatalogueOut])
    def list_nomenclature(repo: FinanceRepository = Depends(get_repository)) -> List[CatalogueOut]:
        return [CatalogueOut.model_validate(item) for item in repo.list_nomenclature()]

    @router.post("/expense-nomenclature", status_code=201, response_model=CatalogueOut)
    def create_nomenclature(
        payload: CatalogueCreate, repo: FinanceRepository = Depends(get_repository)
    ) -> CatalogueOut:
        return CatalogueOut.model_validate(repo.create_nomenclature(**payload.model_dump()))

    @router.put("/expense-nomenclature/{nomenclature_id}", response_model=CatalogueOut)
    def update_nomenclature(
        nomenclature_id: str, payload: CatalogueUpdate, repo: FinanceRepository = Depends(get_repository)
    ) -> CatalogueOut:
        with domain_errors():
            item = repo.update_nomenclature(nomenclature_id, payload.model_dump(exclude_unset=True))
            return CatalogueOut.model_validate(item)

    @router.delete("/expense-nomenclature/{nomenclature_id}", status_code=NO_CONTENT)
    def delete_nomenclature(nomenclature_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_nomenclature(nomenclature_id)
        return Response(status_code=NO_CONTENT)

    # ---------------------------------------------------------------- costs
    @router.get("/costs", response_model=List[CostOut])
    def list_costs(
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        repo: FinanceRepository = Depends(get_repository),
    ) -> List[CostOut]:
        costs = repo.list_costs(search, category_id, date_from, date_to)
        return [CostOut.model_validate(cost) for cost in costs]

    @router.get("/costs/{cost_id}", response_model=CostOut)
    def get_cost(cost_id: str, repo: FinanceRepository = Depends(get_repository)) -> CostOut:
        with domain_errors():
            return CostOut.model_validate(repo.get_cost(cost_id))

    @router.post("/costs", status_code=201, response_model=CostOut)
    def create_cost(payload: CostCreate, repo: FinanceRepository = Depends(get_repository)) -> CostOut:
        with domain_errors():
            return CostOut.model_validate(repo.create_cost(**payload.model_dump()))

    @router.put("/costs/{cost_id}", response_model=CostOut)
    def update_cost(cost_id: str, payload: CostUpdate, repo: FinanceRepository = Depends(get_repository)) -> CostOut:
        with domain_errors():
            return CostOut.model_validate(repo.update_cost(cost_id, payload.model_dump(exclude_unset=True)))

    @router.delete("/costs/{cost_id}", status_code=NO_CONTENT)
    def delete_cost(cost_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_cost(cost_id)
        return Response(status_code=NO_CONTENT)

    # ------------------------------------------------------- fund transfers
    @router.get("/fund-transfers", response_model=List[TransferOut])
    def list_transfers(repo: FinanceRepository = Depends(get_repository)) -> List[TransferOut]:
        return [TransferOut.model_validate(transfer) for transfer in repo.list_transfers()]

    @router.post("/fund-transfers", status_code=201, response_model=TransferOut)
    def create_transfer(payload: TransferCreate, repo: FinanceRepository = Depends(get_repository)) -> TransferOut:
        values = payload.model_dump()
        values["date"] = values["date"] or date.today()
        with domain_errors():
            return TransferOut.model_validate(repo.create_transfer(**values))

    @router.delete("/fund-transfers/{transfer_id}", status_code=NO_CONTENT)
    def delete_transfer(transfer_id: str, repo: FinanceRepository = Depends(get_repository)) -> Response:
        with domain_errors():
            repo.delete_transfer(transfer_id)
        return Response(status_code=NO_CONTENT)

    # ------------------------------------------------- manual distributions
    @router.get("/manual-fund-distributions", response_model=List[ManualDistributionOut])
    def list_manual_distributions(
        repo: FinanceRepository = Depends(get_repository),
    ) -> List[ManualDistributionOut]:
        return [ManualDistributionOut.model_validate(item) for item in repo.list_manual_distributions()]

    @router.post("/manual-fund-distributions", status_code=201, response_model=ManualDistributionOut)
    def create_manual_distribution(
        payload: ManualDistributionCreate, repo: FinanceRepository = Depends(get_repository)
    ) -> ManualDistributionOut:
        values = payload.model_dump()
        values["date"] = values["date"] or date.today()
        with domain_errors():
            return ManualDistributionOut.model_validate(repo.create_manual_distribution(**values))

    @router.delete("/manual-fund-distributions/{distribution_id}", status_code=NO_CONTENT)
    def delete_manual_distribution(
        distribution_id: str, repo: FinanceRepository = Depends(get_repository)
    ) -> Response:
        with domain_errors():
            repo.delete_manual_distribution(distribution_id)
        return Response(status_code=NO_CONTENT)

    @router.get("/unallocated-funds", response_model=UnallocatedOut)
    def unallocated_funds(repo: FinanceRepository = Depends(get_repository)) -> UnallocatedOut:
        amount = repo.unallocated_amount()
        return UnallocatedOut(unallocated_amount=amount, can_distribute=amount > 0)

    @router.post("/distribute-unallocated-funds", status_code=201, response_model=List[ManualDistributionOut])
    def distribute_unallocated_funds(
        payload: Optional[DistributeUnallocatedRequest] = None,
        repo: FinanceRepository = Depends(get_repository),
    ) -> List[ManualDistributionOut]:
        payload = payload or DistributeUnallocatedRequest()
        with domain_errors():
            created = repo.distribute_unallocated(payload.date or date.today(), payload.comment)
            return [ManualDistributionOut.model_validate(item) for item in created]

    @router.get("/distribution-history", response_model=List[HistoryEntryOut])
    def distribution_history(repo: FinanceRepository = Depends(get_repository)) -> List[HistoryEntryOut]:
        return [HistoryEntryOut(**entry) for entry in repo.distribution_history()]

    # ------------------------------------------------------------ dashboard
    @router.get("/dashboard/stats", response_model=DashboardStatsOut)
    def dashboard_stats(repo: FinanceRepository = Depends(get_repository)) -> DashboardStatsOut:
        return DashboardStatsOut(**repo.dashboard_stats())

    @router.get("/dashboard/activity", response_model=ActivityOut)
    def dashboard_activity(
        limit: Optional[int] = Query(None, ge=1, le=100),
        repo: FinanceRepository = Depends(get_repository),
    ) -> ActivityOut:
        activity = repo.recent_activity(limit or settings.activity_limit)
        return ActivityOut(
            recent_receipts=[ReceiptOut.model_validate(item) for item in activity["recent_receipts"]],
            recent_costs=[CostOut.model_validate(item) for item in activity["recent_costs"]],
        )

    # -------------------------------------------------------------- reports
    @router.get("/reports/expenses", response_model=ReportOut)
    def expense_report(
        date_from: date, date_to: date, repo: FinanceRepository = Depends(get_repository)
    ) -> ReportOut:
        return ReportOut(**repo.expense_report(_period(date_from, date_to)).as_dict())

    @router.get("/reports/sponsors", response_model=ReportOut)
    def sponsor_report(
        date_from: date, date_to: date, repo: FinanceRepository = Depends(get_repository)
    ) -> ReportOut:
        return ReportOut(**repo.sponsor_report(_period(date_from, date_to)).as_dict())

    @router.get("/reports/fund-balance", response_model=ReportOut)
    def fund_balance_report(
        date_from: date, date_to: date, repo: FinanceRepository = Depends(get_repository)
    ) -> ReportOut:
        return ReportOut(**repo.fund_balance_report(_period(date_from, date_to)).as_dict())

    return router
