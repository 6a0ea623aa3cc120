"""Mini README: Pydantic request and response models for the JSON API.

Structure:
    * *Create models - validated request bodies for POST endpoints.
    * *Update models - partial bodies for PUT endpoints (unset fields untouched).
    * *Out models - response shapes built from ORM rows via ``from_attributes``.

Amounts must be positive and percentages fall within 0..100. Request models
reject unknown fields so typos surface as validation errors instead of being
silently ignored. Update models accept ``null`` only for columns that may be
cleared; nulling a required column is a validation error.
"""

from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Amount = Annotated[float, Field(gt=0, le=9_999_999_999.99)]
Percentage = Annotated[float, Field(ge=0, le=100)]


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class UpdateModel(RequestModel):
    """Partial body for PUT routes."""

    required_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_cleared_required_fields(self) -> "UpdateModel":
        cleared = [
            name for name in self.required_fields if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class ResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------- auth
class RegisterRequest(RequestModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=72)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(RequestModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(ResponseModel):
    id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# ------------------------------------------------------------------ sponsors
class SponsorCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field("", max_length=50)
    is_active: bool = True


class SponsorUpdate(UpdateModel):
    required_fields = ("name", "phone", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class SponsorOut(ResponseModel):
    id: str
    name: str
    phone: str
    is_active: bool
    created_at: dt.datetime


# --------------------------------------------------------------------- funds
class FundCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    percentage: Percentage = 0.0
    initial_balance: float = Field(0.0, ge=0)
    is_active: bool = True


class FundUpdate(UpdateModel):
    required_fields = ("name", "percentage", "initial_balance", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    percentage: Optional[Percentage] = None
    initial_balance: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class FundOut(ResponseModel):
    id: str
    name: str
    description: Optional[str] = None
    percentage: float
    initial_balance: float
    is_active: bool
    created_at: dt.datetime


class FundBalanceOut(FundOut):
    balance: float


# ------------------------------------------------------------------ receipts
class ReceiptCreate(RequestModel):
    date: dt.date
    amount: Amount
    description: str = Field("", max_length=500)
    sponsor_id: Optional[str] = None


class ReceiptUpdate(UpdateModel):
    required_fields = ("date", "amount")

    date: Optional[dt.date] = None
    amount: Optional[Amount] = None
    description: Optional[str] = Field(None, max_length=500)
    sponsor_id: Optional[str] = None

    @field_validator("description")
    @classmethod
    def blank_description(cls, value: Optional[str]) -> str:
        return value or ""


class ReceiptOut(ResponseModel):
    id: str
    date: dt.date
    amount: float
    description: str
    sponsor_id: Optional[str] = None
    sponsor_name: Optional[str] = None
    created_at: dt.datetime


class DistributionOut(ResponseModel):
    id: str
    receipt_id: str
    fund_id: str
    fund_name: Optional[str] = None
    amount: float
    percentage: float


# ----------------------------------------------------- categories/nomenclature
class CatalogueCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    is_active: bool = True


class CatalogueUpdate(UpdateModel):
    required_fields = ("name", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=500)
    is_active: Optional[bool] = None


class CatalogueOut(ResponseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool


# --------------------------------------------------------------------- costs
class CostCreate(RequestModel):
    date: dt.date
    amount: Amount
    description: str = Field("", max_length=500)
    category_id: Optional[str] = None
    nomenclature_id: Optional[str] = None
    fund_id: Optional[str] = None


class CostUpdate(UpdateModel):
    required_fields = ("date", "amount")

    date: Optional[dt.date] = None
    amount: Optional[Amount] = None
    description: Optional[str] = Field(None, max_length=500)
    category_id: Optional[str] = None
    nomenclature_id: Optional[str] = None
    fund_id: Optional[str] = None

    @field_validator("description")
    @classmethod
    def blank_description(cls, value: Optional[str]) -> str:
        return value or ""


class CostOut(ResponseModel):
    id: str
    date: dt.date
    amount: float
    description: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    nomenclature_id: Optional[str] = None
    nomenclature_name: Optional[str] = None
    fund_id: Optional[str] = None
    fund_name: Optional[str] = None
    created_at: dt.datetime


# ------------------------------------------------------------ fund transfers
class TransferCreate(RequestModel):
    from_fund_id: str = Field(..., min_length=1)
    to_fund_id: str = Field(..., min_length=1)
    amount: Amount
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, max_length=500)


class TransferOut(ResponseModel):
    id: str
    from_fund_id: str
    from_fund_name: Optional[str] = None
    to_fund_id: str
    to_fund_name: Optional[str] = None
    amount: float
    date: dt.date
    description: Optional[str] = None


# ------------------------------------------------------ manual distributions
class ManualDistributionCreate(RequestModel):
    fund_id: str = Field(..., min_length=1)
    amount: Amount
    date: Optional[dt.date] = None
    comment: Optional[str] = Field(None, max_length=500)


class ManualDistributionOut(ResponseModel):
    id: str
    fund_id: str
    fund_name: Optional[str] = None
    amount: float
    date: dt.date
    comment: Optional[str] = None


class DistributeUnallocatedRequest(RequestModel):
    date: Optional[dt.date] = None
    comment: Optional[str] = Field(None, max_length=500)


class UnallocatedOut(BaseModel):
    unallocated_amount: float
    can_distribute: bool


class HistoryEntryOut(BaseModel):
    id: str
    kind: str
    fund_id: str
    fund_name: Optional[str] = None
    amount: float
    percentage: Optional[float] = None
    date: dt.date
    source: str
    receipt_id: Optional[str] = None


# ----------------------------------------------------------------- dashboard
class DashboardStatsOut(BaseModel):
    total_receipts: float
    total_costs: float
    net_balance: float
    active_sponsors: int
    active_funds: int
    total_fund_percentage: float
    unallocated_amount: float


class ActivityOut(BaseModel):
    recent_receipts: List[ReceiptOut]
    recent_costs: List[CostOut]


class ReportOut(BaseModel):
    kind: str
    date_from: dt.date
    date_to: dt.date
    groups: List[Dict[str, Any]]
    total: float
    summary: Dict[str, float]
