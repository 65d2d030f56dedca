"""
Dashboard API endpoints
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.api.v1.transactions import TransactionResponse, to_response
from fintrack.application.dashboard import DashboardService
from fintrack.domain.summary import MonthlySummary
from fintrack.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


class SummaryResponse(BaseModel):
    year: int
    month: int
    total_income: str
    total_expense: str  # absolute value
    balance: str  # across all accounts


class CategoryTotal(BaseModel):
    name: str
    value: str


class DashboardResponse(BaseModel):
    summary: SummaryResponse
    recent_transactions: list[TransactionResponse]
    expense_by_category: list[CategoryTotal]


def _summary(s: MonthlySummary) -> SummaryResponse:
    return SummaryResponse(
        year=s.year,
        month=s.month,
        total_income=str(s.total_income),
        total_expense=str(s.total_expense),
        balance=str(s.balance),
    )


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    data = DashboardService(db).get_dashboard(user.id)
    return DashboardResponse(
        summary=_summary(data["summary"]),
        recent_transactions=[to_response(tx) for tx in data["recent"]],
        expense_by_category=[
            CategoryTotal(name=name, value=str(total))
            for name, total in data["expense_by_category"].items()
        ],
    )


@router.get("/summary", response_model=SummaryResponse)
def get_summary(
    year: int | None = None,
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Monthly summary (default: current month)"""
    return _summary(DashboardService(db).get_monthly_summary(user.id, year, month))
