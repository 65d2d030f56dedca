"""
Budget API endpoints
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.budgets import (
    CreateBudgetUseCase, UpdateBudgetUseCase, DeleteBudgetUseCase, get_budget_progress,
)
from fintrack.domain.budget import BudgetProgress
from fintrack.infrastructure.db.models import User
from fintrack.utils.dates import today
from fintrack.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/budgets", tags=["budgets"])


class CreateBudgetRequest(BaseModel):
    category_id: int
    amount: str
    month: int = Field(ge=1, le=12)
    year: int

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class UpdateBudgetRequest(BaseModel):
    amount: str

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class BudgetResponse(BaseModel):
    id: int
    category_id: int
    category_name: str
    amount: str
    spent: str
    progress: float  # 0..100, clamped
    is_over: bool


def _to_response(b: BudgetProgress) -> BudgetResponse:
    return BudgetResponse(
        id=b.budget_id,
        category_id=b.category_id,
        category_name=b.category_name,
        amount=str(b.amount),
        spent=str(b.spent),
        progress=round(float(b.progress), 2),
        is_over=b.is_over,
    )


def _find(db: Session, user_id: int, budget_id: int, year: int, month: int) -> BudgetResponse:
    return next(
        _to_response(b)
        for b in get_budget_progress(db, user_id, year, month)
        if b.budget_id == budget_id
    )


@router.get("/", response_model=list[BudgetResponse])
def list_budgets(
    year: int | None = None,
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Budgets of a month (default: current) with spent and progress"""
    current = today()
    year = year or current.year
    month = month or current.month
    return [_to_response(b) for b in get_budget_progress(db, user.id, year, month)]


@router.post("/", response_model=BudgetResponse, status_code=201)
def create_budget(
    req: CreateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    budget_id = CreateBudgetUseCase(db).execute(
        user_id=user.id,
        category_id=req.category_id,
        amount=req.amount,
        month=req.month,
        year=req.year,
    )
    return _find(db, user.id, budget_id, req.year, req.month)


@router.put("/{budget_id}", status_code=204)
def update_budget(
    budget_id: int,
    req: UpdateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the limit"""
    UpdateBudgetUseCase(db).execute(budget_id=budget_id, user_id=user.id, amount=req.amount)


@router.delete("/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    DeleteBudgetUseCase(db).execute(budget_id=budget_id, user_id=user.id)
