"""
Recurring transaction API endpoints
"""
from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.recurring import (
    CreateRecurringUseCase, UpdateRecurringUseCase, DeleteRecurringUseCase,
    MaterializeDueRecurringUseCase, get_recurring, list_recurring,
)
from fintrack.domain.category import CATEGORY_TYPES, signed_amount
from fintrack.domain.recurrence import VALID_FREQ
from fintrack.infrastructure.db.models import User, RecurringTransaction
from fintrack.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/recurring-transactions", tags=["recurring-transactions"])


class RecurringRequest(BaseModel):
    type: str  # income / expense
    amount: str  # positive
    frequency: str
    start_date: date
    account_id: int
    category_id: int | None = None
    description: str | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CATEGORY_TYPES:
            raise ValueError(f"type must be income or expense, got: {v}")
        return v

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v: str) -> str:
        if v not in VALID_FREQ:
            raise ValueError("frequency must be daily, weekly, monthly or yearly")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)

    def signed(self) -> Decimal:
        return signed_amount(self.type, Decimal(self.amount))


class RecurringResponse(BaseModel):
    id: int
    description: str | None
    amount: str
    frequency: str
    start_date: date
    next_due_date: date
    account_id: int
    account_name: str
    category_id: int | None
    category_name: str | None


class RunResponse(BaseModel):
    created: int


def _to_response(r: RecurringTransaction) -> RecurringResponse:
    return RecurringResponse(
        id=r.id,
        description=r.description,
        amount=str(r.amount),
        frequency=r.frequency,
        start_date=r.start_date,
        next_due_date=r.next_due_date,
        account_id=r.account_id,
        account_name=r.account.name,
        category_id=r.category_id,
        category_name=r.category.name if r.category else None,
    )


@router.get("/", response_model=list[RecurringResponse])
def list_recurring_endpoint(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Templates ordered by next due date"""
    return [_to_response(r) for r in list_recurring(db, user.id)]


@router.post("/", response_model=RecurringResponse, status_code=201)
def create_recurring(
    req: RecurringRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    recurring_id = CreateRecurringUseCase(db).execute(
        user_id=user.id,
        amount=req.signed(),
        frequency=req.frequency,
        start_date=req.start_date,
        account_id=req.account_id,
        category_id=req.category_id,
        description=req.description,
    )
    return _to_response(get_recurring(db, recurring_id, user.id))


@router.put("/{recurring_id}", response_model=RecurringResponse)
def update_recurring(
    recurring_id: int,
    req: RecurringRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UpdateRecurringUseCase(db).execute(
        recurring_id=recurring_id,
        user_id=user.id,
        amount=req.signed(),
        frequency=req.frequency,
        start_date=req.start_date,
        account_id=req.account_id,
        category_id=req.category_id,
        description=req.description,
    )
    return _to_response(get_recurring(db, recurring_id, user.id))


@router.delete("/{recurring_id}", status_code=204)
def delete_recurring(
    recurring_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    DeleteRecurringUseCase(db).execute(recurring_id=recurring_id, user_id=user.id)


@router.post("/run", response_model=RunResponse)
def run_due(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Materialize this user's due templates now"""
    created = MaterializeDueRecurringUseCase(db).execute(user_id=user.id)
    return RunResponse(created=created)
