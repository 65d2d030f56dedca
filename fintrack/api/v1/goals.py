"""
Saving goal API endpoints
"""
from decimal import Decimal
from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.goals import (
    CreateGoalUseCase, UpdateGoalUseCase, DeleteGoalUseCase, AddFundsToGoalUseCase,
    GoalView, get_goal, list_goals, to_goal_view,
)
from fintrack.infrastructure.db.models import User
from fintrack.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/saving-goals", tags=["saving-goals"])


class CreateGoalRequest(BaseModel):
    name: str
    target_amount: str

    @field_validator("target_amount")
    @classmethod
    def validate_target(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class UpdateGoalRequest(BaseModel):
    name: str | None = None
    target_amount: str | None = None

    @field_validator("target_amount")
    @classmethod
    def validate_target(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_and_normalize_amount(v, max_decimal_places=2)


class AddFundsRequest(BaseModel):
    amount: str
    description: str | None = None
    account_id: int | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class GoalResponse(BaseModel):
    id: int
    name: str
    target_amount: str
    current_amount: str
    progress: float  # 0..100, clamped


class FundingResponse(BaseModel):
    goal: GoalResponse
    transaction_id: int
    replayed: bool


def _to_response(g: GoalView) -> GoalResponse:
    return GoalResponse(
        id=g.id,
        name=g.name,
        target_amount=str(g.target_amount),
        current_amount=str(g.current_amount),
        progress=round(float(g.progress), 2),
    )


@router.get("/", response_model=list[GoalResponse])
def list_goals_endpoint(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Goals with progress, newest first"""
    return [_to_response(g) for g in list_goals(db, user.id)]


@router.post("/", response_model=GoalResponse, status_code=201)
def create_goal(
    req: CreateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    goal_id = CreateGoalUseCase(db).execute(
        user_id=user.id, name=req.name, target_amount=req.target_amount
    )
    return _to_response(to_goal_view(get_goal(db, goal_id, user.id)))


@router.put("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: int,
    req: UpdateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UpdateGoalUseCase(db).execute(
        goal_id=goal_id, user_id=user.id, name=req.name, target_amount=req.target_amount
    )
    return _to_response(to_goal_view(get_goal(db, goal_id, user.id)))


@router.delete("/{goal_id}", status_code=204)
def delete_goal(
    goal_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    DeleteGoalUseCase(db).execute(goal_id=goal_id, user_id=user.id)


@router.post("/{goal_id}/add-funds", response_model=FundingResponse, status_code=201)
def add_funds(
    goal_id: int,
    req: AddFundsRequest,
    idempotency_key: str | None = Header(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Atomically raise the goal's saved amount and record the expense.

    Send an Idempotency-Key header to make retries safe.
    """
    result = AddFundsToGoalUseCase(db).execute(
        user_id=user.id,
        goal_id=goal_id,
        amount=Decimal(req.amount),
        description=req.description,
        account_id=req.account_id,
        idempotency_key=idempotency_key,
    )
    goal = to_goal_view(get_goal(db, goal_id, user.id))
    return FundingResponse(
        goal=_to_response(goal),
        transaction_id=result.transaction_id,
        replayed=result.replayed,
    )
