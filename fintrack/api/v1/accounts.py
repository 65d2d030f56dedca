"""
Account API endpoints
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.accounts import (
    CreateAccountUseCase, UpdateAccountUseCase, DeleteAccountUseCase,
    get_account, list_accounts,
)
from fintrack.infrastructure.db.models import User, Account
from fintrack.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/accounts", tags=["accounts"])


# === Request/Response models ===

class CreateAccountRequest(BaseModel):
    name: str
    initial_balance: str = "0"

    @field_validator("initial_balance")
    @classmethod
    def validate_balance(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class UpdateAccountRequest(BaseModel):
    name: str


class AccountResponse(BaseModel):
    id: int
    name: str
    balance: str  # Decimal as string


def _to_response(account: Account) -> AccountResponse:
    return AccountResponse(id=account.id, name=account.name, balance=str(account.balance))


# === Endpoints ===

@router.get("/", response_model=list[AccountResponse])
def list_accounts_endpoint(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Accounts ordered by name"""
    return [_to_response(a) for a in list_accounts(db, user.id)]


@router.post("/", response_model=AccountResponse, status_code=201)
def create_account(
    req: CreateAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    account_id = CreateAccountUseCase(db).execute(
        user_id=user.id,
        name=req.name,
        initial_balance=req.initial_balance
    )
    return _to_response(get_account(db, account_id, user.id))


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    req: UpdateAccountRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rename; the balance cannot be edited directly"""
    UpdateAccountUseCase(db).execute(account_id=account_id, user_id=user.id, name=req.name)
    return _to_response(get_account(db, account_id, user.id))


@router.delete("/{account_id}", status_code=204)
def delete_account(
    account_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete the account and its transactions"""
    DeleteAccountUseCase(db).execute(account_id=account_id, user_id=user.id)
