"""
Transaction API endpoints
"""
from datetime import date
from decimal import Decimal
from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from fintrack.api.deps import get_db, get_current_user
from fintrack.application.transactions import (
    CreateTransactionUseCase, UpdateTransactionUseCase, DeleteTransactionUseCase,
    CreateTransferUseCase, get_transaction, list_transactions,
)
from fintrack.domain.category import CATEGORY_TYPES, signed_amount
from fintrack.infrastructure.db.models import User, Transaction
from fintrack.utils.validation import validate_and_normalize_amount


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request models ===

class TransactionRequest(BaseModel):
    type: str  # income / expense; decides the sign of amount
    amount: str  # positive, Decimal as string
    transaction_date: date | None = None
    account_id: int | None = None
    category_id: int | None = None
    description: str | None = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in CATEGORY_TYPES:
            raise ValueError(f"type must be income or expense, got: {v}")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)

    def signed(self) -> Decimal:
        return signed_amount(self.type, Decimal(self.amount))


class TransferRequest(BaseModel):
    from_account_id: int
    to_account_id: int
    amount: str
    description: str | None = None
    transfer_date: date | None = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: str) -> str:
        return validate_and_normalize_amount(v, max_decimal_places=2)


class TransactionResponse(BaseModel):
    id: int
    amount: str
    transaction_date: date
    description: str | None = None
    account_id: int | None = None
    account_name: str | None = None
    category_id: int | None = None
    category_name: str | None = None


class TransferResponse(BaseModel):
    debit_transaction_id: int
    credit_transaction_id: int
    from_account_id: int
    to_account_id: int
    amount: str
    replayed: bool


def to_response(tx: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=tx.id,
        amount=str(tx.amount),
        transaction_date=tx.transaction_date,
        description=tx.description,
        account_id=tx.account_id,
        account_name=tx.account.name if tx.account else None,
        category_id=tx.category_id,
        category_name=tx.category.name if tx.category else None,
    )


# === Endpoints ===

@router.get("/", response_model=list[TransactionResponse])
def list_transactions_endpoint(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    year: int | None = None,
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ledger feed, newest first"""
    rows = list_transactions(db, user.id, limit=limit, offset=offset, year=year, month=month)
    return [to_response(tx) for tx in rows]


@router.post("/", response_model=TransactionResponse, status_code=201)
def create_transaction(
    req: TransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    transaction_id = CreateTransactionUseCase(db).execute(
        user_id=user.id,
        amount=req.signed(),
        transaction_date=req.transaction_date,
        account_id=req.account_id,
        category_id=req.category_id,
        description=req.description,
    )
    return to_response(get_transaction(db, transaction_id, user.id))


@router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    req: TransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    UpdateTransactionUseCase(db).execute(
        transaction_id=transaction_id,
        user_id=user.id,
        amount=req.signed(),
        transaction_date=req.transaction_date,
        account_id=req.account_id,
        category_id=req.category_id,
        description=req.description,
    )
    return to_response(get_transaction(db, transaction_id, user.id))


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    DeleteTransactionUseCase(db).execute(transaction_id=transaction_id, user_id=user.id)


@router.post("/transfer", response_model=TransferResponse, status_code=201)
def create_transfer(
    req: TransferRequest,
    idempotency_key: str | None = Header(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Atomic transfer between two accounts.

    Send an Idempotency-Key header to make retries safe.
    """
    result = CreateTransferUseCase(db).execute(
        user_id=user.id,
        from_account_id=req.from_account_id,
        to_account_id=req.to_account_id,
        amount=Decimal(req.amount),
        description=req.description,
        transfer_date=req.transfer_date,
        idempotency_key=idempotency_key,
    )
    return TransferResponse(
        debit_transaction_id=result.debit_transaction_id,
        credit_transaction_id=result.credit_transaction_id,
        from_account_id=result.from_account_id,
        to_account_id=result.to_account_id,
        amount=str(result.amount),
        replayed=result.replayed,
    )
