"""
Transaction use cases - business logic for ledger operations

Every ledger write keeps Account.balance in step within the same commit:
create adds the amount, update reverses the old impact and applies the new
one, delete reverses it. Rows without an account touch no balance.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.application.accounts import get_account
from fintrack.application.atomic import run_atomic
from fintrack.application.categories import get_category, find_transfer_category
from fintrack.application.errors import ValidationError, NotFoundError, ConflictError
from fintrack.domain.summary import LedgerEntry, month_bounds
from fintrack.infrastructure.db.models import Transaction
from fintrack.infrastructure.eventlog.repository import EventLogRepository
from fintrack.utils.dates import today

logger = logging.getLogger(__name__)

DEFAULT_TRANSFER_DESCRIPTION = "Transfer between accounts"
EVENT_TRANSFER_CREATED = "transfer_created"


class TransactionValidationError(ValidationError):
    """Transaction validation error"""
    pass


@dataclass(frozen=True)
class TransferResult:
    debit_transaction_id: int
    credit_transaction_id: int
    from_account_id: int
    to_account_id: int
    amount: Decimal
    replayed: bool = False  # True when an earlier call with the same key was returned


def to_ledger_entry(tx: Transaction) -> LedgerEntry:
    return LedgerEntry(
        amount=tx.amount,
        transaction_date=tx.transaction_date,
        category_id=tx.category_id,
        category_name=tx.category.name if tx.category else None,
    )


def get_transaction(db: Session, transaction_id: int, user_id: int) -> Transaction:
    tx = db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.user_id == user_id
    ).first()
    if not tx:
        raise NotFoundError(f"Transaction #{transaction_id} not found")
    return tx


def list_transactions(
    db: Session,
    user_id: int,
    limit: int | None = 50,
    offset: int = 0,
    year: int | None = None,
    month: int | None = None,
) -> list[Transaction]:
    """
    Ledger feed, newest first

    Args:
        year, month: restrict to one calendar month (both inclusive bounds)
    """
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if year is not None and month is not None:
        first, last = month_bounds(year, month)
        query = query.filter(
            Transaction.transaction_date >= first,
            Transaction.transaction_date <= last
        )

    query = query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    if offset:
        query = query.offset(offset)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def _adjust_balance(db: Session, account_id: int | None, user_id: int, delta: Decimal) -> None:
    if account_id is None or delta == 0:
        return
    account = get_account(db, account_id, user_id, for_update=True)
    account.balance += delta


class CreateTransactionUseCase:
    """
    Use case: record an income or expense
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        amount: Decimal,
        transaction_date: date | None = None,
        account_id: int | None = None,
        category_id: int | None = None,
        description: str | None = None,
    ) -> int:
        """
        Create a ledger row

        Args:
            user_id: Owner
            amount: Signed amount (positive = income, negative = expense)
            transaction_date: Date of the operation (default: today)
            account_id: Account to book against (optional)
            category_id: Category (optional)
            description: Free text (optional)

        Returns:
            transaction_id
        """
        tx = self.build(user_id, amount, transaction_date, account_id, category_id, description)
        self.db.commit()
        return tx.id

    def build(
        self,
        user_id: int,
        amount: Decimal,
        transaction_date: date | None = None,
        account_id: int | None = None,
        category_id: int | None = None,
        description: str | None = None,
    ) -> Transaction:
        """Validate, add and flush the row and its balance impact without committing"""
        amount = Decimal(amount)
        if amount == 0:
            raise TransactionValidationError("Amount must not be zero")

        if category_id is not None:
            get_category(self.db, category_id, user_id)

        _adjust_balance(self.db, account_id, user_id, amount)

        tx = Transaction(
            user_id=user_id,
            amount=amount,
            transaction_date=transaction_date or today(),
            account_id=account_id,
            category_id=category_id,
            description=(description or "").strip() or None,
        )
        self.db.add(tx)
        self.db.flush()
        return tx


class UpdateTransactionUseCase:
    """
    Use case: edit a transaction (amount, date, category, description, account)
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, transaction_id: int, user_id: int, **changes) -> None:
        tx = get_transaction(self.db, transaction_id, user_id)

        new_amount = Decimal(changes.get("amount", tx.amount))
        if new_amount == 0:
            raise TransactionValidationError("Amount must not be zero")

        new_account_id = changes.get("account_id", tx.account_id)
        if new_account_id is not None:
            get_account(self.db, new_account_id, user_id)
        if "category_id" in changes and changes["category_id"] is not None:
            get_category(self.db, changes["category_id"], user_id)

        # Reverse old impact, then apply the new one
        _adjust_balance(self.db, tx.account_id, user_id, -tx.amount)
        _adjust_balance(self.db, new_account_id, user_id, new_amount)

        tx.amount = new_amount
        tx.account_id = new_account_id
        if "category_id" in changes:
            tx.category_id = changes["category_id"]
        if "transaction_date" in changes and changes["transaction_date"] is not None:
            tx.transaction_date = changes["transaction_date"]
        if "description" in changes:
            tx.description = (changes["description"] or "").strip() or None

        self.db.commit()


class DeleteTransactionUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, transaction_id: int, user_id: int) -> None:
        tx = get_transaction(self.db, transaction_id, user_id)
        _adjust_balance(self.db, tx.account_id, user_id, -tx.amount)
        self.db.delete(tx)
        self.db.commit()


class CreateTransferUseCase:
    """
    Use case: move money between two accounts of the same user

    Writes, in one commit:
    1. source balance -= amount, destination balance += amount
    2. a -amount transaction on the source, a +amount one on the destination
    3. a transfer_created event (carries the idempotency key)
    """

    def __init__(self, db: Session):
        self.db = db
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        description: str | None = None,
        transfer_date: date | None = None,
        idempotency_key: str | None = None,
    ) -> TransferResult:
        """
        Raises:
            TransactionValidationError: same account on both sides, amount <= 0
            NotFoundError: either account missing or foreign
            TransportError: database unavailable after retries
        """
        if from_account_id == to_account_id:
            raise TransactionValidationError("Source and destination accounts must differ")

        amount = Decimal(amount)
        if amount <= 0:
            raise TransactionValidationError("Transfer amount must be greater than zero")

        description = (description or "").strip() or DEFAULT_TRANSFER_DESCRIPTION
        transfer_date = transfer_date or today()

        def unit() -> TransferResult:
            if idempotency_key:
                previous = self._replay(user_id, idempotency_key)
                if previous:
                    return previous
            return self._write(user_id, from_account_id, to_account_id, amount,
                               description, transfer_date, idempotency_key)

        try:
            result = run_atomic(self.db, unit, label="transfer")
        except IntegrityError:
            # A concurrent call with the same key committed first
            previous = self._replay(user_id, idempotency_key) if idempotency_key else None
            if previous:
                return previous
            raise ConflictError("Transfer conflicts with an existing record")

        if not result.replayed:
            logger.info(
                "Transfer %s -> %s of %s for user %s",
                from_account_id, to_account_id, amount, user_id
            )
        return result

    def _write(
        self,
        user_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        description: str,
        transfer_date: date,
        idempotency_key: str | None,
    ) -> TransferResult:
        # Lock both rows in id order so opposite transfers cannot deadlock
        for account_id in sorted((from_account_id, to_account_id)):
            get_account(self.db, account_id, user_id, for_update=True)

        category = find_transfer_category(self.db, user_id)
        category_id = category.id if category else None

        creator = CreateTransactionUseCase(self.db)
        debit = creator.build(
            user_id, -amount, transfer_date, from_account_id, category_id, description
        )
        credit = creator.build(
            user_id, amount, transfer_date, to_account_id, category_id, description
        )

        self.event_repo.append_event(
            user_id=user_id,
            event_type=EVENT_TRANSFER_CREATED,
            payload={
                "debit_transaction_id": debit.id,
                "credit_transaction_id": credit.id,
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "amount": str(amount),
                "transfer_date": transfer_date.isoformat(),
            },
            idempotency_key=idempotency_key,
        )

        return TransferResult(
            debit_transaction_id=debit.id,
            credit_transaction_id=credit.id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
        )

    def _replay(self, user_id: int, idempotency_key: str) -> TransferResult | None:
        event = self.event_repo.get_by_idempotency_key(
            user_id, EVENT_TRANSFER_CREATED, idempotency_key
        )
        if not event:
            return None
        p = event.payload_json
        return TransferResult(
            debit_transaction_id=p["debit_transaction_id"],
            credit_transaction_id=p["credit_transaction_id"],
            from_account_id=p["from_account_id"],
            to_account_id=p["to_account_id"],
            amount=Decimal(p["amount"]),
            replayed=True,
        )
