"""
Recurring transaction use cases - templates and their materialization
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from fintrack.application.accounts import get_account
from fintrack.application.categories import get_category
from fintrack.application.errors import ValidationError, NotFoundError
from fintrack.application.transactions import CreateTransactionUseCase
from fintrack.domain.recurrence import VALID_FREQ, due_dates
from fintrack.infrastructure.db.models import RecurringTransaction
from fintrack.utils.dates import today as local_today

logger = logging.getLogger(__name__)


class RecurringValidationError(ValidationError):
    pass


def get_recurring(db: Session, recurring_id: int, user_id: int) -> RecurringTransaction:
    item = db.query(RecurringTransaction).filter(
        RecurringTransaction.id == recurring_id,
        RecurringTransaction.user_id == user_id
    ).first()
    if not item:
        raise NotFoundError(f"Recurring transaction #{recurring_id} not found")
    return item


def list_recurring(db: Session, user_id: int) -> list[RecurringTransaction]:
    """Templates ordered by next_due_date"""
    return db.query(RecurringTransaction).filter(
        RecurringTransaction.user_id == user_id
    ).order_by(RecurringTransaction.next_due_date.asc(), RecurringTransaction.id.asc()).all()


def _validate(db: Session, user_id: int, amount, frequency: str,
              account_id: int, category_id: int | None) -> Decimal:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise RecurringValidationError(f"Invalid amount: {amount}")
    if value == 0:
        raise RecurringValidationError("Amount must not be zero")
    if frequency not in VALID_FREQ:
        raise RecurringValidationError(
            f"Invalid frequency: {frequency}. Use daily, weekly, monthly or yearly"
        )
    get_account(db, account_id, user_id)
    if category_id is not None:
        get_category(db, category_id, user_id)
    return value


class CreateRecurringUseCase:
    """
    Use case: create a template; the first due date is the start date
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        amount,
        frequency: str,
        start_date: date,
        account_id: int,
        category_id: int | None = None,
        description: str | None = None,
    ) -> int:
        value = _validate(self.db, user_id, amount, frequency, account_id, category_id)

        item = RecurringTransaction(
            user_id=user_id,
            amount=value,
            frequency=frequency,
            start_date=start_date,
            next_due_date=start_date,
            account_id=account_id,
            category_id=category_id,
            description=(description or "").strip() or None,
        )
        self.db.add(item)
        self.db.commit()
        return item.id


class UpdateRecurringUseCase:
    """
    Use case: replace a template's fields. Saving resets next_due_date to
    start_date.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        recurring_id: int,
        user_id: int,
        amount,
        frequency: str,
        start_date: date,
        account_id: int,
        category_id: int | None = None,
        description: str | None = None,
    ) -> None:
        item = get_recurring(self.db, recurring_id, user_id)
        value = _validate(self.db, user_id, amount, frequency, account_id, category_id)

        item.amount = value
        item.frequency = frequency
        item.start_date = start_date
        item.next_due_date = start_date
        item.account_id = account_id
        item.category_id = category_id
        item.description = (description or "").strip() or None
        self.db.commit()


class DeleteRecurringUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, recurring_id: int, user_id: int) -> None:
        item = get_recurring(self.db, recurring_id, user_id)
        self.db.delete(item)
        self.db.commit()


class MaterializeDueRecurringUseCase:
    """
    Use case: turn due templates into concrete transactions

    For each template with next_due_date <= today: insert one transaction per
    missed occurrence and advance next_due_date until it is past today. Each
    template is locked, re-read and committed on its own, so one broken
    template does not hold back the others and two concurrent runs (the
    daily job and POST /run) never materialize the same occurrence twice.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int | None = None, today: date | None = None) -> int:
        """
        Args:
            user_id: Restrict to one user (default: everyone)
            today: Reference date (default: today in settings.TIMEZONE)

        Returns:
            Number of transactions created
        """
        today = today or local_today()

        created = 0
        for recurring_id in self._due_ids(user_id, today):
            created += self._materialize(recurring_id, today)

        if created:
            logger.info("Materialized %d recurring transactions", created)
        return created

    def _due_ids(self, user_id: int | None, today: date) -> list[int]:
        query = self.db.query(RecurringTransaction.id).filter(
            RecurringTransaction.next_due_date <= today
        )
        if user_id is not None:
            query = query.filter(RecurringTransaction.user_id == user_id)
        return [row.id for row in query.order_by(RecurringTransaction.id.asc()).all()]

    def _materialize(self, recurring_id: int, today: date) -> int:
        # A template locked by another run, or already advanced past today, is skipped
        item = self.db.query(RecurringTransaction).filter(
            RecurringTransaction.id == recurring_id
        ).with_for_update(skip_locked=True, of=RecurringTransaction).populate_existing().first()
        if item is None or item.next_due_date > today:
            self.db.rollback()
            return 0

        dates, next_due = due_dates(item.start_date, item.frequency, item.next_due_date, today)
        creator = CreateTransactionUseCase(self.db)
        try:
            for occurrence in dates:
                creator.build(
                    user_id=item.user_id,
                    amount=item.amount,
                    transaction_date=occurrence,
                    account_id=item.account_id,
                    category_id=item.category_id,
                    description=item.description,
                )
            item.next_due_date = next_due
            self.db.commit()
        except (ValidationError, NotFoundError):
            self.db.rollback()
            logger.exception("Recurring transaction %s could not be materialized", recurring_id)
            return 0
        return len(dates)
