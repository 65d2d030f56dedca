"""
Budget use cases and query helpers.

A budget is a monthly limit for one expense category. Spent and progress are
computed on read from the ledger, never stored.
"""
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fintrack.application.categories import get_category
from fintrack.application.errors import ValidationError, NotFoundError, ConflictError
from fintrack.domain.budget import BudgetProgress, compute_spent, compute_progress
from fintrack.domain.category import CATEGORY_TYPE_EXPENSE
from fintrack.domain.summary import month_bounds
from fintrack.application.transactions import to_ledger_entry
from fintrack.infrastructure.db.models import Budget, Transaction


class BudgetValidationError(ValidationError):
    pass


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise BudgetValidationError(f"Invalid budget amount: {amount}")
    if value <= 0:
        raise BudgetValidationError("Budget amount must be greater than zero")
    return value


def _validate_period(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise BudgetValidationError(f"Month must be 1..12, got {month}")
    if year < 1900:
        raise BudgetValidationError(f"Invalid year: {year}")


def get_budget(db: Session, budget_id: int, user_id: int) -> Budget:
    budget = db.query(Budget).filter(
        Budget.id == budget_id,
        Budget.user_id == user_id
    ).first()
    if not budget:
        raise NotFoundError(f"Budget #{budget_id} not found")
    return budget


def get_budget_progress(db: Session, user_id: int, year: int, month: int) -> list[BudgetProgress]:
    """
    Budgets of a month with spent and clamped progress

    Loads the month's expense rows once and aggregates them per budget.
    """
    _validate_period(year, month)

    budgets = db.query(Budget).filter(
        Budget.user_id == user_id,
        Budget.month == month,
        Budget.year == year
    ).all()
    if not budgets:
        return []

    first, last = month_bounds(year, month)
    expenses = db.query(Transaction).filter(
        Transaction.user_id == user_id,
        Transaction.transaction_date >= first,
        Transaction.transaction_date <= last,
        Transaction.amount < 0
    ).all()
    entries = [to_ledger_entry(tx) for tx in expenses]

    result = []
    for budget in budgets:
        spent = compute_spent(budget.category_id, year, month, entries)
        result.append(BudgetProgress(
            budget_id=budget.id,
            category_id=budget.category_id,
            category_name=budget.category.name,
            amount=budget.amount,
            spent=spent,
            progress=compute_progress(spent, budget.amount),
        ))

    result.sort(key=lambda b: b.category_name)
    return result


class CreateBudgetUseCase:
    """
    Use case: set a monthly limit for an expense category

    One budget per (category, month, year).
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, category_id: int, amount, month: int, year: int) -> int:
        value = _parse_amount(amount)
        _validate_period(year, month)

        category = get_category(self.db, category_id, user_id)
        if category.type != CATEGORY_TYPE_EXPENSE:
            raise BudgetValidationError("Budgets can only be set for expense categories")

        existing = self.db.query(Budget).filter(
            Budget.user_id == user_id,
            Budget.category_id == category_id,
            Budget.month == month,
            Budget.year == year
        ).first()
        if existing:
            raise ConflictError(
                f"A budget for «{category.name}» already exists for {year}-{month:02d}"
            )

        budget = Budget(
            user_id=user_id,
            category_id=category_id,
            amount=value,
            month=month,
            year=year,
        )
        self.db.add(budget)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                f"A budget for «{category.name}» already exists for {year}-{month:02d}"
            )
        return budget.id


class UpdateBudgetUseCase:
    """Use case: change the limit (category and period stay fixed)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, budget_id: int, user_id: int, amount) -> None:
        budget = get_budget(self.db, budget_id, user_id)
        budget.amount = _parse_amount(amount)
        self.db.commit()


class DeleteBudgetUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(self, budget_id: int, user_id: int) -> None:
        budget = get_budget(self.db, budget_id, user_id)
        self.db.delete(budget)
        self.db.commit()
