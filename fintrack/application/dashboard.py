"""
Dashboard - monthly summary, recent feed and expense breakdown.

Pure read-layer: no mutations.
"""
from decimal import Decimal

from sqlalchemy.orm import Session

from fintrack.application.transactions import list_transactions, to_ledger_entry
from fintrack.config import get_settings
from fintrack.domain.summary import MonthlySummary, summarize_month, expense_by_category
from fintrack.infrastructure.db.models import Account, Transaction
from fintrack.utils.dates import today


class DashboardService:
    def __init__(self, db: Session):
        self.db = db

    def get_monthly_summary(self, user_id: int, year: int | None = None, month: int | None = None) -> MonthlySummary:
        """
        Income and expense of a month plus the balance across all accounts

        Defaults to the current month. An empty month gives zeros.
        """
        if year is None or month is None:
            current = today()
            year, month = current.year, current.month

        transactions = list_transactions(self.db, user_id, limit=None, year=year, month=month)
        balances = [
            row.balance
            for row in self.db.query(Account.balance).filter(Account.user_id == user_id).all()
        ]
        return summarize_month(year, month, (to_ledger_entry(tx) for tx in transactions), balances)

    def get_recent_transactions(self, user_id: int, limit: int | None = None) -> list[Transaction]:
        if limit is None:
            limit = get_settings().RECENT_TRANSACTIONS_LIMIT
        return list_transactions(self.db, user_id, limit=limit)

    def get_expense_breakdown(self, transactions: list[Transaction]) -> dict[str, Decimal]:
        """Per-category expense totals of the given rows (uncategorized rows skipped)"""
        return expense_by_category(to_ledger_entry(tx) for tx in transactions)

    def get_dashboard(self, user_id: int) -> dict:
        """
        Returns:
            summary:  MonthlySummary of the current month
            recent:   latest transactions (RECENT_TRANSACTIONS_LIMIT)
            expense_by_category: {category name: total} over `recent`
        """
        recent = self.get_recent_transactions(user_id)
        return {
            "summary": self.get_monthly_summary(user_id),
            "recent": recent,
            "expense_by_category": self.get_expense_breakdown(recent),
        }
