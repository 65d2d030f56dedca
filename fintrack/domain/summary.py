"""
Monthly summary and expense breakdown - pure aggregation over ledger entries.

No database access here: the application layer loads rows and maps them to
LedgerEntry before calling these functions.
"""
import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

ZERO = Decimal("0")


@dataclass(frozen=True)
class LedgerEntry:
    amount: Decimal
    transaction_date: date
    category_id: Optional[int] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class MonthlySummary:
    year: int
    month: int
    total_income: Decimal
    total_expense: Decimal  # absolute value
    balance: Decimal  # sum of stored account balances

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """
    First and last day of a calendar month (both inclusive)

    Raises:
        ValueError: month outside 1..12
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def summarize_month(
    year: int,
    month: int,
    entries: Iterable[LedgerEntry],
    account_balances: Iterable[Decimal],
) -> MonthlySummary:
    """
    Income/expense totals of a month plus the balance across all accounts.

    Entries dated outside the month are ignored, so callers may pass a wider
    set. The balance is the sum of stored account balances, not something
    derived from the entries.
    """
    first, last = month_bounds(year, month)
    income = ZERO
    expense = ZERO
    for entry in entries:
        if not first <= entry.transaction_date <= last:
            continue
        if entry.amount > 0:
            income += entry.amount
        elif entry.amount < 0:
            expense += entry.amount

    balance = sum((Decimal(b) for b in account_balances), ZERO)

    return MonthlySummary(
        year=year,
        month=month,
        total_income=income,
        total_expense=abs(expense),
        balance=balance,
    )


def expense_by_category(entries: Iterable[LedgerEntry]) -> dict[str, Decimal]:
    """
    Sum of absolute expense amounts per category name.

    Entries without a category are left out of the breakdown.
    """
    totals: dict[str, Decimal] = {}
    for entry in entries:
        if entry.amount >= 0 or entry.category_name is None:
            continue
        totals[entry.category_name] = totals.get(entry.category_name, ZERO) + abs(entry.amount)
    return totals
