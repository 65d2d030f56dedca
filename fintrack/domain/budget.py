"""
Budget progress rules
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from fintrack.domain.summary import LedgerEntry, month_bounds

HUNDRED = Decimal("100")
ZERO = Decimal("0")


@dataclass(frozen=True)
class BudgetProgress:
    budget_id: int
    category_id: int
    category_name: str
    amount: Decimal
    spent: Decimal  # actual spend, may exceed amount
    progress: Decimal  # clamped to 0..100

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.spent

    @property
    def is_over(self) -> bool:
        return self.spent > self.amount


def compute_spent(
    category_id: int,
    year: int,
    month: int,
    entries: Iterable[LedgerEntry],
) -> Decimal:
    """Σ |amount| of the category's expense entries within the month."""
    first, last = month_bounds(year, month)
    spent = ZERO
    for entry in entries:
        if entry.category_id != category_id or entry.amount >= 0:
            continue
        if first <= entry.transaction_date <= last:
            spent += abs(entry.amount)
    return spent


def compute_progress(spent: Decimal, amount: Optional[Decimal]) -> Decimal:
    """
    min(spent / amount * 100, 100); a missing or non-positive limit gives 0
    """
    if amount is None or amount <= 0:
        return ZERO
    return min(spent / amount * HUNDRED, HUNDRED)
