"""
Saving goal progress
"""
from decimal import Decimal
from typing import Optional

HUNDRED = Decimal("100")


def goal_progress(current_amount: Decimal, target_amount: Optional[Decimal]) -> Decimal:
    """
    min(current / target * 100, 100). current_amount is never clamped itself,
    only the percentage is.
    """
    if target_amount is None or target_amount <= 0:
        return Decimal("0")
    return min(Decimal(current_amount) / target_amount * HUNDRED, HUNDRED)


def default_funding_description(goal_name: str) -> str:
    return f"Saving for: {goal_name}"
