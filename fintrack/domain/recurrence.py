"""
Due-date arithmetic for recurring transactions.

Uses date only (no timezone). Monthly and yearly steps are measured from the
template's start_date so the anchor day survives short months:
Jan 31 -> Feb 28 -> Mar 31.
"""
import calendar
from datetime import date, timedelta


FREQ_DAILY = "daily"
FREQ_WEEKLY = "weekly"
FREQ_MONTHLY = "monthly"
FREQ_YEARLY = "yearly"
VALID_FREQ = frozenset({FREQ_DAILY, FREQ_WEEKLY, FREQ_MONTHLY, FREQ_YEARLY})


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    last = last_day_of_month(year, month)
    day = min(d.day, last)
    return date(year, month, day)


def next_due_date(start_date: date, frequency: str, current: date) -> date:
    """
    The occurrence that follows `current` for a template anchored at start_date

    Raises:
        ValueError: unknown frequency
    """
    if frequency == FREQ_DAILY:
        return current + timedelta(days=1)
    if frequency == FREQ_WEEKLY:
        return current + timedelta(days=7)
    if frequency == FREQ_MONTHLY:
        elapsed = (current.year - start_date.year) * 12 + current.month - start_date.month
        return add_months(start_date, max(elapsed, 0) + 1)
    if frequency == FREQ_YEARLY:
        elapsed = current.year - start_date.year
        return add_months(start_date, (max(elapsed, 0) + 1) * 12)
    raise ValueError(f"invalid frequency: {frequency}")


def due_dates(start_date: date, frequency: str, next_due: date, today: date) -> tuple[list[date], date]:
    """
    All occurrences from next_due up to and including today.

    Returns:
        (dates to materialize, new next_due_date which is > today)
    """
    out: list[date] = []
    d = next_due
    while d <= today:
        out.append(d)
        d = next_due_date(start_date, frequency, d)
    return out, d
