"""
Calendar helpers bound to the configured timezone
"""
from datetime import date, datetime
from zoneinfo import ZoneInfo

from fintrack.config import get_settings


def today() -> date:
    """Today's date in settings.TIMEZONE"""
    return datetime.now(ZoneInfo(get_settings().TIMEZONE)).date()
