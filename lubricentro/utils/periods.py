# lubricentro/utils/periods.py
from datetime import datetime

from dateutil.relativedelta import relativedelta

from .helpers import utcnow


def month_key(dt: datetime | None = None) -> str:
    dt = dt or utcnow()
    return dt.strftime("%Y-%m")  # e.g. 2025-12


def month_bounds(dt: datetime | None = None, offset: int = 0):
    """(start, end) of the calendar month containing dt, shifted by offset months."""
    dt = dt or utcnow()
    start = datetime(dt.year, dt.month, 1) + relativedelta(months=offset)
    end = start + relativedelta(months=1)
    return start, end
