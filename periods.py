from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional
from zoneinfo import ZoneInfo

PeriodSlug = Literal["this_month", "last_month", "this_year"]


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


def _month_end(first: date) -> date:
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def today_in(timezone: str) -> date:
    return datetime.now(ZoneInfo(timezone)).date()


def resolve_period(slug: str, *, today: Optional[date] = None) -> Period:
    """Turn a named period into inclusive start/end dates around ``today``."""
    today = today or date.today()
    if slug == "this_month":
        first = today.replace(day=1)
        return Period("this_month", first, _month_end(first))
    if slug == "last_month":
        last_month_end = today.replace(day=1) - date.resolution
        return Period("last_month", last_month_end.replace(day=1), last_month_end)
    if slug == "this_year":
        return Period(
            "this_year", today.replace(month=1, day=1), today.replace(month=12, day=31)
        )
    raise ValueError(f"Unknown period: {slug}")
