"""
Period resolver — maps a date range to the biweekly award files covering it.

The open-data portal publishes one award file per half month:
  YYYYMM01  — days 1-15
  YYYYMM02  — day 16 to the last day of the month

A half is included when it overlaps [start, end] at all, so a range of
3-10 Jan only needs the "01" file while a full month needs both.
"""

import calendar
import logging
from datetime import date, datetime
from typing import List, Optional, Union

import config
from sources.models import Period

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime, None]

_DATE_FMTS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
]


def parse_day(value: DateLike) -> Optional[date]:
    """Return a calendar date, or None if the value can't be read as one."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    for fmt in _DATE_FMTS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    return None


def _overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def _month_halves(year: int, month: int):
    last_day = calendar.monthrange(year, month)[1]
    yield "01", date(year, month, 1), date(year, month, 15)
    yield "02", date(year, month, 16), date(year, month, last_day)


def resolve_periods(
    start: DateLike,
    end: DateLike,
    filename_template: Optional[str] = None,
) -> List[Period]:
    """
    Return the periods overlapping [start, end] in chronological order.

    Unparseable or inverted ranges give an empty list rather than an error.
    """
    start_day = parse_day(start)
    end_day = parse_day(end)
    if start_day is None or end_day is None:
        logger.warning("Unparseable date range %r → %r; no periods.", start, end)
        return []
    if start_day > end_day:
        logger.warning("Start %s is after end %s; no periods.", start_day, end_day)
        return []

    template = filename_template or config.FILENAME_TEMPLATE
    periods: List[Period] = []
    seen = set()

    year, month = start_day.year, start_day.month
    while date(year, month, 1) <= end_day:
        for half, h_start, h_end in _month_halves(year, month):
            if not _overlaps(h_start, h_end, start_day, end_day):
                continue
            token = f"{year:04d}{month:02d}{half}"
            file_id = template.format(token=token)
            if file_id in seen:
                continue
            seen.add(file_id)
            periods.append(Period(token=token, file_id=file_id, start=h_start, end=h_end))

        month += 1
        if month > 12:
            year, month = year + 1, 1

    logger.info(
        "Range %s → %s covers %d file(s).", start_day, end_day, len(periods)
    )
    return periods


def resolve(start: DateLike, end: DateLike) -> List[str]:
    """File ids for [start, end], in processing order."""
    return [p.file_id for p in resolve_periods(start, end)]
