"""Rotary year (July 1 - June 30) calendar math.

Labels use the canonical ``"YYYY-YYYY"`` form, e.g. ``"2024-2025"``. All
functions work on calendar dates: timezone-aware datetimes are first moved into
the configured club timezone, naive datetimes are taken at face value.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings

FIRST_MONTH = 7
LABEL_PATTERN = re.compile(r"[0-9]{4}-[0-9]{4}")
MIN_START_YEAR = 1000
MAX_START_YEAR = 9998

DateLike = Union[date, datetime, str]


class InvalidFiscalYear(ValueError):
    pass


@dataclass(frozen=True)
class Period:
    label: str
    start: date
    end: date


def local_today() -> date:
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).date()


def to_calendar_date(value: DateLike) -> date:
    if isinstance(value, str):
        raw = value.strip()
        if len(raw) == 10:
            return date.fromisoformat(raw)
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(get_settings().timezone))
        return value.date()
    return value


def label_for_start_year(start_year: int) -> str:
    return f"{start_year}-{start_year + 1}"


def is_valid(label: object) -> bool:
    if not isinstance(label, str) or not LABEL_PATTERN.fullmatch(label):
        return False
    start, end = (int(part) for part in label.split("-"))
    return end == start + 1


def parse_label(label: str) -> tuple[int, int]:
    if not is_valid(label):
        raise InvalidFiscalYear(f"Invalid Rotary year label: {label!r}")
    start, end = (int(part) for part in label.split("-"))
    return start, end


def fiscal_year_of(value: DateLike) -> str:
    """Return the label of the Rotary year ``value`` falls in.

    July through December belong to the year starting that calendar year,
    January through June to the year that started the previous July.
    """
    day = to_calendar_date(value)
    if day.month >= FIRST_MONTH:
        return label_for_start_year(day.year)
    return label_for_start_year(day.year - 1)


def current_fiscal_year(today: Optional[date] = None) -> str:
    return fiscal_year_of(today or local_today())


def bounds_of(label: str) -> Period:
    start_year, end_year = parse_label(label)
    return Period(label, date(start_year, FIRST_MONTH, 1), date(end_year, 6, 30))


def contains(value: DateLike, label: str) -> bool:
    period = bounds_of(label)
    return period.start <= to_calendar_date(value) <= period.end


def previous(label: str) -> str:
    start_year, _ = parse_label(label)
    return label_for_start_year(start_year - 1)


def next_year(label: str) -> str:
    start_year, _ = parse_label(label)
    return label_for_start_year(start_year + 1)


def is_current(label: str, *, today: Optional[date] = None) -> bool:
    return label == current_fiscal_year(today)


def format_label(label: str, include_prefix: bool = False) -> str:
    parse_label(label)
    if include_prefix:
        return f"Rotary Year {label}"
    return label


def list_years(
    from_year: Optional[int] = None,
    to_year: Optional[int] = None,
    *,
    today: Optional[date] = None,
) -> list[str]:
    """Labels from ``to_year`` down to ``from_year``, most recent first."""
    if from_year is None:
        from_year = get_settings().earliest_rotary_year
    if to_year is None:
        to_year, _ = parse_label(current_fiscal_year(today))
    for year in (from_year, to_year):
        if not MIN_START_YEAR <= year <= MAX_START_YEAR:
            raise InvalidFiscalYear(
                f"Start year {year} outside {MIN_START_YEAR}-{MAX_START_YEAR}"
            )
    return [label_for_start_year(year) for year in range(to_year, from_year - 1, -1)]


def resolve_rotary_year(value: Optional[str]) -> Optional[str]:
    """Normalise a year filter: empty or ``"all"`` means no filter."""
    if value is None:
        return None
    value = value.strip()
    if not value or value == "all":
        return None
    if value == "current":
        return current_fiscal_year()
    parse_label(value)
    return value
