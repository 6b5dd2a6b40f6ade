from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta
from typing import Optional

from sugih.bucketing import DateRange, coerce_timestamp

DATE_RANGE_PRESETS = {
    "lastweek": "lastWeek",
    "thismonth": "thisMonth",
    "lastmonth": "lastMonth",
    "last3months": "last3Months",
    "last6months": "last6Months",
    "thisyear": "thisYear",
    "lastyear": "lastYear",
    "alltime": "allTime",
}
PRESET_LABELS = {
    "lastWeek": "Last week",
    "thisMonth": "This month",
    "lastMonth": "Last month",
    "last3Months": "Last 3 months",
    "last6Months": "Last 6 months",
    "thisYear": "This year",
    "lastYear": "Last year",
    "allTime": "All time",
}
ALL_TIME_YEARS = 10


def normalize_preset(value: str) -> str:
    normalized = "".join(ch for ch in value.strip().lower() if ch.isalnum())
    try:
        return DATE_RANGE_PRESETS[normalized]
    except KeyError as exc:
        raise ValueError(f"Unknown date range preset: {value}") from exc


def resolve_date_range(preset: str, now: Optional[datetime] = None) -> DateRange:
    normalized = normalize_preset(preset)
    current = now or datetime.now()
    today = current.date()
    tz = current.tzinfo

    if normalized == "lastWeek":
        reference = today - timedelta(days=7)
        start_day = reference - timedelta(days=reference.weekday())
        end_day = start_day + timedelta(days=6)
    elif normalized == "thisMonth":
        start_day, end_day = _month_bounds(today, 0)
    elif normalized == "lastMonth":
        start_day, end_day = _month_bounds(today, -1)
    elif normalized == "last3Months":
        start_day = _month_bounds(today, -3)[0]
        end_day = _month_bounds(today, 0)[1]
    elif normalized == "last6Months":
        start_day = _month_bounds(today, -6)[0]
        end_day = _month_bounds(today, 0)[1]
    elif normalized == "thisYear":
        start_day, end_day = date(today.year, 1, 1), date(today.year, 12, 31)
    elif normalized == "lastYear":
        start_day, end_day = date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    else:
        start_day = _shift_month_keep_day(today, -12 * ALL_TIME_YEARS)
        end_day = today

    return DateRange(
        start=datetime.combine(start_day, time(), tzinfo=tz),
        end=datetime.combine(end_day, time.max, tzinfo=tz),
    )


def describe_date_range(preset: str, now: Optional[datetime] = None) -> str:
    normalized = normalize_preset(preset)
    range_ = resolve_date_range(normalized, now=now)
    return (
        f"{PRESET_LABELS[normalized]} "
        f"({_short_date(range_.start)} - {_short_date(range_.end)})"
    )


def is_date_in_range(value: datetime | date | str, range_: DateRange) -> bool:
    moment = coerce_timestamp(value)
    return coerce_timestamp(range_.start) <= moment <= coerce_timestamp(range_.end)


def _month_bounds(value: date, months: int) -> tuple[date, date]:
    month_index = (value.year * 12 + value.month - 1) + months
    year = month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1), date(year, month, monthrange(year, month)[1])


def _shift_month_keep_day(value: date, months: int) -> date:
    start, end = _month_bounds(value, months)
    return start.replace(day=min(value.day, end.day))


def _short_date(value: datetime) -> str:
    return f"{value:%b} {value.day}"
