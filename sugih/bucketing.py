from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
SUPPORTED_PERIODS = ("daily", "weekly", "monthly")

_KEY_PATTERNS = {
    "daily": re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})"),
    "weekly": re.compile(r"([0-9]{4})-W([0-9]{2})"),
    "monthly": re.compile(r"([0-9]{4})-([0-9]{2})"),
}


class BucketingError(ValueError):
    """Base class for bucketing validation failures."""


class InvalidDateError(BucketingError):
    """Raised when a timestamp is not a real calendar date/time."""


class InvalidRangeError(BucketingError):
    """Raised when a date range starts after it ends."""


class InvalidBucketKeyError(BucketingError):
    def __init__(self, key: Any, period: str) -> None:
        super().__init__(f"Invalid {period} bucket key: {key!r}")
        self.key = key
        self.period = period


@dataclass(frozen=True)
class TimePoint:
    occurred_at: datetime | date | str
    amount: Decimal
    group: Optional[str] = None


@dataclass(frozen=True)
class DateRange:
    start: datetime | date | str
    end: datetime | date | str


@dataclass(frozen=True)
class TimeSeriesPoint:
    bucket: str
    value: Any


@dataclass(frozen=True)
class PeriodTotal:
    bucket: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class GroupedPeriodTotal:
    bucket: str
    groups: Dict[str, Decimal] = field(default_factory=dict)


def normalize_period(value: str) -> str:
    normalized = value.strip().lower() if isinstance(value, str) else ""
    if normalized not in SUPPORTED_PERIODS:
        raise ValueError("Invalid period. Use daily, weekly, or monthly.")
    return normalized


def bucket_key(timestamp: datetime | date | str, period: str) -> str:
    normalized_period = normalize_period(period)
    moment = coerce_timestamp(timestamp)
    return _format_key(moment.date(), normalized_period)


def bucket_start(timestamp: datetime | date | str, period: str) -> datetime:
    """Return the first instant of the bucket containing ``timestamp``.

    The result carries the input's tzinfo; plain dates give naive midnight.
    """
    normalized_period = normalize_period(period)
    moment = coerce_timestamp(timestamp)
    start_day = _bucket_start_date(moment.date(), normalized_period)
    return datetime.combine(start_day, time(), tzinfo=moment.tzinfo)


def generate_buckets(range_: DateRange, period: str) -> List[str]:
    """Every bucket key intersecting ``[range_.start, range_.end]``, oldest first."""
    normalized_period = normalize_period(period)
    start = coerce_timestamp(range_.start)
    end = coerce_timestamp(range_.end)
    if _starts_after(start, end):
        raise InvalidRangeError("Start date must be on or before end date.")

    keys: List[str] = []
    cursor = _bucket_start_date(start.date(), normalized_period)
    last_bucket = _bucket_start_date(end.date(), normalized_period)
    while True:
        keys.append(_format_key(cursor, normalized_period))
        if cursor >= last_bucket:
            break
        cursor = _next_bucket_date(cursor, normalized_period)
    return keys


def count_buckets(range_: DateRange, period: str) -> int:
    """Number of keys ``generate_buckets`` would return, without building them."""
    normalized_period = normalize_period(period)
    start = coerce_timestamp(range_.start)
    end = coerce_timestamp(range_.end)
    if _starts_after(start, end):
        raise InvalidRangeError("Start date must be on or before end date.")

    first_bucket = _bucket_start_date(start.date(), normalized_period)
    last_bucket = _bucket_start_date(end.date(), normalized_period)
    if normalized_period == "monthly":
        return (last_bucket.year - first_bucket.year) * 12 + last_bucket.month - first_bucket.month + 1
    days = (last_bucket - first_bucket).days
    return days // 7 + 1 if normalized_period == "weekly" else days + 1


def fill_missing_buckets(
    range_: DateRange,
    period: str,
    series: Iterable[TimeSeriesPoint],
    default_value: Any = ZERO,
) -> List[TimeSeriesPoint]:
    all_buckets = generate_buckets(range_, period)
    values_by_bucket = {point.bucket: point.value for point in series}
    return [
        TimeSeriesPoint(
            bucket=bucket,
            value=values_by_bucket.get(bucket, default_value),
        )
        for bucket in all_buckets
    ]


def aggregate_by_period(records: Iterable[Any], period: str) -> List[PeriodTotal]:
    normalized_period = normalize_period(period)
    totals: Dict[str, Decimal] = {}
    counts: Dict[str, int] = {}
    starts: Dict[str, date] = {}

    for record in records:
        located = _locate_record(record, normalized_period)
        if located is None:
            continue
        key, start_day = located
        starts[key] = start_day
        totals[key] = totals.get(key, ZERO) + _coerce_amount(record.amount)
        counts[key] = counts.get(key, 0) + 1

    return [
        PeriodTotal(bucket=key, total=totals[key], count=counts[key])
        for key in sorted(starts, key=starts.__getitem__)
    ]


def aggregate_by_period_and_group(
    records: Iterable[Any],
    period: str,
    group_key_fn: Callable[[Any], str],
) -> List[GroupedPeriodTotal]:
    normalized_period = normalize_period(period)
    groups_by_bucket: Dict[str, Dict[str, Decimal]] = {}
    starts: Dict[str, date] = {}

    for record in records:
        located = _locate_record(record, normalized_period)
        if located is None:
            continue
        key, start_day = located
        starts[key] = start_day
        groups = groups_by_bucket.setdefault(key, {})
        group = group_key_fn(record)
        groups[group] = groups.get(group, ZERO) + _coerce_amount(record.amount)

    return [
        GroupedPeriodTotal(bucket=key, groups=groups_by_bucket[key])
        for key in sorted(starts, key=starts.__getitem__)
    ]


def parse_bucket_key(key: str, period: str, tzinfo: Optional[tzinfo] = None) -> datetime:
    """Return the start instant of the bucket named by ``key``.

    Keys are validated by exact shape first, so partially parseable strings
    such as ``"2024-03-01T00:00"`` for a daily period are rejected.

    The result is naive unless ``tzinfo`` is given. To match ``bucket_start``
    for a timezone-aware timestamp, pass that timestamp's ``tzinfo``.
    """
    normalized_period = normalize_period(period)
    match = _KEY_PATTERNS[normalized_period].fullmatch(key) if isinstance(key, str) else None
    if match is None:
        raise InvalidBucketKeyError(key, normalized_period)

    parts = [int(part) for part in match.groups()]
    try:
        if normalized_period == "daily":
            start_day = date(parts[0], parts[1], parts[2])
        elif normalized_period == "weekly":
            start_day = date.fromisocalendar(parts[0], parts[1], 1)
        else:
            start_day = date(parts[0], parts[1], 1)
    except ValueError as exc:
        raise InvalidBucketKeyError(key, normalized_period) from exc
    return datetime.combine(start_day, time(), tzinfo=tzinfo)


def coerce_timestamp(value: datetime | date | str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = f"{text[:-1]}+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidDateError(f"Invalid date: {value!r}") from exc
    raise InvalidDateError(f"Invalid date: {value!r}")


def _locate_record(record: Any, period: str) -> tuple[str, date] | None:
    try:
        moment = coerce_timestamp(record.occurred_at)
    except InvalidDateError:
        logger.warning("Skipping record with invalid timestamp: %r", record.occurred_at)
        return None
    day = moment.date()
    return _format_key(day, period), _bucket_start_date(day, period)


def _starts_after(start: datetime, end: datetime) -> bool:
    if (start.tzinfo is None) != (end.tzinfo is None):
        return start.date() > end.date()
    return start > end


def _format_key(day: date, period: str) -> str:
    if period == "weekly":
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if period == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def _bucket_start_date(day: date, period: str) -> date:
    if period == "weekly":
        return day - timedelta(days=day.weekday())
    if period == "monthly":
        return day.replace(day=1)
    return day


def _next_bucket_date(day: date, period: str) -> date:
    if period == "weekly":
        return day + timedelta(days=7)
    if period == "monthly":
        month_index = day.year * 12 + day.month
        return date(month_index // 12, month_index % 12 + 1, 1)
    return day + timedelta(days=1)


def _coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
