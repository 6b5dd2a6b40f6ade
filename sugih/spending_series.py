from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Union

from sugih.bucketing import DateRange, generate_buckets

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MAX_CATEGORIES = 8
OTHER_ID = "other"
OTHER_NAME = "Other"


@dataclass(frozen=True)
class CategoryAmount:
    category_id: Union[int, str]
    category_name: str
    amount: Decimal


@dataclass(frozen=True)
class CategorySpendingPeriod:
    period: str
    categories: List[CategoryAmount] = field(default_factory=list)


@dataclass(frozen=True)
class CategoryTotal:
    id: Union[int, str]
    name: str
    total: Decimal


@dataclass(frozen=True)
class CategoryShare:
    category_id: Union[int, str]
    category_name: str
    amount: Decimal
    percentage: Decimal


def transform_spending_data(
    periods: Iterable[CategorySpendingPeriod],
) -> List[Dict[str, object]]:
    points: List[Dict[str, object]] = []
    for item in periods:
        point: Dict[str, object] = {"bucket": item.period}
        for category in item.categories:
            point[category.category_name] = category.amount
        points.append(point)
    return points


def extract_categories(periods: Iterable[CategorySpendingPeriod]) -> List[CategoryTotal]:
    names: Dict[Union[int, str], str] = {}
    totals: Dict[Union[int, str], Decimal] = {}
    for item in periods:
        for category in item.categories:
            names.setdefault(category.category_id, category.category_name)
            totals[category.category_id] = totals.get(category.category_id, ZERO) + category.amount
    categories = [
        CategoryTotal(id=category_id, name=names[category_id], total=total)
        for category_id, total in totals.items()
    ]
    return sorted(categories, key=lambda item: item.total, reverse=True)


def fill_spending_buckets(
    periods: Iterable[CategorySpendingPeriod],
    range_: DateRange,
    period: str,
) -> List[CategorySpendingPeriod]:
    periods = list(periods)
    existing = {item.period: item for item in periods}
    known_categories = extract_categories(periods)
    filled: List[CategorySpendingPeriod] = []
    for bucket in generate_buckets(range_, period):
        if bucket in existing:
            filled.append(existing[bucket])
            continue
        filled.append(
            CategorySpendingPeriod(
                period=bucket,
                categories=[
                    CategoryAmount(
                        category_id=category.id,
                        category_name=category.name,
                        amount=ZERO,
                    )
                    for category in known_categories
                ],
            )
        )
    return filled


def limit_categories(
    periods: Iterable[CategorySpendingPeriod],
    limit: int,
) -> List[CategorySpendingPeriod]:
    periods = list(periods)
    if not periods or limit <= 0:
        return periods
    categories = extract_categories(periods)
    if len(categories) <= limit:
        return periods

    top_names = {category.name for category in categories[:limit]}
    limited: List[CategorySpendingPeriod] = []
    for item in periods:
        kept = [category for category in item.categories if category.category_name in top_names]
        other_amount = sum(
            (category.amount for category in item.categories if category.category_name not in top_names),
            ZERO,
        )
        if other_amount > ZERO:
            kept.append(
                CategoryAmount(
                    category_id=OTHER_ID,
                    category_name=OTHER_NAME,
                    amount=other_amount,
                )
            )
        limited.append(CategorySpendingPeriod(period=item.period, categories=kept))
    return limited


def build_category_shares(amounts: Iterable[CategoryAmount]) -> List[CategoryShare]:
    amounts = list(amounts)
    grand_total = calculate_total_amount(amounts)
    return [
        CategoryShare(
            category_id=item.category_id,
            category_name=item.category_name,
            amount=item.amount,
            percentage=_percentage(item.amount, grand_total),
        )
        for item in amounts
    ]


def prepare_category_breakdown(
    shares: Optional[Iterable[CategoryShare]],
    max_categories: int = MAX_CATEGORIES,
) -> List[CategoryShare]:
    if not shares:
        return []
    valid = [share for share in shares if share.amount > ZERO]
    ordered = sorted(valid, key=lambda share: share.amount, reverse=True)
    if len(ordered) <= max_categories:
        return ordered

    top = ordered[:max_categories]
    rest = ordered[max_categories:]
    other_total = calculate_total_amount(rest)
    grand_total = calculate_total_amount(ordered)
    return [
        *top,
        CategoryShare(
            category_id=OTHER_ID,
            category_name=OTHER_NAME,
            amount=other_total,
            percentage=_percentage(other_total, grand_total),
        ),
    ]


def calculate_total_amount(items: Optional[Iterable[Union[CategoryShare, CategoryAmount]]]) -> Decimal:
    if not items:
        return ZERO
    return sum((item.amount for item in items), ZERO)


def _percentage(amount: Decimal, total: Decimal) -> Decimal:
    if total <= ZERO:
        return ZERO
    return (amount / total * HUNDRED).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
