from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True)
class Balance:
    id: int
    name: str
    balance: Decimal


@dataclass(frozen=True)
class GrowthMetric:
    value: Decimal
    label: str
    is_positive: bool
    is_negative: bool
    is_neutral: bool


@dataclass(frozen=True)
class KpiCard:
    title: str
    value: Decimal
    growth: GrowthMetric
    period: str


@dataclass(frozen=True)
class KpiSummary:
    net_worth: KpiCard
    money_left_to_spend: KpiCard
    total_spending: KpiCard
    total_savings: KpiCard


@dataclass(frozen=True)
class KpiSummaryInput:
    current_wallets: list[Balance]
    current_savings: list[Balance]
    previous_wallets: list[Balance]
    previous_savings: list[Balance]
    current_budget: Optional[Decimal]
    previous_budget: Optional[Decimal]
    current_spending: Decimal
    previous_spending: Decimal
    period_label: str = "This month"


def compute_net_worth(wallets: Iterable[Balance], savings_buckets: Iterable[Balance]) -> Decimal:
    return _sum_balances(wallets) + _sum_balances(savings_buckets)


def compute_money_left_to_spend(budget_amount: Optional[Decimal], spent: Decimal) -> Decimal:
    spent_value = _coerce_amount(spent)
    if budget_amount is None or budget_amount <= ZERO:
        return -spent_value
    return _coerce_amount(budget_amount) - spent_value


def compute_total_savings(savings_buckets: Iterable[Balance]) -> Decimal:
    return _sum_balances(savings_buckets)


def compute_growth_percentage(current: Decimal, previous: Decimal) -> Decimal:
    current_value = _coerce_amount(current)
    previous_value = _coerce_amount(previous)
    if previous_value == ZERO:
        if current_value == ZERO:
            return ZERO
        return HUNDRED if current_value > ZERO else -HUNDRED

    growth = (current_value - previous_value) / abs(previous_value) * HUNDRED
    return growth.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def format_growth_metric(
    current: Decimal,
    previous: Decimal,
    labels: Optional[Mapping[str, str]] = None,
) -> GrowthMetric:
    growth = compute_growth_percentage(current, previous)
    labels = labels or {}
    is_positive = growth > ZERO
    is_negative = growth < ZERO
    is_neutral = growth == ZERO

    if is_neutral:
        label = labels.get("neutral") or "No change from last month"
    elif is_positive:
        label = labels.get("positive") or f"+{_format_percentage(growth)}% from last month"
    else:
        label = labels.get("negative") or f"-{_format_percentage(growth)}% from last month"

    return GrowthMetric(
        value=growth,
        label=label,
        is_positive=is_positive,
        is_negative=is_negative,
        is_neutral=is_neutral,
    )


def compute_kpi_summary(data: KpiSummaryInput) -> KpiSummary:
    current_net_worth = compute_net_worth(data.current_wallets, data.current_savings)
    previous_net_worth = compute_net_worth(data.previous_wallets, data.previous_savings)
    current_left = compute_money_left_to_spend(data.current_budget, data.current_spending)
    previous_left = compute_money_left_to_spend(data.previous_budget, data.previous_spending)
    current_savings = compute_total_savings(data.current_savings)
    previous_savings = compute_total_savings(data.previous_savings)
    period_label = data.period_label or "This month"

    return KpiSummary(
        net_worth=KpiCard(
            title="Total Net Worth",
            value=current_net_worth,
            growth=format_growth_metric(current_net_worth, previous_net_worth),
            period="All time",
        ),
        money_left_to_spend=KpiCard(
            title="Money Left to Spend",
            value=current_left,
            growth=format_growth_metric(current_left, previous_left),
            period=period_label,
        ),
        total_spending=KpiCard(
            title="Total Spending",
            value=_coerce_amount(data.current_spending),
            growth=format_growth_metric(data.current_spending, data.previous_spending),
            period=period_label,
        ),
        total_savings=KpiCard(
            title="Total Savings",
            value=current_savings,
            growth=format_growth_metric(current_savings, previous_savings),
            period="All time",
        ),
    )


def _sum_balances(balances: Iterable[Balance]) -> Decimal:
    total = ZERO
    for item in balances:
        total += _coerce_amount(item.balance)
    return total


def _format_percentage(value: Decimal) -> str:
    magnitude = abs(value)
    if magnitude == magnitude.to_integral_value():
        return str(int(magnitude))
    return str(magnitude)


def _coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
