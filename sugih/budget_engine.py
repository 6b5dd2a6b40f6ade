from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")
WHOLE = Decimal("1")


@dataclass(frozen=True)
class BudgetLine:
    category_id: int
    amount: Decimal
    category_name: str | None = None


@dataclass(frozen=True)
class Expense:
    amount: Decimal
    date: date
    category_id: int | None = None


@dataclass(frozen=True)
class CategoryBudgetStatus:
    category_id: int
    category_name: str | None
    budgeted: Decimal
    spent: Decimal
    remaining: Decimal
    status: str


@dataclass(frozen=True)
class MonthBudgetEvaluation:
    month: str
    total_budget: Decimal
    total_spent: Decimal
    remaining: Decimal
    percent_used: Decimal
    days_remaining: int
    average_daily_spending: Decimal
    projected_month_end_spending: Decimal
    budget_variance: Decimal
    categories: List[CategoryBudgetStatus]


def parse_month(value: str) -> date:
    try:
        return datetime.strptime(value.strip(), "%Y-%m").date()
    except ValueError as exc:
        raise ValueError("Invalid month format. Use YYYY-MM.") from exc


def month_bounds(month_start: date) -> tuple[date, date]:
    last_day = monthrange(month_start.year, month_start.month)[1]
    return month_start.replace(day=1), month_start.replace(day=last_day)


@dataclass(frozen=True)
class BudgetCopyPlan:
    to_create: List[BudgetLine]
    skipped: List[BudgetLine]


def plan_budget_copy(
    source_lines: Iterable[BudgetLine],
    existing_category_ids: Iterable[int],
    from_month: str,
    to_month: str,
) -> BudgetCopyPlan:
    """Split a month's budget lines into those to copy and those the target month already has."""
    if parse_month(from_month) == parse_month(to_month):
        raise ValueError("Source and destination months must be different.")
    lines = list(source_lines)
    if not lines:
        raise ValueError("No budgets found for source month.")

    existing = set(existing_category_ids)
    return BudgetCopyPlan(
        to_create=[line for line in lines if line.category_id not in existing],
        skipped=[line for line in lines if line.category_id in existing],
    )


def month_label(month: str) -> str:
    return parse_month(month).strftime("%B %Y")


def evaluate_month_budget(
    budget_lines: Iterable[BudgetLine],
    expenses: Iterable[Expense],
    month: str,
    today: date,
) -> MonthBudgetEvaluation:
    start_date, end_date = month_bounds(parse_month(month))
    lines = list(budget_lines)
    for line in lines:
        if _coerce_amount(line.amount) < ZERO:
            raise ValueError("Budget amount must not be negative.")

    spent_by_category = _sum_expenses_by_category(
        expense for expense in expenses if start_date <= expense.date <= end_date
    )

    categories: List[CategoryBudgetStatus] = []
    total_budget = ZERO
    total_spent = ZERO
    for line in lines:
        budgeted = _coerce_amount(line.amount)
        spent = spent_by_category.get(line.category_id, ZERO)
        total_budget += budgeted
        total_spent += spent
        categories.append(
            CategoryBudgetStatus(
                category_id=line.category_id,
                category_name=line.category_name,
                budgeted=budgeted,
                spent=spent,
                remaining=budgeted - spent,
                status="ok" if spent <= budgeted else "over",
            )
        )

    days_in_month = end_date.day
    if today < start_date:
        days_passed = 0
    elif today > end_date:
        days_passed = days_in_month
    else:
        days_passed = today.day
    days_remaining = end_date.day - today.day if start_date <= today <= end_date else 0

    average_daily = total_spent / days_passed if days_passed else ZERO
    projected = average_daily * days_in_month
    percent_used = total_spent / total_budget * HUNDRED if total_budget > ZERO else ZERO

    return MonthBudgetEvaluation(
        month=start_date.strftime("%Y-%m"),
        total_budget=total_budget,
        total_spent=total_spent,
        remaining=total_budget - total_spent,
        percent_used=percent_used.quantize(CENTS, rounding=ROUND_HALF_UP),
        days_remaining=days_remaining,
        average_daily_spending=average_daily.quantize(WHOLE, rounding=ROUND_HALF_UP),
        projected_month_end_spending=projected.quantize(WHOLE, rounding=ROUND_HALF_UP),
        budget_variance=(total_budget - projected).quantize(WHOLE, rounding=ROUND_HALF_UP),
        categories=categories,
    )


def _sum_expenses_by_category(expenses: Iterable[Expense]) -> dict[int, Decimal]:
    totals: dict[int, Decimal] = {}
    for expense in expenses:
        if expense.category_id is None:
            continue
        totals[expense.category_id] = totals.get(expense.category_id, ZERO) + abs(
            _coerce_amount(expense.amount)
        )
    return totals


def _coerce_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
