import unittest
from datetime import date
from decimal import Decimal

from sugih.budget_engine import BudgetLine, Expense, evaluate_month_budget, month_label, plan_budget_copy


class BudgetEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.lines = [
            BudgetLine(category_id=1, amount=Decimal("3000"), category_name="Food"),
            BudgetLine(category_id=2, amount=Decimal("1000"), category_name="Transport"),
        ]
        self.expenses = [
            Expense(amount=Decimal("500"), date=date(2024, 3, 2), category_id=1),
            Expense(amount=Decimal("1000"), date=date(2024, 3, 9), category_id=1),
            Expense(amount=Decimal("1200"), date=date(2024, 3, 5), category_id=2),
            Expense(amount=Decimal("999"), date=date(2024, 3, 5), category_id=7),
            Expense(amount=Decimal("400"), date=date(2024, 2, 28), category_id=1),
            Expense(amount=Decimal("50"), date=date(2024, 3, 5), category_id=None),
        ]

    def test_sums_budgeted_categories_within_month(self) -> None:
        result = evaluate_month_budget(self.lines, self.expenses, "2024-03", today=date(2024, 3, 10))

        self.assertEqual(result.month, "2024-03")
        self.assertEqual(result.total_budget, Decimal("4000"))
        self.assertEqual(result.total_spent, Decimal("2700"))
        self.assertEqual(result.remaining, Decimal("1300"))
        self.assertEqual(result.percent_used, Decimal("67.50"))

    def test_per_category_status(self) -> None:
        result = evaluate_month_budget(self.lines, self.expenses, "2024-03", today=date(2024, 3, 10))

        statuses = {item.category_name: item for item in result.categories}
        self.assertEqual(statuses["Food"].spent, Decimal("1500"))
        self.assertEqual(statuses["Food"].status, "ok")
        self.assertEqual(statuses["Transport"].remaining, Decimal("-200"))
        self.assertEqual(statuses["Transport"].status, "over")

    def test_projection_for_current_month(self) -> None:
        result = evaluate_month_budget(self.lines, self.expenses, "2024-03", today=date(2024, 3, 10))

        self.assertEqual(result.days_remaining, 21)
        self.assertEqual(result.average_daily_spending, Decimal("270"))
        self.assertEqual(result.projected_month_end_spending, Decimal("8370"))
        self.assertEqual(result.budget_variance, Decimal("-4370"))

    def test_past_month_uses_whole_month(self) -> None:
        result = evaluate_month_budget(self.lines, self.expenses, "2024-03", today=date(2024, 5, 1))

        self.assertEqual(result.days_remaining, 0)
        self.assertEqual(result.projected_month_end_spending, Decimal("2700"))

    def test_future_month_has_no_projection(self) -> None:
        result = evaluate_month_budget(self.lines, [], "2024-03", today=date(2024, 1, 15))

        self.assertEqual(result.average_daily_spending, Decimal("0"))
        self.assertEqual(result.budget_variance, Decimal("4000"))

    def test_invalid_month_raises(self) -> None:
        with self.assertRaises(ValueError):
            evaluate_month_budget(self.lines, [], "March", today=date(2024, 3, 1))

    def test_empty_budget_has_zero_percent_used(self) -> None:
        result = evaluate_month_budget([], self.expenses, "2024-03", today=date(2024, 3, 10))

        self.assertEqual(result.total_spent, Decimal("0"))
        self.assertEqual(result.percent_used, Decimal("0"))


class BudgetCopyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.lines = [
            BudgetLine(category_id=1, amount=Decimal("1000"), category_name="Food"),
            BudgetLine(category_id=2, amount=Decimal("500"), category_name="Rent"),
        ]

    def test_skips_categories_already_budgeted(self) -> None:
        plan = plan_budget_copy(self.lines, [2, 9], "2024-03", "2024-04")

        self.assertEqual([line.category_id for line in plan.to_create], [1])
        self.assertEqual([line.category_name for line in plan.skipped], ["Rent"])

    def test_rejects_same_month_and_empty_source(self) -> None:
        with self.assertRaises(ValueError):
            plan_budget_copy(self.lines, [], "2024-03", "2024-03")
        with self.assertRaises(ValueError):
            plan_budget_copy([], [], "2024-03", "2024-04")

    def test_month_label(self) -> None:
        self.assertEqual(month_label("2024-03"), "March 2024")


if __name__ == "__main__":
    unittest.main()
