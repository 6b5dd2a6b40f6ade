import unittest
from decimal import Decimal

from sugih.kpis import (
    Balance,
    KpiSummaryInput,
    compute_growth_percentage,
    compute_kpi_summary,
    compute_money_left_to_spend,
    compute_net_worth,
    format_growth_metric,
)


class KpiTests(unittest.TestCase):
    def test_net_worth_sums_wallets_and_savings(self) -> None:
        wallets = [Balance(id=1, name="Cash", balance=Decimal("1000"))]
        savings = [
            Balance(id=1, name="Emergency", balance=Decimal("5000")),
            Balance(id=2, name="Vacation", balance=Decimal("2000")),
        ]

        self.assertEqual(compute_net_worth(wallets, savings), Decimal("8000"))

    def test_money_left_without_budget_is_negative_spending(self) -> None:
        self.assertEqual(compute_money_left_to_spend(None, Decimal("300")), Decimal("-300"))
        self.assertEqual(compute_money_left_to_spend(Decimal("0"), Decimal("300")), Decimal("-300"))
        self.assertEqual(
            compute_money_left_to_spend(Decimal("5000"), Decimal("3000")),
            Decimal("2000"),
        )

    def test_growth_percentage(self) -> None:
        self.assertEqual(compute_growth_percentage(Decimal("120"), Decimal("100")), Decimal("20"))
        self.assertEqual(compute_growth_percentage(Decimal("80"), Decimal("100")), Decimal("-20"))
        self.assertEqual(compute_growth_percentage(Decimal("100"), Decimal("0")), Decimal("100"))
        self.assertEqual(compute_growth_percentage(Decimal("-5"), Decimal("0")), Decimal("-100"))
        self.assertEqual(compute_growth_percentage(Decimal("0"), Decimal("0")), Decimal("0"))
        self.assertEqual(compute_growth_percentage(Decimal("1"), Decimal("3")), Decimal("-66.7"))

    def test_growth_against_negative_baseline_uses_magnitude(self) -> None:
        self.assertEqual(compute_growth_percentage(Decimal("-50"), Decimal("-100")), Decimal("50"))

    def test_growth_labels(self) -> None:
        self.assertEqual(format_growth_metric(Decimal("120"), Decimal("100")).label, "+20% from last month")
        self.assertEqual(format_growth_metric(Decimal("80"), Decimal("100")).label, "-20% from last month")
        self.assertEqual(
            format_growth_metric(Decimal("112.5"), Decimal("100")).label,
            "+12.5% from last month",
        )
        neutral = format_growth_metric(Decimal("100"), Decimal("100"))
        self.assertTrue(neutral.is_neutral)
        self.assertEqual(neutral.label, "No change from last month")

    def test_custom_labels(self) -> None:
        metric = format_growth_metric(Decimal("10"), Decimal("5"), labels={"positive": "Up"})

        self.assertEqual(metric.label, "Up")
        self.assertTrue(metric.is_positive)

    def test_summary(self) -> None:
        summary = compute_kpi_summary(
            KpiSummaryInput(
                current_wallets=[Balance(id=1, name="Cash", balance=Decimal("1000"))],
                current_savings=[Balance(id=1, name="Emergency", balance=Decimal("5000"))],
                previous_wallets=[Balance(id=1, name="Cash", balance=Decimal("900"))],
                previous_savings=[Balance(id=1, name="Emergency", balance=Decimal("4500"))],
                current_budget=Decimal("5000"),
                previous_budget=Decimal("5000"),
                current_spending=Decimal("3000"),
                previous_spending=Decimal("2500"),
            )
        )

        self.assertEqual(summary.net_worth.value, Decimal("6000"))
        self.assertEqual(summary.net_worth.growth.value, Decimal("11.1"))
        self.assertEqual(summary.money_left_to_spend.value, Decimal("2000"))
        self.assertEqual(summary.money_left_to_spend.growth.label, "-20% from last month")
        self.assertEqual(summary.total_spending.growth.label, "+20% from last month")
        self.assertEqual(summary.total_savings.value, Decimal("5000"))
        self.assertEqual(summary.total_savings.period, "All time")
        self.assertEqual(summary.total_spending.period, "This month")


if __name__ == "__main__":
    unittest.main()
