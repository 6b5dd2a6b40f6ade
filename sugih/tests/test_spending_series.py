import unittest
from decimal import Decimal

from sugih.bucketing import DateRange
from sugih.spending_series import (
    CategoryAmount,
    CategoryShare,
    CategorySpendingPeriod,
    build_category_shares,
    extract_categories,
    fill_spending_buckets,
    limit_categories,
    prepare_category_breakdown,
    transform_spending_data,
)


def _amount(category_id: int, name: str, amount: str) -> CategoryAmount:
    return CategoryAmount(category_id=category_id, category_name=name, amount=Decimal(amount))


class SpendingSeriesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.periods = [
            CategorySpendingPeriod(
                period="2024-01",
                categories=[_amount(1, "Food", "500"), _amount(2, "Rent", "2000")],
            ),
            CategorySpendingPeriod(
                period="2024-03",
                categories=[_amount(1, "Food", "700"), _amount(3, "Fun", "50")],
            ),
        ]

    def test_flattens_categories_into_chart_points(self) -> None:
        points = transform_spending_data(self.periods)

        self.assertEqual(
            points[0],
            {"bucket": "2024-01", "Food": Decimal("500"), "Rent": Decimal("2000")},
        )

    def test_extracts_categories_sorted_by_total(self) -> None:
        categories = extract_categories(self.periods)

        self.assertEqual([item.name for item in categories], ["Rent", "Food", "Fun"])
        self.assertEqual(categories[1].total, Decimal("1200"))

    def test_fills_missing_month_with_zeroed_categories(self) -> None:
        filled = fill_spending_buckets(
            self.periods,
            DateRange("2024-01-01", "2024-03-31"),
            "monthly",
        )

        self.assertEqual([item.period for item in filled], ["2024-01", "2024-02", "2024-03"])
        self.assertEqual(
            {item.category_name: item.amount for item in filled[1].categories},
            {"Rent": Decimal("0"), "Food": Decimal("0"), "Fun": Decimal("0")},
        )
        self.assertIs(filled[0], self.periods[0])

    def test_limit_folds_tail_into_other(self) -> None:
        limited = limit_categories(self.periods, 1)

        self.assertEqual(
            limited[0].categories,
            [_amount(2, "Rent", "2000"), CategoryAmount("other", "Other", Decimal("500"))],
        )
        self.assertEqual(
            limited[1].categories,
            [CategoryAmount("other", "Other", Decimal("750"))],
        )

    def test_limit_is_noop_when_under_limit(self) -> None:
        self.assertEqual(limit_categories(self.periods, 5), self.periods)


class CategoryBreakdownTests(unittest.TestCase):
    def test_shares_carry_percentages(self) -> None:
        shares = build_category_shares([_amount(1, "Food", "300"), _amount(2, "Rent", "100")])

        self.assertEqual(shares[0].percentage, Decimal("75.00"))
        self.assertEqual(shares[1].percentage, Decimal("25.00"))

    def test_drops_non_positive_and_sorts(self) -> None:
        shares = [
            CategoryShare(1, "Food", Decimal("100"), Decimal("25")),
            CategoryShare(2, "Rent", Decimal("300"), Decimal("75")),
            CategoryShare(3, "Refunds", Decimal("0"), Decimal("0")),
        ]

        prepared = prepare_category_breakdown(shares)

        self.assertEqual([share.category_name for share in prepared], ["Rent", "Food"])

    def test_groups_small_categories_into_other(self) -> None:
        shares = [
            CategoryShare(index, f"C{index}", Decimal(10 - index), Decimal("0"))
            for index in range(6)
        ]

        prepared = prepare_category_breakdown(shares, max_categories=3)

        self.assertEqual(len(prepared), 4)
        other = prepared[-1]
        self.assertEqual(other.category_name, "Other")
        self.assertEqual(other.amount, Decimal("18"))
        self.assertEqual(other.percentage, Decimal("40.00"))

    def test_empty_input(self) -> None:
        self.assertEqual(prepare_category_breakdown(None), [])


if __name__ == "__main__":
    unittest.main()
