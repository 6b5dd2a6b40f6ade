import unittest
from datetime import datetime, time, timezone

from sugih.date_range import describe_date_range, is_date_in_range, resolve_date_range


class DateRangeTests(unittest.TestCase):
    def setUp(self) -> None:
        # Friday
        self.now = datetime(2024, 3, 15, 12, 0)

    def test_last_week_is_previous_monday_to_sunday(self) -> None:
        range_ = resolve_date_range("lastWeek", now=self.now)

        self.assertEqual(range_.start, datetime(2024, 3, 4))
        self.assertEqual(range_.end, datetime.combine(datetime(2024, 3, 10).date(), time.max))

    def test_this_month_and_last_month(self) -> None:
        this_month = resolve_date_range("thisMonth", now=self.now)
        last_month = resolve_date_range("last_month", now=self.now)

        self.assertEqual(this_month.start, datetime(2024, 3, 1))
        self.assertEqual(this_month.end.date(), datetime(2024, 3, 31).date())
        self.assertEqual(last_month.start, datetime(2024, 2, 1))
        self.assertEqual(last_month.end.date(), datetime(2024, 2, 29).date())

    def test_last_three_months_starts_three_months_back(self) -> None:
        range_ = resolve_date_range("LAST3MONTHS", now=self.now)

        self.assertEqual(range_.start, datetime(2023, 12, 1))
        self.assertEqual(range_.end.date(), datetime(2024, 3, 31).date())

    def test_years(self) -> None:
        this_year = resolve_date_range("thisYear", now=self.now)
        last_year = resolve_date_range("lastYear", now=self.now)

        self.assertEqual(this_year.start, datetime(2024, 1, 1))
        self.assertEqual(this_year.end.date(), datetime(2024, 12, 31).date())
        self.assertEqual(last_year.start, datetime(2023, 1, 1))

    def test_all_time_covers_ten_years(self) -> None:
        range_ = resolve_date_range("allTime", now=datetime(2024, 2, 29, 8))

        self.assertEqual(range_.start, datetime(2014, 2, 28))
        self.assertEqual(range_.end.date(), datetime(2024, 2, 29).date())

    def test_keeps_timezone_of_now(self) -> None:
        now = datetime(2024, 3, 15, 12, tzinfo=timezone.utc)

        range_ = resolve_date_range("thisMonth", now=now)

        self.assertEqual(range_.start, datetime(2024, 3, 1, tzinfo=timezone.utc))

    def test_unknown_preset_raises(self) -> None:
        with self.assertRaises(ValueError):
            resolve_date_range("nextDecade", now=self.now)

    def test_description(self) -> None:
        self.assertEqual(
            describe_date_range("lastWeek", now=self.now),
            "Last week (Mar 4 - Mar 10)",
        )

    def test_membership_is_inclusive(self) -> None:
        range_ = resolve_date_range("thisMonth", now=self.now)

        self.assertTrue(is_date_in_range(datetime(2024, 3, 1), range_))
        self.assertTrue(is_date_in_range("2024-03-31T23:59:59", range_))
        self.assertFalse(is_date_in_range(datetime(2024, 4, 1), range_))


if __name__ == "__main__":
    unittest.main()
