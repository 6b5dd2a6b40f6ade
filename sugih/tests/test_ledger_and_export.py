import json
import unittest
from datetime import datetime

from sugih.export import (
    SavingsBucketExportRow,
    TransactionExportRow,
    WalletExportRow,
    export_rows,
    export_transactions,
)
from sugih.ledger import Posting, PostingSummary, build_postings, summarize_postings


class LedgerTests(unittest.TestCase):
    def test_expense_and_income_touch_one_wallet(self) -> None:
        self.assertEqual(
            build_postings("expense", 25000, wallet_id=1),
            [Posting(amount_idr=-25000, wallet_id=1)],
        )
        self.assertEqual(
            build_postings("income", 10000, wallet_id=2),
            [Posting(amount_idr=10000, wallet_id=2)],
        )

    def test_transfer_balances_to_zero(self) -> None:
        postings = build_postings("transfer", 5000, wallet_id=1, to_wallet_id=2)

        self.assertEqual(sum(posting.amount_idr for posting in postings), 0)
        self.assertEqual(postings[1], Posting(amount_idr=5000, wallet_id=2))

    def test_savings_moves_between_wallet_and_bucket(self) -> None:
        contribution = build_postings("savings_contribution", 700, wallet_id=1, savings_bucket_id=3)
        withdrawal = build_postings("savings-withdrawal", 200, wallet_id=1, savings_bucket_id=3)

        self.assertEqual(
            contribution,
            [Posting(amount_idr=-700, wallet_id=1), Posting(amount_idr=700, savings_bucket_id=3)],
        )
        self.assertEqual(
            withdrawal,
            [Posting(amount_idr=200, wallet_id=1), Posting(amount_idr=-200, savings_bucket_id=3)],
        )

    def test_rejects_invalid_events(self) -> None:
        with self.assertRaises(ValueError):
            build_postings("transfer", 100, wallet_id=1, to_wallet_id=1)
        with self.assertRaises(ValueError):
            build_postings("expense", 0, wallet_id=1)
        with self.assertRaises(ValueError):
            build_postings("savings_contribution", 100, wallet_id=1)
        with self.assertRaises(ValueError):
            build_postings("refund", 100, wallet_id=1)

    def test_summary_recovers_transfer_direction(self) -> None:
        postings = build_postings("transfer", 5000, wallet_id=1, to_wallet_id=2)

        summary = summarize_postings("transfer", reversed(postings))

        self.assertEqual(summary, PostingSummary(5000, wallet_id=1, to_wallet_id=2, savings_bucket_id=None))

    def test_summary_for_savings_keeps_bucket(self) -> None:
        postings = build_postings("savings_withdrawal", 200, wallet_id=1, savings_bucket_id=3)

        summary = summarize_postings("savings_withdrawal", postings)

        self.assertEqual(summary.amount_idr, 200)
        self.assertEqual(summary.wallet_id, 1)
        self.assertEqual(summary.savings_bucket_id, 3)


class ExportTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = [
            TransactionExportRow(
                id=1,
                occurred_at=datetime(2024, 3, 1, 10, 0),
                type="expense",
                amount_idr=25000,
                wallet="Cash",
                category="Food",
                note="Lunch, with team",
            )
        ]

    def test_csv_has_header_and_quoted_values(self) -> None:
        output = export_transactions(self.rows, "CSV")

        lines = output.splitlines()
        self.assertEqual(
            lines[0],
            "id,occurred_at,type,amount_idr,wallet,to_wallet,savings_bucket,category,payee,note,deleted_at",
        )
        self.assertEqual(
            lines[1],
            '1,2024-03-01T10:00:00,expense,25000,Cash,,,Food,,"Lunch, with team",',
        )

    def test_json_is_list_of_objects(self) -> None:
        payload = json.loads(export_transactions(self.rows, "json"))

        self.assertEqual(payload[0]["amount_idr"], 25000)
        self.assertIsNone(payload[0]["payee"])

    def test_unknown_format_raises(self) -> None:
        with self.assertRaises(ValueError):
            export_transactions(self.rows, "xml")

    def test_columns_follow_the_row_model(self) -> None:
        empty = export_rows([], WalletExportRow, "csv")
        buckets = export_rows(
            [SavingsBucketExportRow(id=3, name="Holiday", archived=True, balance_idr=400)],
            SavingsBucketExportRow,
            "CSV",
        )

        self.assertEqual(empty, "id,name,type,currency,archived,balance_idr\n")
        self.assertEqual(buckets, "id,name,description,archived,balance_idr\n3,Holiday,,True,400\n")


if __name__ == "__main__":
    unittest.main()
