import unittest
from datetime import datetime
from decimal import Decimal

from yourspend.aggregation import Transaction
from yourspend.categories import CategoryCatalog
from yourspend.export import export_filename, transactions_to_csv


class CSVExportTests(unittest.TestCase):
    def test_header_and_rows(self) -> None:
        transactions = [
            Transaction(
                timestamp=datetime(2024, 2, 15, 10, 5),
                amount=Decimal("35"),
                category_id="food",
                note="lunch",
                currency="CNY",
            ),
            Transaction(
                timestamp=datetime(2024, 2, 14, 21, 30),
                amount=Decimal("18.456"),
                category_id="drink",
                note="",
                currency="USD",
            ),
        ]

        content = transactions_to_csv(transactions, CategoryCatalog())

        self.assertEqual(
            content.splitlines(),
            [
                "Date,Category,Amount,Note,Currency",
                "Feb 15  2024 at 10:05,Food,35.00,lunch,CNY",
                "Feb 14  2024 at 21:30,Drink,18.46,,USD",
            ],
        )
        self.assertTrue(content.endswith("\n"))

    def test_commas_and_newlines_become_spaces(self) -> None:
        transactions = [
            Transaction(
                timestamp=datetime(2024, 2, 15, 10, 5),
                amount=Decimal("5"),
                category_id="food",
                note="tea, cake\nand tip",
                currency="GBP",
            ),
        ]

        row = transactions_to_csv(transactions).splitlines()[1]

        self.assertEqual(row.split(",")[3], "tea  cake and tip")
        self.assertEqual(len(row.split(",")), 5)

    def test_unknown_category_uses_fallback_name(self) -> None:
        transactions = [
            Transaction(timestamp=datetime(2024, 2, 15), amount=Decimal("5"), category_id="ghost"),
        ]

        row = transactions_to_csv(transactions).splitlines()[1]

        self.assertEqual(row.split(",")[1], "Wear")

    def test_empty_export_has_only_header(self) -> None:
        self.assertEqual(transactions_to_csv([]), "Date,Category,Amount,Note,Currency\n")

    def test_export_filename(self) -> None:
        self.assertEqual(
            export_filename(datetime(2024, 2, 15, 9, 3, 7)),
            "YourSpend-20240215-090307.csv",
        )


if __name__ == "__main__":
    unittest.main()
