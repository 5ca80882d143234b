from __future__ import annotations

from datetime import datetime
from typing import Iterable

from yourspend.aggregation import Transaction
from yourspend.categories import CategoryCatalog

CSV_HEADER = ("Date", "Category", "Amount", "Note", "Currency")


def transactions_to_csv(
    transactions: Iterable[Transaction],
    catalog: CategoryCatalog | None = None,
) -> str:
    """Render transactions as CSV text.

    Fields are never quoted: commas and newlines inside free text are replaced
    by spaces so every record stays on one line with five columns.
    """
    catalog = catalog or CategoryCatalog()
    lines = [",".join(CSV_HEADER)]
    for txn in transactions:
        category = catalog.get_category(txn.category_id)
        lines.append(
            ",".join(
                (
                    clean_field(format_timestamp(txn.timestamp)),
                    clean_field(category.name),
                    f"{txn.amount:.2f}",
                    clean_field(txn.note),
                    txn.currency,
                )
            )
        )
    return "\n".join(lines) + "\n"


def format_timestamp(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year} at {value:%H:%M}"


def export_filename(now: datetime) -> str:
    return f"YourSpend-{now:%Y%m%d-%H%M%S}.csv"


def clean_field(value: str | None) -> str:
    if not value:
        return ""
    return value.replace("\r\n", " ").replace(",", " ").replace("\n", " ").replace("\r", " ")
