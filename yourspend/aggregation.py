from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from yourspend.categories import CategoryCatalog
from yourspend.currency_conversion import REFERENCE_CURRENCY, StaticRateProvider, clean_code, convert_amount
from yourspend.date_ranges import DEFAULT_CALENDAR, CalendarConfig, DateRange

ZERO = Decimal("0")


@dataclass(frozen=True)
class Transaction:
    timestamp: datetime
    amount: Decimal
    category_id: str
    note: str = ""
    currency: str = REFERENCE_CURRENCY
    id: Optional[int] = None


@dataclass(frozen=True, order=True)
class ChartGroupKey:
    category_id: str
    category_name: str
    category_icon: str
    currency: str


@dataclass(frozen=True)
class ChartEntry:
    key: ChartGroupKey
    display_amount: Decimal
    normalized_amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class DayGroup:
    day: date
    transactions: list[Transaction]

    @property
    def totals_by_currency(self) -> dict[str, Decimal]:
        return _sum_by_currency(self.transactions)


def filter_transactions(
    transactions: Iterable[Transaction], date_range: DateRange
) -> list[Transaction]:
    return [txn for txn in transactions if date_range.contains(txn.timestamp)]


def summarize(
    transactions: Iterable[Transaction], date_range: DateRange
) -> dict[str, Decimal]:
    """Per-currency totals inside the range, keyed in currency-code order."""
    return _sum_by_currency(filter_transactions(transactions, date_range))


def unified_total(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    default_currency: str,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    total = ZERO
    for txn in filter_transactions(transactions, date_range):
        total += convert_amount(txn.amount, txn.currency, default_currency, rate_provider=rate_provider)
    return total


def breakdown(
    transactions: Iterable[Transaction],
    date_range: DateRange,
    catalog: CategoryCatalog | None = None,
    default_currency: str = REFERENCE_CURRENCY,
    currency_filter: Optional[str] = None,
    unified: bool = False,
    rate_provider: StaticRateProvider | None = None,
) -> list[ChartEntry]:
    """Category/currency chart entries ranked by normalized amount.

    Percentages are fractions of the total normalized amount of the filtered
    set. Filtering to a single currency always reports in that currency, so
    ``unified`` is ignored whenever ``currency_filter`` is set.
    """
    catalog = catalog or CategoryCatalog()
    filtered = filter_transactions(transactions, date_range)
    if currency_filter:
        wanted = clean_code(currency_filter)
        filtered = [txn for txn in filtered if clean_code(txn.currency) == wanted]
        unified = False

    display_totals: dict[ChartGroupKey, Decimal] = {}
    normalized_totals: dict[ChartGroupKey, Decimal] = {}
    for txn in filtered:
        category = catalog.get_category(txn.category_id)
        normalized = convert_amount(txn.amount, txn.currency, default_currency, rate_provider=rate_provider)
        key = ChartGroupKey(
            category_id=category.id,
            category_name=category.name,
            category_icon=category.icon,
            currency=clean_code(default_currency if unified else txn.currency),
        )
        display_amount = normalized if unified else _coerce_amount(txn.amount)
        display_totals[key] = display_totals.get(key, ZERO) + display_amount
        normalized_totals[key] = normalized_totals.get(key, ZERO) + normalized

    total_normalized = sum(normalized_totals.values(), ZERO)
    entries = [
        ChartEntry(
            key=key,
            display_amount=display_totals[key],
            normalized_amount=normalized_total,
            percentage=normalized_total / total_normalized if total_normalized > ZERO else ZERO,
        )
        for key, normalized_total in normalized_totals.items()
    ]
    entries.sort(key=lambda entry: (entry.key.category_id, entry.key.currency))
    entries.sort(key=lambda entry: entry.normalized_amount, reverse=True)
    return entries


def group_by_day(
    transactions: Iterable[Transaction],
    calendar: CalendarConfig = DEFAULT_CALENDAR,
) -> list[DayGroup]:
    """Bucket transactions by calendar day, newest day first."""
    groups: dict[date, list[Transaction]] = {}
    for txn in transactions:
        day = calendar.localize(txn.timestamp).date()
        groups.setdefault(day, []).append(txn)
    return [DayGroup(day=day, transactions=groups[day]) for day in sorted(groups, reverse=True)]


def _sum_by_currency(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for txn in transactions:
        code = clean_code(txn.currency)
        totals[code] = totals.get(code, ZERO) + _coerce_amount(txn.amount)
    return {currency: totals[currency] for currency in sorted(totals)}


def _coerce_amount(amount: Decimal) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))
