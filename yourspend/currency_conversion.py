from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Mapping

logger = logging.getLogger(__name__)

REFERENCE_CURRENCY = "CNY"

DEFAULT_RATES: dict[str, Decimal] = {
    "CNY": Decimal("1"),
    "USD": Decimal("7.25"),
    "GBP": Decimal("9.20"),
    "EUR": Decimal("7.85"),
    "JPY": Decimal("0.048"),
    "KRW": Decimal("0.0054"),
}

PARITY = Decimal("1")


@dataclass(frozen=True)
class Currency:
    code: str
    symbol: str
    name: str


SUPPORTED_CURRENCIES: tuple[Currency, ...] = (
    Currency(code="CNY", symbol="¥", name="Chinese Yuan"),
    Currency(code="USD", symbol="$", name="US Dollar"),
    Currency(code="GBP", symbol="£", name="British Pound"),
    Currency(code="EUR", symbol="€", name="Euro"),
    Currency(code="JPY", symbol="¥", name="Japanese Yen"),
    Currency(code="KRW", symbol="₩", name="South Korean Won"),
)

SYMBOLS: dict[str, str] = {currency.code: currency.symbol for currency in SUPPORTED_CURRENCIES}


def clean_code(value: str | None) -> str:
    return (value or "").strip().upper()


def _coerce_amount(amount: Decimal | int | float | str) -> Decimal:
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


@dataclass(frozen=True)
class StaticRateProvider:
    """Fixed FX table.

    Rates are expressed as reference currency (CNY) per 1 unit of the
    currency. Codes missing from the table convert at parity.
    """

    rates: Mapping[str, Decimal] | None = None

    def __post_init__(self) -> None:
        source = DEFAULT_RATES if self.rates is None else self.rates
        object.__setattr__(
            self,
            "rates",
            {clean_code(code): _coerce_amount(rate) for code, rate in source.items()},
        )

    def get_rate(self, currency: str) -> Decimal:
        code = clean_code(currency)
        rate = self.rates.get(code)
        if rate is None:
            logger.debug("No exchange rate for %r, converting at parity", code)
            return PARITY
        return rate


DEFAULT_PROVIDER = StaticRateProvider()


def convert_amount(
    amount: Decimal | int | float | str,
    source_currency: str,
    target_currency: str,
    rate_provider: StaticRateProvider | None = None,
) -> Decimal:
    """Convert an amount between currencies through the reference unit."""
    provider = rate_provider or DEFAULT_PROVIDER
    coerced_amount = _coerce_amount(amount)
    source = clean_code(source_currency)
    target = clean_code(target_currency)

    if source == target:
        return coerced_amount

    amount_in_reference = coerced_amount * provider.get_rate(source)
    return amount_in_reference / provider.get_rate(target)


def get_symbol(currency: str) -> str:
    return SYMBOLS.get(clean_code(currency), currency)


def normalize_currency(value: str) -> str:
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isascii() or not normalized.isalpha():
        raise ValueError("Currency must be a 3-letter ISO 4217 code.")
    return normalized
