from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
import logging

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from yourspend.aggregation import Transaction
from yourspend.currency_conversion import REFERENCE_CURRENCY, normalize_currency

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY_KEY = "defaultCurrencyCode"
SHOW_UNIFIED_KEY = "showUnifiedCurrency"

metadata = MetaData()

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime, nullable=False, index=True),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("category_id", String(64), nullable=False),
    Column("note", String(500), nullable=False, server_default=""),
    Column("currency", String(3), nullable=False, server_default=REFERENCE_CURRENCY),
)

app_settings = Table(
    "settings",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", String, nullable=False),
)


def create_db_engine(database_url: str) -> Engine:
    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)


class TransactionStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def list_transactions(self) -> list[Transaction]:
        stmt = select(transactions).order_by(
            transactions.c.timestamp.desc(), transactions.c.id.desc()
        )
        with self.engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_transaction(row) for row in rows]

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        with self.engine.begin() as conn:
            row = conn.execute(
                select(transactions).where(transactions.c.id == transaction_id)
            ).mappings().first()
        return _row_to_transaction(row) if row else None

    def add_transaction(self, transaction: Transaction) -> Transaction:
        stmt = insert(transactions).values(
            timestamp=transaction.timestamp,
            amount=transaction.amount,
            category_id=transaction.category_id,
            note=transaction.note,
            currency=transaction.currency,
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
            new_id = result.inserted_primary_key[0]
        logger.debug("Stored transaction %s", new_id)
        return replace(transaction, id=new_id)

    def update_transaction(self, transaction_id: int, **changes) -> Transaction | None:
        allowed = {"timestamp", "amount", "category_id", "note", "currency"}
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")
        if changes:
            with self.engine.begin() as conn:
                conn.execute(
                    update(transactions)
                    .where(transactions.c.id == transaction_id)
                    .values(**changes)
                )
        return self.get_transaction(transaction_id)

    def delete_transaction(self, transaction_id: int) -> bool:
        stmt = transactions.delete().where(transactions.c.id == transaction_id)
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount > 0


class SettingsStore:
    """Flat key/value preferences table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get(self, key: str, default: str | None = None) -> str | None:
        with self.engine.begin() as conn:
            value = conn.execute(
                select(app_settings.c.value).where(app_settings.c.key == key)
            ).scalar_one_or_none()
        return default if value is None else value

    def set(self, key: str, value: str) -> None:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(app_settings).where(app_settings.c.key == key).values(value=value)
            )
            if result.rowcount == 0:
                conn.execute(insert(app_settings).values(key=key, value=value))


class Preferences:
    def __init__(self, settings_store: SettingsStore, system_default_currency: str = REFERENCE_CURRENCY) -> None:
        self.settings_store = settings_store
        self.system_default_currency = system_default_currency

    @property
    def default_currency(self) -> str:
        raw = self.settings_store.get(DEFAULT_CURRENCY_KEY)
        if not raw:
            return self.system_default_currency
        try:
            return normalize_currency(raw)
        except ValueError:
            return self.system_default_currency

    @default_currency.setter
    def default_currency(self, value: str) -> None:
        self.settings_store.set(DEFAULT_CURRENCY_KEY, normalize_currency(value))

    @property
    def show_unified(self) -> bool:
        return self.settings_store.get(SHOW_UNIFIED_KEY, "false") == "true"

    @show_unified.setter
    def show_unified(self, value: bool) -> None:
        self.settings_store.set(SHOW_UNIFIED_KEY, "true" if value else "false")


def _row_to_transaction(row) -> Transaction:
    amount = row["amount"]
    return Transaction(
        id=row["id"],
        timestamp=row["timestamp"],
        amount=amount if isinstance(amount, Decimal) else Decimal(str(amount)),
        category_id=row["category_id"],
        note=row["note"] or "",
        currency=row["currency"],
    )
