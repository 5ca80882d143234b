from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
import logging

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy.engine import Engine

from yourspend.aggregation import (
    Transaction,
    breakdown,
    filter_transactions,
    group_by_day,
    summarize,
    unified_total,
)
from yourspend.categories import Category, CategoryCatalog, SettingsCategoryRepository
from yourspend.config import Settings
from yourspend.currency_conversion import SUPPORTED_CURRENCIES, get_symbol, normalize_currency
from yourspend.date_ranges import (
    CalendarConfig,
    DateRange,
    Granularity,
    can_navigate_forward,
    navigate,
    parse_granularity,
    range_label,
    resolve_range,
)
from yourspend.export import export_filename, transactions_to_csv
from yourspend.logging_setup import configure_logging
from yourspend.storage import (
    Preferences,
    SettingsStore,
    TransactionStore,
    create_db_engine,
    init_db,
)

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    settings: Settings
    engine: Engine
    transactions: TransactionStore
    preferences: Preferences
    catalog: CategoryCatalog

    @property
    def calendar(self) -> CalendarConfig:
        return self.settings.calendar

    def now(self) -> datetime:
        return datetime.now(self.settings.tz).replace(tzinfo=None)

    def to_wall_clock(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value
        return value.astimezone(self.settings.tz).replace(tzinfo=None)


def build_services(settings: Settings) -> AppServices:
    engine = create_db_engine(settings.database_url)
    settings_store = SettingsStore(engine)
    return AppServices(
        settings=settings,
        engine=engine,
        transactions=TransactionStore(engine),
        preferences=Preferences(settings_store, settings.default_currency),
        catalog=CategoryCatalog(SettingsCategoryRepository(settings_store)),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


class SettingsPayload(BaseModel):
    default_currency: str | None = None
    show_unified: bool | None = None


class SettingsResponse(BaseModel):
    default_currency: str
    default_currency_symbol: str
    show_unified: bool


class CurrencyResponse(BaseModel):
    code: str
    symbol: str
    name: str


class CategoryPayload(BaseModel):
    name: str
    icon: str


class TransactionPayload(BaseModel):
    amount: Decimal
    category_id: str
    timestamp: datetime | None = None
    note: str = ""
    currency: str | None = None


class TransactionUpdatePayload(BaseModel):
    amount: Decimal | None = None
    category_id: str | None = None
    timestamp: datetime | None = None
    note: str | None = None
    currency: str | None = None


class TransactionResponse(BaseModel):
    id: int
    timestamp: datetime
    amount: Decimal
    category_id: str
    category: Category
    note: str
    currency: str
    currency_symbol: str


class RangeResponse(BaseModel):
    granularity: Granularity
    anchor: datetime
    start: datetime
    end: datetime
    label: str
    can_navigate_forward: bool


class CurrencyTotal(BaseModel):
    currency: str
    symbol: str
    amount: Decimal


class SummaryResponse(BaseModel):
    start: datetime
    end: datetime
    default_currency: str
    show_unified: bool
    transaction_count: int
    totals: list[CurrencyTotal]
    unified_total: Decimal


class BreakdownEntryResponse(BaseModel):
    category_id: str
    category_name: str
    category_icon: str
    currency: str
    display_amount: Decimal
    normalized_amount: Decimal
    percentage: Decimal


class DayGroupResponse(BaseModel):
    day: date
    totals: list[CurrencyTotal]
    transactions: list[TransactionResponse]


@dataclass(frozen=True)
class RangeQuery:
    granularity: Granularity
    anchor: datetime
    start: datetime | None
    end: datetime | None

    def resolve(self, calendar: CalendarConfig) -> DateRange:
        return resolve_range(self.granularity, self.anchor, self.start, self.end, calendar=calendar)


def range_query(
    granularity: str = Query("day"),
    anchor: datetime | None = Query(None),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    services: AppServices = Depends(get_services),
) -> RangeQuery:
    try:
        parsed = parse_granularity(granularity)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RangeQuery(
        granularity=parsed,
        anchor=services.to_wall_clock(anchor) if anchor is not None else services.now(),
        start=services.to_wall_clock(start) if start is not None else None,
        end=services.to_wall_clock(end) if end is not None else None,
    )


def resolve_currency(value: str | None, services: AppServices) -> str:
    if value:
        return normalize_currency(value)
    return services.preferences.default_currency


def to_transaction_response(txn: Transaction, catalog: CategoryCatalog) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        timestamp=txn.timestamp,
        amount=txn.amount,
        category_id=txn.category_id,
        category=catalog.get_category(txn.category_id),
        note=txn.note,
        currency=txn.currency,
        currency_symbol=get_symbol(txn.currency),
    )


def to_currency_totals(totals: dict[str, Decimal]) -> list[CurrencyTotal]:
    return [
        CurrencyTotal(currency=currency, symbol=get_symbol(currency), amount=amount)
        for currency, amount in totals.items()
    ]


def to_range_response(query: RangeQuery, services: AppServices) -> RangeResponse:
    calendar = services.calendar
    window = query.resolve(calendar)
    return RangeResponse(
        granularity=query.granularity,
        anchor=query.anchor,
        start=window.start,
        end=window.end,
        label=range_label(query.granularity, query.anchor, query.start, query.end, calendar=calendar),
        can_navigate_forward=can_navigate_forward(
            query.granularity, query.anchor, now=services.now(), calendar=calendar
        ),
    )


router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/settings", response_model=SettingsResponse)
def get_settings(services: AppServices = Depends(get_services)) -> SettingsResponse:
    default_currency = services.preferences.default_currency
    return SettingsResponse(
        default_currency=default_currency,
        default_currency_symbol=get_symbol(default_currency),
        show_unified=services.preferences.show_unified,
    )


@router.put("/settings", response_model=SettingsResponse)
def update_settings(
    payload: SettingsPayload, services: AppServices = Depends(get_services)
) -> SettingsResponse:
    if payload.default_currency is not None:
        try:
            services.preferences.default_currency = payload.default_currency
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    if payload.show_unified is not None:
        services.preferences.show_unified = payload.show_unified
    return get_settings(services)


@router.get("/currencies", response_model=list[CurrencyResponse])
def list_currencies() -> list[CurrencyResponse]:
    return [
        CurrencyResponse(code=currency.code, symbol=currency.symbol, name=currency.name)
        for currency in SUPPORTED_CURRENCIES
    ]


@router.get("/categories", response_model=list[Category])
def list_categories(services: AppServices = Depends(get_services)) -> list[Category]:
    return services.catalog.categories


@router.post("/categories", response_model=Category)
def create_category(
    payload: CategoryPayload, services: AppServices = Depends(get_services)
) -> Category:
    try:
        return services.catalog.add_category(payload.name, payload.icon.strip())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, services: AppServices = Depends(get_services)) -> dict:
    existing = next(
        (category for category in services.catalog.categories if category.id == category_id),
        None,
    )
    if existing is None:
        raise HTTPException(status_code=404, detail="Category not found.")
    if existing.is_system:
        raise HTTPException(status_code=409, detail="System categories cannot be deleted.")
    services.catalog.delete_category(category_id)
    return {"status": "deleted"}


@router.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(services: AppServices = Depends(get_services)) -> list[TransactionResponse]:
    return [
        to_transaction_response(txn, services.catalog)
        for txn in services.transactions.list_transactions()
    ]


@router.post("/transactions", response_model=TransactionResponse)
def create_transaction(
    payload: TransactionPayload, services: AppServices = Depends(get_services)
) -> TransactionResponse:
    if payload.amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be greater than zero.")
    category_id = payload.category_id.strip()
    if not category_id:
        raise HTTPException(status_code=400, detail="Category required.")
    try:
        currency = resolve_currency(payload.currency, services)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    timestamp = services.to_wall_clock(payload.timestamp) if payload.timestamp else services.now()
    created = services.transactions.add_transaction(
        Transaction(
            timestamp=timestamp,
            amount=payload.amount,
            category_id=category_id,
            note=payload.note,
            currency=currency,
        )
    )
    logger.info("Created transaction %s (%s %s)", created.id, created.amount, created.currency)
    return to_transaction_response(created, services.catalog)


@router.put("/transactions/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdatePayload,
    services: AppServices = Depends(get_services),
) -> TransactionResponse:
    changes = payload.model_dump(exclude_none=True)
    try:
        if "currency" in changes:
            changes["currency"] = normalize_currency(changes["currency"])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if "timestamp" in changes:
        changes["timestamp"] = services.to_wall_clock(changes["timestamp"])

    updated = services.transactions.update_transaction(transaction_id, **changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Transaction not found.")
    return to_transaction_response(updated, services.catalog)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: int, services: AppServices = Depends(get_services)) -> dict:
    if not services.transactions.delete_transaction(transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found.")
    logger.info("Deleted transaction %s", transaction_id)
    return {"status": "deleted"}


@router.get("/stats/range", response_model=RangeResponse)
def stats_range(
    query: RangeQuery = Depends(range_query), services: AppServices = Depends(get_services)
) -> RangeResponse:
    return to_range_response(query, services)


@router.get("/stats/navigate", response_model=RangeResponse)
def stats_navigate(
    direction: int = Query(..., ge=-1, le=1),
    query: RangeQuery = Depends(range_query),
    services: AppServices = Depends(get_services),
) -> RangeResponse:
    moved = replace(query, anchor=navigate(query.granularity, query.anchor, direction))
    return to_range_response(moved, services)


@router.get("/stats/summary", response_model=SummaryResponse)
def stats_summary(
    query: RangeQuery = Depends(range_query), services: AppServices = Depends(get_services)
) -> SummaryResponse:
    window = query.resolve(services.calendar)
    all_transactions = services.transactions.list_transactions()
    default_currency = services.preferences.default_currency
    return SummaryResponse(
        start=window.start,
        end=window.end,
        default_currency=default_currency,
        show_unified=services.preferences.show_unified,
        transaction_count=len(filter_transactions(all_transactions, window)),
        totals=to_currency_totals(summarize(all_transactions, window)),
        unified_total=unified_total(all_transactions, window, default_currency),
    )


@router.get("/stats/breakdown", response_model=list[BreakdownEntryResponse])
def stats_breakdown(
    currency: str | None = Query(None),
    unified: bool | None = Query(None),
    query: RangeQuery = Depends(range_query),
    services: AppServices = Depends(get_services),
) -> list[BreakdownEntryResponse]:
    window = query.resolve(services.calendar)
    unified_mode = services.preferences.show_unified if unified is None else unified
    entries = breakdown(
        services.transactions.list_transactions(),
        window,
        catalog=services.catalog,
        default_currency=services.preferences.default_currency,
        currency_filter=currency,
        unified=unified_mode,
    )
    return [
        BreakdownEntryResponse(
            category_id=entry.key.category_id,
            category_name=entry.key.category_name,
            category_icon=entry.key.category_icon,
            currency=entry.key.currency,
            display_amount=entry.display_amount,
            normalized_amount=entry.normalized_amount,
            percentage=entry.percentage,
        )
        for entry in entries
    ]


@router.get("/stats/flow", response_model=list[DayGroupResponse])
def stats_flow(
    query: RangeQuery = Depends(range_query), services: AppServices = Depends(get_services)
) -> list[DayGroupResponse]:
    window = query.resolve(services.calendar)
    visible = filter_transactions(services.transactions.list_transactions(), window)
    return [
        DayGroupResponse(
            day=group.day,
            totals=to_currency_totals(group.totals_by_currency),
            transactions=[to_transaction_response(txn, services.catalog) for txn in group.transactions],
        )
        for group in group_by_day(visible, services.calendar)
    ]


@router.get("/export/csv")
def export_csv(services: AppServices = Depends(get_services)) -> Response:
    content = transactions_to_csv(services.transactions.list_transactions(), services.catalog)
    filename = export_filename(services.now())
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(app.state.services.engine)
        yield
        app.state.services.engine.dispose()

    app = FastAPI(title="yourspend", lifespan=lifespan)
    app.state.services = build_services(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
