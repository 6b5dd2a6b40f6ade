import logging
import os
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError

from sugih.budget_engine import (
    BudgetLine,
    Expense,
    evaluate_month_budget,
    month_label,
    parse_month,
    plan_budget_copy,
)
from sugih.bucketing import (
    DateRange,
    TimePoint,
    TimeSeriesPoint,
    aggregate_by_period,
    aggregate_by_period_and_group,
    coerce_timestamp,
    count_buckets,
    fill_missing_buckets,
    normalize_period,
)
from sugih.date_range import (
    PRESET_LABELS,
    describe_date_range,
    is_date_in_range,
    normalize_preset,
    resolve_date_range,
)
from sugih.export import (
    CONTENT_TYPES,
    BudgetExportRow,
    CategoryExportRow,
    SavingsBucketExportRow,
    TransactionExportRow,
    WalletExportRow,
    export_rows,
    export_transactions,
    normalize_export_format,
)
from sugih.kpis import Balance, KpiCard, KpiSummaryInput, compute_kpi_summary
from sugih.ledger import Posting, build_postings, summarize_postings
from sugih.spending_series import (
    CategoryAmount,
    CategorySpendingPeriod,
    build_category_shares,
    extract_categories,
    fill_spending_buckets,
    limit_categories,
    prepare_category_breakdown,
    transform_spending_data,
)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Sugih")

frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

database_url = os.getenv("DATABASE_URL", "sqlite:///./sugih.db")
connect_args = {}
if database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(database_url, connect_args=connect_args)
metadata = MetaData()

DEFAULT_REPORT_PRESET = "last6Months"
UNCATEGORIZED = "Uncategorized"
UNCATEGORIZED_ID = "uncategorized"
MAX_REPORT_BUCKETS = int(os.getenv("MAX_REPORT_BUCKETS", "3660"))
WALLET_TYPES = {"bank", "cash", "ewallet", "credit", "other"}

wallets = Table(
    "wallets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), unique=True, nullable=False),
    Column("type", String(20), nullable=False, server_default="bank"),
    Column("currency", String(3), nullable=False, server_default="IDR"),
    Column("archived", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), unique=True, nullable=False),
    Column("archived", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

savings_buckets = Table(
    "savings_buckets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), unique=True, nullable=False),
    Column("description", String(500)),
    Column("archived", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

transaction_events = Table(
    "transaction_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("occurred_at", DateTime, nullable=False),
    Column("type", String(30), nullable=False),
    Column("note", String(500)),
    Column("payee", String(255)),
    Column("category_id", Integer, ForeignKey("categories.id")),
    Column("deleted_at", DateTime),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

postings = Table(
    "postings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("event_id", Integer, ForeignKey("transaction_events.id"), nullable=False),
    Column("wallet_id", Integer, ForeignKey("wallets.id")),
    Column("savings_bucket_id", Integer, ForeignKey("savings_buckets.id")),
    Column("amount_idr", BigInteger, nullable=False),
)

budgets = Table(
    "budgets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("month", String(7), nullable=False),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("amount_idr", BigInteger, nullable=False),
    Column("archived", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    UniqueConstraint("month", "category_id", name="uq_budgets_month_category"),
)


@app.on_event("startup")
def init_db() -> None:
    metadata.create_all(engine)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))


def _normalize_wallet_type(value: str) -> str:
    normalized = "".join(ch for ch in value.strip().lower() if ch.isalnum())
    if normalized not in WALLET_TYPES:
        raise ValueError("Invalid wallet type.")
    return normalized


class WalletPayload(BaseModel):
    name: str
    type: str = "bank"

    @classmethod
    def validate_payload(cls, payload: "WalletPayload") -> "WalletPayload":
        payload.name = payload.name.strip()
        payload.type = _normalize_wallet_type(payload.type)
        if not payload.name:
            raise ValueError("Wallet name required.")
        return payload


class WalletUpdatePayload(BaseModel):
    name: str | None = None
    type: str | None = None
    archived: bool | None = None

    @classmethod
    def validate_payload(cls, payload: "WalletUpdatePayload") -> "WalletUpdatePayload":
        if payload.name is not None:
            payload.name = payload.name.strip()
            if not payload.name:
                raise ValueError("Wallet name required.")
        if payload.type is not None:
            payload.type = _normalize_wallet_type(payload.type)
        if payload.name is None and payload.type is None and payload.archived is None:
            raise ValueError("No updates provided.")
        return payload


class WalletResponse(BaseModel):
    id: int
    name: str
    type: str
    currency: str
    archived: bool
    balance_idr: int


class CategoryPayload(BaseModel):
    name: str

    @classmethod
    def validate_payload(cls, payload: "CategoryPayload") -> "CategoryPayload":
        payload.name = payload.name.strip()
        if not payload.name:
            raise ValueError("Category name required.")
        return payload


class CategoryResponse(BaseModel):
    id: int
    name: str
    archived: bool


class CategoryUpdatePayload(BaseModel):
    name: str | None = None
    archived: bool | None = None

    @classmethod
    def validate_payload(cls, payload: "CategoryUpdatePayload") -> "CategoryUpdatePayload":
        if payload.name is not None:
            payload.name = payload.name.strip()
            if not payload.name:
                raise ValueError("Category name required.")
        if payload.name is None and payload.archived is None:
            raise ValueError("No updates provided.")
        return payload


class SavingsBucketPayload(BaseModel):
    name: str
    description: str | None = None

    @classmethod
    def validate_payload(cls, payload: "SavingsBucketPayload") -> "SavingsBucketPayload":
        payload.name = payload.name.strip()
        payload.description = payload.description.strip() if payload.description else None
        if not payload.name:
            raise ValueError("Savings bucket name required.")
        return payload


class SavingsBucketUpdatePayload(BaseModel):
    name: str | None = None
    description: str | None = None
    archived: bool | None = None

    @classmethod
    def validate_payload(cls, payload: "SavingsBucketUpdatePayload") -> "SavingsBucketUpdatePayload":
        if payload.name is not None:
            payload.name = payload.name.strip()
            if not payload.name:
                raise ValueError("Savings bucket name required.")
        if payload.description is not None:
            payload.description = payload.description.strip()
        if payload.name is None and payload.description is None and payload.archived is None:
            raise ValueError("No updates provided.")
        return payload


class SavingsBucketResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    archived: bool
    balance_idr: int


class TransactionPayload(BaseModel):
    wallet_id: int
    amount_idr: int
    occurred_at: datetime
    category_id: int | None = None
    to_wallet_id: int | None = None
    savings_bucket_id: int | None = None
    note: str | None = None
    payee: str | None = None

    @classmethod
    def validate_payload(cls, payload: "TransactionPayload") -> "TransactionPayload":
        payload.occurred_at = to_storage_datetime(payload.occurred_at)
        payload.note = payload.note.strip() if payload.note else None
        payload.payee = payload.payee.strip() if payload.payee else None
        if payload.amount_idr <= 0:
            raise ValueError("Amount must be greater than zero.")
        return payload


class TransactionResponse(BaseModel):
    id: int
    type: str
    occurred_at: datetime
    amount_idr: int
    wallet_id: int | None = None
    to_wallet_id: int | None = None
    savings_bucket_id: int | None = None
    category_id: int | None = None
    note: str | None = None
    payee: str | None = None


class BudgetPayload(BaseModel):
    month: str
    category_id: int
    amount_idr: int

    @classmethod
    def validate_payload(cls, payload: "BudgetPayload") -> "BudgetPayload":
        payload.month = parse_month(payload.month).strftime("%Y-%m")
        if payload.amount_idr < 0:
            raise ValueError("Budget amount must not be negative.")
        return payload


class BudgetUpdatePayload(BaseModel):
    amount_idr: int

    @classmethod
    def validate_payload(cls, payload: "BudgetUpdatePayload") -> "BudgetUpdatePayload":
        if payload.amount_idr < 0:
            raise ValueError("Budget amount must not be negative.")
        return payload


class BudgetArchivePayload(BaseModel):
    action: str = "archive"

    @classmethod
    def validate_payload(cls, payload: "BudgetArchivePayload") -> "BudgetArchivePayload":
        payload.action = payload.action.strip().lower()
        if payload.action not in {"archive", "restore"}:
            raise ValueError("Invalid action. Use 'archive' or 'restore'.")
        return payload


class BudgetCopyPayload(BaseModel):
    from_month: str
    to_month: str

    @classmethod
    def validate_payload(cls, payload: "BudgetCopyPayload") -> "BudgetCopyPayload":
        payload.from_month = parse_month(payload.from_month).strftime("%Y-%m")
        payload.to_month = parse_month(payload.to_month).strftime("%Y-%m")
        return payload


class BudgetResponse(BaseModel):
    id: int
    month: str
    category_id: int
    category_name: str | None = None
    amount_idr: int
    archived: bool = False


class BudgetCopyResponse(BaseModel):
    created: list[BudgetResponse]
    skipped: list[BudgetResponse]


class BudgetMonthResponse(BaseModel):
    value: str
    label: str
    budget_count: int


class CategoryTotalResponse(BaseModel):
    id: int | str
    name: str
    total: int


class CategoryChartResponse(BaseModel):
    categories: list[CategoryTotalResponse]
    points: list[dict[str, int | str]]


class TimeSeriesResponse(BaseModel):
    bucket: str
    value: int


class GroupedTimeSeriesResponse(BaseModel):
    bucket: str
    groups: dict[str, int]


class NetWorthPointResponse(BaseModel):
    bucket: str
    wallets: int
    savings: int
    total: int


class CategoryBreakdownResponse(BaseModel):
    category_id: int | str | None = None
    category_name: str
    amount: int
    percentage: float


class CategoryBudgetResponse(BaseModel):
    category_id: int
    category_name: str | None = None
    budgeted: int
    spent: int
    remaining: int
    status: str


class MoneyLeftToSpendResponse(BaseModel):
    month: str
    total_budget: int
    total_spent: int
    remaining: int
    percent_used: float
    days_remaining: int
    average_daily_spending: int
    projected_month_end_spending: int
    budget_variance: int
    categories: list[CategoryBudgetResponse]


class GrowthResponse(BaseModel):
    value: float
    label: str
    is_positive: bool
    is_negative: bool
    is_neutral: bool


class KpiCardResponse(BaseModel):
    title: str
    value: int
    growth: GrowthResponse
    period: str


class DashboardSummaryResponse(BaseModel):
    preset: str
    range_label: str
    net_worth: KpiCardResponse
    money_left_to_spend: KpiCardResponse
    total_spending: KpiCardResponse
    total_savings: KpiCardResponse


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage_datetime(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _parse_range_end(value: str) -> datetime:
    end = to_storage_datetime(coerce_timestamp(value))
    if len(value.strip()) == 10:
        end = datetime.combine(end.date(), datetime.max.time())
    return end


def resolve_report_range(
    from_value: str | None,
    to_value: str | None,
    default_preset: str = DEFAULT_REPORT_PRESET,
    period: str | None = None,
) -> tuple[datetime, datetime]:
    default_range = resolve_date_range(default_preset, now=utc_now())
    start = to_storage_datetime(coerce_timestamp(from_value)) if from_value else default_range.start
    end = _parse_range_end(to_value) if to_value else default_range.end
    if start > end:
        raise ValueError("Start date must be on or before end date.")
    if period is not None and count_buckets(DateRange(start, end), period) > MAX_REPORT_BUCKETS:
        raise ValueError(f"Date range too large: at most {MAX_REPORT_BUCKETS} {period} buckets per report.")
    return start, end


def resolve_filter_range(from_value: str | None, to_value: str | None) -> DateRange | None:
    if not from_value and not to_value:
        return None
    start = to_storage_datetime(coerce_timestamp(from_value)) if from_value else datetime.min
    end = _parse_range_end(to_value) if to_value else datetime.max
    if start > end:
        raise ValueError("Start date must be on or before end date.")
    return DateRange(start, end)


def ensure_exists(conn, table: Table, row_id: int | None, label: str) -> None:
    if row_id is None:
        return
    found = conn.execute(select(table.c.id).where(table.c.id == row_id)).scalar_one_or_none()
    if found is None:
        raise HTTPException(status_code=404, detail=f"{label} not found.")


def fetch_row_or_404(conn, table: Table, row_id: int, label: str):
    row = conn.execute(select(table).where(table.c.id == row_id)).mappings().first()
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} not found.")
    return row


def update_row(table: Table, row_id: int, label: str, values: dict) -> None:
    try:
        with engine.begin() as conn:
            fetch_row_or_404(conn, table, row_id, label)
            conn.execute(update(table).where(table.c.id == row_id).values(**values))
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail=f"{label} already exists.") from exc
    logger.info("Updated %s %s: %s", table.name, row_id, sorted(values))


def set_archived(table: Table, row_id: int, label: str, archived: bool) -> None:
    with engine.begin() as conn:
        row = fetch_row_or_404(conn, table, row_id, label)
        if row["archived"] == archived:
            state = "already archived" if archived else "not archived"
            raise HTTPException(status_code=400, detail=f"{label} is {state}.")
        conn.execute(update(table).where(table.c.id == row_id).values(archived=archived))
    logger.info("%s %s %s", "Archived" if archived else "Restored", table.name, row_id)


def delete_unused_row(table: Table, row_id: int, label: str, references: list) -> None:
    with engine.begin() as conn:
        fetch_row_or_404(conn, table, row_id, label)
        for column in references:
            in_use = conn.execute(
                select(func.count()).select_from(column.table).where(column == row_id)
            ).scalar_one()
            if in_use:
                raise HTTPException(
                    status_code=409,
                    detail=f"Cannot delete {label.lower()} with existing {column.table.name.replace('_', ' ')}.",
                )
        conn.execute(delete(table).where(table.c.id == row_id))
    logger.info("Deleted %s %s", table.name, row_id)


def archive_or_delete(table: Table, row_id: int, label: str, action: str, references: list) -> dict:
    normalized = action.strip().lower()
    if normalized == "archive":
        set_archived(table, row_id, label, True)
        return {"status": "archived"}
    if normalized == "delete":
        delete_unused_row(table, row_id, label, references)
        return {"status": "deleted"}
    raise HTTPException(status_code=400, detail="Invalid action. Use 'archive' or 'delete'.")


def export_response(content: str, fmt: str, name: str) -> Response:
    filename = f"sugih-{name}-{date.today().isoformat()}.{fmt}"
    return Response(
        content=content,
        media_type=CONTENT_TYPES[fmt],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )


def parse_export_format(value: str) -> str:
    try:
        return normalize_export_format(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def fetch_balances(
    conn,
    column,
    cutoff: datetime | None = None,
    before: datetime | None = None,
) -> dict[int, int]:
    conditions = [column.is_not(None), transaction_events.c.deleted_at.is_(None)]
    if cutoff is not None:
        conditions.append(transaction_events.c.occurred_at <= cutoff)
    if before is not None:
        conditions.append(transaction_events.c.occurred_at < before)
    stmt = (
        select(column, func.coalesce(func.sum(postings.c.amount_idr), 0).label("balance"))
        .select_from(postings.join(transaction_events, postings.c.event_id == transaction_events.c.id))
        .where(*conditions)
        .group_by(column)
    )
    return {row[0]: int(row[1]) for row in conn.execute(stmt).all()}


def fetch_expense_rows(conn, start: datetime, end: datetime) -> list[dict]:
    category_expr = func.coalesce(categories.c.name, UNCATEGORIZED).label("category_name")
    stmt = (
        select(
            transaction_events.c.occurred_at,
            transaction_events.c.category_id,
            category_expr,
            postings.c.amount_idr,
        )
        .select_from(
            transaction_events.join(postings, postings.c.event_id == transaction_events.c.id).outerjoin(
                categories, categories.c.id == transaction_events.c.category_id
            )
        )
        .where(
            transaction_events.c.type == "expense",
            transaction_events.c.deleted_at.is_(None),
            postings.c.wallet_id.is_not(None),
            transaction_events.c.occurred_at >= start,
            transaction_events.c.occurred_at <= end,
        )
        .order_by(transaction_events.c.occurred_at.asc())
    )
    return [dict(row) for row in conn.execute(stmt).mappings().all()]


def sum_expenses(conn, start: datetime, end: datetime) -> Decimal:
    return sum((Decimal(abs(row["amount_idr"])) for row in fetch_expense_rows(conn, start, end)), Decimal("0"))


def sum_budget_for_month(conn, month: str) -> Decimal | None:
    total = conn.execute(
        select(func.sum(budgets.c.amount_idr)).where(budgets.c.month == month, budgets.c.archived.is_(False))
    ).scalar_one_or_none()
    return None if total is None else Decimal(total)


def fetch_budget_rows(conn, *conditions) -> list:
    return conn.execute(
        select(budgets, categories.c.name.label("category_name"))
        .select_from(budgets.join(categories, categories.c.id == budgets.c.category_id))
        .where(*conditions)
        .order_by(budgets.c.month.desc(), categories.c.name.asc())
    ).mappings().all()


def build_budget_response(row) -> BudgetResponse:
    return BudgetResponse(
        id=row["id"],
        month=row["month"],
        category_id=row["category_id"],
        category_name=row["category_name"],
        amount_idr=int(row["amount_idr"]),
        archived=row["archived"],
    )


def fetch_budget_or_404(conn, budget_id: int) -> BudgetResponse:
    rows = fetch_budget_rows(conn, budgets.c.id == budget_id)
    if not rows:
        raise HTTPException(status_code=404, detail="Budget not found.")
    return build_budget_response(rows[0])


def build_wallet_response(row, balances: dict[int, int]) -> WalletResponse:
    return WalletResponse(
        id=row["id"],
        name=row["name"],
        type=row["type"],
        currency=row["currency"],
        archived=row["archived"],
        balance_idr=balances.get(row["id"], 0),
    )


def build_savings_bucket_response(row, balances: dict[int, int]) -> SavingsBucketResponse:
    return SavingsBucketResponse(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        archived=row["archived"],
        balance_idr=balances.get(row["id"], 0),
    )


def build_category_periods(rows: list[dict], period: str) -> list[CategorySpendingPeriod]:
    category_ids = {row["category_name"]: row["category_id"] or UNCATEGORIZED_ID for row in rows}
    grouped = aggregate_by_period_and_group(
        [
            TimePoint(
                occurred_at=row["occurred_at"],
                amount=abs(row["amount_idr"]),
                group=row["category_name"],
            )
            for row in rows
        ],
        period,
        lambda record: record.group,
    )
    return [
        CategorySpendingPeriod(
            period=item.bucket,
            categories=[
                CategoryAmount(category_id=category_ids[name], category_name=name, amount=amount)
                for name, amount in item.groups.items()
            ],
        )
        for item in grouped
    ]


def build_transaction_response(row, event_postings: list[Posting]) -> TransactionResponse:
    summary = summarize_postings(row["type"], event_postings)
    return TransactionResponse(
        id=row["id"],
        type=row["type"],
        occurred_at=row["occurred_at"],
        amount_idr=summary.amount_idr,
        wallet_id=summary.wallet_id,
        to_wallet_id=summary.to_wallet_id,
        savings_bucket_id=summary.savings_bucket_id,
        category_id=row["category_id"],
        note=row["note"],
        payee=row["payee"],
    )


def fetch_postings_by_event(conn, event_ids: list[int]) -> dict[int, list[Posting]]:
    grouped: dict[int, list[Posting]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped
    rows = conn.execute(
        select(postings).where(postings.c.event_id.in_(event_ids)).order_by(postings.c.id.asc())
    ).mappings().all()
    for row in rows:
        grouped[row["event_id"]].append(
            Posting(
                amount_idr=int(row["amount_idr"]),
                wallet_id=row["wallet_id"],
                savings_bucket_id=row["savings_bucket_id"],
            )
        )
    return grouped


def create_transaction_event(event_type: str, payload: TransactionPayload) -> TransactionResponse:
    try:
        payload = TransactionPayload.validate_payload(payload)
        event_postings = build_postings(
            event_type,
            payload.amount_idr,
            wallet_id=payload.wallet_id,
            to_wallet_id=payload.to_wallet_id,
            savings_bucket_id=payload.savings_bucket_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    category_id = payload.category_id if event_type in {"expense", "income"} else None
    with engine.begin() as conn:
        ensure_exists(conn, wallets, payload.wallet_id, "Wallet")
        if event_type == "transfer":
            ensure_exists(conn, wallets, payload.to_wallet_id, "Destination wallet")
        if event_type.startswith("savings_"):
            ensure_exists(conn, savings_buckets, payload.savings_bucket_id, "Savings bucket")
        ensure_exists(conn, categories, category_id, "Category")

        row = conn.execute(
            insert(transaction_events)
            .values(
                occurred_at=payload.occurred_at,
                type=event_type,
                note=payload.note,
                payee=payload.payee,
                category_id=category_id,
            )
            .returning(
                transaction_events.c.id,
                transaction_events.c.type,
                transaction_events.c.occurred_at,
                transaction_events.c.category_id,
                transaction_events.c.note,
                transaction_events.c.payee,
            )
        ).mappings().first()
        if not row:
            raise HTTPException(status_code=500, detail="Failed to create transaction.")
        conn.execute(
            insert(postings),
            [
                {
                    "event_id": row["id"],
                    "wallet_id": posting.wallet_id,
                    "savings_bucket_id": posting.savings_bucket_id,
                    "amount_idr": posting.amount_idr,
                }
                for posting in event_postings
            ],
        )

    logger.info("Recorded %s transaction %s", event_type, row["id"])
    return build_transaction_response(row, event_postings)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/wallets", response_model=list[WalletResponse])
def list_wallets() -> list[WalletResponse]:
    with engine.begin() as conn:
        rows = conn.execute(select(wallets).order_by(wallets.c.name.asc())).mappings().all()
        balances = fetch_balances(conn, postings.c.wallet_id)
    return [build_wallet_response(row, balances) for row in rows]


@app.post("/wallets", response_model=WalletResponse)
def create_wallet(payload: WalletPayload) -> WalletResponse:
    try:
        payload = WalletPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    stmt = (
        insert(wallets)
        .values(name=payload.name, type=payload.type)
        .returning(wallets.c.id, wallets.c.name, wallets.c.type, wallets.c.currency, wallets.c.archived)
    )
    try:
        with engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="Wallet already exists.") from exc

    if not row:
        raise HTTPException(status_code=500, detail="Failed to create wallet.")
    return WalletResponse(**row, balance_idr=0)


@app.get("/wallets/{wallet_id}", response_model=WalletResponse)
def get_wallet(wallet_id: int) -> WalletResponse:
    with engine.begin() as conn:
        row = fetch_row_or_404(conn, wallets, wallet_id, "Wallet")
        balances = fetch_balances(conn, postings.c.wallet_id)
    return build_wallet_response(row, balances)


@app.patch("/wallets/{wallet_id}", response_model=WalletResponse)
def update_wallet(wallet_id: int, payload: WalletUpdatePayload) -> WalletResponse:
    try:
        payload = WalletUpdatePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    update_row(wallets, wallet_id, "Wallet", payload.model_dump(exclude_none=True))
    return get_wallet(wallet_id)


@app.delete("/wallets/{wallet_id}")
def delete_wallet(wallet_id: int, action: str = Query("archive")) -> dict:
    return archive_or_delete(wallets, wallet_id, "Wallet", action, [postings.c.wallet_id])


@app.get("/categories", response_model=list[CategoryResponse])
def list_categories() -> list[CategoryResponse]:
    with engine.begin() as conn:
        rows = conn.execute(select(categories).order_by(categories.c.name.asc())).mappings().all()
    return [CategoryResponse(id=row["id"], name=row["name"], archived=row["archived"]) for row in rows]


@app.post("/categories", response_model=CategoryResponse)
def create_category(payload: CategoryPayload) -> CategoryResponse:
    try:
        payload = CategoryPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    stmt = (
        insert(categories)
        .values(name=payload.name)
        .returning(categories.c.id, categories.c.name, categories.c.archived)
    )
    try:
        with engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="Category already exists.") from exc

    if not row:
        raise HTTPException(status_code=500, detail="Failed to create category.")
    return CategoryResponse(**row)


@app.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int) -> CategoryResponse:
    with engine.begin() as conn:
        row = fetch_row_or_404(conn, categories, category_id, "Category")
    return CategoryResponse(id=row["id"], name=row["name"], archived=row["archived"])


@app.patch("/categories/{category_id}", response_model=CategoryResponse)
def update_category(category_id: int, payload: CategoryUpdatePayload) -> CategoryResponse:
    try:
        payload = CategoryUpdatePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    update_row(categories, category_id, "Category", payload.model_dump(exclude_none=True))
    return get_category(category_id)


@app.delete("/categories/{category_id}")
def delete_category(category_id: int, action: str = Query("archive")) -> dict:
    return archive_or_delete(
        categories,
        category_id,
        "Category",
        action,
        [transaction_events.c.category_id, budgets.c.category_id],
    )


@app.get("/savings-buckets", response_model=list[SavingsBucketResponse])
def list_savings_buckets() -> list[SavingsBucketResponse]:
    with engine.begin() as conn:
        rows = conn.execute(select(savings_buckets).order_by(savings_buckets.c.name.asc())).mappings().all()
        balances = fetch_balances(conn, postings.c.savings_bucket_id)
    return [build_savings_bucket_response(row, balances) for row in rows]


@app.post("/savings-buckets", response_model=SavingsBucketResponse)
def create_savings_bucket(payload: SavingsBucketPayload) -> SavingsBucketResponse:
    try:
        payload = SavingsBucketPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    stmt = (
        insert(savings_buckets)
        .values(name=payload.name, description=payload.description)
        .returning(
            savings_buckets.c.id,
            savings_buckets.c.name,
            savings_buckets.c.description,
            savings_buckets.c.archived,
        )
    )
    try:
        with engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail="Savings bucket already exists.") from exc

    if not row:
        raise HTTPException(status_code=500, detail="Failed to create savings bucket.")
    return SavingsBucketResponse(**row, balance_idr=0)


@app.get("/savings-buckets/{bucket_id}", response_model=SavingsBucketResponse)
def get_savings_bucket(bucket_id: int) -> SavingsBucketResponse:
    with engine.begin() as conn:
        row = fetch_row_or_404(conn, savings_buckets, bucket_id, "Savings bucket")
        balances = fetch_balances(conn, postings.c.savings_bucket_id)
    return build_savings_bucket_response(row, balances)


@app.patch("/savings-buckets/{bucket_id}", response_model=SavingsBucketResponse)
def update_savings_bucket(bucket_id: int, payload: SavingsBucketUpdatePayload) -> SavingsBucketResponse:
    try:
        payload = SavingsBucketUpdatePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    update_row(savings_buckets, bucket_id, "Savings bucket", payload.model_dump(exclude_none=True))
    return get_savings_bucket(bucket_id)


@app.delete("/savings-buckets/{bucket_id}")
def delete_savings_bucket(bucket_id: int, action: str = Query("archive")) -> dict:
    return archive_or_delete(
        savings_buckets,
        bucket_id,
        "Savings bucket",
        action,
        [postings.c.savings_bucket_id],
    )


@app.get("/transactions", response_model=list[TransactionResponse])
def list_transactions(
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    type: str | None = Query(None),
) -> list[TransactionResponse]:
    conditions = [transaction_events.c.deleted_at.is_(None)]
    try:
        range_ = resolve_filter_range(from_, to)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if range_ is not None:
        conditions.append(transaction_events.c.occurred_at.between(range_.start, range_.end))
    if type:
        conditions.append(transaction_events.c.type == type.strip().lower())

    with engine.begin() as conn:
        rows = conn.execute(
            select(transaction_events)
            .where(*conditions)
            .order_by(transaction_events.c.occurred_at.desc(), transaction_events.c.id.desc())
        ).mappings().all()
        postings_by_event = fetch_postings_by_event(conn, [row["id"] for row in rows])
    return [build_transaction_response(row, postings_by_event[row["id"]]) for row in rows]


@app.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: int) -> TransactionResponse:
    with engine.begin() as conn:
        row = conn.execute(
            select(transaction_events).where(
                transaction_events.c.id == transaction_id,
                transaction_events.c.deleted_at.is_(None),
            )
        ).mappings().first()
        if row is None:
            raise HTTPException(status_code=404, detail="Transaction not found.")
        postings_by_event = fetch_postings_by_event(conn, [row["id"]])
    return build_transaction_response(row, postings_by_event[row["id"]])


@app.post("/transactions/expense", response_model=TransactionResponse)
def create_expense(payload: TransactionPayload) -> TransactionResponse:
    return create_transaction_event("expense", payload)


@app.post("/transactions/income", response_model=TransactionResponse)
def create_income(payload: TransactionPayload) -> TransactionResponse:
    return create_transaction_event("income", payload)


@app.post("/transactions/transfer", response_model=TransactionResponse)
def create_transfer(payload: TransactionPayload) -> TransactionResponse:
    return create_transaction_event("transfer", payload)


@app.post("/transactions/savings/contribute", response_model=TransactionResponse)
def create_savings_contribution(payload: TransactionPayload) -> TransactionResponse:
    return create_transaction_event("savings_contribution", payload)


@app.post("/transactions/savings/withdraw", response_model=TransactionResponse)
def create_savings_withdrawal(payload: TransactionPayload) -> TransactionResponse:
    return create_transaction_event("savings_withdrawal", payload)


@app.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: int) -> dict:
    stmt = (
        update(transaction_events)
        .where(
            transaction_events.c.id == transaction_id,
            transaction_events.c.deleted_at.is_(None),
        )
        .values(deleted_at=utc_now())
    )
    with engine.begin() as conn:
        result = conn.execute(stmt)
        if result.rowcount == 0:
            raise HTTPException(status_code=404, detail="Transaction not found.")
    logger.info("Soft-deleted transaction %s", transaction_id)
    return {"status": "deleted"}


@app.put("/budgets", response_model=BudgetResponse)
def upsert_budget(payload: BudgetPayload) -> BudgetResponse:
    try:
        payload = BudgetPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        ensure_exists(conn, categories, payload.category_id, "Category")
        existing_id = conn.execute(
            select(budgets.c.id).where(
                budgets.c.month == payload.month,
                budgets.c.category_id == payload.category_id,
            )
        ).scalar_one_or_none()
        if existing_id is None:
            budget_id = conn.execute(
                insert(budgets)
                .values(month=payload.month, category_id=payload.category_id, amount_idr=payload.amount_idr)
                .returning(budgets.c.id)
            ).scalar_one()
        else:
            conn.execute(
                update(budgets)
                .where(budgets.c.id == existing_id)
                .values(amount_idr=payload.amount_idr, archived=False)
            )
            budget_id = existing_id
        return fetch_budget_or_404(conn, budget_id)


@app.get("/budgets", response_model=list[BudgetResponse])
def list_budgets(month: str = Query(...)) -> list[BudgetResponse]:
    try:
        month = parse_month(month).strftime("%Y-%m")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        rows = fetch_budget_rows(conn, budgets.c.month == month)
    return [build_budget_response(row) for row in rows]


@app.get("/budgets/months", response_model=list[BudgetMonthResponse])
def list_budget_months() -> list[BudgetMonthResponse]:
    with engine.begin() as conn:
        rows = conn.execute(
            select(budgets.c.month, func.count().label("budget_count"))
            .group_by(budgets.c.month)
            .order_by(budgets.c.month.desc())
        ).all()
    return [
        BudgetMonthResponse(value=month, label=month_label(month), budget_count=budget_count)
        for month, budget_count in rows
    ]


@app.post("/budgets/copy", response_model=BudgetCopyResponse)
def copy_budgets(payload: BudgetCopyPayload) -> BudgetCopyResponse:
    try:
        payload = BudgetCopyPayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        source = {
            row["category_id"]: build_budget_response(row)
            for row in fetch_budget_rows(conn, budgets.c.month == payload.from_month)
        }
        existing = {
            row["category_id"]: build_budget_response(row)
            for row in fetch_budget_rows(conn, budgets.c.month == payload.to_month)
        }
        try:
            plan = plan_budget_copy(
                [
                    BudgetLine(category_id=item.category_id, amount=Decimal(item.amount_idr))
                    for item in source.values()
                ],
                existing,
                payload.from_month,
                payload.to_month,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        created_ids = []
        for line in plan.to_create:
            created_ids.append(
                conn.execute(
                    insert(budgets)
                    .values(month=payload.to_month, category_id=line.category_id, amount_idr=int(line.amount))
                    .returning(budgets.c.id)
                ).scalar_one()
            )
        created = [fetch_budget_or_404(conn, budget_id) for budget_id in created_ids]

    logger.info(
        "Copied %s budgets from %s to %s (%s skipped)",
        len(created),
        payload.from_month,
        payload.to_month,
        len(plan.skipped),
    )
    return BudgetCopyResponse(
        created=created,
        skipped=[existing[line.category_id] for line in plan.skipped],
    )


@app.get("/budgets/{budget_id}", response_model=BudgetResponse)
def get_budget(budget_id: int) -> BudgetResponse:
    with engine.begin() as conn:
        return fetch_budget_or_404(conn, budget_id)


@app.patch("/budgets/{budget_id}", response_model=BudgetResponse)
def update_budget(budget_id: int, payload: BudgetUpdatePayload) -> BudgetResponse:
    try:
        payload = BudgetUpdatePayload.validate_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    update_row(budgets, budget_id, "Budget", {"amount_idr": payload.amount_idr})
    return get_budget(budget_id)


@app.patch("/budgets/{budget_id}/archive", response_model=BudgetResponse)
def archive_budget(budget_id: int, payload: BudgetArchivePayload | None = None) -> BudgetResponse:
    try:
        payload = BudgetArchivePayload.validate_payload(payload or BudgetArchivePayload())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    set_archived(budgets, budget_id, "Budget", payload.action == "archive")
    return get_budget(budget_id)


@app.delete("/budgets/{budget_id}")
def delete_budget(budget_id: int) -> dict:
    delete_unused_row(budgets, budget_id, "Budget", [])
    return {"status": "deleted"}


@app.get("/reports/spending-trend", response_model=list[TimeSeriesResponse])
def spending_trend(
    period: str = Query("monthly"),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
) -> list[TimeSeriesResponse]:
    try:
        period = normalize_period(period)
        start, end = resolve_report_range(from_, to, period=period)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        rows = fetch_expense_rows(conn, start, end)

    totals = aggregate_by_period(
        [TimePoint(occurred_at=row["occurred_at"], amount=abs(row["amount_idr"])) for row in rows],
        period,
    )
    series = fill_missing_buckets(
        DateRange(start, end),
        period,
        [TimeSeriesPoint(bucket=item.bucket, value=item.total) for item in totals],
    )
    return [TimeSeriesResponse(bucket=point.bucket, value=int(point.value)) for point in series]


def load_category_periods(
    period: str,
    from_value: str | None,
    to_value: str | None,
    limit: int | None,
) -> list[CategorySpendingPeriod]:
    try:
        period = normalize_period(period)
        start, end = resolve_report_range(from_value, to_value, period=period)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        rows = fetch_expense_rows(conn, start, end)

    periods = fill_spending_buckets(build_category_periods(rows, period), DateRange(start, end), period)
    if limit:
        periods = limit_categories(periods, limit)
    return periods


@app.get("/reports/category-trend", response_model=list[GroupedTimeSeriesResponse])
def category_trend(
    period: str = Query("monthly"),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
) -> list[GroupedTimeSeriesResponse]:
    periods = load_category_periods(period, from_, to, limit)
    return [
        GroupedTimeSeriesResponse(
            bucket=item.period,
            groups={category.category_name: int(category.amount) for category in item.categories},
        )
        for item in periods
    ]


@app.get("/reports/category-trend/chart", response_model=CategoryChartResponse)
def category_trend_chart(
    period: str = Query("monthly"),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    limit: int | None = Query(None, ge=1),
) -> CategoryChartResponse:
    periods = load_category_periods(period, from_, to, limit)
    return CategoryChartResponse(
        categories=[
            CategoryTotalResponse(id=item.id, name=item.name, total=int(item.total))
            for item in extract_categories(periods)
        ],
        points=[
            {key: value if key == "bucket" else int(value) for key, value in point.items()}
            for point in transform_spending_data(periods)
        ],
    )


@app.get("/reports/category-breakdown", response_model=list[CategoryBreakdownResponse])
def category_breakdown(
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
) -> list[CategoryBreakdownResponse]:
    try:
        start, end = resolve_report_range(from_, to, default_preset="thisMonth")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        rows = fetch_expense_rows(conn, start, end)

    totals: dict[str, CategoryAmount] = {}
    for row in rows:
        name = row["category_name"]
        current = totals.get(name)
        amount = Decimal(abs(row["amount_idr"])) + (current.amount if current else Decimal("0"))
        totals[name] = CategoryAmount(category_id=row["category_id"], category_name=name, amount=amount)

    shares = prepare_category_breakdown(build_category_shares(totals.values()))
    return [
        CategoryBreakdownResponse(
            category_id=share.category_id,
            category_name=share.category_name,
            amount=int(share.amount),
            percentage=float(share.percentage),
        )
        for share in shares
    ]


@app.get("/reports/net-worth-trend", response_model=list[NetWorthPointResponse])
def net_worth_trend(
    period: str = Query("monthly"),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
) -> list[NetWorthPointResponse]:
    try:
        period = normalize_period(period)
        start, end = resolve_report_range(from_, to, period=period)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        opening_wallets = sum(fetch_balances(conn, postings.c.wallet_id, before=start).values())
        opening_savings = sum(
            fetch_balances(conn, postings.c.savings_bucket_id, before=start).values()
        )
        rows = conn.execute(
            select(
                transaction_events.c.occurred_at,
                postings.c.amount_idr,
                postings.c.wallet_id,
            )
            .select_from(postings.join(transaction_events, postings.c.event_id == transaction_events.c.id))
            .where(
                transaction_events.c.deleted_at.is_(None),
                transaction_events.c.occurred_at >= start,
                transaction_events.c.occurred_at <= end,
            )
        ).mappings().all()

    grouped = aggregate_by_period_and_group(
        [
            TimePoint(
                occurred_at=row["occurred_at"],
                amount=row["amount_idr"],
                group="wallets" if row["wallet_id"] is not None else "savings",
            )
            for row in rows
        ],
        period,
        lambda record: record.group,
    )
    series = fill_missing_buckets(
        DateRange(start, end),
        period,
        [TimeSeriesPoint(bucket=item.bucket, value=item.groups) for item in grouped],
        default_value=None,
    )

    running_wallets = Decimal(opening_wallets)
    running_savings = Decimal(opening_savings)
    points: list[NetWorthPointResponse] = []
    for point in series:
        changes = point.value or {}
        running_wallets += changes.get("wallets", Decimal("0"))
        running_savings += changes.get("savings", Decimal("0"))
        points.append(
            NetWorthPointResponse(
                bucket=point.bucket,
                wallets=int(running_wallets),
                savings=int(running_savings),
                total=int(running_wallets + running_savings),
            )
        )
    return points


@app.get("/reports/money-left-to-spend", response_model=MoneyLeftToSpendResponse)
def money_left_to_spend(month: str | None = Query(None)) -> MoneyLeftToSpendResponse:
    today = utc_now().date()
    try:
        month_start = parse_month(month) if month else today.replace(day=1)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    month_key = month_start.strftime("%Y-%m")
    next_month = (month_start.replace(day=28) + timedelta(days=4)).replace(day=1)

    with engine.begin() as conn:
        budget_rows = conn.execute(
            select(budgets.c.category_id, budgets.c.amount_idr, categories.c.name)
            .select_from(budgets.join(categories, categories.c.id == budgets.c.category_id))
            .where(budgets.c.month == month_key, budgets.c.archived.is_(False))
        ).mappings().all()
        expense_rows = fetch_expense_rows(
            conn,
            datetime.combine(month_start, datetime.min.time()),
            datetime.combine(next_month, datetime.min.time()) - timedelta(microseconds=1),
        )

    evaluation = evaluate_month_budget(
        [
            BudgetLine(category_id=row["category_id"], amount=Decimal(row["amount_idr"]), category_name=row["name"])
            for row in budget_rows
        ],
        [
            Expense(
                amount=Decimal(abs(row["amount_idr"])),
                date=row["occurred_at"].date(),
                category_id=row["category_id"],
            )
            for row in expense_rows
        ],
        month_key,
        today=today,
    )
    return MoneyLeftToSpendResponse(
        month=evaluation.month,
        total_budget=int(evaluation.total_budget),
        total_spent=int(evaluation.total_spent),
        remaining=int(evaluation.remaining),
        percent_used=float(evaluation.percent_used),
        days_remaining=evaluation.days_remaining,
        average_daily_spending=int(evaluation.average_daily_spending),
        projected_month_end_spending=int(evaluation.projected_month_end_spending),
        budget_variance=int(evaluation.budget_variance),
        categories=[
            CategoryBudgetResponse(
                category_id=item.category_id,
                category_name=item.category_name,
                budgeted=int(item.budgeted),
                spent=int(item.spent),
                remaining=int(item.remaining),
                status=item.status,
            )
            for item in evaluation.categories
        ],
    )


def _kpi_card_response(card: KpiCard) -> KpiCardResponse:
    return KpiCardResponse(
        title=card.title,
        value=int(card.value),
        growth=GrowthResponse(
            value=float(card.growth.value),
            label=card.growth.label,
            is_positive=card.growth.is_positive,
            is_negative=card.growth.is_negative,
            is_neutral=card.growth.is_neutral,
        ),
        period=card.period,
    )


@app.get("/dashboard/summary", response_model=DashboardSummaryResponse)
def dashboard_summary(preset: str = Query("thisMonth")) -> DashboardSummaryResponse:
    now = utc_now()
    try:
        preset = normalize_preset(preset)
        current = resolve_date_range(preset, now=now)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    span = current.end - current.start
    previous_end = current.start - timedelta(microseconds=1)
    previous_start = previous_end - span

    with engine.begin() as conn:
        wallet_names = dict(conn.execute(select(wallets.c.id, wallets.c.name)).all())
        bucket_names = dict(conn.execute(select(savings_buckets.c.id, savings_buckets.c.name)).all())

        def balances(table_names: dict, column, cutoff: datetime) -> list[Balance]:
            amounts = fetch_balances(conn, column, cutoff)
            return [
                Balance(id=row_id, name=name, balance=Decimal(amounts.get(row_id, 0)))
                for row_id, name in table_names.items()
            ]

        summary = compute_kpi_summary(
            KpiSummaryInput(
                current_wallets=balances(wallet_names, postings.c.wallet_id, current.end),
                current_savings=balances(bucket_names, postings.c.savings_bucket_id, current.end),
                previous_wallets=balances(wallet_names, postings.c.wallet_id, previous_end),
                previous_savings=balances(bucket_names, postings.c.savings_bucket_id, previous_end),
                current_budget=sum_budget_for_month(conn, current.end.strftime("%Y-%m")),
                previous_budget=sum_budget_for_month(conn, previous_end.strftime("%Y-%m")),
                current_spending=sum_expenses(conn, current.start, current.end),
                previous_spending=sum_expenses(conn, previous_start, previous_end),
                period_label=PRESET_LABELS[preset],
            )
        )

    return DashboardSummaryResponse(
        preset=preset,
        range_label=describe_date_range(preset, now=now),
        net_worth=_kpi_card_response(summary.net_worth),
        money_left_to_spend=_kpi_card_response(summary.money_left_to_spend),
        total_spending=_kpi_card_response(summary.total_spending),
        total_savings=_kpi_card_response(summary.total_savings),
    )


@app.get("/export/transactions")
def export_transactions_route(
    format: str = Query("csv"),
    from_: str | None = Query(None, alias="from"),
    to: str | None = Query(None),
    include_deleted: bool = Query(False),
) -> Response:
    fmt = parse_export_format(format)
    try:
        range_ = resolve_filter_range(from_, to)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    conditions = [] if include_deleted else [transaction_events.c.deleted_at.is_(None)]
    with engine.begin() as conn:
        rows = conn.execute(
            select(transaction_events, categories.c.name.label("category_name"))
            .select_from(
                transaction_events.outerjoin(categories, categories.c.id == transaction_events.c.category_id)
            )
            .where(*conditions)
            .order_by(transaction_events.c.occurred_at.asc(), transaction_events.c.id.asc())
        ).mappings().all()
        if range_ is not None:
            rows = [row for row in rows if is_date_in_range(row["occurred_at"], range_)]
        postings_by_event = fetch_postings_by_event(conn, [row["id"] for row in rows])
        wallet_names = dict(conn.execute(select(wallets.c.id, wallets.c.name)).all())
        bucket_names = dict(conn.execute(select(savings_buckets.c.id, savings_buckets.c.name)).all())

    export_items = []
    for row in rows:
        summary = summarize_postings(row["type"], postings_by_event[row["id"]])
        export_items.append(
            TransactionExportRow(
                id=row["id"],
                occurred_at=row["occurred_at"],
                type=row["type"],
                amount_idr=summary.amount_idr,
                wallet=wallet_names.get(summary.wallet_id),
                to_wallet=wallet_names.get(summary.to_wallet_id),
                savings_bucket=bucket_names.get(summary.savings_bucket_id),
                category=row["category_name"],
                payee=row["payee"],
                note=row["note"],
                deleted_at=row["deleted_at"],
            )
        )

    return export_response(export_transactions(export_items, fmt), fmt, "transactions")


@app.get("/export/wallets")
def export_wallets(format: str = Query("csv")) -> Response:
    fmt = parse_export_format(format)
    items = [WalletExportRow(**wallet.model_dump()) for wallet in list_wallets()]
    return export_response(export_rows(items, WalletExportRow, fmt), fmt, "wallets")


@app.get("/export/categories")
def export_categories(format: str = Query("csv")) -> Response:
    fmt = parse_export_format(format)
    items = [CategoryExportRow(**category.model_dump()) for category in list_categories()]
    return export_response(export_rows(items, CategoryExportRow, fmt), fmt, "categories")


@app.get("/export/savings-buckets")
def export_savings_buckets(format: str = Query("csv")) -> Response:
    fmt = parse_export_format(format)
    items = [SavingsBucketExportRow(**bucket.model_dump()) for bucket in list_savings_buckets()]
    return export_response(export_rows(items, SavingsBucketExportRow, fmt), fmt, "savings-buckets")


@app.get("/export/budgets")
def export_budgets(format: str = Query("csv"), month: str | None = Query(None)) -> Response:
    fmt = parse_export_format(format)
    conditions = []
    if month:
        try:
            conditions.append(budgets.c.month == parse_month(month).strftime("%Y-%m"))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    with engine.begin() as conn:
        rows = fetch_budget_rows(conn, *conditions)
    items = [
        BudgetExportRow(
            id=row["id"],
            month=row["month"],
            category=row["category_name"],
            amount_idr=int(row["amount_idr"]),
            archived=row["archived"],
        )
        for row in rows
    ]
    return export_response(export_rows(items, BudgetExportRow, fmt), fmt, "budgets")
