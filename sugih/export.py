from __future__ import annotations

import csv
import io
import json
from datetime import datetime
from typing import Iterable, Type

from pydantic import BaseModel

EXPORT_FORMATS = {"csv", "json"}
CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


class TransactionExportRow(BaseModel):
    id: int
    occurred_at: datetime
    type: str
    amount_idr: int
    wallet: str | None = None
    to_wallet: str | None = None
    savings_bucket: str | None = None
    category: str | None = None
    payee: str | None = None
    note: str | None = None
    deleted_at: datetime | None = None


class WalletExportRow(BaseModel):
    id: int
    name: str
    type: str
    currency: str
    archived: bool
    balance_idr: int


class CategoryExportRow(BaseModel):
    id: int
    name: str
    archived: bool


class SavingsBucketExportRow(BaseModel):
    id: int
    name: str
    description: str | None = None
    archived: bool
    balance_idr: int


class BudgetExportRow(BaseModel):
    id: int
    month: str
    category: str
    amount_idr: int
    archived: bool


EXPORT_COLUMNS = list(TransactionExportRow.model_fields)


def normalize_export_format(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in EXPORT_FORMATS:
        raise ValueError("Invalid export format. Use csv or json.")
    return normalized


def export_rows(rows: Iterable[BaseModel], model: Type[BaseModel], fmt: str) -> str:
    """Serialize ``rows`` as CSV or JSON; CSV columns follow ``model``'s field order."""
    normalized = normalize_export_format(fmt)
    payload = [row.model_dump(mode="json") for row in rows]
    if normalized == "json":
        return json.dumps(payload, ensure_ascii=False)

    columns = list(model.model_fields)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for item in payload:
        writer.writerow({column: "" if item[column] is None else item[column] for column in columns})
    return buffer.getvalue()


def export_transactions(rows: Iterable[TransactionExportRow], fmt: str) -> str:
    return export_rows(rows, TransactionExportRow, fmt)
