from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal

from openpyxl import Workbook

from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.services.opname_ledger import fetch_all
from app.estore.services.opname_sessions import get_session
from app.estore.services.opname_stats import classify_line, line_variance

ExportFormat = Literal["xlsx", "csv"]

EXPORT_COLUMNS = [
    "Material No",
    "Description",
    "Storage Location",
    "System Qty",
    "Physical Qty",
    "Variance",
    "Status",
    "Match Status",
]
SHEET_TITLE = "Stock Opname Results"
CONTENT_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


@dataclass
class ExportDocument:
    file_name: str
    content_type: str
    content: bytes
    row_count: int


def _cell_number(value: float) -> int | float:
    number = float(value)
    return int(number) if number.is_integer() else number


def build_export_rows(lines: Iterable) -> list[dict[str, object]]:
    rows = []
    for line in lines:
        rows.append(
            {
                "Material No": line.material_no,
                "Description": line.material_desc or "",
                "Storage Location": line.sloc,
                "System Qty": _cell_number(line.system_qty),
                "Physical Qty": _cell_number(line.physical_qty),
                "Variance": _cell_number(line_variance(line)),
                "Status": "Counted" if line.is_counted else "Pending",
                "Match Status": classify_line(line),
            }
        )
    return rows


def build_export_filename(title: str, fmt: ExportFormat, today: date | None = None) -> str:
    stamp = (today or date.today()).isoformat()
    slug = re.sub(r"\s+", "_", (title or "").strip())
    slug = re.sub(r"[^A-Za-z0-9._-]+", "", slug).strip("._-") or "session"
    return f"Opname_Result_{slug}_{stamp}.{fmt}"


def render_xlsx(rows: list[dict[str, object]]) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = SHEET_TITLE
    worksheet.append(EXPORT_COLUMNS)
    for row in rows:
        worksheet.append([row[column] for column in EXPORT_COLUMNS])
    for index, column in enumerate(EXPORT_COLUMNS, start=1):
        letter = worksheet.cell(row=1, column=index).column_letter
        worksheet.column_dimensions[letter].width = max(len(column), 15)
    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()


def render_csv(rows: list[dict[str, object]]) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def render(rows: list[dict[str, object]], fmt: ExportFormat) -> bytes:
    if fmt == "xlsx":
        return render_xlsx(rows)
    if fmt == "csv":
        return render_csv(rows)
    raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "format must be xlsx or csv", "format": fmt})


def export_session(db, session_id, *, fmt: ExportFormat = "xlsx", today: date | None = None) -> ExportDocument:
    session = get_session(db, session_id)
    lines = fetch_all(db, session_id)
    if not lines:
        raise AppError(ErrorCatalog.NOTHING_TO_EXPORT, details={"session_id": str(session_id)})
    rows = build_export_rows(lines)
    content = render(rows, fmt)
    return ExportDocument(
        file_name=build_export_filename(session.title, fmt, today),
        content_type=CONTENT_TYPES[fmt],
        content=content,
        row_count=len(rows),
    )
