import csv
import io
import uuid
from datetime import date

from openpyxl import load_workbook

from app.estore.core.error_catalog import ErrorCatalog
from app.estore.services.opname_export import EXPORT_COLUMNS, SHEET_TITLE, build_export_filename
from tests.opname_helpers import auth_headers, count_line, create_session, lines_by_material, seed_stock


def _export(client, session_id, fmt=None):
    params = {"format": fmt} if fmt else None
    return client.get(f"/estore/opname/sessions/{session_id}/export", headers=auth_headers(), params=params)


def test_xlsx_export_round_trip(client, db_session):
    seed_stock(db_session)
    created = create_session(client, "Q1 Audit").json()
    lines = lines_by_material(db_session, created["id"])
    count_line(client, str(lines["MAT-001"].id), 10)
    count_line(client, str(lines["MAT-002"].id), 18.5)

    response = _export(client, created["id"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    today = date.today().isoformat()
    assert f'filename="Opname_Result_Q1_Audit_{today}.xlsx"' in response.headers["content-disposition"]

    workbook = load_workbook(io.BytesIO(response.content))
    sheet = workbook[SHEET_TITLE]
    rows = list(sheet.iter_rows(values_only=True))
    assert list(rows[0]) == EXPORT_COLUMNS
    assert len(rows) - 1 == created["total_items"]

    by_material = {row[0]: row for row in rows[1:]}
    assert by_material["MAT-001"] == ("MAT-001", "Bolt M8", "WH01", 10, 10, 0, "Counted", "Match")
    assert by_material["MAT-002"] == ("MAT-002", "Nut M8", "WH01", 20, 18.5, -1.5, "Counted", "Diff")
    assert by_material["MAT-003"] == ("MAT-003", "Washer M8", "WH02", 5, 0, -5, "Pending", "Diff")


def test_csv_export(client, db_session):
    seed_stock(db_session)
    created = create_session(client, "Q1 Audit").json()

    response = _export(client, created["id"], "csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"].endswith('.csv"')

    reader = csv.DictReader(io.StringIO(response.content.decode("utf-8")))
    assert reader.fieldnames == EXPORT_COLUMNS
    rows = list(reader)
    assert len(rows) == 3
    assert {row["Status"] for row in rows} == {"Pending"}


def test_export_of_empty_session_is_rejected(client):
    created = create_session(client, "Nothing here").json()
    response = _export(client, created["id"])
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.NOTHING_TO_EXPORT.code


def test_export_unknown_session(client):
    response = _export(client, str(uuid.uuid4()))
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.OPNAME_SESSION_NOT_FOUND.code


def test_export_rejects_unknown_format(client, db_session):
    seed_stock(db_session)
    created = create_session(client).json()
    assert _export(client, created["id"], "pdf").status_code == 422


def test_export_filename():
    day = date(2024, 3, 9)
    assert build_export_filename("Q1 Audit", "xlsx", day) == "Opname_Result_Q1_Audit_2024-03-09.xlsx"
    assert build_export_filename("  Gudang / Rak 3 ", "csv", day) == "Opname_Result_Gudang__Rak_3_2024-03-09.csv"
    assert build_export_filename("???", "xlsx", day) == "Opname_Result_session_2024-03-09.xlsx"
