import uuid
from decimal import Decimal

import pytest

from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.db.models import AuditEvent
from app.estore.services.opname_ledger import fetch_page, parse_physical_qty
from tests.opname_helpers import auth_headers, count_line, create_session, finalize, lines_by_material, seed_stock

FIVE_LINES = [
    ("MAT-A", "WH01", "Anchor bolt", 4),
    ("MAT-B", "WH01", "Bearing 6204", 8),
    ("MAT-C", "WH02", "Cable tie 100%", 12),
    ("MAT-D", "WH02", "Drill bit 6mm", 3),
    ("MAT-E", "WH03", "Epoxy glue", 7),
]


def _items(client, session_id, **params):
    return client.get(f"/estore/opname/sessions/{session_id}/items", headers=auth_headers(), params=params)


def test_record_count_marks_line_counted(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line = lines_by_material(db_session, session_id)["MAT-002"]

    response = count_line(client, str(line.id), "25")
    assert response.status_code == 200
    row = response.json()
    assert row["physical_qty"] == 25
    assert row["is_counted"] is True
    assert row["variance"] == 5
    assert row["match_status"] == "Diff"
    assert row["counted_at"] is not None

    audit = db_session.query(AuditEvent).filter(AuditEvent.entity_id == str(line.id)).one()
    assert audit.action == "opname_item.count"


def test_zero_count_is_a_real_count(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line = lines_by_material(db_session, session_id)["MAT-003"]

    response = count_line(client, str(line.id), 0)
    assert response.status_code == 200
    assert response.json()["is_counted"] is True
    assert response.json()["variance"] == -5


def test_non_numeric_count_leaves_line_untouched(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line = lines_by_material(db_session, session_id)["MAT-001"]

    response = count_line(client, str(line.id), "abc")
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code

    line = lines_by_material(db_session, session_id)["MAT-001"]
    assert line.is_counted is False
    assert line.physical_qty == 0
    assert line.counted_at is None


@pytest.mark.parametrize("value", [True, False])
def test_boolean_count_is_rejected_before_any_write(client, db_session, value):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line = lines_by_material(db_session, session_id)["MAT-001"]

    response = count_line(client, str(line.id), value)
    assert response.status_code == 422
    assert response.json()["code"] == ErrorCatalog.VALIDATION_ERROR.code

    line = lines_by_material(db_session, session_id)["MAT-001"]
    assert line.is_counted is False
    assert line.physical_qty == 0
    assert line.counted_at is None


@pytest.mark.parametrize("value", ["-1", -0.5, "nan", "inf", "", None, True, Decimal("sNaN"), Decimal("-Infinity")])
def test_parse_physical_qty_rejects(value):
    with pytest.raises(AppError) as exc_info:
        parse_physical_qty(value)
    assert exc_info.value.error.code == ErrorCatalog.VALIDATION_ERROR.code


def test_parse_physical_qty_accepts_numbers():
    assert parse_physical_qty("12") == 12.0
    assert parse_physical_qty(" 2.5 ") == 2.5
    assert parse_physical_qty(0) == 0.0


def test_count_on_completed_session_is_rejected(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line = lines_by_material(db_session, session_id)["MAT-001"]
    assert finalize(client, session_id).status_code == 200

    response = count_line(client, str(line.id), 99)
    assert response.status_code == 409
    assert response.json()["code"] == ErrorCatalog.OPNAME_SESSION_NOT_OPEN.code
    assert lines_by_material(db_session, session_id)["MAT-001"].is_counted is False


def test_count_unknown_line_returns_404(client):
    response = count_line(client, str(uuid.uuid4()), 3)
    assert response.status_code == 404
    assert response.json()["code"] == ErrorCatalog.OPNAME_LINE_NOT_FOUND.code


def test_uncounted_filter_returns_only_uncounted_lines(client, db_session):
    seed_stock(db_session, FIVE_LINES)
    session_id = create_session(client).json()["id"]
    lines = lines_by_material(db_session, session_id)
    count_line(client, str(lines["MAT-A"].id), 4)
    count_line(client, str(lines["MAT-D"].id), 1)

    response = _items(client, session_id, status="UNCOUNTED")
    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 3
    assert [row["material_no"] for row in payload["rows"]] == ["MAT-B", "MAT-C", "MAT-E"]
    assert all(row["is_counted"] is False for row in payload["rows"])

    counted = _items(client, session_id, status="COUNTED").json()
    assert counted["total"] == 2


def test_rows_are_ordered_by_description(client, db_session):
    seed_stock(db_session, list(reversed(FIVE_LINES)))
    session_id = create_session(client).json()["id"]

    payload = _items(client, session_id).json()
    assert [row["material_desc"] for row in payload["rows"]] == [
        "Anchor bolt",
        "Bearing 6204",
        "Cable tie 100%",
        "Drill bit 6mm",
        "Epoxy glue",
    ]
    assert payload["meta"] == {"page": 1, "page_size": 20, "q": None, "status": "ALL"}


def test_search_matches_description_or_material_number(client, db_session):
    seed_stock(db_session, FIVE_LINES)
    session_id = create_session(client).json()["id"]

    by_desc = _items(client, session_id, q="bear").json()
    assert [row["material_no"] for row in by_desc["rows"]] == ["MAT-B"]

    by_number = _items(client, session_id, q="mat-e").json()
    assert [row["material_no"] for row in by_number["rows"]] == ["MAT-E"]

    # LIKE wildcards in the term are matched literally.
    literal = _items(client, session_id, q="100%").json()
    assert [row["material_no"] for row in literal["rows"]] == ["MAT-C"]

    none = _items(client, session_id, q="zzz").json()
    assert none["rows"] == []
    assert none["total"] == 0


def test_paging_keeps_filtered_total(client, db_session):
    seed_stock(db_session, FIVE_LINES)
    session_id = create_session(client).json()["id"]

    first = _items(client, session_id, page=1, page_size=2).json()
    second = _items(client, session_id, page=2, page_size=2).json()
    last = _items(client, session_id, page=3, page_size=2).json()
    beyond = _items(client, session_id, page=4, page_size=2).json()

    assert first["total"] == second["total"] == last["total"] == 5
    assert [row["material_no"] for row in first["rows"]] == ["MAT-A", "MAT-B"]
    assert [row["material_no"] for row in second["rows"]] == ["MAT-C", "MAT-D"]
    assert [row["material_no"] for row in last["rows"]] == ["MAT-E"]
    assert beyond["rows"] == []


def test_page_size_above_limit_is_rejected(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]

    response = _items(client, session_id, page_size=10_000)
    assert response.status_code == 422

    response = _items(client, session_id, status="MAYBE")
    assert response.status_code == 422


def test_fetch_page_for_unknown_session(client, db_session):
    with pytest.raises(AppError) as exc_info:
        fetch_page(db_session, uuid.uuid4())
    assert exc_info.value.error.code == ErrorCatalog.OPNAME_SESSION_NOT_FOUND.code


def test_fetch_page_rejects_zero_page_size(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]

    with pytest.raises(AppError) as exc_info:
        fetch_page(db_session, uuid.UUID(session_id), page_size=0)
    assert exc_info.value.error.code == ErrorCatalog.VALIDATION_ERROR.code
