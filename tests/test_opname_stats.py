from types import SimpleNamespace

from app.estore.services.opname_stats import OpnameStats, classify_line, percent
from tests.opname_helpers import auth_headers, count_line, create_session, lines_by_material, seed_stock


def test_empty_session_reports_zero_progress_and_full_accuracy():
    stats = OpnameStats(total=0, counted=0, matched=0, variance=0)
    assert stats.progress_pct == 0
    assert stats.accuracy_pct == 100


def test_nothing_counted_reports_full_accuracy():
    stats = OpnameStats(total=4, counted=0, matched=0, variance=0)
    assert stats.progress_pct == 0
    assert stats.accuracy_pct == 100


def test_percentages_round_half_up():
    assert percent(1, 8) == 13
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    stats = OpnameStats(total=8, counted=1, matched=1, variance=0)
    assert stats.progress_pct == 13
    assert stats.accuracy_pct == 100


def test_classify_line():
    assert classify_line(SimpleNamespace(is_counted=True, physical_qty=5, system_qty=5)) == "Match"
    assert classify_line(SimpleNamespace(is_counted=True, physical_qty=4, system_qty=5)) == "Diff"
    # Uncounted lines are never a match, even when system qty is zero.
    assert classify_line(SimpleNamespace(is_counted=False, physical_qty=0, system_qty=0)) == "Diff"


def test_stats_agree_with_line_classification(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    lines = lines_by_material(db_session, session_id)
    count_line(client, str(lines["MAT-001"].id), 10)
    count_line(client, str(lines["MAT-002"].id), 19)

    stats = client.get(f"/estore/opname/sessions/{session_id}/stats", headers=auth_headers()).json()
    rows = client.get(f"/estore/opname/sessions/{session_id}/items", headers=auth_headers()).json()["rows"]

    counted_rows = [row for row in rows if row["is_counted"]]
    assert stats["total"] == len(rows) == 3
    assert stats["counted"] == len(counted_rows) == 2
    assert stats["matched"] == sum(1 for row in counted_rows if row["match_status"] == "Match") == 1
    assert stats["variance"] == sum(1 for row in counted_rows if row["match_status"] == "Diff") == 1
    assert stats["matched"] + stats["variance"] == stats["counted"]
    assert stats["progress_pct"] == 67
    assert stats["accuracy_pct"] == 50


def test_recount_replaces_previous_count(client, db_session):
    seed_stock(db_session)
    session_id = create_session(client).json()["id"]
    line_id = str(lines_by_material(db_session, session_id)["MAT-001"].id)

    count_line(client, line_id, 3)
    count_line(client, line_id, 10)

    stats = client.get(f"/estore/opname/sessions/{session_id}/stats", headers=auth_headers()).json()
    assert stats["counted"] == 1
    assert stats["matched"] == 1
    assert stats["variance"] == 0
