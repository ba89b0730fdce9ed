import pytest
from sqlalchemy.exc import OperationalError

from app.estore.db.models import OpnameItem, OpnameSession
from app.estore.repos.opname import OpnameRepository
from app.estore.services import opname_sessions, opname_snapshot
from tests.opname_helpers import seed_stock

SEVEN_ROWS = [(f"MAT-{index:03d}", "WH01", f"Item {index}", index) for index in range(1, 8)]


def test_iter_chunks_covers_every_row():
    rows = [{"n": index} for index in range(7)]
    chunks = list(opname_snapshot.iter_chunks(rows, 3))
    assert [len(chunk) for chunk in chunks] == [3, 3, 1]
    assert [row for chunk in chunks for row in chunk] == rows
    assert list(opname_snapshot.iter_chunks([], 3)) == []


def test_iter_chunks_rejects_zero_size():
    with pytest.raises(ValueError):
        list(opname_snapshot.iter_chunks([{"n": 1}], 0))


def test_snapshot_in_small_chunks_stores_every_row(client, db_session):
    seed_stock(db_session, SEVEN_ROWS)
    session = OpnameSession(title="Chunked", creator="tester", status="OPEN", total_items=0)
    db_session.add(session)
    db_session.flush()

    stored = opname_snapshot.build_snapshot(db_session, session, chunk_size=3)
    db_session.commit()

    assert stored == 7
    assert session.total_items == 7
    assert db_session.query(OpnameItem).filter(OpnameItem.session_id == session.id).count() == 7


def test_failed_chunk_rolls_back_whole_session(client, db_session, monkeypatch):
    seed_stock(db_session, SEVEN_ROWS)
    monkeypatch.setattr(opname_snapshot.settings, "OPNAME_SNAPSHOT_CHUNK_SIZE", 3)
    real_insert = OpnameRepository.insert_items
    calls = {"count": 0}

    def flaky_insert(self, rows):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OperationalError("INSERT INTO opname_items", {}, Exception("disk I/O error"))
        return real_insert(self, rows)

    monkeypatch.setattr(OpnameRepository, "insert_items", flaky_insert)

    with pytest.raises(OperationalError):
        opname_sessions.create_session(db_session, title="Doomed", notes=None, creator="tester")

    assert calls["count"] == 2
    assert db_session.query(OpnameSession).count() == 0
    assert db_session.query(OpnameItem).count() == 0
    assert opname_sessions.has_open_session(db_session) is False
