"""Freezes the master inventory into the line items of a new opname session."""

from __future__ import annotations

import logging

from app.estore.core.config import settings
from app.estore.db.models import OpnameSession
from app.estore.repos.opname import OpnameRepository
from app.estore.repos.stock import StockRepository

logger = logging.getLogger(__name__)


def iter_chunks(rows: list[dict], size: int):
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def build_snapshot(db, session: OpnameSession, *, chunk_size: int | None = None) -> int:
    """Copy every master inventory row into ``session`` as an uncounted line.

    Runs inside the caller's transaction and does not commit. Returns the number
    of line rows stored for the session, which is also written to
    ``session.total_items``.
    """
    size = chunk_size or settings.OPNAME_SNAPSHOT_CHUNK_SIZE
    opname_repo = OpnameRepository(db)
    source = StockRepository(db).list_for_snapshot()
    rows = [
        {
            "session_id": session.id,
            "material_no": item.material_no,
            "sloc": item.sloc,
            "material_desc": item.material_desc,
            "system_qty": float(item.quantity or 0),
            "physical_qty": 0.0,
            "is_counted": False,
        }
        for item in source
    ]
    for chunk_number, chunk in enumerate(iter_chunks(rows, size), start=1):
        opname_repo.insert_items(chunk)
        logger.debug("Inserted snapshot chunk %s (%s rows) for session %s", chunk_number, len(chunk), session.id)

    stored = opname_repo.count_items(session.id)
    if stored != len(rows):
        logger.warning(
            "Snapshot for session %s stored %s of %s source rows",
            session.id,
            stored,
            len(rows),
        )
    session.total_items = stored
    db.flush()
    return stored
