from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.estore.core.config import settings
from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.core.metrics import metrics
from app.estore.db.models import OPNAME_STATUS_OPEN, OpnameSession
from app.estore.repos.opname import OpnameRepository, StatusFilter
from app.estore.services.opname_snapshot import build_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerViewState:
    """What a presentation layer shows for the selected session."""

    session_id: str
    session_status: str
    editable: bool
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.OPNAME_PAGE_SIZE_DEFAULT)
    search_term: str = ""
    status_filter: StatusFilter = "ALL"


def is_editable(session: OpnameSession) -> bool:
    return session.status == OPNAME_STATUS_OPEN


def list_sessions(db) -> list[OpnameSession]:
    try:
        return OpnameRepository(db).list_sessions()
    except SQLAlchemyError:
        logger.exception("Failed to list opname sessions")
        db.rollback()
        return []


def get_session(db, session_id, *, for_update: bool = False) -> OpnameSession:
    session = OpnameRepository(db).get_session(session_id, for_update=for_update)
    if session is None:
        raise AppError(ErrorCatalog.OPNAME_SESSION_NOT_FOUND, details={"session_id": str(session_id)})
    return session


def has_open_session(db) -> bool:
    return OpnameRepository(db).get_open_session() is not None


def create_session(db, *, title: str | None, notes: str | None, creator: str) -> OpnameSession:
    clean_title = (title or "").strip()
    if not clean_title:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "title is required"})

    repo = OpnameRepository(db)
    existing = repo.get_open_session()
    if existing is not None:
        raise AppError(
            ErrorCatalog.OPNAME_SESSION_ALREADY_OPEN,
            details={"open_session_id": str(existing.id)},
        )

    session = OpnameSession(
        title=clean_title,
        notes=(notes or "").strip() or None,
        creator=creator,
        status=OPNAME_STATUS_OPEN,
        total_items=0,
        created_at=datetime.utcnow(),
    )
    try:
        repo.add_session(session)
    except IntegrityError:
        # Another writer created an OPEN session after our check.
        db.rollback()
        raise AppError(ErrorCatalog.OPNAME_SESSION_ALREADY_OPEN)

    try:
        build_snapshot(db, session)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Snapshot failed, opname session creation rolled back")
        raise

    db.refresh(session)
    metrics.increment_opname_session_created()
    logger.info(
        "Opname session %s created by %s with %s items",
        session.id,
        creator,
        session.total_items,
    )
    return session


def open_session(session: OpnameSession) -> LedgerViewState:
    return LedgerViewState(
        session_id=str(session.id),
        session_status=session.status,
        editable=is_editable(session),
    )
