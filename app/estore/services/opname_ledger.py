from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import SQLAlchemyError

from app.estore.core.config import settings
from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.db.models import OpnameItem
from app.estore.repos.opname import OpnameItemFilters, OpnameRepository
from app.estore.services.opname_sessions import get_session

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("ALL", "COUNTED", "UNCOUNTED")


@dataclass
class LedgerPage:
    items: list[OpnameItem]
    total: int
    page: int
    page_size: int


def _invalid_qty(value: object) -> AppError:
    return AppError(
        ErrorCatalog.VALIDATION_ERROR,
        details={"message": "physical_qty must be a finite, non-negative number", "physical_qty": str(value)},
    )


def parse_physical_qty(value: object) -> float:
    """Coerce a user-entered count to a float, rejecting anything non-numeric."""
    if value is None or isinstance(value, bool):
        raise _invalid_qty(value)
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (InvalidOperation, OverflowError, ValueError) as exc:
            raise _invalid_qty(value) from exc
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError as exc:
            raise _invalid_qty(value) from exc
    else:
        raise _invalid_qty(value)
    if not math.isfinite(number) or number < 0:
        raise _invalid_qty(value)
    return number


def _validate_paging(page: int, page_size: int, status_filter: str) -> None:
    if page < 1:
        raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "page must be >= 1", "page": page})
    if page_size < 1 or page_size > settings.OPNAME_PAGE_SIZE_MAX:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={
                "message": f"page_size must be between 1 and {settings.OPNAME_PAGE_SIZE_MAX}",
                "page_size": page_size,
            },
        )
    if status_filter not in STATUS_FILTERS:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "status must be one of ALL, COUNTED, UNCOUNTED", "status": status_filter},
        )


def fetch_page(
    db,
    session_id,
    *,
    page: int = 1,
    page_size: int | None = None,
    search_term: str | None = None,
    status_filter: str = "ALL",
) -> LedgerPage:
    size = page_size if page_size is not None else settings.OPNAME_PAGE_SIZE_DEFAULT
    status_value = (status_filter or "ALL").upper()
    _validate_paging(page, size, status_value)
    get_session(db, session_id)
    filters = OpnameItemFilters(session_id=session_id, q=search_term, status=status_value)
    items, total = OpnameRepository(db).list_items(filters, page=page, page_size=size)
    return LedgerPage(items=items, total=total, page=page, page_size=size)


def fetch_all(db, session_id) -> list[OpnameItem]:
    get_session(db, session_id)
    return OpnameRepository(db).list_all_items(session_id)


def record_count(db, line_id, physical_qty: object) -> OpnameItem:
    """Store a physical count for one line of an OPEN session.

    The write is a single conditional UPDATE keyed by ``line_id``; the line is
    only read back afterwards to return the confirmed state. Concurrent writes
    to the same line are last-write-wins.
    """
    qty = parse_physical_qty(physical_qty)
    repo = OpnameRepository(db)
    try:
        updated = repo.record_count(line_id, physical_qty=qty, counted_at=datetime.utcnow())
        if updated == 0:
            db.rollback()
            if not repo.item_exists(line_id):
                raise AppError(ErrorCatalog.OPNAME_LINE_NOT_FOUND, details={"line_id": str(line_id)})
            raise AppError(ErrorCatalog.OPNAME_SESSION_NOT_OPEN, details={"line_id": str(line_id)})
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to record count for opname line %s", line_id)
        raise
    return repo.get_item(line_id)
