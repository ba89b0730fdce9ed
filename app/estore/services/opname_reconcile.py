"""Finalize: write counted quantities back to the master inventory.

The status transition, every master quantity update, every history entry and
every ``reconciled_at`` stamp share one transaction. Either the session ends up
COMPLETED with all variances applied, or nothing changes and the session is
still OPEN. ``stock_history.opname_item_id`` is unique, so a line can never be
audited twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.estore.core.config import settings
from app.estore.core.error_catalog import AppError, ErrorCatalog
from app.estore.core.metrics import metrics
from app.estore.db.models import OPNAME_STATUS_OPEN, OpnameSession, StockHistory
from app.estore.repos.opname import OpnameRepository
from app.estore.repos.stock import StockRepository
from app.estore.services.opname_sessions import get_session

logger = logging.getLogger(__name__)

RECONCILE_ACTION = "RECONCILE"


@dataclass(frozen=True)
class ReconciledLine:
    line_id: str
    material_no: str
    sloc: str
    system_qty: float
    physical_qty: float


@dataclass
class FinalizeResult:
    session: OpnameSession
    total: int
    counted: int
    matched: int
    reconciled: list[ReconciledLine] = field(default_factory=list)
    missing: list[ReconciledLine] = field(default_factory=list)

    @property
    def uncounted(self) -> int:
        return self.total - self.counted


def format_qty(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def reconcile_details(system_qty: float, physical_qty: float) -> str:
    return f"System: {format_qty(system_qty)} -> Physical: {format_qty(physical_qty)}"


def _not_open(session_id, status: str | None = None) -> AppError:
    details = {"session_id": str(session_id)}
    if status is not None:
        details["status"] = status
    return AppError(ErrorCatalog.OPNAME_SESSION_NOT_OPEN, details=details)


def finalize_session(db, session_id, *, actor: str | None = None) -> FinalizeResult:
    repo = OpnameRepository(db)
    stock_repo = StockRepository(db)

    session = get_session(db, session_id, for_update=True)
    if session.status != OPNAME_STATUS_OPEN:
        status = session.status
        db.rollback()
        metrics.record_opname_finalize(result="rejected")
        raise _not_open(session_id, status)

    now = datetime.utcnow()
    reconciled: list[ReconciledLine] = []
    missing: list[ReconciledLine] = []
    try:
        if repo.complete_session(session.id, closed_at=now) == 0:
            db.rollback()
            metrics.record_opname_finalize(result="rejected")
            raise _not_open(session_id)

        for line in repo.list_unreconciled_variances(session.id):
            entry = ReconciledLine(
                line_id=str(line.id),
                material_no=line.material_no,
                sloc=line.sloc,
                system_qty=line.system_qty,
                physical_qty=line.physical_qty,
            )
            updated = stock_repo.set_quantity(
                line.material_no,
                line.sloc,
                quantity=line.physical_qty,
                updated_at=now,
            )
            if updated == 0:
                logger.warning(
                    "Master item %s/%s not found while finalizing session %s",
                    line.material_no,
                    line.sloc,
                    session.id,
                )
                missing.append(entry)
                continue
            stock_repo.append_history(
                StockHistory(
                    material_no=line.material_no,
                    sloc=line.sloc,
                    user_name=settings.OPNAME_RECONCILE_USER_NAME,
                    action=RECONCILE_ACTION,
                    details=reconcile_details(line.system_qty, line.physical_qty),
                    opname_session_id=session.id,
                    opname_item_id=line.id,
                    created_at=now,
                )
            )
            repo.mark_reconciled(line.id, reconciled_at=now)
            reconciled.append(entry)

        total, counted, variance = repo.aggregate_counts(session.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        metrics.record_opname_finalize(result="rejected")
        raise _not_open(session_id)
    except SQLAlchemyError:
        db.rollback()
        metrics.record_opname_finalize(result="failed")
        logger.exception("Finalize of opname session %s failed, nothing was applied", session_id)
        raise

    db.refresh(session)
    metrics.record_opname_finalize(result="success", reconciled=len(reconciled))
    logger.info(
        "Opname session %s finalized by %s: %s counted, %s reconciled, %s missing master items",
        session.id,
        actor or "-",
        counted,
        len(reconciled),
        len(missing),
    )
    return FinalizeResult(
        session=session,
        total=total,
        counted=counted,
        matched=counted - variance,
        reconciled=reconciled,
        missing=missing,
    )
