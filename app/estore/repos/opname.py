from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from sqlalchemy import case, func, insert, or_, select, update

from app.estore.db.models import (
    OPNAME_STATUS_COMPLETED,
    OPNAME_STATUS_OPEN,
    OpnameItem,
    OpnameSession,
)

StatusFilter = Literal["ALL", "COUNTED", "UNCOUNTED"]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class OpnameItemFilters:
    session_id: str
    q: str | None = None
    status: StatusFilter = "ALL"


class OpnameRepository:
    def __init__(self, db):
        self.db = db

    # sessions

    def list_sessions(self) -> list[OpnameSession]:
        query = select(OpnameSession).order_by(OpnameSession.created_at.desc(), OpnameSession.id.desc())
        return self.db.execute(query).scalars().all()

    def get_session(self, session_id, *, for_update: bool = False) -> OpnameSession | None:
        query = select(OpnameSession).where(OpnameSession.id == session_id)
        if for_update:
            query = query.with_for_update()
        return self.db.execute(query).scalars().first()

    def get_open_session(self) -> OpnameSession | None:
        query = select(OpnameSession).where(OpnameSession.status == OPNAME_STATUS_OPEN)
        return self.db.execute(query).scalars().first()

    def add_session(self, session: OpnameSession) -> OpnameSession:
        self.db.add(session)
        self.db.flush()
        return session

    def complete_session(self, session_id, *, closed_at: datetime) -> int:
        stmt = (
            update(OpnameSession)
            .where(OpnameSession.id == session_id, OpnameSession.status == OPNAME_STATUS_OPEN)
            .values(status=OPNAME_STATUS_COMPLETED, closed_at=closed_at)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    # line items

    def insert_items(self, rows: list[dict]) -> None:
        if rows:
            self.db.execute(insert(OpnameItem), rows)

    def count_items(self, session_id) -> int:
        query = select(func.count(OpnameItem.id)).where(OpnameItem.session_id == session_id)
        return int(self.db.execute(query).scalar_one())

    def get_item(self, item_id) -> OpnameItem | None:
        return self.db.execute(select(OpnameItem).where(OpnameItem.id == item_id)).scalars().first()

    def item_exists(self, item_id) -> bool:
        return self.db.execute(select(OpnameItem.id).where(OpnameItem.id == item_id)).first() is not None

    def list_items(
        self,
        filters: OpnameItemFilters,
        *,
        page: int,
        page_size: int,
    ) -> tuple[list[OpnameItem], int]:
        base_query = self._apply_filters(filters)
        total = self.db.execute(select(func.count()).select_from(base_query.subquery())).scalar_one()
        query = self._ordered(base_query).offset((page - 1) * page_size).limit(page_size)
        rows = self.db.execute(query).scalars().all()
        return rows, int(total)

    def list_all_items(self, session_id) -> list[OpnameItem]:
        query = self._ordered(select(OpnameItem).where(OpnameItem.session_id == session_id))
        return self.db.execute(query).scalars().all()

    def record_count(self, item_id, *, physical_qty: float, counted_at: datetime) -> int:
        open_sessions = select(OpnameSession.id).where(OpnameSession.status == OPNAME_STATUS_OPEN)
        stmt = (
            update(OpnameItem)
            .where(OpnameItem.id == item_id, OpnameItem.session_id.in_(open_sessions))
            .values(physical_qty=physical_qty, is_counted=True, counted_at=counted_at)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def list_unreconciled_variances(self, session_id) -> list[OpnameItem]:
        query = self._ordered(
            select(OpnameItem).where(
                OpnameItem.session_id == session_id,
                OpnameItem.is_counted.is_(True),
                OpnameItem.physical_qty != OpnameItem.system_qty,
                OpnameItem.reconciled_at.is_(None),
            )
        )
        return self.db.execute(query).scalars().all()

    def mark_reconciled(self, item_id, *, reconciled_at: datetime) -> None:
        stmt = (
            update(OpnameItem)
            .where(OpnameItem.id == item_id)
            .values(reconciled_at=reconciled_at)
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)

    def aggregate_counts(self, session_id) -> tuple[int, int, int]:
        counted_expr = func.coalesce(
            func.sum(case((OpnameItem.is_counted.is_(True), 1), else_=0)),
            0,
        )
        variance_expr = func.coalesce(
            func.sum(
                case(
                    (OpnameItem.is_counted.is_(True) & (OpnameItem.physical_qty != OpnameItem.system_qty), 1),
                    else_=0,
                )
            ),
            0,
        )
        query = select(func.count(OpnameItem.id), counted_expr, variance_expr).where(
            OpnameItem.session_id == session_id
        )
        total, counted, variance = self.db.execute(query).one()
        return int(total or 0), int(counted or 0), int(variance or 0)

    def _apply_filters(self, filters: OpnameItemFilters):
        query = select(OpnameItem).where(OpnameItem.session_id == filters.session_id)
        term = (filters.q or "").strip()
        if term:
            like = f"%{_escape_like(term)}%"
            query = query.where(
                or_(
                    OpnameItem.material_desc.ilike(like, escape="\\"),
                    OpnameItem.material_no.ilike(like, escape="\\"),
                )
            )
        if filters.status == "COUNTED":
            query = query.where(OpnameItem.is_counted.is_(True))
        elif filters.status == "UNCOUNTED":
            query = query.where(OpnameItem.is_counted.is_(False))
        return query

    @staticmethod
    def _ordered(query):
        return query.order_by(
            OpnameItem.material_desc.asc(),
            OpnameItem.material_no.asc(),
            OpnameItem.id.asc(),
        )
