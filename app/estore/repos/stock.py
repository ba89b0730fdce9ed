from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update

from app.estore.db.models import StockHistory, StockItem


class StockRepository:
    def __init__(self, db):
        self.db = db

    def list_for_snapshot(self) -> list[StockItem]:
        query = select(StockItem).order_by(StockItem.material_no.asc(), StockItem.sloc.asc())
        return self.db.execute(query).scalars().all()

    def set_quantity(self, material_no: str, sloc: str, *, quantity: float, updated_at: datetime) -> int:
        stmt = (
            update(StockItem)
            .where(StockItem.material_no == material_no, StockItem.sloc == sloc)
            .values(quantity=quantity, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount

    def append_history(self, entry: StockHistory) -> StockHistory:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_history(self, material_no: str, sloc: str) -> list[StockHistory]:
        query = (
            select(StockHistory)
            .where(StockHistory.material_no == material_no, StockHistory.sloc == sloc)
            .order_by(StockHistory.created_at.desc())
        )
        return self.db.execute(query).scalars().all()
