from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt


class OpnameSessionCreateRequest(BaseModel):
    title: str = Field(max_length=255)
    notes: str | None = None


class OpnameSessionSummary(BaseModel):
    id: str
    title: str
    notes: str | None
    creator: str
    status: Literal["OPEN", "COMPLETED", "CANCELLED"]
    total_items: int
    created_at: datetime
    closed_at: datetime | None


class OpnameSessionListResponse(BaseModel):
    rows: list[OpnameSessionSummary]
    has_open_session: bool


class OpnameStatsResponse(BaseModel):
    session_id: str
    total: int
    counted: int
    matched: int
    variance: int
    progress_pct: int
    accuracy_pct: int


class OpnameSessionDetailResponse(BaseModel):
    session: OpnameSessionSummary
    stats: OpnameStatsResponse
    editable: bool


class OpnameItemRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    material_no: str
    sloc: str
    material_desc: str | None
    system_qty: float
    physical_qty: float
    variance: float
    is_counted: bool
    match_status: Literal["Match", "Diff"]
    counted_at: datetime | None
    reconciled_at: datetime | None


class OpnameItemsMeta(BaseModel):
    page: int
    page_size: int
    q: str | None
    status: Literal["ALL", "COUNTED", "UNCOUNTED"]


class OpnameItemsResponse(BaseModel):
    meta: OpnameItemsMeta
    rows: list[OpnameItemRow]
    total: int


class OpnameCountRequest(BaseModel):
    # Booleans are rejected here. Strings pass through and are validated by the
    # ledger so the error shape is the same for "abc" as for a negative number.
    physical_qty: StrictInt | StrictFloat | str


class OpnameReconciledLine(BaseModel):
    line_id: str
    material_no: str
    sloc: str
    system_qty: float
    physical_qty: float


class OpnameFinalizeResponse(BaseModel):
    session: OpnameSessionSummary
    total: int
    counted: int
    matched: int
    uncounted: int
    reconciled: list[OpnameReconciledLine]
    missing: list[OpnameReconciledLine]
    trace_id: str
