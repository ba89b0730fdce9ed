from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response

from app.estore.core.deps import require_opname_access
from app.estore.core.error_catalog import ErrorCatalog
from app.estore.db.models import OPNAME_STATUS_OPEN, OpnameItem, OpnameSession
from app.estore.db.session import get_db
from app.estore.schemas.opname import (
    OpnameCountRequest,
    OpnameFinalizeResponse,
    OpnameItemRow,
    OpnameItemsMeta,
    OpnameItemsResponse,
    OpnameReconciledLine,
    OpnameSessionCreateRequest,
    OpnameSessionDetailResponse,
    OpnameSessionListResponse,
    OpnameSessionSummary,
    OpnameStatsResponse,
)
from app.estore.services.audit import AuditEventPayload, AuditService
from app.estore.services.idempotency import IdempotencyService, extract_idempotency_key
from app.estore.services.opname_export import export_session
from app.estore.services.opname_ledger import fetch_page, record_count
from app.estore.services.opname_reconcile import finalize_session
from app.estore.services.opname_sessions import create_session, get_session, is_editable, list_sessions
from app.estore.services.opname_stats import OpnameStats, classify_line, compute_stats


router = APIRouter()


def _session_summary(session: OpnameSession) -> OpnameSessionSummary:
    return OpnameSessionSummary(
        id=str(session.id),
        title=session.title,
        notes=session.notes,
        creator=session.creator,
        status=session.status,
        total_items=session.total_items,
        created_at=session.created_at,
        closed_at=session.closed_at,
    )


def _stats_response(session_id: UUID, stats: OpnameStats) -> OpnameStatsResponse:
    return OpnameStatsResponse(
        session_id=str(session_id),
        total=stats.total,
        counted=stats.counted,
        matched=stats.matched,
        variance=stats.variance,
        progress_pct=stats.progress_pct,
        accuracy_pct=stats.accuracy_pct,
    )


def _item_row(item: OpnameItem) -> OpnameItemRow:
    return OpnameItemRow(
        id=str(item.id),
        session_id=str(item.session_id),
        material_no=item.material_no,
        sloc=item.sloc,
        material_desc=item.material_desc,
        system_qty=item.system_qty,
        physical_qty=item.physical_qty,
        variance=item.variance,
        is_counted=item.is_counted,
        match_status=classify_line(item),
        counted_at=item.counted_at,
        reconciled_at=item.reconciled_at,
    )


def _start_idempotency(request: Request, db, payload: dict):
    idempotency_key = extract_idempotency_key(request.headers, required=True)
    context, replay = IdempotencyService(db).start(
        endpoint=str(request.url.path),
        method=request.method,
        idempotency_key=idempotency_key,
        request_hash=IdempotencyService.fingerprint(payload),
    )
    if replay:
        return None, JSONResponse(
            status_code=replay.status_code,
            content=replay.response_body,
            headers={"X-Idempotency-Result": ErrorCatalog.IDEMPOTENCY_REPLAY.code},
        )
    request.state.idempotency = context
    return context, None


@router.get("/estore/opname/sessions", response_model=OpnameSessionListResponse)
def get_sessions(
    _token=Depends(require_opname_access),
    db=Depends(get_db),
):
    sessions = list_sessions(db)
    return OpnameSessionListResponse(
        rows=[_session_summary(session) for session in sessions],
        has_open_session=any(session.status == OPNAME_STATUS_OPEN for session in sessions),
    )


@router.post("/estore/opname/sessions", response_model=OpnameSessionSummary, status_code=201)
def post_session(
    request: Request,
    payload: OpnameSessionCreateRequest,
    token_data=Depends(require_opname_access),
    db=Depends(get_db),
):
    context, replay = _start_idempotency(request, db, payload.model_dump(mode="json"))
    if replay:
        return replay

    session = create_session(db, title=payload.title, notes=payload.notes, creator=token_data.username)
    response = _session_summary(session)
    context.record_success(status_code=201, response_body=response.model_dump(mode="json"))
    AuditService(db).record_event(
        AuditEventPayload(
            user_id=token_data.sub,
            actor=token_data.username,
            action="opname_session.create",
            entity_type="opname_session",
            entity_id=str(session.id),
            before=None,
            after={"status": session.status, "title": session.title, "total_items": session.total_items},
            trace_id=getattr(request.state, "trace_id", None),
        )
    )
    return response


@router.get("/estore/opname/sessions/{session_id}", response_model=OpnameSessionDetailResponse)
def get_session_detail(
    session_id: UUID,
    _token=Depends(require_opname_access),
    db=Depends(get_db),
):
    session = get_session(db, session_id)
    stats = compute_stats(db, session_id)
    return OpnameSessionDetailResponse(
        session=_session_summary(session),
        stats=_stats_response(session_id, stats),
        editable=is_editable(session),
    )


@router.get("/estore/opname/sessions/{session_id}/items", response_model=OpnameItemsResponse)
def get_session_items(
    session_id: UUID,
    _token=Depends(require_opname_access),
    db=Depends(get_db),
    q: str | None = None,
    status: Literal["ALL", "COUNTED", "UNCOUNTED"] = "ALL",
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
):
    result = fetch_page(db, session_id, page=page, page_size=page_size, search_term=q, status_filter=status)
    return OpnameItemsResponse(
        meta=OpnameItemsMeta(page=result.page, page_size=result.page_size, q=q, status=status),
        rows=[_item_row(item) for item in result.items],
        total=result.total,
    )


@router.get("/estore/opname/sessions/{session_id}/stats", response_model=OpnameStatsResponse)
def get_session_stats(
    session_id: UUID,
    _token=Depends(require_opname_access),
    db=Depends(get_db),
):
    return _stats_response(session_id, compute_stats(db, session_id))


@router.patch("/estore/opname/items/{line_id}", response_model=OpnameItemRow)
def patch_item_count(
    request: Request,
    line_id: UUID,
    payload: OpnameCountRequest,
    token_data=Depends(require_opname_access),
    db=Depends(get_db),
):
    item = record_count(db, line_id, payload.physical_qty)
    AuditService(db).record_event(
        AuditEventPayload(
            user_id=token_data.sub,
            actor=token_data.username,
            action="opname_item.count",
            entity_type="opname_item",
            entity_id=str(item.id),
            before=None,
            after={"physical_qty": item.physical_qty, "is_counted": item.is_counted},
            metadata={"session_id": str(item.session_id)},
            trace_id=getattr(request.state, "trace_id", None),
        )
    )
    return _item_row(item)


@router.post("/estore/opname/sessions/{session_id}/finalize", response_model=OpnameFinalizeResponse)
def post_finalize(
    request: Request,
    session_id: UUID,
    token_data=Depends(require_opname_access),
    db=Depends(get_db),
):
    context, replay = _start_idempotency(request, db, {"session_id": str(session_id)})
    if replay:
        return replay

    result = finalize_session(db, session_id, actor=token_data.username)
    response = OpnameFinalizeResponse(
        session=_session_summary(result.session),
        total=result.total,
        counted=result.counted,
        matched=result.matched,
        uncounted=result.uncounted,
        reconciled=[OpnameReconciledLine(**vars(line)) for line in result.reconciled],
        missing=[OpnameReconciledLine(**vars(line)) for line in result.missing],
        trace_id=getattr(request.state, "trace_id", ""),
    )
    context.record_success(status_code=200, response_body=response.model_dump(mode="json"))
    AuditService(db).record_event(
        AuditEventPayload(
            user_id=token_data.sub,
            actor=token_data.username,
            action="opname_session.finalize",
            entity_type="opname_session",
            entity_id=str(session_id),
            before={"status": "OPEN"},
            after={"status": result.session.status, "reconciled": len(result.reconciled)},
            metadata={"missing": [f"{line.material_no}/{line.sloc}" for line in result.missing]},
            trace_id=getattr(request.state, "trace_id", None),
        )
    )
    return response


@router.get("/estore/opname/sessions/{session_id}/export")
def get_session_export(
    session_id: UUID,
    _token=Depends(require_opname_access),
    db=Depends(get_db),
    fmt: Literal["xlsx", "csv"] = Query("xlsx", alias="format"),
):
    document = export_session(db, session_id, fmt=fmt)
    return Response(
        content=document.content,
        media_type=document.content_type,
        headers={
            "Content-Disposition": f'attachment; filename="{document.file_name}"',
            "X-Export-Rows": str(document.row_count),
        },
    )
