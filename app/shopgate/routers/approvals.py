import uuid

from fastapi import APIRouter, Depends, Query, Request

from app.shopgate.core.config import settings
from app.shopgate.core.context import TenantScope
from app.shopgate.core.deps import get_tenant_scope
from app.shopgate.core.enums import ApprovalStatus
from app.shopgate.core.notifications import get_notification_sink
from app.shopgate.db.session import get_db
from app.shopgate.schemas.approvals import (
    ApprovalListResponse,
    ApprovalRequestItem,
    ApprovalResponse,
    DecisionRequest,
    SubmitApprovalRequest,
)
from app.shopgate.schemas.errors import error_responses
from app.shopgate.services.approvals import ApprovalPage, ApprovalWorkflow
from app.shopgate.services.permissions import ModuleVisibility
from app.shopgate.services.records import RECORD_TYPES

router = APIRouter()

_ERRORS = error_responses(403, 404, 409)


def _item(approval, visibility: ModuleVisibility) -> ApprovalRequestItem:
    record_type = RECORD_TYPES.get(approval.table_name)
    readable = visibility.can_view(approval.shop_id, record_type.module if record_type else None)
    return ApprovalRequestItem(
        id=str(approval.id),
        shop_id=str(approval.shop_id),
        requested_by=str(approval.requested_by),
        type=approval.type,
        table_name=approval.table_name,
        record_id=approval.record_id,
        request_data=(approval.request_data or {}) if readable else None,
        reason=approval.reason,
        status=approval.status,
        reviewed_by=str(approval.reviewed_by) if approval.reviewed_by else None,
        review_note=approval.review_note,
        failure_reason=approval.failure_reason,
        applied_record_id=approval.applied_record_id,
        created_at=approval.created_at,
        decided_at=approval.decided_at,
    )


def _page_response(request: Request, page: ApprovalPage, visibility: ModuleVisibility) -> ApprovalListResponse:
    return ApprovalListResponse(
        rows=[_item(row, visibility) for row in page.rows],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        trace_id=getattr(request.state, "trace_id", ""),
    )


def _approval_response(request: Request, approval, visibility: ModuleVisibility) -> ApprovalResponse:
    return ApprovalResponse(request=_item(approval, visibility), trace_id=getattr(request.state, "trace_id", ""))


@router.post("/approvals", response_model=ApprovalResponse, status_code=201, responses=_ERRORS)
def submit_approval(
    request: Request,
    payload: SubmitApprovalRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    approval = ApprovalWorkflow(db, notifier).submit(
        scope,
        change_type=payload.type,
        table_name=payload.table_name,
        record_id=payload.record_id,
        request_data=payload.request_data,
        reason=payload.reason,
    )
    return _approval_response(request, approval, ModuleVisibility(db, scope.principal))


@router.get("/approvals", response_model=ApprovalListResponse, responses=_ERRORS)
def list_approvals(
    request: Request,
    status: ApprovalStatus | None = Query(default=None),
    requested_by: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=settings.APPROVALS_PAGE_SIZE_MAX),
    offset: int = Query(default=0, ge=0),
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    page = ApprovalWorkflow(db).list(scope, status=status, requester_id=requested_by, limit=limit, offset=offset)
    return _page_response(request, page, ModuleVisibility(db, scope.principal))


@router.get("/approvals/mine", response_model=ApprovalListResponse, responses=_ERRORS)
def my_approvals(
    request: Request,
    status: ApprovalStatus | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=settings.APPROVALS_PAGE_SIZE_MAX),
    offset: int = Query(default=0, ge=0),
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    page = ApprovalWorkflow(db).list_mine(scope, status=status, limit=limit, offset=offset)
    return _page_response(request, page, ModuleVisibility(db, scope.principal))


@router.get("/approvals/{request_id}", response_model=ApprovalResponse, responses=_ERRORS)
def get_approval(
    request: Request,
    request_id: uuid.UUID,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    approval = ApprovalWorkflow(db).get(scope, request_id)
    return _approval_response(request, approval, ModuleVisibility(db, scope.principal))


@router.post("/approvals/{request_id}/decision", response_model=ApprovalResponse, responses=_ERRORS)
def decide_approval(
    request: Request,
    request_id: uuid.UUID,
    payload: DecisionRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    approval = ApprovalWorkflow(db, notifier).decide(scope, request_id, payload.outcome, payload.note)
    return _approval_response(request, approval, ModuleVisibility(db, scope.principal))
