import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from app.shopgate.core.config import settings
from app.shopgate.core.context import Principal
from app.shopgate.core.deps import require_active_principal
from app.shopgate.core.enums import AuditAction, Role
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.db.session import get_db
from app.shopgate.repos.workers import ShopWorkerRepository
from app.shopgate.schemas.audit import AuditEntryItem, AuditPageResponse
from app.shopgate.schemas.errors import error_responses
from app.shopgate.services.audit import AuditPage, AuditQuery, AuditTrail
from app.shopgate.services.permissions import ModuleVisibility
from app.shopgate.services.records import RECORD_TYPES
from app.shopgate.services.shop_context import ShopContextResolver

router = APIRouter()

_ERRORS = error_responses(403, 422)


def _visible_changes(entry, visibility: ModuleVisibility | None) -> dict:
    changes = entry.changes or {}
    record_type = RECORD_TYPES.get(entry.table_name)
    if visibility is None or record_type is None or visibility.can_view(entry.shop_id, record_type.module):
        return changes
    # Row snapshots of a module the reader cannot view keep only their envelope.
    return {**changes, "fields": [], "redacted": True}


def _page_response(request: Request, page: AuditPage, visibility: ModuleVisibility | None = None) -> AuditPageResponse:
    return AuditPageResponse(
        entries=[
            AuditEntryItem(
                id=str(entry.id),
                actor_id=str(entry.actor_id),
                shop_id=str(entry.shop_id) if entry.shop_id else None,
                action=entry.action,
                table_name=entry.table_name,
                record_id=entry.record_id,
                changes=_visible_changes(entry, visibility),
                created_at=entry.created_at,
            )
            for entry in page.entries
        ],
        next_cursor=page.next_cursor,
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/audit-logs", response_model=AuditPageResponse, responses=_ERRORS)
def list_audit_logs(
    request: Request,
    shop_id: uuid.UUID | None = Query(default=None),
    actor_id: uuid.UUID | None = Query(default=None),
    table_name: str | None = Query(default=None, max_length=64),
    record_id: str | None = Query(default=None, max_length=64),
    action: AuditAction | None = Query(default=None),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=settings.AUDIT_PAGE_SIZE_MAX),
    cursor: str | None = Query(default=None),
    principal: Principal = Depends(require_active_principal),
    db=Depends(get_db),
):
    if principal.role == Role.SHOP_OWNER:
        # Owners only ever see their own shop's trail.
        shop_id = ShopContextResolver(db).resolve(principal, shop_id).shop_id
        request.state.shop_id = str(shop_id)
    elif principal.role != Role.SUPER_ADMIN:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "Audit logs are restricted to owners"})

    filters = AuditQuery(
        actor_id=actor_id,
        shop_id=shop_id,
        table_name=table_name,
        record_id=record_id,
        action=action.value if action else None,
        date_from=date_from,
        date_to=date_to,
    )
    page = AuditTrail(db).query(filters, limit=limit, cursor=cursor)
    return _page_response(request, page)


@router.get("/users/{user_id}/audit-logs", response_model=AuditPageResponse, responses=_ERRORS)
def list_user_audit_logs(
    request: Request,
    user_id: uuid.UUID,
    shop_id: uuid.UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=settings.AUDIT_PAGE_SIZE_MAX),
    cursor: str | None = Query(default=None),
    principal: Principal = Depends(require_active_principal),
    db=Depends(get_db),
):
    scope_shop_id = None
    visibility = None
    if principal.role == Role.SUPER_ADMIN or principal.id == user_id:
        scope_shop_id = shop_id
        visibility = ModuleVisibility(db, principal)
    elif principal.role == Role.SHOP_OWNER:
        scope = ShopContextResolver(db).resolve(principal, shop_id)
        if ShopWorkerRepository(db).get(user_id=user_id, shop_id=scope.shop_id) is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"user_id": str(user_id)})
        scope_shop_id = scope.shop_id
    else:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "Cannot view another user's history"})

    page = AuditTrail(db).query(AuditQuery(actor_id=user_id, shop_id=scope_shop_id), limit=limit, cursor=cursor)
    return _page_response(request, page, visibility)
