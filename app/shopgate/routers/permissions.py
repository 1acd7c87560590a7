import uuid

from fastapi import APIRouter, Depends, Request

from app.shopgate.core.context import TenantScope
from app.shopgate.core.deps import get_path_tenant_scope, get_tenant_scope
from app.shopgate.core.notifications import get_notification_sink
from app.shopgate.db.session import get_db
from app.shopgate.schemas.errors import error_responses
from app.shopgate.schemas.permissions import (
    EffectivePermissionsResponse,
    ModuleGrant,
    ReplaceGrantsRequest,
    WorkerGrantsResponse,
)
from app.shopgate.services.permissions import GrantSpec, PermissionGrantService, PermissionMatrix

router = APIRouter()

_ERRORS = error_responses(403, 404)


def _grants_response(request: Request, scope: TenantScope, user_id: uuid.UUID, specs) -> WorkerGrantsResponse:
    return WorkerGrantsResponse(
        shop_id=str(scope.shop_id),
        user_id=str(user_id),
        grants=[ModuleGrant(module=spec.module, permissions=list(spec.permissions)) for spec in specs],
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get(
    "/shops/{shop_id}/workers/{user_id}/permissions",
    response_model=WorkerGrantsResponse,
    responses=_ERRORS,
)
def get_worker_permissions(
    request: Request,
    user_id: uuid.UUID,
    scope: TenantScope = Depends(get_path_tenant_scope),
    db=Depends(get_db),
):
    specs = PermissionGrantService(db).list_grants(scope, user_id)
    return _grants_response(request, scope, user_id, specs)


@router.put(
    "/shops/{shop_id}/workers/{user_id}/permissions",
    response_model=WorkerGrantsResponse,
    responses=_ERRORS,
)
def replace_worker_permissions(
    request: Request,
    user_id: uuid.UUID,
    payload: ReplaceGrantsRequest,
    scope: TenantScope = Depends(get_path_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    grants = [GrantSpec(module=grant.module, permissions=tuple(grant.permissions)) for grant in payload.grants]
    specs = PermissionGrantService(db, notifier).replace_grants(scope, user_id, grants, reason=payload.reason)
    return _grants_response(request, scope, user_id, specs)


@router.get("/me/permissions", response_model=EffectivePermissionsResponse)
def my_permissions(
    request: Request,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    modules = PermissionMatrix(db).effective_permissions(scope.principal, scope)
    return EffectivePermissionsResponse(
        shop_id=str(scope.shop_id),
        user_id=str(scope.principal.id),
        role=scope.principal.role.value,
        modules=modules,
        trace_id=getattr(request.state, "trace_id", ""),
    )
