import uuid

from fastapi import APIRouter, Depends, Request

from app.shopgate.core.context import Principal
from app.shopgate.core.deps import require_active_principal
from app.shopgate.core.notifications import get_notification_sink
from app.shopgate.db.session import get_db
from app.shopgate.schemas.errors import error_responses
from app.shopgate.schemas.status import (
    AssignmentStatusRequest,
    CascadeChangeItem,
    CascadeResponse,
    ShopStatusRequest,
    UserStatusRequest,
)
from app.shopgate.services.status_cascade import CascadeResult, StatusCascade

router = APIRouter()

_ERRORS = error_responses(404, 409)


def _cascade_response(request: Request, result: CascadeResult) -> CascadeResponse:
    return CascadeResponse(
        changed=result.changed,
        changes=[
            CascadeChangeItem(entity_type=c.entity_type, entity_id=c.entity_id, old=c.old, new=c.new)
            for c in result.changes
        ],
        counts=result.count_by_type(),
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.patch("/users/{user_id}/status", response_model=CascadeResponse, responses=_ERRORS)
def set_user_status(
    request: Request,
    user_id: uuid.UUID,
    payload: UserStatusRequest,
    actor: Principal = Depends(require_active_principal),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    result = StatusCascade(db, notifier).set_principal_status(actor, user_id, payload.status, payload.reason)
    return _cascade_response(request, result)


@router.patch("/shops/{shop_id}/status", response_model=CascadeResponse, responses=_ERRORS)
def set_shop_status(
    request: Request,
    shop_id: uuid.UUID,
    payload: ShopStatusRequest,
    actor: Principal = Depends(require_active_principal),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    result = StatusCascade(db, notifier).set_shop_status(actor, shop_id, payload.status, payload.reason)
    return _cascade_response(request, result)


@router.patch("/shops/{shop_id}/workers/{user_id}/assignment", response_model=CascadeResponse, responses=_ERRORS)
def set_assignment_status(
    request: Request,
    shop_id: uuid.UUID,
    user_id: uuid.UUID,
    payload: AssignmentStatusRequest,
    actor: Principal = Depends(require_active_principal),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    result = StatusCascade(db, notifier).set_assignment_status(
        actor, shop_id, user_id, payload.is_active, payload.reason
    )
    return _cascade_response(request, result)
