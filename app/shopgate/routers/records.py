from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.shopgate.core.context import TenantScope
from app.shopgate.core.deps import get_tenant_scope
from app.shopgate.core.enums import ChangeType
from app.shopgate.core.notifications import get_notification_sink
from app.shopgate.db.session import get_db
from app.shopgate.schemas.errors import error_responses
from app.shopgate.schemas.records import RecordMutationRequest, RecordMutationResponse, RecordResponse
from app.shopgate.services.mutations import MutationGateway, MutationOutcome

router = APIRouter()

_RESPONSES = {
    202: {"model": RecordMutationResponse, "description": "Change queued for owner approval."},
    **error_responses(403, 404, 422),
}


def _respond(request: Request, response: Response, outcome: MutationOutcome, applied_status: int):
    if outcome.applied:
        response.status_code = applied_status
        message = "Change applied"
    else:
        response.status_code = status.HTTP_202_ACCEPTED
        message = "Change submitted for owner approval"
    return RecordMutationResponse(
        outcome=outcome.outcome,
        table_name=outcome.table_name,
        record_id=outcome.record_id,
        approval_request_id=outcome.approval_request_id,
        message=message,
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.get("/records/{table_name}/{record_id}", response_model=RecordResponse, responses=error_responses(403, 404, 422))
def read_record(
    request: Request,
    table_name: str,
    record_id: str,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
):
    data = MutationGateway(db).read(scope, table_name, record_id)
    return RecordResponse(
        table_name=table_name,
        record_id=data["id"],
        data=data,
        trace_id=getattr(request.state, "trace_id", ""),
    )


@router.post("/records/{table_name}", response_model=RecordMutationResponse, status_code=201, responses=_RESPONSES)
def create_record(
    request: Request,
    response: Response,
    table_name: str,
    payload: RecordMutationRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    outcome = MutationGateway(db, notifier).execute(
        scope,
        change_type=ChangeType.CREATE,
        table_name=table_name,
        data=payload.data,
        reason=payload.reason,
    )
    return _respond(request, response, outcome, status.HTTP_201_CREATED)


@router.patch("/records/{table_name}/{record_id}", response_model=RecordMutationResponse, responses=_RESPONSES)
def update_record(
    request: Request,
    response: Response,
    table_name: str,
    record_id: str,
    payload: RecordMutationRequest,
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    outcome = MutationGateway(db, notifier).execute(
        scope,
        change_type=ChangeType.UPDATE,
        table_name=table_name,
        record_id=record_id,
        data=payload.data,
        reason=payload.reason,
    )
    return _respond(request, response, outcome, status.HTTP_200_OK)


@router.delete("/records/{table_name}/{record_id}", response_model=RecordMutationResponse, responses=_RESPONSES)
def delete_record(
    request: Request,
    response: Response,
    table_name: str,
    record_id: str,
    reason: str | None = Query(default=None, max_length=1000),
    scope: TenantScope = Depends(get_tenant_scope),
    db=Depends(get_db),
    notifier=Depends(get_notification_sink),
):
    outcome = MutationGateway(db, notifier).execute(
        scope,
        change_type=ChangeType.DELETE,
        table_name=table_name,
        record_id=record_id,
        reason=reason,
    )
    return _respond(request, response, outcome, status.HTTP_200_OK)
