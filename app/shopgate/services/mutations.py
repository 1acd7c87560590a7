from __future__ import annotations

from dataclasses import dataclass

from app.shopgate.core.context import TenantScope
from app.shopgate.core.enums import ACTION_FOR_CHANGE, AuditAction, ChangeType, Role
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.notifications import NotificationSink
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.services.approvals import ApprovalWorkflow
from app.shopgate.services.audit import AuditTrail, build_changes
from app.shopgate.services.permissions import PermissionMatrix
from app.shopgate.services.records import ChangeTargetError, RecordService, get_record_type

APPLIED = "applied"
SUBMITTED_FOR_APPROVAL = "submitted_for_approval"

AUDIT_ACTION_FOR_CHANGE = {
    ChangeType.CREATE: AuditAction.CREATE,
    ChangeType.UPDATE: AuditAction.UPDATE,
    ChangeType.DELETE: AuditAction.DELETE,
}


@dataclass
class MutationOutcome:
    outcome: str
    table_name: str
    record_id: str | None = None
    approval_request_id: str | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == APPLIED


class MutationGateway:
    """Entry point for every change to a shop's business records.

    Principals with direct capability get the change applied and audited in
    one transaction. Workers without it get an approval request instead, so
    there is no path that writes a record while skipping both.
    """

    def __init__(self, db, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier
        self.matrix = PermissionMatrix(db)
        self.records = RecordService(db)
        self.audit = AuditTrail(db)
        self.workflow = ApprovalWorkflow(db, notifier)

    def read(self, scope: TenantScope, table_name: str, record_id: str) -> dict:
        self.matrix.require_view(scope.principal, scope, get_record_type(table_name).module)
        return self.records.get(table_name, record_id, scope.shop_id)

    def execute(
        self,
        scope: TenantScope,
        *,
        change_type: ChangeType | str,
        table_name: str,
        record_id: str | None = None,
        data: dict | None = None,
        reason: str | None = None,
    ) -> MutationOutcome:
        principal = scope.principal
        change_type = ChangeType(change_type)
        record_type = get_record_type(table_name)
        action = ACTION_FOR_CHANGE[change_type]

        if self.matrix.can_act_directly(principal, scope, record_type.module, action):
            return self._apply(scope, change_type, table_name, record_id, data or {}, reason)
        if principal.role != Role.SHOP_WORKER:
            raise AppError(
                ErrorCatalog.INSUFFICIENT_PERMISSION,
                details={"module": record_type.module.value, "permission": action.value},
            )

        approval = self.workflow.submit(
            scope,
            change_type=change_type,
            table_name=table_name,
            record_id=record_id,
            request_data=data,
            reason=reason,
        )
        return MutationOutcome(
            outcome=SUBMITTED_FOR_APPROVAL,
            table_name=table_name,
            record_id=record_id,
            approval_request_id=str(approval.id),
        )

    def _apply(
        self,
        scope: TenantScope,
        change_type: ChangeType,
        table_name: str,
        record_id: str | None,
        data: dict,
        reason: str | None,
    ) -> MutationOutcome:
        actor = scope.principal
        with UnitOfWork(self.db, self.notifier):
            try:
                applied = self.records.apply(
                    shop_id=scope.shop_id,
                    change_type=change_type,
                    table_name=table_name,
                    record_id=record_id,
                    data=data,
                )
            except ChangeTargetError as exc:
                raise _as_app_error(exc) from exc
            self.audit.record(
                actor_id=actor.id,
                shop_id=scope.shop_id,
                action=AUDIT_ACTION_FOR_CHANGE[change_type],
                table_name=table_name,
                record_id=applied.record_id,
                changes=build_changes(applied.before, applied.after, reason=reason, changed_by=str(actor.id)),
            )
        return MutationOutcome(outcome=APPLIED, table_name=table_name, record_id=applied.record_id)


def _as_app_error(exc: ChangeTargetError) -> AppError:
    if exc.kind == ChangeTargetError.MISSING_TARGET:
        return AppError(ErrorCatalog.NOT_FOUND, details=exc.details)
    if exc.kind == ChangeTargetError.MISSING_REFERENCE:
        return AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": str(exc), **exc.details})
    return AppError(ErrorCatalog.TRANSACTION_CONFLICT, details={"message": str(exc), **exc.details})
