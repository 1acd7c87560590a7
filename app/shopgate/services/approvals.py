from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from app.shopgate.core.context import TenantScope
from app.shopgate.core.enums import (
    ACTION_FOR_CHANGE,
    ApprovalStatus,
    AuditAction,
    ChangeType,
    DecisionOutcome,
    Role,
)
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.metrics import metrics
from app.shopgate.core.notifications import (
    APPROVAL_DECIDED,
    APPROVAL_SUBMITTED,
    NotificationEvent,
    NotificationSink,
)
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.db.models import ApprovalRequest
from app.shopgate.repos.approvals import ApprovalRequestRepository
from app.shopgate.services.audit import AuditTrail, build_changes
from app.shopgate.services.permissions import PermissionMatrix
from app.shopgate.services.records import ChangeTargetError, RecordService, validate_change

logger = logging.getLogger(__name__)

APPROVAL_TABLE = "ApprovalRequest"


@dataclass
class ApprovalPage:
    rows: list[ApprovalRequest]
    total: int
    limit: int
    offset: int


class _ApplyFailed(Exception):
    def __init__(self, reason: str, details: dict):
        super().__init__(reason)
        self.reason = reason
        self.details = details


class ApprovalWorkflow:
    """Queue of worker-proposed changes reviewed by the shop owner.

    Every decision is a compare-and-swap on ``PENDING``, so concurrent
    reviewers produce exactly one winner. Approving applies the stored change
    in the same transaction as the status move and its audit entry.
    """

    CONFLICT_RETRIES = 1

    def __init__(self, db, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier
        self.repo = ApprovalRequestRepository(db)
        self.matrix = PermissionMatrix(db)
        self.records = RecordService(db)
        self.audit = AuditTrail(db)

    def submit(
        self,
        scope: TenantScope,
        *,
        change_type: ChangeType | str,
        table_name: str,
        record_id: str | None = None,
        request_data: dict | None = None,
        reason: str | None = None,
    ) -> ApprovalRequest:
        requester = scope.principal
        change_type = ChangeType(change_type)
        if requester.role != Role.SHOP_WORKER:
            raise AppError(
                ErrorCatalog.NOT_ELIGIBLE_FOR_APPROVAL,
                details={"message": "Only shop workers submit approval requests", "role": requester.role.value},
            )
        record_type, payload = validate_change(change_type, table_name, record_id, request_data)
        action = ACTION_FOR_CHANGE[change_type]
        if self.matrix.can_act_directly(requester, scope, record_type.module, action):
            raise AppError(
                ErrorCatalog.NOT_ELIGIBLE_FOR_APPROVAL,
                details={
                    "message": "Requester can perform this change directly",
                    "module": record_type.module.value,
                    "permission": action.value,
                },
            )

        with UnitOfWork(self.db, self.notifier) as uow:
            if record_id is not None and not self.records.exists_in_shop(table_name, record_id, scope.shop_id):
                raise AppError(ErrorCatalog.NOT_FOUND, details={"table_name": table_name, "record_id": record_id})
            approval = self.repo.add(
                ApprovalRequest(
                    shop_id=scope.shop_id,
                    requested_by=requester.id,
                    type=change_type.value,
                    table_name=table_name,
                    record_id=str(record_id) if record_id is not None else None,
                    request_data=payload,
                    reason=reason,
                    status=ApprovalStatus.PENDING.value,
                    created_at=datetime.utcnow(),
                )
            )
            self.audit.record(
                actor_id=requester.id,
                shop_id=scope.shop_id,
                action=AuditAction.REQUEST_SUBMITTED,
                table_name=APPROVAL_TABLE,
                record_id=str(approval.id),
                changes=build_changes(
                    None,
                    {"status": ApprovalStatus.PENDING.value},
                    reason=reason,
                    changed_by=str(requester.id),
                    context=_target_context(approval),
                ),
            )
            uow.emit(
                NotificationEvent(
                    kind=APPROVAL_SUBMITTED,
                    shop_id=str(scope.shop_id),
                    payload={
                        "approval_request_id": str(approval.id),
                        "requested_by": str(requester.id),
                        "owner_id": str(scope.owner_id),
                        **_target_context(approval),
                    },
                )
            )
        metrics.increment_approval_transition(ApprovalStatus.PENDING.value)
        return approval

    def decide(
        self,
        scope: TenantScope,
        request_id: uuid.UUID,
        outcome: DecisionOutcome | str,
        note: str | None = None,
    ) -> ApprovalRequest:
        reviewer = scope.principal
        if not (reviewer.role == Role.SUPER_ADMIN or scope.is_owner):
            raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "Only the shop owner can review requests"})
        outcome = DecisionOutcome(outcome)

        attempt = 0
        while True:
            try:
                return self._decide_once(scope, request_id, outcome, note)
            except AppError as exc:
                if exc.error != ErrorCatalog.TRANSACTION_CONFLICT or attempt >= self.CONFLICT_RETRIES:
                    raise
                attempt += 1
                logger.info("Retrying approval decision after conflict", extra={"request_id": str(request_id)})

    def get(self, scope: TenantScope, request_id: uuid.UUID) -> ApprovalRequest:
        approval = self.repo.get_in_shop(request_id, scope.shop_id)
        if approval is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"approval_request_id": str(request_id)})
        if scope.principal.role == Role.SHOP_WORKER and approval.requested_by != scope.principal.id:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"approval_request_id": str(request_id)})
        return approval

    def list(
        self,
        scope: TenantScope,
        *,
        status: ApprovalStatus | str | None = None,
        requester_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ApprovalPage:
        if scope.principal.role == Role.SHOP_WORKER:
            requester_id = scope.principal.id
        status_value = ApprovalStatus(status).value if status else None
        rows, total = self.repo.list_for_shop(
            scope.shop_id,
            status=status_value,
            requested_by=requester_id,
            limit=limit,
            offset=offset,
        )
        return ApprovalPage(rows=list(rows), total=total, limit=limit, offset=offset)

    def list_mine(self, scope: TenantScope, *, status=None, limit: int = 50, offset: int = 0) -> ApprovalPage:
        return self.list(scope, status=status, requester_id=scope.principal.id, limit=limit, offset=offset)

    def _decide_once(
        self,
        scope: TenantScope,
        request_id: uuid.UUID,
        outcome: DecisionOutcome,
        note: str | None,
    ) -> ApprovalRequest:
        approval = self._load_pending(scope, request_id)
        if outcome == DecisionOutcome.REJECT:
            return self._reject(scope, approval, note)
        try:
            return self._approve(scope, approval, note)
        except _ApplyFailed as failure:
            self._record_apply_failure(scope, approval, note, failure)
            raise AppError(
                ErrorCatalog.STALE_APPROVAL_TARGET,
                details={"approval_request_id": str(request_id), "reason": failure.reason, **failure.details},
            ) from failure

    def _load_pending(self, scope: TenantScope, request_id: uuid.UUID) -> ApprovalRequest:
        approval = self.repo.get_in_shop(request_id, scope.shop_id, fresh=True)
        if approval is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"approval_request_id": str(request_id)})
        if approval.status != ApprovalStatus.PENDING.value:
            raise AppError(
                ErrorCatalog.INVALID_STATE_TRANSITION,
                details={"approval_request_id": str(request_id), "status": approval.status},
            )
        return approval

    def _reject(self, scope: TenantScope, approval: ApprovalRequest, note: str | None) -> ApprovalRequest:
        reviewer = scope.principal
        with UnitOfWork(self.db, self.notifier) as uow:
            self._transition(approval, ApprovalStatus.REJECTED, reviewer.id, note)
            self.audit.record(
                actor_id=reviewer.id,
                shop_id=scope.shop_id,
                action=AuditAction.APPROVAL_REJECTED,
                table_name=APPROVAL_TABLE,
                record_id=str(approval.id),
                changes=build_changes(
                    {"status": ApprovalStatus.PENDING.value},
                    {"status": ApprovalStatus.REJECTED.value},
                    reason=note,
                    changed_by=str(reviewer.id),
                    context=_target_context(approval),
                ),
            )
            uow.emit(_decided_event(scope, approval, ApprovalStatus.REJECTED))
        metrics.increment_approval_transition(ApprovalStatus.REJECTED.value)
        return approval

    def _approve(self, scope: TenantScope, approval: ApprovalRequest, note: str | None) -> ApprovalRequest:
        reviewer = scope.principal
        change_type = ChangeType(approval.type)
        with UnitOfWork(self.db, self.notifier) as uow:
            self._transition(approval, ApprovalStatus.APPROVED, reviewer.id, note)
            try:
                applied = self.records.apply(
                    shop_id=scope.shop_id,
                    change_type=change_type,
                    table_name=approval.table_name,
                    record_id=approval.record_id,
                    data=approval.request_data,
                )
            except ChangeTargetError as exc:
                raise _ApplyFailed(str(exc), {"kind": exc.kind, **exc.details}) from exc
            except AppError as exc:
                if exc.error != ErrorCatalog.VALIDATION_ERROR:
                    raise
                raise _ApplyFailed("Stored change no longer validates", exc.details) from exc

            self.repo.mark_applied(approval.id, applied_record_id=applied.record_id)
            self.audit.record(
                actor_id=reviewer.id,
                shop_id=scope.shop_id,
                action=AuditAction.APPROVAL_APPLIED,
                table_name=APPROVAL_TABLE,
                record_id=str(approval.id),
                changes=build_changes(
                    applied.before,
                    applied.after,
                    reason=approval.reason,
                    changed_by=str(approval.requested_by),
                    context={
                        **_target_context(approval),
                        "record_id": applied.record_id,
                        "decision": DecisionOutcome.APPROVE.value,
                        "reviewed_by": str(reviewer.id),
                        "review_note": note,
                    },
                ),
            )
            uow.emit(_decided_event(scope, approval, ApprovalStatus.APPLIED))
        metrics.increment_approval_transition(ApprovalStatus.APPROVED.value)
        metrics.increment_approval_transition(ApprovalStatus.APPLIED.value)
        return approval

    def _record_apply_failure(
        self,
        scope: TenantScope,
        approval: ApprovalRequest,
        note: str | None,
        failure: _ApplyFailed,
    ) -> None:
        reviewer = scope.principal
        with UnitOfWork(self.db, self.notifier) as uow:
            self._transition(approval, ApprovalStatus.APPLY_FAILED, reviewer.id, note, failure_reason=failure.reason)
            self.audit.record(
                actor_id=reviewer.id,
                shop_id=scope.shop_id,
                action=AuditAction.APPROVAL_APPLY_FAILED,
                table_name=APPROVAL_TABLE,
                record_id=str(approval.id),
                changes=build_changes(
                    {"status": ApprovalStatus.PENDING.value},
                    {"status": ApprovalStatus.APPLY_FAILED.value, "failure_reason": failure.reason},
                    reason=note,
                    changed_by=str(reviewer.id),
                    context={**_target_context(approval), "failure": failure.details},
                ),
            )
            uow.emit(_decided_event(scope, approval, ApprovalStatus.APPLY_FAILED))
        metrics.increment_approval_transition(ApprovalStatus.APPLY_FAILED.value)

    def _transition(
        self,
        approval: ApprovalRequest,
        status: ApprovalStatus,
        reviewer_id: uuid.UUID,
        note: str | None,
        failure_reason: str | None = None,
    ) -> None:
        moved = self.repo.transition_from_pending(
            approval.id,
            status=status.value,
            reviewed_by=reviewer_id,
            decided_at=datetime.utcnow(),
            review_note=note,
            failure_reason=failure_reason,
        )
        if not moved:
            raise AppError(
                ErrorCatalog.TRANSACTION_CONFLICT,
                details={"approval_request_id": str(approval.id), "message": "Request was decided concurrently"},
            )


def _target_context(approval: ApprovalRequest) -> dict:
    return {
        "type": approval.type,
        "table_name": approval.table_name,
        "record_id": approval.record_id,
    }


def _decided_event(scope: TenantScope, approval: ApprovalRequest, status: ApprovalStatus) -> NotificationEvent:
    return NotificationEvent(
        kind=APPROVAL_DECIDED,
        shop_id=str(scope.shop_id),
        payload={
            "approval_request_id": str(approval.id),
            "requested_by": str(approval.requested_by),
            "status": status.value,
            "reviewed_by": str(scope.principal.id),
            **_target_context(approval),
        },
    )
