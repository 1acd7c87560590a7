"""Status changes that fan out across the ownership graph.

Deactivation flows downward (owner, then owned shops, then the worker
assignments on those shops). Reactivation is never propagated: every level
has to be switched back on explicitly.
"""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from app.shopgate.core.context import Principal
from app.shopgate.core.enums import AuditAction, PrincipalStatus, Role, ShopStatus
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.metrics import metrics
from app.shopgate.core.notifications import STATUS_CASCADED, NotificationEvent, NotificationSink
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.repos.shops import ShopRepository
from app.shopgate.repos.users import UserRepository
from app.shopgate.repos.workers import ShopWorkerRepository
from app.shopgate.services.audit import AuditTrail, build_changes

USER = "User"
SHOP = "Shop"
ASSIGNMENT = "ShopWorker"


@dataclass(frozen=True)
class CascadeChange:
    entity_type: str
    entity_id: str
    old: str
    new: str


@dataclass
class CascadeResult:
    changes: list[CascadeChange] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    def count_by_type(self) -> dict[str, int]:
        return dict(Counter(change.entity_type for change in self.changes))


def _assignment_state(is_active: bool) -> str:
    return "ACTIVE" if is_active else "INACTIVE"


class StatusCascade:
    def __init__(self, db, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier
        self.users = UserRepository(db)
        self.shops = ShopRepository(db)
        self.workers = ShopWorkerRepository(db)
        self.audit = AuditTrail(db)

    def set_principal_status(
        self,
        actor: Principal,
        target_id: uuid.UUID,
        new_status: PrincipalStatus | str,
        reason: str | None = None,
    ) -> CascadeResult:
        new_status = PrincipalStatus(new_status)
        result = CascadeResult()
        with UnitOfWork(self.db, self.notifier) as uow:
            target = self.users.get_for_update(target_id)
            if target is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"user_id": str(target_id)})
            audit_shop_id = self._ensure_user_authority(actor, target, new_status)
            if target.status == new_status.value:
                return result

            now = datetime.utcnow()
            result.changes.append(CascadeChange(USER, str(target.id), target.status, new_status.value))
            self._audit_status(actor, USER, target.id, audit_shop_id, target.status, new_status.value, reason)
            target.status = new_status.value
            target.updated_at = now

            if target.role == Role.SHOP_OWNER.value and new_status != PrincipalStatus.ACTIVE:
                shops = [shop for shop in self.shops.list_owned_for_update(target.id) if shop.status == ShopStatus.ACTIVE.value]
                for shop in shops:
                    self._deactivate_shop(actor, shop, now, reason, result, cause=(USER, target.id))
                self._deactivate_assignments(actor, [shop.id for shop in shops], now, reason, result)

            self.db.flush()
            uow.emit(_cascade_event(actor, result, root=(USER, target.id)))
        _count(result)
        return result

    def set_shop_status(
        self,
        actor: Principal,
        shop_id: uuid.UUID,
        new_status: ShopStatus | str,
        reason: str | None = None,
    ) -> CascadeResult:
        new_status = ShopStatus(new_status)
        result = CascadeResult()
        with UnitOfWork(self.db, self.notifier) as uow:
            shop = self.shops.get_for_update(shop_id)
            if shop is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"shop_id": str(shop_id)})
            self._ensure_shop_authority(actor, shop)
            if shop.status == new_status.value:
                return result

            now = datetime.utcnow()
            if new_status == ShopStatus.ACTIVE:
                result.changes.append(CascadeChange(SHOP, str(shop.id), shop.status, new_status.value))
                self._audit_status(actor, SHOP, shop.id, shop.id, shop.status, new_status.value, reason)
                shop.status = new_status.value
                shop.updated_at = now
            else:
                self._deactivate_shop(actor, shop, now, reason, result, status=new_status)
                self._deactivate_assignments(actor, [shop.id], now, reason, result)

            self.db.flush()
            uow.emit(_cascade_event(actor, result, root=(SHOP, shop.id)))
        _count(result)
        return result

    def set_assignment_status(
        self,
        actor: Principal,
        shop_id: uuid.UUID,
        worker_id: uuid.UUID,
        is_active: bool,
        reason: str | None = None,
    ) -> CascadeResult:
        result = CascadeResult()
        with UnitOfWork(self.db, self.notifier) as uow:
            shop = self.shops.get_for_update(shop_id)
            if shop is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"shop_id": str(shop_id)})
            self._ensure_shop_authority(actor, shop)
            assignment = self.workers.get_for_update(user_id=worker_id, shop_id=shop.id)
            if assignment is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"shop_id": str(shop_id), "user_id": str(worker_id)})
            if assignment.is_active == is_active:
                return result
            if is_active and shop.status != ShopStatus.ACTIVE.value:
                raise AppError(
                    ErrorCatalog.INVALID_STATE_TRANSITION,
                    details={"message": "Shop must be ACTIVE to reactivate an assignment", "shop_status": shop.status},
                )

            old, new = _assignment_state(assignment.is_active), _assignment_state(is_active)
            result.changes.append(CascadeChange(ASSIGNMENT, str(assignment.id), old, new))
            self._audit_status(
                actor,
                ASSIGNMENT,
                assignment.id,
                shop.id,
                old,
                new,
                reason,
                action=AuditAction.ASSIGNMENT_STATUS_CHANGED,
                context={"user_id": str(worker_id)},
            )
            assignment.is_active = is_active
            assignment.updated_at = datetime.utcnow()
            self.db.flush()
            uow.emit(_cascade_event(actor, result, root=(ASSIGNMENT, assignment.id)))
        _count(result)
        return result

    def _deactivate_shop(self, actor, shop, now, reason, result, *, status=ShopStatus.INACTIVE, cause=None) -> None:
        context = {"cascaded_from": {"entity_type": cause[0], "entity_id": str(cause[1])}} if cause else None
        result.changes.append(CascadeChange(SHOP, str(shop.id), shop.status, status.value))
        self._audit_status(actor, SHOP, shop.id, shop.id, shop.status, status.value, reason, context=context)
        shop.status = status.value
        shop.updated_at = now

    def _deactivate_assignments(self, actor, shop_ids, now, reason, result) -> None:
        for assignment in self.workers.list_active_for_shops_for_update(shop_ids):
            result.changes.append(CascadeChange(ASSIGNMENT, str(assignment.id), "ACTIVE", "INACTIVE"))
            self._audit_status(
                actor,
                ASSIGNMENT,
                assignment.id,
                assignment.shop_id,
                "ACTIVE",
                "INACTIVE",
                reason,
                action=AuditAction.ASSIGNMENT_STATUS_CHANGED,
                context={
                    "user_id": str(assignment.user_id),
                    "cascaded_from": {"entity_type": SHOP, "entity_id": str(assignment.shop_id)},
                },
            )
            assignment.is_active = False
            assignment.updated_at = now

    def _audit_status(
        self,
        actor: Principal,
        table_name: str,
        record_id,
        shop_id,
        old: str,
        new: str,
        reason: str | None,
        *,
        action: AuditAction = AuditAction.STATUS_CHANGE,
        context: dict | None = None,
    ) -> None:
        self.audit.record(
            actor_id=actor.id,
            shop_id=shop_id,
            action=action,
            table_name=table_name,
            record_id=str(record_id),
            changes=build_changes(
                {"status": old},
                {"status": new},
                reason=reason,
                changed_by=str(actor.id),
                context=context,
            ),
        )

    def _ensure_user_authority(self, actor: Principal, target, new_status: PrincipalStatus):
        """Return the shop an owner acts through, or None for platform-wide actors."""
        if actor.id == target.id and new_status != PrincipalStatus.ACTIVE:
            raise AppError(
                ErrorCatalog.INVALID_STATE_TRANSITION,
                details={"message": "You cannot deactivate your own account"},
            )
        if actor.role == Role.SUPER_ADMIN:
            return None
        if actor.role == Role.SHOP_OWNER:
            return self._owner_shop_for_worker(actor, target)
        if actor.role == Role.SHOP_WORKER:
            raise AppError(
                ErrorCatalog.INVALID_STATE_TRANSITION,
                details={"message": "Workers cannot change account status"},
            )
        raise ValueError(f"Unhandled role: {actor.role!r}")

    def _owner_shop_for_worker(self, actor: Principal, target) -> uuid.UUID:
        # The account is global, so an owner may only touch it while every
        # active assignment of the worker is in one of their shops.
        shops = self.workers.list_active_shops_for_user(target.id) if target.role == Role.SHOP_WORKER.value else []
        if not shops or any(shop.owner_id != actor.id for shop in shops):
            raise AppError(
                ErrorCatalog.INVALID_STATE_TRANSITION,
                details={"message": "Shop owners can only change the status of workers employed solely by them"},
            )
        if target.status != PrincipalStatus.ACTIVE.value:
            last = self.audit.repo.latest_for_record(
                table_name=USER, record_id=str(target.id), action=AuditAction.STATUS_CHANGE.value
            )
            setter = self.users.get_by_id(last.actor_id) if last is not None else None
            if setter is not None and setter.role == Role.SUPER_ADMIN.value:
                raise AppError(
                    ErrorCatalog.INVALID_STATE_TRANSITION,
                    details={"message": "Account status was set by a platform administrator", "status": target.status},
                )
        return shops[0].id

    def _ensure_shop_authority(self, actor: Principal, shop) -> None:
        if actor.role == Role.SUPER_ADMIN:
            return
        if actor.role == Role.SHOP_OWNER and shop.owner_id == actor.id:
            return
        if actor.role in (Role.SHOP_OWNER, Role.SHOP_WORKER):
            raise AppError(
                ErrorCatalog.INVALID_STATE_TRANSITION,
                details={"message": "Only the shop owner can change shop status", "shop_id": str(shop.id)},
            )
        raise ValueError(f"Unhandled role: {actor.role!r}")


def _count(result: CascadeResult) -> None:
    for entity_type, count in result.count_by_type().items():
        metrics.increment_cascade_change(entity_type, count)


def _cascade_event(actor: Principal, result: CascadeResult, *, root: tuple[str, uuid.UUID]) -> NotificationEvent:
    shop_ids = sorted({change.entity_id for change in result.changes if change.entity_type == SHOP})
    return NotificationEvent(
        kind=STATUS_CASCADED,
        shop_id=shop_ids[0] if len(shop_ids) == 1 else None,
        payload={
            "actor_id": str(actor.id),
            "root": {"entity_type": root[0], "entity_id": str(root[1])},
            "changes": [
                {"entity_type": c.entity_type, "entity_id": c.entity_id, "old": c.old, "new": c.new}
                for c in result.changes
            ],
        },
    )
