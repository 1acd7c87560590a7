from __future__ import annotations

import uuid
from dataclasses import dataclass

from app.shopgate.core.context import Principal, TenantScope
from app.shopgate.core.enums import AuditAction, Permission, Role, SystemModule
from app.shopgate.core.error_catalog import AppError, ErrorCatalog
from app.shopgate.core.metrics import metrics
from app.shopgate.core.notifications import NotificationSink
from app.shopgate.core.unit_of_work import UnitOfWork
from app.shopgate.db.models import PermissionGrant
from app.shopgate.repos.permissions import PermissionGrantRepository
from app.shopgate.repos.users import UserRepository
from app.shopgate.repos.workers import ShopWorkerRepository
from app.shopgate.services.audit import AuditTrail, build_changes

DIRECT_ACTIONS = (Permission.VIEW, Permission.CREATE, Permission.EDIT, Permission.DELETE)


@dataclass(frozen=True)
class GrantSpec:
    module: SystemModule
    permissions: tuple[Permission, ...]


class PermissionMatrix:
    """Answers whether a principal may perform an action without approval.

    Worker grants belong to one shop, so the scope decides which rows count.
    A MANAGE grant covers VIEW/CREATE/EDIT/DELETE of its own module. It is
    checked as a separate grant row and never spills over to other modules.
    """

    def __init__(self, db):
        self.repo = PermissionGrantRepository(db)

    def can_act_directly(
        self,
        principal: Principal,
        scope: TenantScope,
        module: SystemModule,
        action: Permission,
    ) -> bool:
        module = SystemModule(module)
        action = Permission(action)
        if principal.role == Role.SUPER_ADMIN:
            return True
        if principal.role == Role.SHOP_OWNER:
            return principal.id == scope.owner_id
        if principal.role == Role.SHOP_WORKER:
            accepted = [action.value]
            if action != Permission.MANAGE:
                accepted.append(Permission.MANAGE.value)
            allowed = self.repo.has_any(
                user_id=principal.id, shop_id=scope.shop_id, module=module.value, permissions=accepted
            )
            if not allowed:
                metrics.increment_permission_denied(module.value, action.value)
            return allowed
        raise ValueError(f"Unhandled role: {principal.role!r}")

    def require_view(self, principal: Principal, scope: TenantScope, module: SystemModule) -> None:
        if not self.can_act_directly(principal, scope, module, Permission.VIEW):
            raise AppError(
                ErrorCatalog.INSUFFICIENT_PERMISSION,
                details={"module": SystemModule(module).value, "permission": Permission.VIEW.value},
            )

    def effective_permissions(self, principal: Principal, scope: TenantScope) -> dict[str, list[str]]:
        if principal.role in (Role.SUPER_ADMIN, Role.SHOP_OWNER):
            if principal.role == Role.SHOP_OWNER and principal.id != scope.owner_id:
                return {module.value: [] for module in SystemModule}
            full = [action.value for action in DIRECT_ACTIONS] + [Permission.MANAGE.value]
            return {module.value: list(full) for module in SystemModule}

        granted: dict[str, set[str]] = {module.value: set() for module in SystemModule}
        for grant in self.repo.list_active_for_user(principal.id, scope.shop_id):
            if grant.module not in granted:
                continue
            granted[grant.module].add(grant.permission)
        result: dict[str, list[str]] = {}
        for module, perms in granted.items():
            if Permission.MANAGE.value in perms:
                perms = perms | {action.value for action in DIRECT_ACTIONS}
            result[module] = [p.value for p in Permission if p.value in perms]
        return result


class ModuleVisibility:
    """Which modules a principal may read, looked up once per shop.

    Used where stored payloads are handed back, so a worker without VIEW on a
    module sees the envelope of an entry but none of its field values.
    """

    VIEWING = (Permission.VIEW.value, Permission.MANAGE.value)

    def __init__(self, db, principal: Principal):
        self.principal = principal
        self.repo = PermissionGrantRepository(db)
        self._viewable: dict[uuid.UUID, set[str]] = {}

    def can_view(self, shop_id: uuid.UUID | None, module: SystemModule | None) -> bool:
        if module is None or self.principal.role != Role.SHOP_WORKER:
            return True
        if shop_id is None:
            return False
        if shop_id not in self._viewable:
            self._viewable[shop_id] = {
                grant.module
                for grant in self.repo.list_active_for_user(self.principal.id, shop_id)
                if grant.permission in self.VIEWING
            }
        return SystemModule(module).value in self._viewable[shop_id]


class PermissionGrantService:
    def __init__(self, db, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier
        self.repo = PermissionGrantRepository(db)
        self.users = UserRepository(db)
        self.workers = ShopWorkerRepository(db)
        self.audit = AuditTrail(db)

    def list_grants(self, scope: TenantScope, worker_id: uuid.UUID) -> list[GrantSpec]:
        self._ensure_authority(scope, worker_id)
        return self._snapshot(worker_id, scope.shop_id)

    def replace_grants(
        self,
        scope: TenantScope,
        worker_id: uuid.UUID,
        grants: list[GrantSpec],
        reason: str | None = None,
    ) -> list[GrantSpec]:
        actor = scope.principal
        with UnitOfWork(self.db, self.notifier):
            self._ensure_authority(scope, worker_id)
            before = self._snapshot(worker_id, scope.shop_id)
            merged: dict[SystemModule, set[Permission]] = {}
            for grant in grants:
                merged.setdefault(SystemModule(grant.module), set()).update(Permission(p) for p in grant.permissions)
            entries = [
                PermissionGrant(
                    user_id=worker_id,
                    shop_id=scope.shop_id,
                    module=module.value,
                    permission=permission.value,
                    is_active=True,
                    granted_by=actor.id,
                )
                for module, permissions in sorted(merged.items(), key=lambda item: item[0].value)
                for permission in sorted(permissions, key=lambda item: item.value)
            ]
            self.repo.replace_for_user(user_id=worker_id, shop_id=scope.shop_id, entries=entries)
            after = _specs_from_map(merged)
            self.audit.record(
                actor_id=actor.id,
                shop_id=scope.shop_id,
                action=AuditAction.PERMISSIONS_UPDATED,
                table_name="PermissionGrant",
                record_id=str(worker_id),
                changes=build_changes(
                    {"grants": _specs_to_json(before)},
                    {"grants": _specs_to_json(after)},
                    reason=reason,
                    changed_by=str(actor.id),
                ),
            )
        return after

    def _ensure_authority(self, scope: TenantScope, worker_id: uuid.UUID) -> None:
        actor = scope.principal
        worker = self.users.get_by_id(worker_id)
        if worker is None or worker.role != Role.SHOP_WORKER.value:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"user_id": str(worker_id)})
        if self.workers.get(user_id=worker_id, shop_id=scope.shop_id) is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"user_id": str(worker_id)})
        if actor.role == Role.SUPER_ADMIN:
            return
        if actor.role == Role.SHOP_OWNER and scope.is_owner:
            return
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "Only the shop owner can manage permissions"})

    def _snapshot(self, worker_id: uuid.UUID, shop_id: uuid.UUID) -> list[GrantSpec]:
        merged: dict[SystemModule, set[Permission]] = {}
        for grant in self.repo.list_active_for_user(worker_id, shop_id):
            merged.setdefault(SystemModule(grant.module), set()).add(Permission(grant.permission))
        return _specs_from_map(merged)


def _specs_from_map(merged: dict[SystemModule, set[Permission]]) -> list[GrantSpec]:
    return [
        GrantSpec(module=module, permissions=tuple(p for p in Permission if p in permissions))
        for module, permissions in sorted(merged.items(), key=lambda item: item[0].value)
        if permissions
    ]


def _specs_to_json(specs: list[GrantSpec]) -> list[dict]:
    return [{"module": spec.module.value, "permissions": [p.value for p in spec.permissions]} for spec in specs]
