from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from app.shopgate.core.enums import PrincipalStatus, Role


@dataclass(frozen=True)
class Principal:
    """An authenticated actor as seen by the access-control core."""

    id: uuid.UUID
    role: Role
    status: PrincipalStatus
    email: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == PrincipalStatus.ACTIVE

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(
            id=user.id,
            role=Role(user.role),
            status=PrincipalStatus(user.status),
            email=user.email,
        )


@dataclass(frozen=True)
class TenantScope:
    """Resolved shop scope for one request.

    Produced only by ``ShopContextResolver``; every other component takes the
    scope as given instead of re-deriving shop membership.
    """

    shop_id: uuid.UUID
    owner_id: uuid.UUID
    principal: Principal
    accessible_shop_ids: tuple[uuid.UUID, ...] = field(default_factory=tuple)

    @property
    def is_owner(self) -> bool:
        return self.principal.role == Role.SHOP_OWNER and self.principal.id == self.owner_id

