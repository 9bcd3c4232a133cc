"""Capability-based authorization policy.

Every protected mutation asks the policy for one capability instead of
comparing role strings at the call site. Owner-scoped capabilities also
require the actor to be the creator of the resource, unless the role is
exempt from ownership checks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from uuid import UUID

from jam3a.db.models.user import User, UserRole
from jam3a.domain.errors import ForbiddenError


class Capability(enum.StrEnum):
    """Actions guarded by the policy."""

    DEALS_CREATE = "deals.create"
    DEALS_UPDATE = "deals.update"
    DEALS_DELETE = "deals.delete"
    DEALS_CHANGE_STATUS = "deals.change_status"
    DEALS_JOIN = "deals.join"
    PRODUCTS_CREATE = "products.create"
    PRODUCTS_UPDATE = "products.update"
    PRODUCTS_DELETE = "products.delete"
    CATEGORIES_MANAGE = "categories.manage"


OWNER_SCOPED = frozenset(
    {
        Capability.DEALS_UPDATE,
        Capability.DEALS_DELETE,
        Capability.DEALS_CHANGE_STATUS,
        Capability.PRODUCTS_UPDATE,
        Capability.PRODUCTS_DELETE,
    }
)

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.ADMIN: frozenset(Capability),
    UserRole.SELLER: frozenset(
        {
            Capability.DEALS_CREATE,
            Capability.DEALS_UPDATE,
            Capability.DEALS_DELETE,
            Capability.DEALS_CHANGE_STATUS,
            Capability.DEALS_JOIN,
            Capability.PRODUCTS_CREATE,
            Capability.PRODUCTS_UPDATE,
            Capability.PRODUCTS_DELETE,
        }
    ),
    UserRole.CUSTOMER: frozenset({Capability.DEALS_JOIN}),
    UserRole.USER: frozenset({Capability.DEALS_JOIN}),
}

OWNERSHIP_EXEMPT_ROLES = frozenset({UserRole.ADMIN})


@dataclass(slots=True, frozen=True)
class Actor:
    """Authenticated user performing an operation."""

    user_id: UUID
    role: UserRole
    email: str
    name: str

    @classmethod
    def from_user(cls, user: User) -> Actor:
        return cls(
            user_id=user.id,
            role=UserRole(user.role),
            email=user.email,
            name=user.name,
        )


class AuthorizationPolicy:
    """Single decision point for role capabilities and ownership."""

    def __init__(
        self,
        role_capabilities: dict[UserRole, frozenset[Capability]] | None = None,
    ) -> None:
        self._role_capabilities = role_capabilities or ROLE_CAPABILITIES

    def allows(
        self,
        actor: Actor,
        capability: Capability,
        *,
        owner_id: UUID | None = None,
    ) -> bool:
        granted = self._role_capabilities.get(actor.role, frozenset())
        if capability not in granted:
            return False
        if capability not in OWNER_SCOPED or actor.role in OWNERSHIP_EXEMPT_ROLES:
            return True
        return owner_id is not None and owner_id == actor.user_id

    def require(
        self,
        actor: Actor,
        capability: Capability,
        *,
        owner_id: UUID | None = None,
    ) -> None:
        """Raise ForbiddenError unless the actor holds the capability."""

        if not self.allows(actor, capability, owner_id=owner_id):
            raise ForbiddenError(
                message="Forbidden: insufficient permissions.",
                details={"capability": capability.value, "role": actor.role.value},
            )
