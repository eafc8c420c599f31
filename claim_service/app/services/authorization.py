"""
Per-request authorization capability.

Computed once from the caller's memberships and passed to use cases, so no
route re-derives "is this user a superadmin somewhere" on its own.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
from uuid import UUID

from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.entities import MembershipRole

_ADMIN_ROLES = (MembershipRole.admin, MembershipRole.superadmin)


@dataclass(frozen=True)
class AuthContext:
    user_id: UUID
    is_global_superadmin: bool = False
    tenant_roles: Dict[UUID, MembershipRole] = field(default_factory=dict)

    def role_in(self, tenant_id: UUID) -> Optional[MembershipRole]:
        return self.tenant_roles.get(tenant_id)

    def can_administer(self, tenant_id: UUID) -> bool:
        return self.is_global_superadmin or self.role_in(tenant_id) in _ADMIN_ROLES

    def administered_tenants(self) -> list[UUID]:
        return [t for t, role in self.tenant_roles.items() if role in _ADMIN_ROLES]

    def can_grant_role(self, tenant_id: UUID, role: MembershipRole) -> bool:
        """superadmin can only be granted by a superadmin"""
        if role == MembershipRole.superadmin:
            return (
                self.is_global_superadmin
                or self.role_in(tenant_id) == MembershipRole.superadmin
            )
        return self.can_administer(tenant_id)


async def load_auth_context(
    uow: UnitOfWork, user_id: UUID, master_tenant_id: UUID
) -> AuthContext:
    """Build the capability object for a user from their memberships"""
    async with uow:
        memberships = await uow.memberships.get_by_user_id(user_id)
        tenant_roles = {m.tenant_id: m.role for m in memberships}

    return AuthContext(
        user_id=user_id,
        is_global_superadmin=tenant_roles.get(master_tenant_id) == MembershipRole.superadmin,
        tenant_roles=tenant_roles,
    )
