"""
Login Use Case

Dashboard sign-in. Issues a tenant-scoped access token and a refresh token.
"""

import logging
import secrets
from datetime import timedelta

import bcrypt

from claim_service.api.utils.jwt import generate_jwt
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import Session
from claim_service.libs.result import Error, Result, Return
from .dtos import LoginResponse, TenantInfo

logger = logging.getLogger(__name__)

_DUMMY_HASH = bcrypt.hashpw(b"dummy_password", bcrypt.gensalt(12))


class LoginUseCase:
    """
    Use case for user login and JWT issuance.

    Business Rules:
    - Constant-time password comparison, also for unknown emails
    - Inactive users cannot sign in
    - User must belong to at least one live tenant
    - JWT scoped to last_active_tenant_id or the oldest membership
    - Creates new session with refresh token
    - Updates user.last_login_at
    """

    def __init__(self, uow: UnitOfWork, refresh_token_days: int = 30):
        self.uow = uow
        self.refresh_token_days = refresh_token_days

    async def execute(self, email: str, password: str) -> Result[LoginResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_email(email.lower())

            if user is None:
                bcrypt.checkpw(password.encode(), _DUMMY_HASH)
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password"))

            if not bcrypt.checkpw(password.encode(), user.password_hash.encode()):
                return Return.err(Error("INVALID_CREDENTIALS", "Invalid email or password"))

            if not user.is_active:
                return Return.err(Error("USER_DISABLED", "User account is disabled"))

            memberships = await self.uow.memberships.get_by_user_id(user.id)

            tenants = {}
            for m in memberships:
                tenant = await self.uow.tenants.get_by_id(m.tenant_id)
                if tenant is not None and not tenant.is_deleted:
                    tenants[m.tenant_id] = (tenant, m)

            if not tenants:
                return Return.err(
                    Error("NO_ACTIVE_MEMBERSHIP", "User has no active tenant memberships")
                )

            if user.last_active_tenant_id in tenants:
                tenant, membership = tenants[user.last_active_tenant_id]
            else:
                tenant, membership = next(iter(tenants.values()))

            refresh_token = secrets.token_urlsafe(32)
            now = utcnow()
            session = await self.uow.sessions.create(
                Session(
                    user_id=user.id,
                    tenant_id=tenant.id,
                    refresh_token_hash=bcrypt.hashpw(
                        refresh_token.encode(), bcrypt.gensalt(12)
                    ).decode(),
                    expires_at=now + timedelta(days=self.refresh_token_days),
                )
            )

            user.last_login_at = now
            user.last_active_tenant_id = tenant.id
            await self.uow.users.update(user)

            response = LoginResponse(
                access_token=generate_jwt(user.id, tenant.id, membership.role.value),
                refresh_token=refresh_token,
                session_id=str(session.id),
                active_tenant=TenantInfo(
                    id=str(tenant.id), name=tenant.name, role=membership.role.value
                ),
                other_tenants=[
                    TenantInfo(id=str(t.id), name=t.name, role=m.role.value)
                    for t, m in tenants.values()
                    if t.id != tenant.id
                ],
            )

            await self.uow.commit()
            logger.info(f"User {user.id} signed in to tenant {tenant.id}")

            return Return.ok(response)
