"""
Refresh Token Use Case

Handles JWT token refresh with refresh token rotation.
"""

import secrets
from datetime import timedelta

import bcrypt

from claim_service.api.utils.jwt import generate_jwt
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.libs.result import Error, Result, Return
from .dtos import RefreshTokenResponse


class RefreshTokenUseCase:
    """
    Use case for refreshing JWT access tokens.

    Business Rules:
    - Refresh token rotation: old token invalidated, new token issued
    - Session must not be revoked or expired
    - Membership must still exist
    """

    def __init__(self, uow: UnitOfWork, refresh_token_days: int = 30):
        self.uow = uow
        self.refresh_token_days = refresh_token_days

    async def execute(self, refresh_token: str) -> Result[RefreshTokenResponse]:
        async with self.uow:
            matching_session = await self.uow.sessions.find_by_refresh_token(refresh_token)

            if matching_session is None:
                return Return.err(Error("INVALID_TOKEN", "Invalid refresh token"))

            if matching_session.revoked:
                return Return.err(Error("SESSION_REVOKED", "Session has been revoked"))

            now = utcnow()
            if matching_session.expires_at < now:
                return Return.err(Error("SESSION_EXPIRED", "Session has expired"))

            membership = await self.uow.memberships.get_by_user_and_tenant(
                matching_session.user_id, matching_session.tenant_id
            )
            if membership is None:
                return Return.err(Error("MEMBERSHIP_REVOKED", "Membership has been revoked"))

            new_refresh_token = secrets.token_urlsafe(32)
            matching_session.refresh_token_hash = bcrypt.hashpw(
                new_refresh_token.encode(), bcrypt.gensalt(12)
            ).decode()
            matching_session.expires_at = now + timedelta(days=self.refresh_token_days)
            await self.uow.sessions.update(matching_session)

            response = RefreshTokenResponse(
                access_token=generate_jwt(
                    matching_session.user_id,
                    matching_session.tenant_id,
                    membership.role.value,
                ),
                refresh_token=new_refresh_token,
                session_id=str(matching_session.id),
            )

            await self.uow.commit()

            return Return.ok(response)
