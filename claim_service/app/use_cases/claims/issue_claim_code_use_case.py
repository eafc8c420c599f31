"""
Issue Claim Code Use Case

Creates the short code an admin types into the dashboard and later enters
on the device (or hands to an installer) to bind it to a tenant.
"""

import logging
import secrets
from datetime import timedelta

from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import ClaimCode
from claim_service.libs.result import Error, Result, Return
from .dtos import ClaimCodeResponse, IssueClaimCodeCommand

logger = logging.getLogger(__name__)

# No 0/O or 1/I, which are easily confused when read off a screen
CLAIM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CLAIM_CODE_LENGTH = 8
MAX_GENERATION_ATTEMPTS = 10


def generate_claim_code() -> str:
    return "".join(secrets.choice(CLAIM_CODE_ALPHABET) for _ in range(CLAIM_CODE_LENGTH))


class IssueClaimCodeUseCase:
    """
    Business Rules:
    - Caller must administer the target tenant (or be a global superadmin)
    - Target tenant must exist and not be deleted
    - Code is unique; generation gives up after 10 collisions
    - Code expires after 7 days by default
    """

    def __init__(self, uow: UnitOfWork, ttl_days: int = 7):
        self.uow = uow
        self.ttl_days = ttl_days

    async def execute(
        self, auth: AuthContext, command: IssueClaimCodeCommand
    ) -> Result[ClaimCodeResponse]:
        if not auth.can_administer(command.tenant_id):
            return Return.err(
                Error("FORBIDDEN", "You do not have permission to issue claim codes for this tenant")
            )

        device_name = command.device_name.strip()
        if not device_name:
            return Return.err(Error("VALIDATION_ERROR", "deviceName is required"))

        async with self.uow:
            tenant = await self.uow.tenants.get_by_id(command.tenant_id)
            if tenant is None or tenant.is_deleted:
                return Return.err(Error("TENANT_NOT_FOUND", "Tenant not found"))

            code = None
            for _ in range(MAX_GENERATION_ATTEMPTS):
                candidate = generate_claim_code()
                if await self.uow.claim_codes.get_by_code(candidate) is None:
                    code = candidate
                    break

            if code is None:
                return Return.err(
                    Error("CODE_GENERATION_FAILED", "Failed to generate unique claim code")
                )

            claim_code = await self.uow.claim_codes.create(
                ClaimCode(
                    claim_code=code,
                    tenant_id=tenant.id,
                    device_name=device_name,
                    expires_at=utcnow() + timedelta(days=self.ttl_days),
                )
            )
            await self.uow.commit()

            logger.info(f"Claim code issued for tenant {tenant.id} by user {auth.user_id}")
            return Return.ok(ClaimCodeResponse.from_entity(claim_code))
