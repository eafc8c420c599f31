from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.adapter.repositories.claim_audit_repository import ClaimAuditRepository
from claim_service.adapter.repositories.claim_code_repository import ClaimCodeRepository
from claim_service.adapter.repositories.claiming_queue_repository import (
    ClaimingQueueRepository,
)
from claim_service.adapter.repositories.device_repository import DeviceRepository
from claim_service.adapter.repositories.membership_repository import MembershipRepository
from claim_service.adapter.repositories.session_repository import SessionRepository
from claim_service.adapter.repositories.tenant_repository import TenantRepository
from claim_service.adapter.repositories.user_repository import UserRepository
from claim_service.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.users = UserRepository(self.session)
        self.tenants = TenantRepository(self.session)
        self.memberships = MembershipRepository(self.session)
        self.sessions = SessionRepository(self.session)
        self.devices = DeviceRepository(self.session)
        self.claim_codes = ClaimCodeRepository(self.session)
        self.claiming_queue = ClaimingQueueRepository(self.session)
        self.claim_audit = ClaimAuditRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
