from abc import ABC, abstractmethod

from claim_service.app.repositories.claim_audit_repository import IClaimAuditRepository
from claim_service.app.repositories.claim_code_repository import IClaimCodeRepository
from claim_service.app.repositories.claiming_queue_repository import (
    IClaimingQueueRepository,
)
from claim_service.app.repositories.device_repository import IDeviceRepository
from claim_service.app.repositories.membership_repository import IMembershipRepository
from claim_service.app.repositories.session_repository import ISessionRepository
from claim_service.app.repositories.tenant_repository import ITenantRepository
from claim_service.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    tenants: ITenantRepository
    memberships: IMembershipRepository
    sessions: ISessionRepository
    devices: IDeviceRepository
    claim_codes: IClaimCodeRepository
    claiming_queue: IClaimingQueueRepository
    claim_audit: IClaimAuditRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
