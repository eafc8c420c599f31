from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from claim_service.domain.entities import Tenant


class ITenantRepository(ABC):
    """Tenant repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, tenant_id: UUID) -> Optional[Tenant]:
        """Get tenant by ID, including soft-deleted tenants"""
        pass

    @abstractmethod
    async def get_live_by_name(self, name: str) -> Optional[Tenant]:
        """Get non-deleted tenant by name"""
        pass

    @abstractmethod
    async def create(self, tenant: Tenant) -> Tenant:
        """Create a new tenant"""
        pass
