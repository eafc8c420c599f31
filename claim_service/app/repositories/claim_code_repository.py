from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from claim_service.domain.entities import ClaimCode


class IClaimCodeRepository(ABC):
    """Claim code repository interface - application layer"""

    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[ClaimCode]:
        """Get claim code by its code value regardless of status"""
        pass

    @abstractmethod
    async def get_active_by_code(self, code: str, now: datetime) -> Optional[ClaimCode]:
        """Get claim code that is active and unexpired at ``now``"""
        pass

    @abstractmethod
    async def create(self, claim_code: ClaimCode) -> ClaimCode:
        """Create a new claim code"""
        pass

    @abstractmethod
    async def mark_claimed(
        self, claim_code_id: UUID, device_id: UUID, claimed_at: datetime
    ) -> bool:
        """
        Transition an active code to claimed.

        Returns False if the code was no longer active, meaning another
        claimant consumed it first.
        """
        pass

    @abstractmethod
    async def list_recent(
        self, tenant_ids: Optional[Iterable[UUID]] = None, limit: int = 100
    ) -> List[ClaimCode]:
        """List newest claim codes, optionally restricted to tenants"""
        pass
