from abc import ABC, abstractmethod

from claim_service.domain.entities import ClaimingQueueEntry


class IClaimingQueueRepository(ABC):
    """Claiming queue repository interface - application layer"""

    @abstractmethod
    async def upsert(self, entry: ClaimingQueueEntry) -> ClaimingQueueEntry:
        """Insert or refresh the entry for a MAC"""
        pass

    @abstractmethod
    async def delete_by_mac(self, mac_address: str) -> int:
        """Delete the entry for a canonical MAC. Returns count deleted."""
        pass
