from sqlalchemy import delete
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.app.repositories.claiming_queue_repository import (
    IClaimingQueueRepository,
)
from claim_service.domain.entities import ClaimingQueueEntry


class ClaimingQueueRepository(IClaimingQueueRepository):
    """Claiming queue repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(self, entry: ClaimingQueueEntry) -> ClaimingQueueEntry:
        """Insert or refresh the entry keyed by MAC"""
        merged = await self.session.merge(entry)
        await self.session.flush()
        return merged

    async def delete_by_mac(self, mac_address: str) -> int:
        """Delete entry for a MAC"""
        stmt = delete(ClaimingQueueEntry).where(
            ClaimingQueueEntry.mac_address == mac_address
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
