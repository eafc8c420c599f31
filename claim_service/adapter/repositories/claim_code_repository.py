from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.app.repositories.claim_code_repository import IClaimCodeRepository
from claim_service.domain.entities import ClaimCode, ClaimCodeStatus


class ClaimCodeRepository(IClaimCodeRepository):
    """Claim code repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_code(self, code: str) -> Optional[ClaimCode]:
        """Get claim code by value"""
        stmt = select(ClaimCode).where(ClaimCode.claim_code == code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_by_code(self, code: str, now: datetime) -> Optional[ClaimCode]:
        """Get active, unexpired claim code"""
        stmt = select(ClaimCode).where(
            ClaimCode.claim_code == code,
            ClaimCode.status == ClaimCodeStatus.active,
            ClaimCode.expires_at > now,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, claim_code: ClaimCode) -> ClaimCode:
        """Create a new claim code"""
        self.session.add(claim_code)
        await self.session.flush()
        await self.session.refresh(claim_code)
        return claim_code

    async def mark_claimed(
        self, claim_code_id: UUID, device_id: UUID, claimed_at: datetime
    ) -> bool:
        """Conditionally flip an active code to claimed"""
        stmt = (
            update(ClaimCode)
            .where(
                ClaimCode.id == claim_code_id,
                ClaimCode.status == ClaimCodeStatus.active,
            )
            .values(
                status=ClaimCodeStatus.claimed,
                claimed_at=claimed_at,
                claimed_by_device_id=device_id,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    async def list_recent(
        self, tenant_ids: Optional[Iterable[UUID]] = None, limit: int = 100
    ) -> List[ClaimCode]:
        """List newest claim codes"""
        stmt = select(ClaimCode)
        if tenant_ids is not None:
            stmt = stmt.where(ClaimCode.tenant_id.in_(list(tenant_ids)))
        stmt = stmt.order_by(ClaimCode.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
