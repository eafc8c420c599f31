import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.app.repositories.claim_audit_repository import IClaimAuditRepository
from claim_service.domain.entities import DeviceClaimAudit

logger = logging.getLogger(__name__)


class ClaimAuditRepository(IClaimAuditRepository):
    """Device claim audit repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, entry: DeviceClaimAudit) -> bool:
        """Write one audit entry in its own commit, swallowing storage errors"""
        try:
            self.session.add(entry)
            await self.session.commit()
            return True
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.warning(
                f"Failed to write claim audit entry "
                f"(action={entry.action}, device={entry.device_mac}): {exc}"
            )
            return False
