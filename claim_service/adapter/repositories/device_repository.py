from typing import Optional
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.app.repositories.device_repository import IDeviceRepository
from claim_service.domain.entities import Device


class DeviceRepository(IDeviceRepository):
    """Device repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, device_id: UUID) -> Optional[Device]:
        """Get device by ID"""
        stmt = select(Device).where(Device.id == device_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_mqtt_client_id(self, mqtt_client_id: str) -> Optional[Device]:
        """Get the live device for a client id, else the newest soft-deleted one"""
        stmt = (
            select(Device)
            .where(Device.mqtt_client_id == mqtt_client_id)
            .order_by(Device.unclaimed_at.is_(None).desc(), Device.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(self, device: Device) -> Device:
        """Insert a new device"""
        self.session.add(device)
        await self.session.flush()
        await self.session.refresh(device)
        return device

    async def update(self, device: Device) -> Device:
        """Update existing device"""
        self.session.add(device)
        await self.session.flush()
        await self.session.refresh(device)
        return device

    async def delete(self, device: Device) -> None:
        """Physically delete a device row"""
        await self.session.delete(device)
        await self.session.flush()
