from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from claim_service.domain.entities import Device


class IDeviceRepository(ABC):
    """Device repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, device_id: UUID) -> Optional[Device]:
        """Get device by ID, live or soft-deleted"""
        pass

    @abstractmethod
    async def get_by_mqtt_client_id(self, mqtt_client_id: str) -> Optional[Device]:
        """
        Get the device row for a client id.

        The live row wins; otherwise the most recently created soft-deleted
        row is returned.
        """
        pass

    @abstractmethod
    async def create(self, device: Device) -> Device:
        """Insert a new device"""
        pass

    @abstractmethod
    async def update(self, device: Device) -> Device:
        """Update existing device"""
        pass

    @abstractmethod
    async def delete(self, device: Device) -> None:
        """Physically delete a device row"""
        pass
