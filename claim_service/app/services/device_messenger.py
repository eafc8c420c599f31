import logging
from abc import ABC, abstractmethod
from uuid import UUID

logger = logging.getLogger(__name__)


class DeviceMessagingError(Exception):
    """A message could not be delivered to the broker"""


class IDeviceMessenger(ABC):
    """Publishes server-to-device instructions over MQTT"""

    @abstractmethod
    async def publish_revocation(
        self, tenant_id: UUID, mqtt_client_id: str, token: str, reason: str
    ) -> None:
        """Publish a retained revoke instruction carrying a verification token"""
        pass

    @abstractmethod
    async def clear_revocation(self, tenant_id: UUID, mqtt_client_id: str) -> None:
        """Clear a retained revoke instruction"""
        pass

    @abstractmethod
    async def publish_command(
        self, tenant_id: UUID, mqtt_client_id: str, command: str, payload: dict
    ) -> None:
        """Publish a command on the device's command topic"""
        pass


async def clear_revocation_quietly(
    messenger: IDeviceMessenger, tenant_id: UUID, mqtt_client_id: str
) -> bool:
    """Clear a stale retained revoke; failures are logged, not raised"""
    try:
        await messenger.clear_revocation(tenant_id, mqtt_client_id)
        return True
    except DeviceMessagingError as exc:
        logger.warning(f"Could not clear retained revoke for {mqtt_client_id}: {exc}")
        return False
