"""
Unclaim Notify Use Case

A device reports that it unclaimed itself locally (factory reset or the
on-device UI); the server follows suit.
"""

import logging

from claim_service.app.services.credential_store import ICredentialStore, remove_device_quietly
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import InvalidMacAddress, canonical_mac, parse_mac
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import UnclaimNotifyCommand, UnclaimNotifyResponse

logger = logging.getLogger(__name__)

_SOURCES = {
    "factory_reset": TriggerSource.device_factory_reset,
    "local_ui": TriggerSource.device_local_ui,
}


class UnclaimNotifyUseCase:
    """
    Business Rules:
    - Idempotent: unknown or already-unclaimed devices succeed with a note
    - Live device is soft-deleted (unclaimed_at = now)
    - No revocation token or MQTT revoke: the device initiated this
    - Audit entry and broker credential removal are best-effort
    """

    def __init__(self, uow: UnitOfWork, credential_store: ICredentialStore):
        self.uow = uow
        self.credential_store = credential_store

    async def execute(self, command: UnclaimNotifyCommand) -> Result[UnclaimNotifyResponse]:
        try:
            mqtt_client_id = parse_mac(command.mac, allow_bare=True)
        except InvalidMacAddress as exc:
            return Return.err(Error("INVALID_MAC", str(exc)))

        async with self.uow:
            device = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)

            if device is None:
                return Return.ok(
                    UnclaimNotifyResponse(message="Device not found or already unclaimed")
                )
            if not device.is_live:
                return Return.ok(UnclaimNotifyResponse(message="Device already unclaimed"))

            now = utcnow()
            device.unclaimed_at = now
            device.online = False
            device.updated_at = now
            await self.uow.devices.update(device)
            await self.uow.commit()

            username = device.mqtt_username
            audit = DeviceClaimAudit(
                device_id=device.id,
                device_mac=canonical_mac(mqtt_client_id),
                device_name=device.name,
                tenant_id=device.tenant_id,
                action=ClaimAction.unclaim,
                trigger_source=_SOURCES.get(command.source, TriggerSource.device_unknown),
                actor_ip=command.actor_ip,
                reason="Device-initiated unclaim",
            )
            logger.info(f"Device {mqtt_client_id} reported local unclaim ({command.source})")

            await self.uow.claim_audit.record(audit)
            await remove_device_quietly(self.credential_store, username)

            return Return.ok(UnclaimNotifyResponse(message="Device unclaimed successfully"))
