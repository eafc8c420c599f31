"""
Recover Claim Use Case

A device that lost its stored credentials (flash wiped, firmware
reinstalled) asks for them back using only its MAC.

MAC-only authentication is deliberate: the MAC is burned into the
hardware, a recovered device stays in the tenant it was last claimed
into, and the broker only lets it touch its own topics. Rotating the
password on every recovery also invalidates whatever the previous holder
of the credentials had.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore
from claim_service.app.services.device_credentials import generate_mqtt_credentials
from claim_service.app.services.device_messenger import (
    IDeviceMessenger,
    clear_revocation_quietly,
)
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import InvalidMacAddress, canonical_mac, parse_mac
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import MqttCredentialsInfo, RecoverClaimResponse

logger = logging.getLogger(__name__)


class RecoverClaimUseCase:
    """
    Business Rules:
    - MAC accepted with colons, dashes or no separators
    - Unknown MAC -> DEVICE_NOT_CLAIMED (device must run full setup)
    - Soft-deleted device is reactivated in its last tenant
    - Password always rotates; device id and tenant never change
    - Database changes roll back if the broker sync fails
    - Reactivation racing a fresh claim -> DEVICE_ALREADY_CLAIMED
    """

    def __init__(
        self,
        uow: UnitOfWork,
        credential_store: ICredentialStore,
        messenger: IDeviceMessenger,
        broker_url: str,
    ):
        self.uow = uow
        self.credential_store = credential_store
        self.messenger = messenger
        self.broker_url = broker_url

    async def execute(self, mac: str, actor_ip: Optional[str] = None) -> Result[RecoverClaimResponse]:
        try:
            mqtt_client_id = parse_mac(mac, allow_bare=True)
        except InvalidMacAddress:
            return Return.err(Error("INVALID_MAC", "Invalid MAC address format"))

        async with self.uow:
            device = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)
            if device is None:
                return Return.err(Error("DEVICE_NOT_CLAIMED", "Device not claimed"))

            was_unclaimed = not device.is_live
            credentials = generate_mqtt_credentials(device.mqtt_username)
            now = utcnow()

            device.unclaimed_at = None
            device.mqtt_password_hash = credentials.password_hash
            device.mqtt_password_plain = credentials.password
            device.mac_address = canonical_mac(mqtt_client_id)
            device.online = True
            device.last_seen = now
            device.updated_at = now
            try:
                await self.uow.devices.update(device)
            except IntegrityError:
                await self.uow.rollback()
                return Return.err(
                    Error("DEVICE_ALREADY_CLAIMED", "Device was claimed again concurrently")
                )

            try:
                await self.credential_store.sync_device(
                    device.mqtt_username, credentials.password, trigger_reload=True
                )
            except CredentialStoreError as exc:
                logger.error(f"Credential sync failed during recovery for {mqtt_client_id}: {exc}")
                await self.uow.rollback()
                return Return.err(
                    Error(
                        "CREDENTIAL_SYNC_FAILED",
                        "Failed to sync MQTT credentials",
                        reason=str(exc),
                    )
                )

            await self.uow.commit()

            response = RecoverClaimResponse(
                device_id=str(device.id),
                tenant_id=str(device.tenant_id),
                mqtt_client_id=mqtt_client_id,
                mqtt_broker=self.broker_url,
                mqtt_credentials=MqttCredentialsInfo(
                    username=device.mqtt_username, password=credentials.password
                ),
                device_name=device.name,
            )
            audit = DeviceClaimAudit(
                device_id=device.id,
                device_mac=device.mac_address,
                device_name=device.name,
                tenant_id=device.tenant_id,
                action=ClaimAction.reclaim if was_unclaimed else ClaimAction.credential_recovery,
                trigger_source=TriggerSource.device_recovery,
                actor_ip=actor_ip,
                reason="Reactivated unclaimed device" if was_unclaimed else None,
            )
            logger.info(f"Claim recovered for {mqtt_client_id} (reactivated={was_unclaimed})")

            await clear_revocation_quietly(self.messenger, device.tenant_id, mqtt_client_id)
            await self.uow.claim_audit.record(audit)

            return Return.ok(response)
