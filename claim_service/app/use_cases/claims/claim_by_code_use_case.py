"""
Claim By Code Use Case

Turns a dashboard-issued claim code into a live device with fresh MQTT
credentials.
"""

import logging

from sqlalchemy.exc import IntegrityError

from claim_service.app.services.credential_store import (
    CredentialStoreError,
    ICredentialStore,
    remove_device_quietly,
)
from claim_service.app.services.device_credentials import generate_mqtt_credentials
from claim_service.app.services.device_messenger import (
    IDeviceMessenger,
    clear_revocation_quietly,
)
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import (
    InvalidMacAddress,
    canonical_mac,
    parse_mac,
)
from claim_service.domain.entities import (
    ClaimAction,
    Device,
    DeviceClaimAudit,
    TriggerSource,
)
from claim_service.libs.result import Error, Result, Return
from .dtos import ClaimByCodeCommand, ClaimedDeviceResponse

logger = logging.getLogger(__name__)

INVALID_CODE = Error("INVALID_OR_EXPIRED_CODE", "Invalid or expired claim code")
ALREADY_CLAIMED = Error(
    "DEVICE_ALREADY_CLAIMED", "Device is already claimed. Unclaim it first."
)


class ClaimByCodeUseCase:
    """
    Claim a device with a claim code.

    Business Rules:
    - Code must be active and unexpired; wrong and expired codes are
      reported identically
    - A live device with the same MAC blocks the claim
    - A soft-deleted device with the same MAC is hard-deleted first
    - The device row is committed before broker sync; if sync fails the
      row is deleted again so no device exists without a broker account
    - A race on the live-unique index is reported as DEVICE_ALREADY_CLAIMED
    - The code is consumed with a conditional update; losing that race
      undoes the claim
    - Claiming-queue entry for the MAC is removed
    - Audit entry and retained-revoke cleanup are best-effort
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

    async def execute(self, command: ClaimByCodeCommand) -> Result[ClaimedDeviceResponse]:
        """
        Execute claim by code.

        Args:
            command: claim code and the device's reported hardware info

        Returns:
            Result with the one-time credential bundle, or Error
        """
        async with self.uow:
            now = utcnow()
            claim_code = await self.uow.claim_codes.get_active_by_code(
                command.claim_code.strip().upper(), now
            )
            if claim_code is None:
                return Return.err(INVALID_CODE)

            try:
                mqtt_client_id = parse_mac(command.device_info.mac_address)
            except InvalidMacAddress as exc:
                return Return.err(Error("INVALID_MAC", str(exc)))
            mac_address = canonical_mac(mqtt_client_id)

            existing = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)
            if existing is not None:
                if existing.is_live:
                    return Return.err(ALREADY_CLAIMED)
                logger.info(
                    f"Removing unclaimed device row {existing.id} before reclaiming {mqtt_client_id}"
                )
                await self.uow.devices.delete(existing)

            credentials = generate_mqtt_credentials(mqtt_client_id)
            info = command.device_info
            device = Device(
                tenant_id=claim_code.tenant_id,
                mqtt_client_id=mqtt_client_id,
                mac_address=mac_address,
                mqtt_username=credentials.username,
                mqtt_password_hash=credentials.password_hash,
                mqtt_password_plain=credentials.password,
                name=claim_code.device_name,
                hardware_version=info.hardware_version,
                firmware_version=info.firmware_version,
                filesystem_version=info.filesystem_version,
                status="offline",
                online=True,
                last_seen=now,
                claimed_at=now,
            )

            try:
                device = await self.uow.devices.create(device)
                await self.uow.commit()
            except IntegrityError:
                await self.uow.rollback()
                logger.warning(f"Concurrent claim lost for {mqtt_client_id}")
                return Return.err(ALREADY_CLAIMED)

            # Broker sync happens after the row is durable; undo the row if it fails
            try:
                await self.credential_store.sync_device(
                    credentials.username, credentials.password, trigger_reload=True
                )
            except CredentialStoreError as exc:
                logger.error(f"Credential sync failed for {mqtt_client_id}, removing device: {exc}")
                await self.uow.devices.delete(device)
                await self.uow.commit()
                return Return.err(
                    Error(
                        "CREDENTIAL_SYNC_FAILED",
                        "Failed to sync MQTT credentials. Please try again.",
                        reason=str(exc),
                    )
                )

            consumed = await self.uow.claim_codes.mark_claimed(claim_code.id, device.id, now)
            if not consumed:
                logger.warning(f"Claim code {claim_code.claim_code} was consumed concurrently")
                await self.uow.devices.delete(device)
                await self.uow.commit()
                await remove_device_quietly(self.credential_store, credentials.username)
                return Return.err(INVALID_CODE)

            await self.uow.claiming_queue.delete_by_mac(mac_address)
            await self.uow.commit()

            response = ClaimedDeviceResponse(
                device_id=str(device.id),
                tenant_id=str(device.tenant_id),
                mqtt_client_id=mqtt_client_id,
                mqtt_username=credentials.username,
                mqtt_password=credentials.password,
                mqtt_broker_url=self.broker_url,
                device_name=device.name,
            )

            await clear_revocation_quietly(self.messenger, device.tenant_id, mqtt_client_id)
            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device.id,
                    device_mac=mac_address,
                    device_name=device.name,
                    tenant_id=device.tenant_id,
                    action=ClaimAction.claim,
                    trigger_source=TriggerSource.claim_code,
                    actor_ip=command.actor_ip,
                    event_metadata={"claimCode": claim_code.claim_code},
                )
            )

            logger.info(f"Device {mqtt_client_id} claimed into tenant {response.tenant_id}")
            return Return.ok(response)
