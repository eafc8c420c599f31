"""
Rotate Credentials Use Case
"""

import logging
import time
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore
from claim_service.app.services.device_credentials import generate_mqtt_credentials
from claim_service.app.services.device_messenger import DeviceMessagingError, IDeviceMessenger
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import RotateCredentialsResponse

logger = logging.getLogger(__name__)

ROTATE_COMMAND = "rotate_credentials"


class RotateCredentialsUseCase:
    """
    Issue a fresh MQTT password to an online device.

    Business Rules:
    - Global superadmin only
    - Device must be live and online; an offline device could never
      receive the new password
    - The broker learns the new password before the database does, so a
      sync failure leaves everything untouched
    - If the database commit fails afterwards the broker entry is put back
      to the previous password
    - The device receives the password on its command topic (not retained)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        credential_store: ICredentialStore,
        messenger: IDeviceMessenger,
    ):
        self.uow = uow
        self.credential_store = credential_store
        self.messenger = messenger

    async def execute(
        self, auth: AuthContext, device_id: UUID, actor_ip: Optional[str] = None
    ) -> Result[RotateCredentialsResponse]:
        if not auth.is_global_superadmin:
            return Return.err(
                Error("FORBIDDEN", "Only superadmins can rotate device credentials")
            )

        async with self.uow:
            device = await self.uow.devices.get_by_id(device_id)
            if device is None or not device.is_live:
                return Return.err(Error("DEVICE_NOT_FOUND", "Device not found"))

            if not device.online:
                return Return.err(
                    Error(
                        "DEVICE_OFFLINE",
                        "Device is offline - cannot rotate credentials",
                        "The device must be online to receive new credentials",
                    )
                )

            credentials = generate_mqtt_credentials(device.mqtt_client_id)
            previous_password = device.mqtt_password_plain
            username = device.mqtt_username
            mqtt_client_id = device.mqtt_client_id
            tenant_id = device.tenant_id
            device_name = device.name

            try:
                await self.credential_store.sync_device(username, credentials.password)
            except CredentialStoreError as exc:
                logger.error(f"Credential rotation sync failed for {mqtt_client_id}: {exc}")
                return Return.err(
                    Error(
                        "CREDENTIAL_SYNC_FAILED",
                        "Failed to update broker credentials",
                        str(exc),
                    )
                )

            try:
                device.mqtt_password_hash = credentials.password_hash
                device.mqtt_password_plain = credentials.password
                device.updated_at = utcnow()
                await self.uow.devices.update(device)
                await self.uow.commit()
            except SQLAlchemyError:
                await self.uow.rollback()
                await self._restore_broker_entry(username, previous_password)
                raise

            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device_id,
                    device_mac=device.mac_address,
                    device_name=device_name,
                    tenant_id=tenant_id,
                    action=ClaimAction.credential_rotation,
                    trigger_source=TriggerSource.admin_dashboard,
                    actor_user_id=auth.user_id,
                    actor_ip=actor_ip,
                )
            )

        rotation_id = str(uuid4())
        command_published = True
        try:
            await self.messenger.publish_command(
                tenant_id,
                mqtt_client_id,
                ROTATE_COMMAND,
                {
                    "command": ROTATE_COMMAND,
                    "password": credentials.password,
                    "rotationId": rotation_id,
                    "timestamp": int(time.time() * 1000),
                },
            )
        except DeviceMessagingError as exc:
            command_published = False
            logger.warning(f"rotate_credentials publish failed for {mqtt_client_id}: {exc}")

        logger.info(f"Rotated MQTT credentials for {mqtt_client_id} (rotation {rotation_id})")

        return Return.ok(
            RotateCredentialsResponse(
                rotation_id=rotation_id,
                device_id=str(device_id),
                device_name=device_name,
                command_published=command_published,
                message="Credential rotation initiated",
                note=None
                if command_published
                else "Device was not notified; use recover-claim from the device to resynchronize",
            )
        )

    async def _restore_broker_entry(self, username: str, previous_password: Optional[str]):
        try:
            if previous_password:
                await self.credential_store.sync_device(username, previous_password)
            else:
                await self.credential_store.remove_device(username)
        except CredentialStoreError as exc:
            logger.error(f"Could not restore broker entry for {username}: {exc}")
