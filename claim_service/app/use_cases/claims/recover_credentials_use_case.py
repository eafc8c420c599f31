"""
Recover Credentials Use Case

Re-establishes a live device's broker account when the broker lost it
(password file rebuilt, broker migrated) while the device still holds its
identity.
"""

import hmac
import logging

from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore
from claim_service.app.services.device_credentials import (
    generate_mqtt_credentials,
    password_matches,
)
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import InvalidMacAddress, canonical_mac, parse_mac
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import RecoverCredentialsCommand, RecoverCredentialsResponse

logger = logging.getLogger(__name__)


class RecoverCredentialsUseCase:
    """
    Recover broker credentials for a live device.

    Business Rules:
    - Caller proves identity with the device id or its current password
      (bcrypt hash or plaintext shadow)
    - Soft-deleted devices are gone (DEVICE_REVOKED) and must re-run setup
    - With a plaintext shadow the same password is pushed to the broker
      again and nothing changes in the database
    - Without one a new password is generated; the database change is
      rolled back if the broker sync fails
    """

    def __init__(self, uow: UnitOfWork, credential_store: ICredentialStore, broker_url: str):
        self.uow = uow
        self.credential_store = credential_store
        self.broker_url = broker_url

    async def execute(
        self, command: RecoverCredentialsCommand
    ) -> Result[RecoverCredentialsResponse]:
        try:
            mqtt_client_id = parse_mac(command.mac, allow_bare=True)
        except InvalidMacAddress as exc:
            return Return.err(Error("INVALID_MAC", str(exc)))

        if not command.device_id and not command.current_password:
            return Return.err(
                Error(
                    "VERIFICATION_REQUIRED",
                    "deviceId or currentPassword required for verification",
                )
            )

        async with self.uow:
            device = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)
            if device is None:
                return Return.err(Error("DEVICE_NOT_FOUND", "Device not found"))
            if not device.is_live:
                return Return.err(Error("DEVICE_REVOKED", "Device has been unclaimed"))

            if not self._verify(device, command):
                logger.warning(f"Credential recovery verification failed for {mqtt_client_id}")
                return Return.err(Error("VERIFICATION_FAILED", "Verification failed"))

            password = device.mqtt_password_plain
            new_credentials = password is None

            if new_credentials:
                credentials = generate_mqtt_credentials(device.mqtt_username)
                password = credentials.password
                device.mqtt_password_hash = credentials.password_hash
                device.mqtt_password_plain = credentials.password
                device.updated_at = utcnow()
                await self.uow.devices.update(device)

            try:
                await self.credential_store.sync_device(device.mqtt_username, password)
            except CredentialStoreError as exc:
                logger.error(f"Credential recovery sync failed for {mqtt_client_id}: {exc}")
                await self.uow.rollback()
                return Return.err(
                    Error(
                        "CREDENTIAL_SYNC_FAILED",
                        "Failed to sync credentials to broker",
                        reason=str(exc),
                    )
                )

            await self.uow.commit()

            response = RecoverCredentialsResponse(
                new_credentials=new_credentials,
                device_id=str(device.id),
                tenant_id=str(device.tenant_id),
                mqtt_client_id=device.mqtt_client_id,
                mqtt_username=device.mqtt_username,
                mqtt_password=password,
                mqtt_broker_url=self.broker_url,
                device_name=device.name,
            )

            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device.id,
                    device_mac=canonical_mac(mqtt_client_id),
                    device_name=device.name,
                    tenant_id=device.tenant_id,
                    action=ClaimAction.credential_recovery,
                    trigger_source=TriggerSource.device_http,
                    actor_ip=command.actor_ip,
                    reason=(
                        "New credentials generated - no plaintext available"
                        if new_credentials
                        else "Existing credentials re-synced to broker"
                    ),
                )
            )

            return Return.ok(response)

    @staticmethod
    def _verify(device, command: RecoverCredentialsCommand) -> bool:
        if command.device_id and command.device_id == str(device.id):
            return True
        if not command.current_password:
            return False
        if password_matches(command.current_password, device.mqtt_password_hash):
            return True
        if device.mqtt_password_plain:
            return hmac.compare_digest(
                command.current_password.encode(), device.mqtt_password_plain.encode()
            )
        return False
