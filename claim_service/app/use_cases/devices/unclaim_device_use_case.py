"""
Unclaim Device Use Case

An admin releases a device from its tenant. The soft-delete is the
authoritative step; everything after it only speeds up convergence.
"""

import logging
from typing import Optional
from uuid import UUID

from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.credential_store import ICredentialStore, remove_device_quietly
from claim_service.app.services.device_messenger import DeviceMessagingError, IDeviceMessenger
from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import canonical_mac
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import UnclaimDeviceResponse

logger = logging.getLogger(__name__)

REVOKE_REASON = "Admin unclaimed device"


class UnclaimDeviceUseCase:
    """
    Unclaim (revoke) a live device.

    Business Rules:
    - Caller must be admin/superadmin of the device's tenant or a global
      superadmin
    - Only live devices can be unclaimed
    - A revocation token (5 minute expiry) is issued before the soft-delete
    - Soft-delete (unclaimed_at = now) is committed before any side effect
    - Audit entry, MQTT revoke (retained, carries the token) and broker
      credential removal are each best-effort; failures are logged only.
      A device that misses the revoke learns it from claim-status polling
    """

    def __init__(
        self,
        uow: UnitOfWork,
        credential_store: ICredentialStore,
        messenger: IDeviceMessenger,
        revocation_tokens: RevocationTokenStore,
    ):
        self.uow = uow
        self.credential_store = credential_store
        self.messenger = messenger
        self.revocation_tokens = revocation_tokens

    async def execute(
        self, auth: AuthContext, device_id: UUID, actor_ip: Optional[str] = None
    ) -> Result[UnclaimDeviceResponse]:
        async with self.uow:
            device = await self.uow.devices.get_by_id(device_id)
            if device is None or not device.is_live:
                return Return.err(Error("DEVICE_NOT_FOUND", "Device not found"))

            if not auth.can_administer(device.tenant_id):
                return Return.err(
                    Error("FORBIDDEN", "You do not have permission to unclaim this device")
                )

            token = self.revocation_tokens.issue(
                device.id, device.tenant_id, device.mqtt_client_id
            )

            now = utcnow()
            device.unclaimed_at = now
            device.online = False
            device.updated_at = now
            await self.uow.devices.update(device)
            await self.uow.commit()

            tenant_id = device.tenant_id
            mqtt_client_id = device.mqtt_client_id
            username = device.mqtt_username
            device_name = device.name
            logger.info(f"Device {mqtt_client_id} unclaimed by user {auth.user_id}")

            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device_id,
                    device_mac=device.mac_address or canonical_mac(mqtt_client_id),
                    device_name=device_name,
                    tenant_id=tenant_id,
                    action=ClaimAction.unclaim,
                    trigger_source=TriggerSource.admin_dashboard,
                    actor_user_id=auth.user_id,
                    actor_ip=actor_ip,
                    reason=REVOKE_REASON,
                )
            )

        revocation_published = True
        try:
            await self.messenger.publish_revocation(tenant_id, mqtt_client_id, token, REVOKE_REASON)
        except DeviceMessagingError as exc:
            revocation_published = False
            logger.warning(f"Revocation publish failed for {mqtt_client_id}: {exc}")

        credentials_removed = await remove_device_quietly(self.credential_store, username)

        return Return.ok(
            UnclaimDeviceResponse(
                message=f'Device "{device_name}" has been unclaimed and revoked',
                revocation_published=revocation_published,
                credentials_removed=credentials_removed,
            )
        )
