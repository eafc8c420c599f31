"""
Move Device Use Case

Reassigns a claimed device to another tenant without interrupting it:
same device id, same MQTT credentials, no revocation.
"""

import logging
import time
from uuid import UUID

from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.device_messenger import DeviceMessagingError, IDeviceMessenger
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import ClaimAction, DeviceClaimAudit, TriggerSource
from claim_service.libs.result import Error, Result, Return
from .dtos import MoveDeviceCommand, MoveDeviceResponse, TenantSummary

logger = logging.getLogger(__name__)

UPDATE_TENANT_COMMAND = "update_tenant"


class MoveDeviceUseCase:
    """
    Move a live device between tenants.

    Business Rules:
    - Global superadmin only
    - Target tenant must exist and not be deleted
    - Device must be live
    - Moving into the current tenant is rejected (NO_OP_SAME_TENANT)
    - Only tenant_id changes; id, credentials and claim state are kept
    - An online device is told over its OLD tenant's command topic, which
      is the one it is subscribed to; an offline device picks the new
      tenant up on next connect
    - Publish failure is logged, the move stands
    """

    def __init__(self, uow: UnitOfWork, messenger: IDeviceMessenger):
        self.uow = uow
        self.messenger = messenger

    async def execute(
        self, auth: AuthContext, device_id: UUID, command: MoveDeviceCommand
    ) -> Result[MoveDeviceResponse]:
        if not auth.is_global_superadmin:
            return Return.err(
                Error("FORBIDDEN", "Only superadmins can move devices between tenants")
            )

        async with self.uow:
            target = await self.uow.tenants.get_by_id(command.target_tenant_id)
            if target is None or target.is_deleted:
                return Return.err(Error("TENANT_NOT_FOUND", "Target tenant not found"))

            device = await self.uow.devices.get_by_id(device_id)
            if device is None or not device.is_live:
                return Return.err(Error("DEVICE_NOT_FOUND", "Device not found"))

            if device.tenant_id == target.id:
                return Return.err(
                    Error("NO_OP_SAME_TENANT", "Device is already in this tenant")
                )

            source = await self.uow.tenants.get_by_id(device.tenant_id)
            from_tenant = TenantSummary(
                id=str(device.tenant_id), name=source.name if source else ""
            )
            to_tenant = TenantSummary(id=str(target.id), name=target.name)
            old_tenant_id = device.tenant_id

            device.tenant_id = target.id
            device.updated_at = utcnow()
            await self.uow.devices.update(device)
            await self.uow.commit()

            mqtt_client_id = device.mqtt_client_id
            device_name = device.name
            was_online = device.online
            logger.info(
                f"Device {mqtt_client_id} moved from tenant {old_tenant_id} to {target.id}"
            )

            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device_id,
                    device_mac=device.mac_address,
                    device_name=device_name,
                    tenant_id=target.id,
                    action=ClaimAction.move,
                    trigger_source=TriggerSource.admin_dashboard,
                    actor_user_id=auth.user_id,
                    event_metadata={
                        "fromTenantId": from_tenant.id,
                        "toTenantId": to_tenant.id,
                    },
                )
            )

        command_published = False
        if was_online:
            try:
                await self.messenger.publish_command(
                    old_tenant_id,
                    mqtt_client_id,
                    UPDATE_TENANT_COMMAND,
                    {
                        "command": UPDATE_TENANT_COMMAND,
                        "tenantId": to_tenant.id,
                        "deviceId": str(device_id),
                        "deviceName": device_name,
                        "timestamp": int(time.time() * 1000),
                    },
                )
                command_published = True
            except DeviceMessagingError as exc:
                logger.warning(f"update_tenant publish failed for {mqtt_client_id}: {exc}")

        return Return.ok(
            MoveDeviceResponse(
                device_id=str(device_id),
                device_name=device_name,
                from_tenant=from_tenant,
                to_tenant=to_tenant,
                device_was_online=was_online,
                command_published=command_published,
                note=(
                    "Device was notified via MQTT to update tenant - it will reconnect automatically"
                    if was_online
                    else "Device was offline - it will use new tenant on next connection"
                ),
            )
        )
