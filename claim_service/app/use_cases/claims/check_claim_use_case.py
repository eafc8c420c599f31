"""
Check Claim Use Case

Polled by a device in claiming mode until a dashboard claim for its MAC
completes, at which point the credential bundle is handed over.
"""

from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.device_identity import InvalidMacAddress, parse_mac
from claim_service.libs.result import Error, Result, Return
from .dtos import CheckClaimResponse, ClaimedDeviceResponse


class CheckClaimUseCase:
    """
    Business Rules:
    - Only a live device counts as claimed
    - Credentials come from the plaintext shadow of the stored password
    """

    def __init__(self, uow: UnitOfWork, broker_url: str):
        self.uow = uow
        self.broker_url = broker_url

    async def execute(self, mac: str) -> Result[CheckClaimResponse]:
        try:
            mqtt_client_id = parse_mac(mac, allow_bare=True)
        except InvalidMacAddress as exc:
            return Return.err(Error("INVALID_MAC", str(exc)))

        async with self.uow:
            device = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)

            if device is None or not device.is_live or not device.mqtt_password_plain:
                return Return.ok(
                    CheckClaimResponse(claimed=False, message="Waiting for claim to complete")
                )

            return Return.ok(
                CheckClaimResponse(
                    claimed=True,
                    message="Device is claimed",
                    data=ClaimedDeviceResponse(
                        device_id=str(device.id),
                        tenant_id=str(device.tenant_id),
                        mqtt_client_id=device.mqtt_client_id,
                        mqtt_username=device.mqtt_username,
                        mqtt_password=device.mqtt_password_plain,
                        mqtt_broker_url=self.broker_url,
                        device_name=device.name,
                    ),
                )
            )
