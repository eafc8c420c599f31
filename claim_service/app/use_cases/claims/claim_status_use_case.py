"""
Claim Status Use Case

Lightweight poll a claimed device uses to learn whether it has been
revoked while it was offline.
"""

from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.device_identity import InvalidMacAddress, parse_mac
from claim_service.libs.result import Error, Result, Return
from .dtos import ClaimStatusResponse


class ClaimStatusUseCase:
    """
    Business Rules:
    - Unknown device is reported as not found, never as "not claimed";
      the device keeps its credentials on an unknown answer
    - Only an explicit soft-delete is reported as revoked (DEVICE_REVOKED,
      reason carries the revocation time)
    - Response for a live device carries no device details
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, mac: str) -> Result[ClaimStatusResponse]:
        try:
            mqtt_client_id = parse_mac(mac, allow_bare=True)
        except InvalidMacAddress as exc:
            return Return.err(Error("INVALID_MAC", str(exc)))

        async with self.uow:
            device = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)

            if device is None:
                return Return.err(Error("DEVICE_NOT_FOUND", "Device not found"))

            if not device.is_live:
                return Return.err(
                    Error(
                        "DEVICE_REVOKED",
                        "Device has been revoked",
                        reason=device.unclaimed_at.isoformat(),
                    )
                )

            return Return.ok(ClaimStatusResponse(claimed=True))
