"""
Claiming Mode Use Case

Records a device that announced, via its physical button, that it is
waiting to be claimed.
"""

from datetime import timedelta

from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import InvalidMacAddress, canonical_mac, parse_mac
from claim_service.domain.entities import ClaimingQueueEntry
from claim_service.libs.result import Error, Result, Return
from .dtos import ClaimingModeCommand, ClaimingModeResponse


class ClaimingModeUseCase:
    """
    Business Rules:
    - MAC must be AA:BB:CC:DD:EE:FF (colon or dash separated)
    - One queue entry per MAC, refreshed on each announcement
    - Entry expires after the claiming window (10 minutes by default)
    """

    def __init__(self, uow: UnitOfWork, ttl_minutes: int = 10):
        self.uow = uow
        self.ttl_minutes = ttl_minutes

    async def execute(self, command: ClaimingModeCommand) -> Result[ClaimingModeResponse]:
        try:
            mqtt_client_id = parse_mac(command.mac)
        except InvalidMacAddress as exc:
            return Return.err(Error("INVALID_MAC", str(exc)))

        expires_at = utcnow() + timedelta(minutes=self.ttl_minutes)

        async with self.uow:
            await self.uow.claiming_queue.upsert(
                ClaimingQueueEntry(
                    mac_address=canonical_mac(mqtt_client_id),
                    serial_number=command.serial_number,
                    ip_address=command.ip_address,
                    expires_at=expires_at,
                )
            )
            await self.uow.commit()

        return Return.ok(
            ClaimingModeResponse(message="Device registered in claiming mode", expires_at=expires_at)
        )
