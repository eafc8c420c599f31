from abc import ABC, abstractmethod

from claim_service.domain.entities import DeviceClaimAudit


class IClaimAuditRepository(ABC):
    """Device claim audit repository interface - application layer"""

    @abstractmethod
    async def record(self, entry: DeviceClaimAudit) -> bool:
        """
        Write and commit one audit entry on its own.

        Best-effort: storage failures are logged and reported as False,
        never raised. Call only after the audited change is committed.
        """
        pass
