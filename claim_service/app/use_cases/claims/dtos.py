"""
Claim Use Case DTOs (Data Transfer Objects)

Command and Response classes for the device-facing claim endpoints and
claim code administration.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from claim_service.app.use_cases.dtos import CamelModel


# ============================================================================
# Command DTOs
# ============================================================================


class DeviceInfo(CamelModel):
    """Hardware facts reported by a device when it claims a code"""

    mac_address: str = Field(..., min_length=1)
    hardware_version: Optional[str] = None
    firmware_version: Optional[str] = None
    filesystem_version: Optional[str] = None


class ClaimByCodeCommand(CamelModel):
    claim_code: str = Field(..., min_length=1)
    device_info: DeviceInfo
    actor_ip: Optional[str] = None


class ClaimingModeCommand(CamelModel):
    mac: str
    serial_number: Optional[str] = None
    ip_address: Optional[str] = None


class UnclaimNotifyCommand(CamelModel):
    mac: str
    source: Optional[str] = None
    actor_ip: Optional[str] = None


class RecoverCredentialsCommand(CamelModel):
    mac: str
    device_id: Optional[str] = None
    current_password: Optional[str] = None
    actor_ip: Optional[str] = None


class IssueClaimCodeCommand(CamelModel):
    device_name: str = Field(..., min_length=1, max_length=255)
    tenant_id: UUID


# ============================================================================
# Response DTOs
# ============================================================================


class ClaimedDeviceResponse(CamelModel):
    """Credential bundle handed to a device after a successful claim"""

    device_id: str
    tenant_id: str
    mqtt_client_id: str
    mqtt_username: str
    mqtt_password: str
    mqtt_broker_url: str
    device_name: str


class CheckClaimResponse(CamelModel):
    success: bool = True
    claimed: bool
    message: str
    data: Optional[ClaimedDeviceResponse] = None


class ClaimStatusResponse(CamelModel):
    success: bool = True
    claimed: bool = True


class ClaimingModeResponse(CamelModel):
    message: str
    expires_at: datetime


class UnclaimNotifyResponse(CamelModel):
    message: str


class VerifyRevocationResponse(CamelModel):
    valid: bool
    reason: Optional[str] = None
    message: Optional[str] = None


class RecoverCredentialsResponse(ClaimedDeviceResponse):
    recovered: bool = True
    new_credentials: bool


class ClaimCodeResponse(CamelModel):
    id: str
    claim_code: str
    tenant_id: str
    device_name: str
    status: str
    expires_at: datetime
    created_at: datetime
    claimed_at: Optional[datetime] = None
    claimed_by_device_id: Optional[str] = None

    @classmethod
    def from_entity(cls, code) -> "ClaimCodeResponse":
        return cls(
            id=str(code.id),
            claim_code=code.claim_code,
            tenant_id=str(code.tenant_id),
            device_name=code.device_name,
            status=code.status.value,
            expires_at=code.expires_at,
            created_at=code.created_at,
            claimed_at=code.claimed_at,
            claimed_by_device_id=(
                str(code.claimed_by_device_id) if code.claimed_by_device_id else None
            ),
        )


class ClaimCodeListResponse(CamelModel):
    claim_codes: List[ClaimCodeResponse]
