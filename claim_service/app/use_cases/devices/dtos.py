"""
Device Lifecycle Use Case DTOs
"""

from typing import Optional
from uuid import UUID

from claim_service.app.use_cases.dtos import CamelModel


class MoveDeviceCommand(CamelModel):
    target_tenant_id: UUID


class UnclaimDeviceResponse(CamelModel):
    message: str
    revocation_published: bool
    credentials_removed: bool


class TenantSummary(CamelModel):
    id: str
    name: str


class MoveDeviceResponse(CamelModel):
    device_id: str
    device_name: str
    from_tenant: TenantSummary
    to_tenant: TenantSummary
    device_was_online: bool
    command_published: bool
    note: str


class RotateCredentialsResponse(CamelModel):
    rotation_id: str
    device_id: str
    device_name: str
    command_published: bool
    message: str
    note: Optional[str] = None
