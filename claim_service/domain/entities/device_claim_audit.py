"""
DeviceClaimAudit Entity

Append-only log of claim lifecycle actions.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, JSON, SQLModel

from claim_service.domain.clock import utcnow

from .enums import ClaimAction, TriggerSource


class DeviceClaimAudit(SQLModel, table=True):
    """
    DeviceClaimAudit entity - immutable record of claim/unclaim actions.

    Business Rules:
    - Immutable (never updated or deleted)
    - Written best-effort; a failed write never blocks the state change
    - device_id is not a foreign key so entries outlive hard-deleted devices
    """

    __tablename__ = "device_claim_audit"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    device_id: Optional[UUID] = Field(default=None, index=True)
    device_mac: Optional[str] = Field(default=None, max_length=17)
    device_name: Optional[str] = Field(default=None, max_length=255)
    tenant_id: Optional[UUID] = Field(default=None, index=True)

    action: ClaimAction = Field(nullable=False)
    trigger_source: TriggerSource = Field(nullable=False)

    actor_user_id: Optional[UUID] = Field(default=None)
    actor_ip: Optional[str] = Field(default=None, max_length=64)
    reason: Optional[str] = Field(default=None, max_length=255)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_claim_audit_created_at", "created_at"),
        Index("idx_claim_audit_device_mac", "device_mac"),
    )
