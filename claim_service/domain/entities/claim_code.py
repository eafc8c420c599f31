"""
ClaimCode Entity

Short human-readable code that binds the next device to claim it to a
tenant and a device name.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from claim_service.domain.clock import utcnow

from .enums import ClaimCodeStatus


class ClaimCode(SQLModel, table=True):
    """
    ClaimCode entity - single-use device enrollment code.

    Business Rules:
    - 8 characters, no ambiguous glyphs (0/O, 1/I)
    - Expires 7 days after issuance
    - Transitions active -> claimed exactly once, only while unexpired
    """

    __tablename__ = "claim_codes"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    claim_code: str = Field(unique=True, index=True, max_length=8)

    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    device_name: str = Field(max_length=255)

    status: ClaimCodeStatus = Field(default=ClaimCodeStatus.active)
    expires_at: datetime = Field(sa_column=Column(DateTime))
    claimed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    claimed_by_device_id: Optional[UUID] = Field(default=None)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (Index("idx_claim_code_status", "status"),)
