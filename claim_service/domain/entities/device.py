"""
Device Entity

A physical trap bound to a tenant, together with the MQTT credentials it
uses to reach the broker.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlmodel import Column, DateTime, Field, Index, SQLModel

from claim_service.domain.clock import utcnow


class Device(SQLModel, table=True):
    """
    Device entity - the central record of the claim protocol.

    Business Rules:
    - unclaimed_at IS NULL means the device is live
    - mqtt_client_id is the MAC without separators, uppercased
    - mqtt_client_id is unique among live devices (partial unique index)
    - mqtt_username == mqtt_client_id
    - mqtt_password_plain shadows the bcrypt hash so the broker password
      file can be rebuilt; both always describe the same password
    - A soft-deleted row is hard-deleted before its MAC is claimed again
    """

    __tablename__ = "devices"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id", nullable=False, index=True)

    mqtt_client_id: str = Field(max_length=64)
    mac_address: Optional[str] = Field(default=None, max_length=17)
    mqtt_username: str = Field(max_length=64)
    mqtt_password_hash: str = Field(max_length=60)
    mqtt_password_plain: Optional[str] = Field(default=None, max_length=64)

    name: str = Field(max_length=255)
    label: Optional[str] = Field(default=None, max_length=255)
    location: Optional[str] = Field(default=None, max_length=255)
    timezone: Optional[str] = Field(default=None, max_length=64)

    hardware_version: Optional[str] = Field(default=None, max_length=64)
    firmware_version: Optional[str] = Field(default=None, max_length=64)
    filesystem_version: Optional[str] = Field(default=None, max_length=64)

    status: str = Field(default="offline", max_length=32)
    online: bool = Field(default=False)
    last_seen: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    claimed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    unclaimed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index(
            "uq_device_live_mqtt_client_id",
            "mqtt_client_id",
            unique=True,
            sqlite_where=text("unclaimed_at IS NULL"),
            postgresql_where=text("unclaimed_at IS NULL"),
        ),
        Index("idx_device_mqtt_client_id", "mqtt_client_id"),
        Index("idx_device_unclaimed_at", "unclaimed_at"),
    )

    @property
    def is_live(self) -> bool:
        return self.unclaimed_at is None
