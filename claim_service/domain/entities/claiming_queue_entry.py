"""
ClaimingQueueEntry Entity

A device that announced it is in claiming mode.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Column, DateTime, Field, SQLModel

from claim_service.domain.clock import utcnow


class ClaimingQueueEntry(SQLModel, table=True):
    """
    ClaimingQueueEntry entity - lets discovery UIs correlate a freshly
    booted device with its MAC before a claim code is typed in.

    Business Rules:
    - Keyed by canonical MAC (AA:BB:CC:DD:EE:FF)
    - Upserted on each announcement, expires after 10 minutes
    - Deleted when the device is claimed
    """

    __tablename__ = "device_claiming_queue"

    mac_address: str = Field(primary_key=True, max_length=17)
    serial_number: Optional[str] = Field(default=None, max_length=255)
    ip_address: Optional[str] = Field(default=None, max_length=64)

    expires_at: datetime = Field(sa_column=Column(DateTime))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
