"""
Tenant Entity

Represents an isolated customer namespace owning devices and users.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlmodel import Column, DateTime, Field, Index, Relationship, SQLModel

from claim_service.domain.clock import utcnow

if TYPE_CHECKING:
    from .membership import Membership


class Tenant(SQLModel, table=True):
    """
    Tenant entity - isolated customer namespace.

    Business Rules:
    - Name is trimmed and non-empty
    - Name is unique among non-deleted tenants
    - Soft delete: deleted_at marks deletion, rows are purged externally
    """

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)

    # Soft delete support
    deleted_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    # Relationships
    memberships: list["Membership"] = Relationship(back_populates="tenant")

    __table_args__ = (
        Index(
            "uq_tenant_live_name",
            "name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("idx_tenant_deleted_at", "deleted_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
