"""
User Entity

Represents a person who can belong to multiple tenants.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Relationship, SQLModel

from claim_service.domain.clock import utcnow

if TYPE_CHECKING:
    from .membership import Membership


class User(SQLModel, table=True):
    """
    User entity - represents a person who can belong to multiple tenants.

    Business Rules:
    - Email must be unique across all users
    - Password stored as bcrypt hash
    - Inactive users cannot sign in or claim devices
    - last_active_tenant_id determines default tenant on login
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=60)  # Bcrypt output is 60 chars

    is_active: bool = Field(default=True)

    # Second factor, verified by the dashboard login flow
    totp_secret: Optional[str] = Field(default=None, max_length=64)
    totp_enabled: bool = Field(default=False)

    last_active_tenant_id: Optional[UUID] = Field(default=None, foreign_key="tenants.id")

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Relationships
    memberships: list["Membership"] = Relationship(back_populates="user")
