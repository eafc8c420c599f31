"""
Claim Service Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    MembershipRole,
    ClaimCodeStatus,
    ClaimAction,
    TriggerSource,
)

# Export all entities
from .user import User
from .tenant import Tenant
from .membership import Membership
from .session import Session
from .device import Device
from .claim_code import ClaimCode
from .claiming_queue_entry import ClaimingQueueEntry
from .device_claim_audit import DeviceClaimAudit

__all__ = [
    # Enums
    "MembershipRole",
    "ClaimCodeStatus",
    "ClaimAction",
    "TriggerSource",
    # Entities
    "User",
    "Tenant",
    "Membership",
    "Session",
    "Device",
    "ClaimCode",
    "ClaimingQueueEntry",
    "DeviceClaimAudit",
]
