"""
Claim Service Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


class MembershipRole(str, Enum):
    """User role within a tenant, ordered from least to most privileged"""

    viewer = "viewer"
    operator = "operator"
    admin = "admin"
    superadmin = "superadmin"


class ClaimCodeStatus(str, Enum):
    """Claim code status"""

    active = "active"
    claimed = "claimed"


class ClaimAction(str, Enum):
    """Action recorded in the device claim audit trail"""

    claim = "claim"
    reclaim = "reclaim"
    unclaim = "unclaim"
    move = "move"
    credential_recovery = "credential_recovery"
    credential_rotation = "credential_rotation"


class TriggerSource(str, Enum):
    """Where a claim lifecycle action originated"""

    claim_code = "claim_code"
    device_setup = "device_setup"
    device_recovery = "device_recovery"
    admin_dashboard = "admin_dashboard"
    device_factory_reset = "device_factory_reset"
    device_local_ui = "device_local_ui"
    device_unknown = "device_unknown"
    device_http = "device_http"
