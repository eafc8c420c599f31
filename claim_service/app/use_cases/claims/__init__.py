"""
Claim Use Cases

Device-facing claim protocol endpoints and claim code administration.
"""

from .claim_by_code_use_case import ClaimByCodeUseCase
from .check_claim_use_case import CheckClaimUseCase
from .claim_status_use_case import ClaimStatusUseCase
from .claiming_mode_use_case import ClaimingModeUseCase
from .unclaim_notify_use_case import UnclaimNotifyUseCase
from .verify_revocation_use_case import VerifyRevocationUseCase
from .recover_credentials_use_case import RecoverCredentialsUseCase
from .issue_claim_code_use_case import IssueClaimCodeUseCase
from .list_claim_codes_use_case import ListClaimCodesUseCase
from .dtos import (
    ClaimByCodeCommand,
    ClaimingModeCommand,
    UnclaimNotifyCommand,
    RecoverCredentialsCommand,
    IssueClaimCodeCommand,
    DeviceInfo,
    ClaimedDeviceResponse,
    CheckClaimResponse,
    ClaimStatusResponse,
    ClaimingModeResponse,
    UnclaimNotifyResponse,
    VerifyRevocationResponse,
    RecoverCredentialsResponse,
    ClaimCodeResponse,
    ClaimCodeListResponse,
)

__all__ = [
    # Use Cases
    "ClaimByCodeUseCase",
    "CheckClaimUseCase",
    "ClaimStatusUseCase",
    "ClaimingModeUseCase",
    "UnclaimNotifyUseCase",
    "VerifyRevocationUseCase",
    "RecoverCredentialsUseCase",
    "IssueClaimCodeUseCase",
    "ListClaimCodesUseCase",
    # DTOs - Commands
    "ClaimByCodeCommand",
    "ClaimingModeCommand",
    "UnclaimNotifyCommand",
    "RecoverCredentialsCommand",
    "IssueClaimCodeCommand",
    # DTOs - Responses
    "DeviceInfo",
    "ClaimedDeviceResponse",
    "CheckClaimResponse",
    "ClaimStatusResponse",
    "ClaimingModeResponse",
    "UnclaimNotifyResponse",
    "VerifyRevocationResponse",
    "RecoverCredentialsResponse",
    "ClaimCodeResponse",
    "ClaimCodeListResponse",
]
