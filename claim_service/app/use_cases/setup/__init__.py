"""
Setup Use Cases

Device captive-portal flows: self-registration with claim, and recovery.
"""

from .register_and_claim_use_case import RegisterAndClaimUseCase
from .recover_claim_use_case import RecoverClaimUseCase
from .dtos import (
    RegisterAndClaimCommand,
    RegisterAndClaimResponse,
    RecoverClaimResponse,
    MqttCredentialsInfo,
    SetupUserInfo,
    SetupDeviceInfo,
)

__all__ = [
    "RegisterAndClaimUseCase",
    "RecoverClaimUseCase",
    "RegisterAndClaimCommand",
    "RegisterAndClaimResponse",
    "RecoverClaimResponse",
    "MqttCredentialsInfo",
    "SetupUserInfo",
    "SetupDeviceInfo",
]
