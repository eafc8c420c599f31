from .dtos import (
    MoveDeviceCommand,
    MoveDeviceResponse,
    RotateCredentialsResponse,
    TenantSummary,
    UnclaimDeviceResponse,
)
from .move_device_use_case import MoveDeviceUseCase
from .rotate_credentials_use_case import RotateCredentialsUseCase
from .unclaim_device_use_case import UnclaimDeviceUseCase

__all__ = [
    "MoveDeviceCommand",
    "MoveDeviceResponse",
    "RotateCredentialsResponse",
    "TenantSummary",
    "UnclaimDeviceResponse",
    "MoveDeviceUseCase",
    "RotateCredentialsUseCase",
    "UnclaimDeviceUseCase",
]
