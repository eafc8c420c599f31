"""
Authentication Use Cases
"""

from .dtos import LoginResponse, RefreshTokenResponse, TenantInfo
from .login_use_case import LoginUseCase
from .refresh_token_use_case import RefreshTokenUseCase

__all__ = [
    "LoginUseCase",
    "RefreshTokenUseCase",
    "LoginResponse",
    "RefreshTokenResponse",
    "TenantInfo",
]
