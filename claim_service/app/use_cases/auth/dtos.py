"""
Authentication Use Case DTOs
"""

from typing import List

from claim_service.app.use_cases.dtos import CamelModel


class TenantInfo(CamelModel):
    """Tenant information in authentication responses"""

    id: str
    name: str
    role: str


class LoginResponse(CamelModel):
    """Response for user login use case"""

    access_token: str
    refresh_token: str
    session_id: str
    active_tenant: TenantInfo
    other_tenants: List[TenantInfo]


class RefreshTokenResponse(CamelModel):
    """Response for refresh token use case"""

    access_token: str
    refresh_token: str
    session_id: str
