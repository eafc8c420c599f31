from fastapi import APIRouter, Depends, status
from pydantic import EmailStr, Field

from config import ApplicationConfig
from claim_service.api.envelope import ApiResponse
from claim_service.api.error import ClientError, ServerError
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.app.use_cases.auth import (
    LoginResponse,
    LoginUseCase,
    RefreshTokenResponse,
    RefreshTokenUseCase,
)
from claim_service.app.use_cases.dtos import CamelModel
from claim_service.depends import get_unit_of_work

router = APIRouter(prefix="/auth", tags=["Authentication"])


class LoginRequest(CamelModel):
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")


@router.post(
    "/login", status_code=status.HTTP_200_OK, response_model=ApiResponse[LoginResponse]
)
async def login(request: LoginRequest, uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Dashboard login.

    Raises:
        - 401 Unauthorized: Invalid credentials
        - 403 Forbidden: User disabled or no tenant membership
    """
    use_case = LoginUseCase(uow, refresh_token_days=ApplicationConfig.REFRESH_TOKEN_DAYS)
    result = await use_case.execute(request.email, request.password)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code in ("USER_DISABLED", "NO_ACTIVE_MEMBERSHIP"):
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return ApiResponse(data=result.value)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token")


@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RefreshTokenResponse],
)
async def refresh(request: RefreshRequest, uow: UnitOfWork = Depends(get_unit_of_work)):
    """
    Refresh the access token, rotating the refresh token.

    Raises:
        - 401 Unauthorized: Unknown, revoked or expired refresh token
        - 403 Forbidden: Membership removed
    """
    use_case = RefreshTokenUseCase(uow, refresh_token_days=ApplicationConfig.REFRESH_TOKEN_DAYS)
    result = await use_case.execute(request.refresh_token)

    if result.is_err():
        error = result.error
        if error.code in ("INVALID_TOKEN", "SESSION_REVOKED", "SESSION_EXPIRED"):
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "MEMBERSHIP_REVOKED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        raise ServerError(error)

    return ApiResponse(data=result.value)
