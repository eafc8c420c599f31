from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import Field

from config import ApplicationConfig
from claim_service.api.envelope import ApiResponse
from claim_service.api.error import ClientError, ServerError
from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.credential_store import ICredentialStore
from claim_service.app.services.device_messenger import IDeviceMessenger
from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.app.use_cases.claims import (
    CheckClaimResponse,
    CheckClaimUseCase,
    ClaimByCodeCommand,
    ClaimByCodeUseCase,
    ClaimCodeListResponse,
    ClaimCodeResponse,
    ClaimedDeviceResponse,
    ClaimingModeCommand,
    ClaimingModeResponse,
    ClaimingModeUseCase,
    ClaimStatusResponse,
    ClaimStatusUseCase,
    DeviceInfo,
    IssueClaimCodeCommand,
    IssueClaimCodeUseCase,
    ListClaimCodesUseCase,
    RecoverCredentialsCommand,
    RecoverCredentialsResponse,
    RecoverCredentialsUseCase,
    UnclaimNotifyCommand,
    UnclaimNotifyResponse,
    UnclaimNotifyUseCase,
    VerifyRevocationResponse,
    VerifyRevocationUseCase,
)
from claim_service.app.use_cases.dtos import CamelModel
from claim_service.depends import (
    get_auth_context,
    get_client_ip,
    get_credential_store,
    get_device_messenger,
    get_revocation_tokens,
    get_unit_of_work,
)
from claim_service.libs.result import Error

router = APIRouter(tags=["Claim"])


# ============================================================================
# Device-facing endpoints (no user auth)
# ============================================================================


class ClaimRequest(CamelModel):
    claim_code: str = Field(..., min_length=1)
    device_info: DeviceInfo


@router.post(
    "/devices/claim",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ClaimedDeviceResponse],
)
async def claim_device(
    request: ClaimRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Claim a device with a one-time claim code.

    Raises:
        - 400 Bad Request: Invalid or expired code, malformed MAC
        - 409 Conflict: Device already claimed
        - 500 Internal Server Error: Broker credential sync failed
    """
    command = ClaimByCodeCommand(
        claim_code=request.claim_code, device_info=request.device_info, actor_ip=client_ip
    )
    use_case = ClaimByCodeUseCase(
        uow, credential_store, messenger, ApplicationConfig.MQTT_BROKER_URL
    )
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code in ("INVALID_OR_EXPIRED_CODE", "INVALID_MAC"):
            raise ClientError(error)
        elif error.code == "DEVICE_ALREADY_CLAIMED":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        elif error.code == "CREDENTIAL_SYNC_FAILED":
            raise ServerError(error, expose=True)
        raise ServerError(error)

    return ApiResponse(data=result.value)


@router.get(
    "/device/check-claim/{mac}",
    status_code=status.HTTP_200_OK,
    response_model=CheckClaimResponse,
    response_model_exclude_none=True,
)
async def check_claim(mac: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    """Polled by a device in claiming mode until its credentials are ready"""
    use_case = CheckClaimUseCase(uow, ApplicationConfig.MQTT_BROKER_URL)
    result = await use_case.execute(mac)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/device/claim-status",
    status_code=status.HTTP_200_OK,
    response_model=ClaimStatusResponse,
)
async def claim_status(
    mac: Optional[str] = Query(None), uow: UnitOfWork = Depends(get_unit_of_work)
):
    """
    Periodic check by a claimed device.

    A 404 means "unknown, keep current state"; only 410 tells the device it
    was revoked.
    """
    if not mac:
        raise ClientError(Error("VALIDATION_ERROR", "MAC address is required"))

    use_case = ClaimStatusUseCase(uow)
    result = await use_case.execute(mac)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_MAC":
            raise ClientError(error)
        elif error.code == "DEVICE_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "DEVICE_REVOKED":
            raise ClientError(
                Error(error.code, error.message),
                status_code=status.HTTP_410_GONE,
                extra={"claimed": False, "revokedAt": error.reason},
            )
        raise ServerError(error)

    return result.value


class VerifyRevocationRequest(CamelModel):
    mac: Optional[str] = None
    token: Optional[str] = None


@router.post(
    "/device/verify-revocation",
    status_code=status.HTTP_200_OK,
    response_model=VerifyRevocationResponse,
    response_model_exclude_none=True,
)
async def verify_revocation(
    request: VerifyRevocationRequest,
    tokens: RevocationTokenStore = Depends(get_revocation_tokens),
):
    """Device confirms a revoke message came from the server before wiping itself"""
    use_case = VerifyRevocationUseCase(tokens)
    result = await use_case.execute(request.mac, request.token)
    return result.value


class UnclaimNotifyRequest(CamelModel):
    mac: str = Field(..., min_length=1)
    source: Optional[str] = None


@router.post(
    "/device/unclaim-notify",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UnclaimNotifyResponse],
)
async def unclaim_notify(
    request: UnclaimNotifyRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """Device reports it was unclaimed locally (factory reset or local UI)"""
    command = UnclaimNotifyCommand(mac=request.mac, source=request.source, actor_ip=client_ip)
    use_case = UnclaimNotifyUseCase(uow, credential_store)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return ApiResponse(data=result.value)


class ClaimingModeRequest(CamelModel):
    mac: str = Field(..., min_length=1)
    serial: Optional[str] = None
    ip: Optional[str] = None


@router.post(
    "/device/claiming-mode",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ClaimingModeResponse],
)
async def claiming_mode(
    request: ClaimingModeRequest, uow: UnitOfWork = Depends(get_unit_of_work)
):
    """Device announces it is waiting to be claimed"""
    command = ClaimingModeCommand(
        mac=request.mac, serial_number=request.serial, ip_address=request.ip
    )
    use_case = ClaimingModeUseCase(uow, ttl_minutes=ApplicationConfig.CLAIMING_MODE_TTL_MINUTES)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error)

    return ApiResponse(data=result.value)


class RecoverCredentialsRequest(CamelModel):
    mac: str = Field(..., min_length=1)
    device_id: Optional[str] = None
    current_password: Optional[str] = None


@router.post(
    "/device/recover-credentials",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RecoverCredentialsResponse],
)
async def recover_credentials(
    request: RecoverCredentialsRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Restore a device's broker account after it went missing.

    Raises:
        - 400 Bad Request: Malformed MAC or no proof of identity
        - 403 Forbidden: deviceId/currentPassword did not match
        - 404 Not Found: Unknown device
        - 410 Gone: Device was unclaimed
        - 500 Internal Server Error: Broker credential sync failed
    """
    command = RecoverCredentialsCommand(
        mac=request.mac,
        device_id=request.device_id,
        current_password=request.current_password,
        actor_ip=client_ip,
    )
    use_case = RecoverCredentialsUseCase(
        uow, credential_store, ApplicationConfig.MQTT_BROKER_URL
    )
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code in ("INVALID_MAC", "VERIFICATION_REQUIRED"):
            raise ClientError(error)
        elif error.code == "VERIFICATION_FAILED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        elif error.code == "DEVICE_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "DEVICE_REVOKED":
            raise ClientError(error, status_code=status.HTTP_410_GONE)
        elif error.code == "CREDENTIAL_SYNC_FAILED":
            raise ServerError(error, expose=True)
        raise ServerError(error)

    return ApiResponse(data=result.value)


# ============================================================================
# Claim code administration
# ============================================================================


@router.post(
    "/admin/claim-codes",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[ClaimCodeResponse],
)
async def issue_claim_code(
    command: IssueClaimCodeCommand,
    auth: AuthContext = Depends(get_auth_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Issue a one-time claim code for a tenant.

    Raises:
        - 403 Forbidden: Caller does not administer the tenant
        - 404 Not Found: Tenant missing or deleted
    """
    use_case = IssueClaimCodeUseCase(uow, ttl_days=ApplicationConfig.CLAIM_CODE_TTL_DAYS)
    result = await use_case.execute(auth, command)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error)
        elif error.code == "FORBIDDEN":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        elif error.code == "TENANT_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise ServerError(error)

    return ApiResponse(data=result.value)


@router.get(
    "/admin/claim-codes",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[ClaimCodeListResponse],
)
async def list_claim_codes(
    auth: AuthContext = Depends(get_auth_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Newest claim codes visible to the caller"""
    use_case = ListClaimCodesUseCase(uow)
    result = await use_case.execute(auth)
    return ApiResponse(data=result.value)
