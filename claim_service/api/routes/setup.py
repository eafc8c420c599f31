from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from config import ApplicationConfig
from claim_service.api.envelope import ApiResponse
from claim_service.api.error import ClientError, ServerError
from claim_service.app.services.credential_store import ICredentialStore
from claim_service.app.services.device_messenger import IDeviceMessenger
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.app.use_cases.dtos import CamelModel
from claim_service.app.use_cases.setup import (
    RecoverClaimResponse,
    RecoverClaimUseCase,
    RegisterAndClaimCommand,
    RegisterAndClaimResponse,
    RegisterAndClaimUseCase,
)
from claim_service.depends import (
    get_client_ip,
    get_credential_store,
    get_device_messenger,
    get_unit_of_work,
)

router = APIRouter(prefix="/setup", tags=["Setup"])


def claim_secrets() -> list:
    return [ApplicationConfig.DEVICE_CLAIM_SECRET, *ApplicationConfig.DEVICE_CLAIM_PREVIOUS_SECRETS]


@router.post(
    "/register-and-claim",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[RegisterAndClaimResponse],
)
async def register_and_claim(
    request: RegisterAndClaimCommand,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Sign up (or sign in) and claim the device in one step.

    Called from the device's captive portal; the device signs
    "{mac}:{timestamp}" with its factory secret.

    Raises:
        - 400 Bad Request: Invalid input
        - 401 Unauthorized: Bad claim token or wrong email/password
        - 409 Conflict: Email taken or concurrent claim of the same device
        - 500 Internal Server Error: Broker credential sync failed
    """
    command = request.model_copy(update={"actor_ip": client_ip})
    use_case = RegisterAndClaimUseCase(
        uow,
        credential_store,
        messenger,
        ApplicationConfig.MQTT_BROKER_URL,
        claim_secrets(),
        token_max_age_seconds=ApplicationConfig.CLAIM_TOKEN_MAX_AGE_SECONDS,
        refresh_token_days=ApplicationConfig.REFRESH_TOKEN_DAYS,
    )
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_MAC":
            raise ClientError(error)
        elif error.code in ("INVALID_CLAIM_TOKEN", "INVALID_CREDENTIALS"):
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code in ("USER_EXISTS", "CONFLICT"):
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        elif error.code in ("CREDENTIAL_SYNC_FAILED", "ACCOUNT_INCOMPLETE"):
            raise ServerError(error, expose=True)
        raise ServerError(error)

    return ApiResponse(data=result.value)


class RecoverClaimRequest(CamelModel):
    mac: str = Field(..., min_length=1)


@router.post(
    "/recover-claim",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RecoverClaimResponse],
)
async def recover_claim(
    request: RecoverClaimRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Re-issue credentials to a device that lost them.

    The MAC alone is accepted: the device id and tenant never change, so
    the worst case is a fresh password for the same owner.

    Raises:
        - 400 Bad Request: Malformed MAC
        - 404 Not Found: No device record (needsRegistration: true)
        - 500 Internal Server Error: Broker credential sync failed
    """
    use_case = RecoverClaimUseCase(
        uow, credential_store, messenger, ApplicationConfig.MQTT_BROKER_URL
    )
    result = await use_case.execute(request.mac, actor_ip=client_ip)

    if result.is_err():
        error = result.error
        if error.code == "INVALID_MAC":
            raise ClientError(error)
        elif error.code == "DEVICE_NOT_CLAIMED":
            raise ClientError(
                error,
                status_code=status.HTTP_404_NOT_FOUND,
                extra={"needsRegistration": True},
            )
        elif error.code == "DEVICE_ALREADY_CLAIMED":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        elif error.code == "CREDENTIAL_SYNC_FAILED":
            raise ServerError(error, expose=True)
        raise ServerError(error)

    return ApiResponse(data=result.value)
