from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from claim_service.api.envelope import ApiResponse
from claim_service.api.error import ClientError, ServerError
from claim_service.app.services.authorization import AuthContext
from claim_service.app.services.credential_store import ICredentialStore
from claim_service.app.services.device_messenger import IDeviceMessenger
from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.app.use_cases.devices import (
    MoveDeviceCommand,
    MoveDeviceResponse,
    MoveDeviceUseCase,
    RotateCredentialsResponse,
    RotateCredentialsUseCase,
    UnclaimDeviceResponse,
    UnclaimDeviceUseCase,
)
from claim_service.depends import (
    get_auth_context,
    get_client_ip,
    get_credential_store,
    get_device_messenger,
    get_revocation_tokens,
    get_unit_of_work,
)
from claim_service.libs.result import Error

router = APIRouter(prefix="/devices", tags=["Devices"])

_NOT_FOUND = ("DEVICE_NOT_FOUND", "TENANT_NOT_FOUND")


def raise_for_error(error: Error):
    if error.code == "FORBIDDEN":
        raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
    elif error.code in _NOT_FOUND:
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    elif error.code == "NO_OP_SAME_TENANT":
        raise ClientError(error)
    elif error.code == "DEVICE_OFFLINE":
        raise ClientError(error, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    elif error.code == "CREDENTIAL_SYNC_FAILED":
        raise ServerError(error, expose=True)
    raise ServerError(error)


@router.post(
    "/{device_id}/unclaim",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[UnclaimDeviceResponse],
)
async def unclaim_device(
    device_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
    tokens: RevocationTokenStore = Depends(get_revocation_tokens),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Unclaim (revoke) a device.

    Raises:
        - 403 Forbidden: Caller does not administer the device's tenant
        - 404 Not Found: Device missing or already unclaimed
    """
    use_case = UnclaimDeviceUseCase(uow, credential_store, messenger, tokens)
    result = await use_case.execute(auth, device_id, actor_ip=client_ip)

    if result.is_err():
        raise_for_error(result.error)

    return ApiResponse(data=result.value)


@router.post(
    "/{device_id}/move",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[MoveDeviceResponse],
)
async def move_device(
    device_id: UUID,
    command: MoveDeviceCommand,
    auth: AuthContext = Depends(get_auth_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
):
    """
    Move a device to another tenant (superadmin only).

    Raises:
        - 400 Bad Request: Device already in the target tenant
        - 403 Forbidden: Not a superadmin
        - 404 Not Found: Device or target tenant missing
    """
    use_case = MoveDeviceUseCase(uow, messenger)
    result = await use_case.execute(auth, device_id, command)

    if result.is_err():
        raise_for_error(result.error)

    return ApiResponse(data=result.value)


@router.post(
    "/{device_id}/rotate-credentials",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse[RotateCredentialsResponse],
)
async def rotate_credentials(
    device_id: UUID,
    auth: AuthContext = Depends(get_auth_context),
    uow: UnitOfWork = Depends(get_unit_of_work),
    credential_store: ICredentialStore = Depends(get_credential_store),
    messenger: IDeviceMessenger = Depends(get_device_messenger),
    client_ip: Optional[str] = Depends(get_client_ip),
):
    """
    Push a new MQTT password to an online device (superadmin only).

    Raises:
        - 403 Forbidden: Not a superadmin
        - 404 Not Found: Device missing or unclaimed
        - 503 Service Unavailable: Device offline
    """
    use_case = RotateCredentialsUseCase(uow, credential_store, messenger)
    result = await use_case.execute(auth, device_id, actor_ip=client_ip)

    if result.is_err():
        raise_for_error(result.error)

    return ApiResponse(data=result.value)
