from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from claim_service.adapter.services.dynsec_credential_store import DynsecCredentialStore
from claim_service.adapter.services.mosquitto_credential_store import MosquittoPasswordFileStore
from claim_service.adapter.services.paho_device_messenger import PahoDeviceMessenger
from claim_service.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from claim_service.api.utils.jwt import verify_jwt
from claim_service.app.services.authorization import AuthContext, load_auth_context
from claim_service.app.services.credential_store import ICredentialStore
from claim_service.app.services.device_messenger import IDeviceMessenger
from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.app.services.unit_of_work import UnitOfWork

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer()


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


@lru_cache
def get_credential_store() -> ICredentialStore:
    mode = ApplicationConfig.MQTT_AUTH_MODE
    if mode == "dynamic_security":
        return DynsecCredentialStore(
            ApplicationConfig.MQTT_DYNSEC_BROKER_URL,
            username=ApplicationConfig.MQTT_DYNSEC_ADMIN_USER or None,
            password=ApplicationConfig.MQTT_DYNSEC_ADMIN_PASS or None,
            default_role=ApplicationConfig.MQTT_DYNSEC_DEFAULT_ROLE,
            timeout=ApplicationConfig.MQTT_DYNSEC_TIMEOUT_SECONDS,
        )
    if mode == "password_file":
        return MosquittoPasswordFileStore(
            passwd_file=ApplicationConfig.MQTT_PASSWD_FILE,
            mosquitto_passwd=ApplicationConfig.MOSQUITTO_PASSWD_BIN,
            reload_command=ApplicationConfig.MQTT_RELOAD_COMMAND,
            debounce_seconds=ApplicationConfig.MQTT_RELOAD_DEBOUNCE_SECONDS,
        )
    raise ValueError(f"Unknown MQTT_AUTH_MODE {mode!r}")


@lru_cache
def get_device_messenger() -> IDeviceMessenger:
    return PahoDeviceMessenger(
        ApplicationConfig.MQTT_BROKER_URL,
        username=ApplicationConfig.MQTT_USERNAME or None,
        password=ApplicationConfig.MQTT_PASSWORD or None,
    )


@lru_cache
def get_revocation_tokens() -> RevocationTokenStore:
    return RevocationTokenStore(ttl_seconds=ApplicationConfig.REVOCATION_TOKEN_TTL_SECONDS)


def get_client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to extract and verify JWT token from Authorization header.

    Returns:
        Decoded JWT payload containing user_id, tenant_id, role

    Raises:
        HTTPException: 401 if token is invalid or expired
    """
    payload = verify_jwt(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return payload


async def get_auth_context(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> AuthContext:
    """Capability object for the caller, derived from their memberships"""
    return await load_auth_context(
        uow,
        UUID(current_user["user_id"]),
        UUID(ApplicationConfig.MASTER_TENANT_ID),
    )
