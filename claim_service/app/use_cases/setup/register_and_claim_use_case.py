"""
Register And Claim Use Case

Self-service setup run from the device's captive portal: the owner signs
up (or signs in) and the device is claimed into their tenant in one step,
authorised by an HMAC token only genuine hardware can produce.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional, Sequence

import bcrypt
from sqlalchemy.exc import IntegrityError

from claim_service.api.utils.jwt import generate_jwt
from claim_service.app.services.claim_tokens import verify_claim_token
from claim_service.app.services.credential_store import (
    CredentialStoreError,
    ICredentialStore,
)
from claim_service.app.services.device_credentials import generate_mqtt_credentials
from claim_service.app.services.device_messenger import (
    IDeviceMessenger,
    clear_revocation_quietly,
)
from claim_service.app.services.unit_of_work import UnitOfWork
from claim_service.domain.clock import utcnow
from claim_service.domain.device_identity import canonical_mac, parse_mac
from claim_service.domain.entities import (
    ClaimAction,
    Device,
    DeviceClaimAudit,
    Membership,
    MembershipRole,
    Session,
    Tenant,
    TriggerSource,
    User,
)
from claim_service.libs.result import Error, Result, Return
from .dtos import (
    MqttCredentialsInfo,
    RegisterAndClaimCommand,
    RegisterAndClaimResponse,
    SetupDeviceInfo,
    SetupUserInfo,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = Error("INVALID_CREDENTIALS", "Invalid email or password")

# Keeps the unknown-email path as slow as a real password check
_DUMMY_HASH = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt(10))


class RegisterAndClaimUseCase:
    """
    Register (or sign in) and claim a device in one transaction.

    Business Rules:
    - HMAC token over "{mac}:{timestamp}" must match and be at most
      300 seconds from server time in either direction
    - New account with an existing email -> USER_EXISTS
    - Sign-in with unknown email or wrong password -> INVALID_CREDENTIALS
      (same wording for both)
    - New accounts get a tenant "<email local part>'s Home" (numbered " 2",
      " 3", ... when that name is taken) and an admin membership
    - A live device with this MAC is reclaimed: new credentials, same id,
      same tenant; it can never move to the caller's tenant this way
    - A soft-deleted device with this MAC is hard-deleted first
    - Tenant, user, membership, device and session are written in one
      transaction that only commits after the broker accepted the
      credentials; any sync failure rolls everything back
    - Unique violations (email, tenant name, live MAC race) -> CONFLICT
    - Retained revoke cleanup and audit entry are best-effort
    """

    def __init__(
        self,
        uow: UnitOfWork,
        credential_store: ICredentialStore,
        messenger: IDeviceMessenger,
        broker_url: str,
        claim_secrets: Sequence[str],
        token_max_age_seconds: int = 300,
        refresh_token_days: int = 30,
    ):
        self.uow = uow
        self.credential_store = credential_store
        self.messenger = messenger
        self.broker_url = broker_url
        self.claim_secrets = list(claim_secrets)
        self.token_max_age_seconds = token_max_age_seconds
        self.refresh_token_days = refresh_token_days

    async def execute(
        self, command: RegisterAndClaimCommand
    ) -> Result[RegisterAndClaimResponse]:
        """
        Execute self-registration and claim.

        Args:
            command: validated setup form plus the device's signed token

        Returns:
            Result with account tokens and the device credential bundle, or Error
        """
        if not verify_claim_token(
            self.claim_secrets,
            command.mac,
            command.timestamp,
            command.claim_token,
            max_age_seconds=self.token_max_age_seconds,
        ):
            logger.warning(f"Rejected claim token for {command.mac}")
            return Return.err(Error("INVALID_CLAIM_TOKEN", "Invalid or expired claim token"))

        email = command.email.lower()
        mqtt_client_id = parse_mac(command.mac)
        mac_address = canonical_mac(mqtt_client_id)

        async with self.uow:
            # Resolve identity
            user = await self.uow.users.get_by_email(email)
            tenant_id = None
            role = MembershipRole.admin

            if user is not None:
                if command.is_new_account:
                    return Return.err(
                        Error(
                            "USER_EXISTS",
                            "User with this email already exists. Please sign in instead.",
                        )
                    )
                if not user.is_active or not bcrypt.checkpw(
                    command.password.encode(), user.password_hash.encode()
                ):
                    return Return.err(INVALID_CREDENTIALS)

                memberships = await self.uow.memberships.get_by_user_id(user.id)
                if not memberships:
                    return Return.err(
                        Error(
                            "ACCOUNT_INCOMPLETE",
                            "User account is incomplete (no tenant). Contact support.",
                        )
                    )
                tenant_id = memberships[0].tenant_id
                role = memberships[0].role
            elif not command.is_new_account:
                bcrypt.checkpw(command.password.encode(), _DUMMY_HASH)
                return Return.err(INVALID_CREDENTIALS)

            # Resolve device
            existing = await self.uow.devices.get_by_mqtt_client_id(mqtt_client_id)
            reclaim_target: Optional[Device] = None
            previous_password: Optional[str] = None
            if existing is not None:
                if existing.is_live:
                    reclaim_target = existing
                    previous_password = existing.mqtt_password_plain
                else:
                    logger.info(f"Removing unclaimed device row {existing.id} for {mqtt_client_id}")
                    await self.uow.devices.delete(existing)

            now = utcnow()
            credentials = generate_mqtt_credentials(mqtt_client_id)
            refresh_token = secrets.token_urlsafe(32)

            try:
                if user is None:
                    tenant = await self.uow.tenants.create(
                        Tenant(name=await self._home_tenant_name(email))
                    )
                    tenant_id = tenant.id
                    user = await self.uow.users.create(
                        User(
                            email=email,
                            password_hash=bcrypt.hashpw(
                                command.password.encode(), bcrypt.gensalt(12)
                            ).decode(),
                            last_active_tenant_id=tenant.id,
                        )
                    )
                    await self.uow.memberships.create(
                        Membership(user_id=user.id, tenant_id=tenant.id, role=MembershipRole.admin)
                    )

                if reclaim_target is not None:
                    device = reclaim_target
                    device.name = command.device_name
                    device.mqtt_password_hash = credentials.password_hash
                    device.mqtt_password_plain = credentials.password
                    device.mac_address = mac_address
                    device.timezone = command.timezone
                    device.status = "offline"
                    device.online = True
                    device.last_seen = now
                    device.claimed_at = now
                    device.updated_at = now
                    device = await self.uow.devices.update(device)
                else:
                    device = await self.uow.devices.create(
                        Device(
                            tenant_id=tenant_id,
                            mqtt_client_id=mqtt_client_id,
                            mac_address=mac_address,
                            mqtt_username=credentials.username,
                            mqtt_password_hash=credentials.password_hash,
                            mqtt_password_plain=credentials.password,
                            name=command.device_name,
                            timezone=command.timezone,
                            status="offline",
                            online=True,
                            last_seen=now,
                            claimed_at=now,
                        )
                    )

                await self.uow.sessions.create(
                    Session(
                        user_id=user.id,
                        tenant_id=tenant_id,
                        refresh_token_hash=bcrypt.hashpw(
                            refresh_token.encode(), bcrypt.gensalt(12)
                        ).decode(),
                        expires_at=now + timedelta(days=self.refresh_token_days),
                    )
                )
            except IntegrityError as exc:
                await self.uow.rollback()
                logger.warning(f"Setup conflict for {email} / {mqtt_client_id}: {exc.orig}")
                return Return.err(self._conflict())

            # Nothing is committed until the broker has the credentials
            try:
                await self.credential_store.sync_device(
                    credentials.username, credentials.password, trigger_reload=True
                )
            except CredentialStoreError as exc:
                logger.error(f"Credential sync failed during setup for {mqtt_client_id}: {exc}")
                await self.uow.rollback()
                return Return.err(
                    Error(
                        "CREDENTIAL_SYNC_FAILED",
                        "Failed to sync MQTT credentials. Please try again.",
                        reason=str(exc),
                    )
                )

            user_id = user.id
            device_id = device.id
            device_tenant_id = device.tenant_id
            try:
                await self.uow.commit()
            except IntegrityError as exc:
                await self.uow.rollback()
                logger.warning(f"Setup conflict on commit for {mqtt_client_id}: {exc.orig}")
                await self._restore_broker_entry(credentials.username, previous_password)
                return Return.err(self._conflict())

            logger.info(
                f"Setup completed for {email}: device {mqtt_client_id} "
                f"{'reclaimed' if reclaim_target else 'claimed'} in tenant {device_tenant_id}"
            )

            access_token = generate_jwt(user_id, tenant_id, role.value)

            response = RegisterAndClaimResponse(
                user=SetupUserInfo(id=str(user_id), email=email, tenant_id=str(tenant_id)),
                device=SetupDeviceInfo(
                    id=str(device_id),
                    name=command.device_name,
                    mqtt_client_id=mqtt_client_id,
                    mqtt_username=credentials.username,
                    mqtt_password=credentials.password,
                    mqtt_broker_url=self.broker_url,
                ),
                jwt=access_token,
                refresh_token=refresh_token,
                mqtt_broker=self.broker_url,
                mqtt_credentials=MqttCredentialsInfo(
                    username=credentials.username, password=credentials.password
                ),
                new_account=command.is_new_account,
                reclaimed=reclaim_target is not None,
            )

            await clear_revocation_quietly(self.messenger, device_tenant_id, mqtt_client_id)
            await self.uow.claim_audit.record(
                DeviceClaimAudit(
                    device_id=device_id,
                    device_mac=mac_address,
                    device_name=command.device_name,
                    tenant_id=device_tenant_id,
                    action=ClaimAction.reclaim if reclaim_target else ClaimAction.claim,
                    trigger_source=TriggerSource.device_setup,
                    actor_user_id=user_id,
                    actor_ip=command.actor_ip,
                    event_metadata={"newAccount": command.is_new_account},
                )
            )

            return Return.ok(response)

    async def _home_tenant_name(self, email: str) -> str:
        """Tenant name for a new account, numbered when the plain name is taken"""
        base = f"{email.split('@')[0]}'s Home".strip()
        name = base
        suffix = 2
        while await self.uow.tenants.get_live_by_name(name) is not None:
            name = f"{base} {suffix}"
            suffix += 1
        return name

    @staticmethod
    def _conflict() -> Error:
        return Error("CONFLICT", "A user or tenant with this information already exists.")

    async def _restore_broker_entry(self, username: str, previous_password: Optional[str]):
        """Undo a broker write whose database commit failed"""
        try:
            if previous_password:
                await self.credential_store.sync_device(username, previous_password)
            else:
                await self.credential_store.remove_device(username)
        except CredentialStoreError as exc:
            logger.error(f"Could not restore broker entry for {username}: {exc}")
