from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import bcrypt
import pytest

from claim_service.app.services.device_credentials import password_matches
from claim_service.app.use_cases.claims import RecoverCredentialsCommand, RecoverCredentialsUseCase
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import ClaimAction, Device, TriggerSource
from tests.fixtures.fakes import FakeCredentialStore

BROKER_URL = "mqtt://broker.test:1883"
PASSWORD = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def uow(mock_uow):
    mock_uow.devices = MagicMock()
    mock_uow.devices.get_by_mqtt_client_id = AsyncMock(return_value=None)
    mock_uow.devices.update = AsyncMock(side_effect=lambda d: d)

    mock_uow.claim_audit = MagicMock()
    mock_uow.claim_audit.record = AsyncMock(return_value=True)
    return mock_uow


def make_device(plain=PASSWORD, **overrides):
    fields = dict(
        id=uuid4(),
        tenant_id=uuid4(),
        mqtt_client_id="AABBCCDDEEFF",
        mqtt_username="AABBCCDDEEFF",
        mqtt_password_hash=bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(4)).decode(),
        mqtt_password_plain=plain,
        name="Kitchen",
    )
    fields.update(overrides)
    return Device(**fields)


@pytest.mark.asyncio
async def test_resyncs_existing_password_by_device_id(uow, credential_store):
    device = make_device()
    uow.devices.get_by_mqtt_client_id.return_value = device
    command = RecoverCredentialsCommand(mac="AA:BB:CC:DD:EE:FF", device_id=str(device.id))

    result = await RecoverCredentialsUseCase(uow, credential_store, BROKER_URL).execute(command)

    assert result.is_ok()
    assert result.value.new_credentials is False
    assert result.value.mqtt_password == PASSWORD
    assert credential_store.synced == [("AABBCCDDEEFF", PASSWORD)]
    uow.devices.update.assert_not_called()
    audit = uow.claim_audit.record.call_args.args[0]
    assert audit.action == ClaimAction.credential_recovery
    assert audit.trigger_source == TriggerSource.device_http


@pytest.mark.asyncio
async def test_generates_new_password_without_plaintext_shadow(uow, credential_store):
    device = make_device(plain=None)
    uow.devices.get_by_mqtt_client_id.return_value = device
    command = RecoverCredentialsCommand(mac="AA:BB:CC:DD:EE:FF", current_password=PASSWORD)

    result = await RecoverCredentialsUseCase(uow, credential_store, BROKER_URL).execute(command)

    assert result.is_ok()
    assert result.value.new_credentials is True
    assert result.value.mqtt_password != PASSWORD
    assert device.mqtt_password_plain == result.value.mqtt_password
    assert password_matches(result.value.mqtt_password, device.mqtt_password_hash)
    uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_requires_proof(uow, credential_store):
    command = RecoverCredentialsCommand(mac="AA:BB:CC:DD:EE:FF")

    result = await RecoverCredentialsUseCase(uow, credential_store, BROKER_URL).execute(command)

    assert result.error.code == "VERIFICATION_REQUIRED"


@pytest.mark.asyncio
async def test_wrong_proof_is_rejected(uow, credential_store):
    uow.devices.get_by_mqtt_client_id.return_value = make_device()
    command = RecoverCredentialsCommand(
        mac="AA:BB:CC:DD:EE:FF", device_id=str(uuid4()), current_password="guess"
    )

    result = await RecoverCredentialsUseCase(uow, credential_store, BROKER_URL).execute(command)

    assert result.error.code == "VERIFICATION_FAILED"
    assert credential_store.synced == []


@pytest.mark.asyncio
async def test_unknown_and_revoked_devices(uow, credential_store):
    use_case = RecoverCredentialsUseCase(uow, credential_store, BROKER_URL)
    command = RecoverCredentialsCommand(mac="AA:BB:CC:DD:EE:FF", current_password=PASSWORD)

    missing = await use_case.execute(command)
    uow.devices.get_by_mqtt_client_id.return_value = make_device(unclaimed_at=utcnow())
    revoked = await use_case.execute(command)

    assert missing.error.code == "DEVICE_NOT_FOUND"
    assert revoked.error.code == "DEVICE_REVOKED"


@pytest.mark.asyncio
async def test_sync_failure_rolls_back_new_password(uow):
    uow.devices.get_by_mqtt_client_id.return_value = make_device(plain=None)
    command = RecoverCredentialsCommand(mac="AA:BB:CC:DD:EE:FF", current_password=PASSWORD)

    result = await RecoverCredentialsUseCase(
        uow, FakeCredentialStore(fail_sync=True), BROKER_URL
    ).execute(command)

    assert result.error.code == "CREDENTIAL_SYNC_FAILED"
    uow.rollback.assert_awaited_once()
    uow.commit.assert_not_called()
