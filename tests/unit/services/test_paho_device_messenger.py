import json
from uuid import uuid4

import pytest
import paho.mqtt.publish as publish

from claim_service.adapter.services.paho_device_messenger import PahoDeviceMessenger
from claim_service.app.services.device_messenger import DeviceMessagingError


@pytest.fixture
def published(monkeypatch):
    calls = []

    def fake_single(topic, **kwargs):
        calls.append({"topic": topic, **kwargs})

    monkeypatch.setattr(publish, "single", fake_single)
    return calls


@pytest.fixture
def messenger():
    return PahoDeviceMessenger("mqtt://broker.local:1884", username="server", password="pw")


@pytest.mark.asyncio
async def test_publish_revocation_is_retained(published, messenger):
    tenant_id = uuid4()

    await messenger.publish_revocation(tenant_id, "AABBCCDDEEFF", "tok123", "Admin unclaimed device")

    assert len(published) == 1
    call = published[0]
    assert call["topic"] == f"tenant/{tenant_id}/device/AABBCCDDEEFF/revoke"
    assert call["retain"] is True
    assert call["qos"] == 1
    assert call["hostname"] == "broker.local"
    assert call["port"] == 1884
    assert call["auth"] == {"username": "server", "password": "pw"}
    payload = json.loads(call["payload"])
    assert payload["action"] == "revoke"
    assert payload["token"] == "tok123"
    assert payload["reason"] == "Admin unclaimed device"
    assert isinstance(payload["timestamp"], int)


@pytest.mark.asyncio
async def test_clear_revocation_sends_empty_retained(published, messenger):
    tenant_id = uuid4()

    await messenger.clear_revocation(tenant_id, "AABBCCDDEEFF")

    assert published[0]["payload"] == ""
    assert published[0]["retain"] is True


@pytest.mark.asyncio
async def test_publish_command_not_retained(published, messenger):
    tenant_id = uuid4()

    await messenger.publish_command(
        tenant_id, "AABBCCDDEEFF", "update_tenant", {"command": "update_tenant"}
    )

    call = published[0]
    assert call["topic"] == f"tenant/{tenant_id}/device/AABBCCDDEEFF/command/update_tenant"
    assert call["retain"] is False
    assert json.loads(call["payload"]) == {"command": "update_tenant"}


@pytest.mark.asyncio
async def test_connection_failure_raises(monkeypatch, messenger):
    def refuse(topic, **kwargs):
        raise ConnectionRefusedError(111, "Connection refused")

    monkeypatch.setattr(publish, "single", refuse)

    with pytest.raises(DeviceMessagingError):
        await messenger.publish_command(uuid4(), "AABBCCDDEEFF", "rotate_credentials", {})


def test_anonymous_broker_defaults():
    messenger = PahoDeviceMessenger("mqtt://localhost")

    assert messenger.port == 1883
    assert messenger.auth is None
