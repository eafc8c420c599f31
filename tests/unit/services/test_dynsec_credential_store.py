import json
from types import SimpleNamespace

import pytest

from claim_service.adapter.services.dynsec_credential_store import (
    CONTROL_TOPIC,
    RESPONSE_TOPIC,
    DynsecCommandError,
    DynsecCredentialStore,
)
from claim_service.app.services.credential_store import CredentialStoreError

OK = SimpleNamespace(is_failure=False)
REFUSED = SimpleNamespace(is_failure=True)


class FakeBrokerClient:
    """Answers dynamic-security commands the way Mosquitto does"""

    def __init__(self, client_id):
        self.client_id = client_id
        self.clients = {}
        self.commands = []
        self.subscriptions = []
        self.credentials = None
        self.address = None
        self.loop_running = False
        self.disconnected = False
        self.refuse_login = False
        self.silent = False
        self.errors_without_correlation = False
        self.fail_with = None
        self.on_connect = None
        self.on_subscribe = None
        self.on_message = None

    def username_pw_set(self, username, password):
        self.credentials = (username, password)

    def connect(self, host, port, keepalive):
        self.address = (host, port)

    def loop_start(self):
        self.loop_running = True
        self.on_connect(self, None, {}, REFUSED if self.refuse_login else OK, None)

    def loop_stop(self):
        self.loop_running = False

    def disconnect(self):
        self.disconnected = True

    def subscribe(self, topic, qos=0):
        self.subscriptions.append(topic)
        self.on_subscribe(self, None, 1, [OK], None)
        return 0, 1

    def publish(self, topic, payload, qos=0):
        assert topic == CONTROL_TOPIC
        body = json.loads(payload)
        self.commands.extend(body["commands"])
        if not self.silent:
            responses = []
            for command in body["commands"]:
                response = self._execute(command)
                if not (self.errors_without_correlation and "error" in response):
                    response["correlationData"] = body["correlationData"]
                responses.append(response)
            message = SimpleNamespace(
                topic=RESPONSE_TOPIC, payload=json.dumps({"responses": responses}).encode()
            )
            self.on_message(self, None, message)
        return SimpleNamespace(rc=0)

    def _execute(self, command):
        name = command["command"]
        username = command["username"]
        if self.fail_with:
            return {"command": name, "error": self.fail_with}
        if name == "createClient":
            if username in self.clients:
                return {"command": name, "error": "Client already exists"}
            self.clients[username] = {
                "password": command["password"],
                "roles": command.get("roles", []),
            }
        elif name == "setClientPassword":
            if username not in self.clients:
                return {"command": name, "error": "Client not found"}
            self.clients[username]["password"] = command["password"]
        elif name == "deleteClient":
            if username not in self.clients:
                return {"command": name, "error": "Client not found"}
            del self.clients[username]
        return {"command": name}


@pytest.fixture
def broker():
    return FakeBrokerClient("unused")


@pytest.fixture
def created(broker):
    clients = []

    def factory(client_id):
        broker.client_id = client_id
        clients.append(broker)
        return broker

    return clients, factory


@pytest.fixture
def store(created):
    _, factory = created
    return DynsecCredentialStore(
        "mqtt://broker.test:1884",
        username="server_admin",
        password="admin-pass",
        timeout=0.2,
        client_factory=factory,
    )


@pytest.mark.asyncio
async def test_sync_new_device_creates_client_with_role(store, broker):
    """
    Given the broker has no client for the device
    When its credentials are synced
    Then the password update reports not found
    And a client is created with the device role
    """
    await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert [c["command"] for c in broker.commands] == ["setClientPassword", "createClient"]
    assert broker.clients["AABBCCDDEEFF"] == {
        "password": "s3cret",
        "roles": [{"rolename": "device"}],
    }
    assert broker.address == ("broker.test", 1884)
    assert broker.credentials == ("server_admin", "admin-pass")
    assert broker.subscriptions == [RESPONSE_TOPIC]
    assert broker.client_id.startswith("claim-service-dynsec-")


@pytest.mark.asyncio
async def test_sync_existing_device_rotates_password(store, broker, created):
    broker.clients["AABBCCDDEEFF"] = {"password": "old", "roles": [{"rolename": "device"}]}

    await store.sync_device("AABBCCDDEEFF", "new-secret")
    await store.sync_device("AABBCCDDEEFF", "newer-secret")

    assert [c["command"] for c in broker.commands] == ["setClientPassword", "setClientPassword"]
    assert broker.clients["AABBCCDDEEFF"]["password"] == "newer-secret"
    clients, _ = created
    assert len(clients) == 1


@pytest.mark.asyncio
async def test_remove_device_deletes_client(store, broker):
    broker.clients["AABBCCDDEEFF"] = {"password": "s3cret", "roles": []}

    await store.remove_device("AABBCCDDEEFF")

    assert broker.clients == {}
    assert broker.commands == [{"command": "deleteClient", "username": "AABBCCDDEEFF"}]


@pytest.mark.asyncio
async def test_remove_missing_device_is_not_an_error(store, broker):
    await store.remove_device("AABBCCDDEEFF")

    assert broker.commands == [{"command": "deleteClient", "username": "AABBCCDDEEFF"}]


@pytest.mark.asyncio
async def test_broker_error_is_raised(store, broker):
    broker.fail_with = "Permission denied"

    with pytest.raises(DynsecCommandError) as exc_info:
        await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert "setClientPassword failed: Permission denied" in str(exc_info.value)
    assert isinstance(exc_info.value, CredentialStoreError)


@pytest.mark.asyncio
async def test_error_without_correlation_matches_single_pending_command(store, broker):
    """
    Given the broker omits correlation data on error responses
    When a new device is synced
    Then the not-found answer still reaches the waiting command
    And the client is created
    """
    broker.errors_without_correlation = True

    await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert "AABBCCDDEEFF" in broker.clients


@pytest.mark.asyncio
async def test_unanswered_command_times_out(store, broker):
    broker.silent = True

    with pytest.raises(CredentialStoreError) as exc_info:
        await store.remove_device("AABBCCDDEEFF")

    assert "no answer" in str(exc_info.value)


@pytest.mark.asyncio
async def test_refused_login_raises_and_stops_client(store, broker):
    broker.refuse_login = True

    with pytest.raises(CredentialStoreError) as exc_info:
        await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert "refused login" in str(exc_info.value)
    assert broker.loop_running is False
    assert broker.disconnected is True
    assert broker.commands == []


@pytest.mark.asyncio
async def test_aclose_disconnects(store, broker):
    await store.remove_device("AABBCCDDEEFF")

    await store.aclose()

    assert broker.disconnected is True
    assert broker.loop_running is False


@pytest.mark.asyncio
async def test_empty_password_rejected(store, broker):
    with pytest.raises(CredentialStoreError):
        await store.sync_device("AABBCCDDEEFF", "")

    assert broker.commands == []
