"""
Mosquitto dynamic-security credential store.

Device clients are managed through the broker's control topic, so a change
is live as soon as the broker answers and no reload is needed. One admin
connection stays open for the life of the store; every command waits for
the response carrying its correlation id.
"""

import asyncio
import json
import logging
from typing import Callable, Dict, Optional
from urllib.parse import urlsplit
from uuid import uuid4

import paho.mqtt.client as mqtt
from paho.mqtt import MQTTException

from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore

logger = logging.getLogger(__name__)

CONTROL_TOPIC = "$CONTROL/dynamic-security/v1"
RESPONSE_TOPIC = f"{CONTROL_TOPIC}/response"


class DynsecCommandError(CredentialStoreError):
    """The broker answered a dynamic-security command with an error"""

    def __init__(self, command: str, error: str):
        super().__init__(f"{command} failed: {error}")
        self.command = command
        self.error = error

    @property
    def not_found(self) -> bool:
        return "not found" in self.error.lower()


def paho_client(client_id: str) -> mqtt.Client:
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)


class DynsecCredentialStore(ICredentialStore):
    def __init__(
        self,
        broker_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        default_role: str = "device",
        timeout: float = 10.0,
        keepalive: int = 30,
        client_id_prefix: str = "claim-service-dynsec",
        client_factory: Callable[[str], mqtt.Client] = paho_client,
    ):
        parts = urlsplit(broker_url)
        self.hostname = parts.hostname or "localhost"
        self.port = parts.port or 1883
        self.username = username
        self.password = password
        self.default_role = default_role
        self.timeout = timeout
        self.keepalive = keepalive
        self.client_id_prefix = client_id_prefix
        self.client_factory = client_factory

        self._client: Optional[mqtt.Client] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ready: Optional[asyncio.Future] = None
        self._pending: Dict[str, asyncio.Future] = {}
        self._connect_lock = asyncio.Lock()

    async def sync_device(
        self, username: str, password: str, trigger_reload: bool = True
    ) -> None:
        if not username or not password:
            raise CredentialStoreError("username and password are required")

        try:
            await self._send(
                {"command": "setClientPassword", "username": username, "password": password}
            )
        except DynsecCommandError as exc:
            if not exc.not_found:
                raise
            await self._send(
                {
                    "command": "createClient",
                    "username": username,
                    "password": password,
                    "roles": [{"rolename": self.default_role}],
                }
            )
            logger.info(f"Created dynamic-security client {username}")
            return
        logger.info(f"Updated dynamic-security password for {username}")

    async def remove_device(self, username: str) -> None:
        if not username:
            raise CredentialStoreError("username is required")

        try:
            await self._send({"command": "deleteClient", "username": username})
        except DynsecCommandError as exc:
            if not exc.not_found:
                raise
            logger.info(f"Dynamic-security client {username} was already absent")
            return
        logger.info(f"Deleted dynamic-security client {username}")

    async def aclose(self) -> None:
        client, self._client = self._client, None
        for future in self._pending.values():
            if not future.done():
                future.set_exception(CredentialStoreError("Credential store closed"))
        if client is not None:
            await asyncio.to_thread(self._shutdown, client)

    async def _send(self, command: dict) -> dict:
        client = await self._connection()
        correlation = uuid4().hex
        future = self._loop.create_future()
        self._pending[correlation] = future
        payload = json.dumps({"commands": [command], "correlationData": correlation})
        name = command["command"]
        try:
            info = client.publish(CONTROL_TOPIC, payload, qos=1)
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                raise CredentialStoreError(f"{name} could not be published (rc={info.rc})")
            return await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError as exc:
            raise CredentialStoreError(f"{name} got no answer within {self.timeout}s") from exc
        finally:
            self._pending.pop(correlation, None)

    async def _connection(self) -> mqtt.Client:
        async with self._connect_lock:
            if self._client is not None:
                return self._client

            self._loop = asyncio.get_running_loop()
            self._ready = self._loop.create_future()
            client = self.client_factory(f"{self.client_id_prefix}-{uuid4().hex[:8]}")
            if self.username:
                client.username_pw_set(self.username, self.password)
            client.on_connect = self._on_connect
            client.on_subscribe = self._on_subscribe
            client.on_message = self._on_message

            try:
                await asyncio.to_thread(client.connect, self.hostname, self.port, self.keepalive)
            except (OSError, MQTTException) as exc:
                raise CredentialStoreError(
                    f"Could not connect to {self.hostname}:{self.port}: {exc}"
                ) from exc
            client.loop_start()

            try:
                await asyncio.wait_for(self._ready, self.timeout)
            except (CredentialStoreError, asyncio.TimeoutError) as exc:
                await asyncio.to_thread(self._shutdown, client)
                if isinstance(exc, CredentialStoreError):
                    raise
                raise CredentialStoreError(
                    f"Dynamic-security session not ready within {self.timeout}s"
                ) from exc

            logger.info(f"Dynamic-security session open on {self.hostname}:{self.port}")
            self._client = client
            return client

    @staticmethod
    def _shutdown(client: mqtt.Client) -> None:
        client.disconnect()
        client.loop_stop()

    # Paho callbacks run on the network thread; results are handed to the event loop

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self._loop.call_soon_threadsafe(
                self._settle_ready, CredentialStoreError(f"Broker refused login: {reason_code}")
            )
            return
        # Subscribing here renews the subscription after an automatic reconnect
        client.subscribe(RESPONSE_TOPIC, qos=1)

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        failed = [code for code in reason_code_list if code.is_failure]
        outcome = (
            CredentialStoreError(f"Subscribe to {RESPONSE_TOPIC} refused: {failed[0]}")
            if failed
            else None
        )
        self._loop.call_soon_threadsafe(self._settle_ready, outcome)

    def _on_message(self, client, userdata, message) -> None:
        if message.topic != RESPONSE_TOPIC:
            return
        try:
            body = json.loads(message.payload)
        except ValueError:
            logger.error("Unreadable dynamic-security response")
            return
        self._loop.call_soon_threadsafe(self._dispatch, body)

    def _settle_ready(self, error: Optional[Exception]) -> None:
        if self._ready is None or self._ready.done():
            return
        if error is None:
            self._ready.set_result(True)
        else:
            self._ready.set_exception(error)

    def _dispatch(self, body: dict) -> None:
        for response in body.get("responses", []):
            correlation = response.get("correlationData") or body.get("correlationData")
            # Error responses can arrive without correlation data
            if correlation is None and len(self._pending) == 1:
                correlation = next(iter(self._pending))
            future = self._pending.get(correlation)
            if future is None or future.done():
                logger.debug(f"Dropping dynamic-security response for {correlation}")
                continue
            if response.get("error"):
                future.set_exception(
                    DynsecCommandError(response.get("command", "command"), response["error"])
                )
            else:
                future.set_result(response)
