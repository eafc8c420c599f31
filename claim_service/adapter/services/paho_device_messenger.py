"""
MQTT publishing with paho-mqtt.

Each publish opens a short-lived connection through ``paho.mqtt.publish``;
the blocking call runs in a worker thread.
"""

import asyncio
import json
import logging
import time
from typing import Optional
from urllib.parse import urlsplit
from uuid import UUID, uuid4

import paho.mqtt.publish as publish
from paho.mqtt import MQTTException

from claim_service.app.services.device_messenger import DeviceMessagingError, IDeviceMessenger
from claim_service.domain.topics import command_topic, revoke_topic

logger = logging.getLogger(__name__)


class PahoDeviceMessenger(IDeviceMessenger):
    def __init__(
        self,
        broker_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id_prefix: str = "claim-service",
        keepalive: int = 10,
    ):
        parts = urlsplit(broker_url)
        self.hostname = parts.hostname or "localhost"
        self.port = parts.port or 1883
        self.auth = {"username": username, "password": password} if username else None
        self.client_id_prefix = client_id_prefix
        self.keepalive = keepalive

    async def publish_revocation(
        self, tenant_id: UUID, mqtt_client_id: str, token: str, reason: str
    ) -> None:
        payload = {
            "action": "revoke",
            "token": token,
            "timestamp": int(time.time() * 1000),
            "reason": reason,
        }
        # Retained so a device that is offline right now still sees it on reconnect
        await self._publish(
            revoke_topic(tenant_id, mqtt_client_id), json.dumps(payload), retain=True
        )

    async def clear_revocation(self, tenant_id: UUID, mqtt_client_id: str) -> None:
        await self._publish(revoke_topic(tenant_id, mqtt_client_id), "", retain=True)

    async def publish_command(
        self, tenant_id: UUID, mqtt_client_id: str, command: str, payload: dict
    ) -> None:
        await self._publish(
            command_topic(tenant_id, mqtt_client_id, command),
            json.dumps(payload),
            retain=False,
        )

    async def _publish(self, topic: str, payload: str, retain: bool) -> None:
        try:
            await asyncio.to_thread(
                publish.single,
                topic,
                payload=payload,
                qos=1,
                retain=retain,
                hostname=self.hostname,
                port=self.port,
                client_id=f"{self.client_id_prefix}-{uuid4().hex[:8]}",
                keepalive=self.keepalive,
                auth=self.auth,
            )
        except (OSError, MQTTException) as exc:
            raise DeviceMessagingError(f"Publish to {topic} failed: {exc}") from exc
        logger.info(f"Published to {topic}")
