"""In-memory stand-ins for the broker-facing ports"""

from typing import Dict, List, Tuple
from uuid import UUID

from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore
from claim_service.app.services.device_messenger import DeviceMessagingError, IDeviceMessenger


class FakeCredentialStore(ICredentialStore):
    def __init__(self, fail_sync: bool = False, fail_remove: bool = False):
        self.fail_sync = fail_sync
        self.fail_remove = fail_remove
        self.entries: Dict[str, str] = {}
        self.synced: List[Tuple[str, str]] = []
        self.removed: List[str] = []
        self.closed = False

    async def sync_device(self, username, password, trigger_reload=True):
        if self.fail_sync:
            raise CredentialStoreError("mosquitto_passwd exited with status 1")
        self.entries[username] = password
        self.synced.append((username, password))

    async def remove_device(self, username):
        if self.fail_remove:
            raise CredentialStoreError("mosquitto_passwd exited with status 1")
        self.entries.pop(username, None)
        self.removed.append(username)

    async def aclose(self):
        self.closed = True


class FakeDeviceMessenger(IDeviceMessenger):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.revocations: List[dict] = []
        self.cleared: List[Tuple[UUID, str]] = []
        self.commands: List[dict] = []

    def _check(self):
        if self.fail:
            raise DeviceMessagingError("broker unreachable")

    async def publish_revocation(self, tenant_id, mqtt_client_id, token, reason):
        self._check()
        self.revocations.append(
            {
                "tenant_id": tenant_id,
                "mqtt_client_id": mqtt_client_id,
                "token": token,
                "reason": reason,
            }
        )

    async def clear_revocation(self, tenant_id, mqtt_client_id):
        self._check()
        self.cleared.append((tenant_id, mqtt_client_id))

    async def publish_command(self, tenant_id, mqtt_client_id, command, payload):
        self._check()
        self.commands.append(
            {
                "tenant_id": tenant_id,
                "mqtt_client_id": mqtt_client_id,
                "command": command,
                "payload": payload,
            }
        )
