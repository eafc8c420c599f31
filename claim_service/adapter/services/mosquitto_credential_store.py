"""
Mosquitto password-file credential store.

Entries are written with the ``mosquitto_passwd`` tool, which hashes the
password in the broker's own format; the broker picks the file up again on
SIGHUP. The tool rewrites the whole file, so edits are serialised per store.
"""

import asyncio
import logging
from typing import Sequence

from claim_service.adapter.services.reload_debouncer import ReloadDebouncer
from claim_service.app.services.credential_store import CredentialStoreError, ICredentialStore

logger = logging.getLogger(__name__)


class MosquittoPasswordFileStore(ICredentialStore):
    def __init__(
        self,
        passwd_file: str,
        mosquitto_passwd: str = "mosquitto_passwd",
        reload_command: Sequence[str] = ("pkill", "-HUP", "mosquitto"),
        debounce_seconds: float = 2.0,
    ):
        self.passwd_file = passwd_file
        self.mosquitto_passwd = mosquitto_passwd
        self.reload_command = list(reload_command)
        self.debouncer = ReloadDebouncer(self.reload, delay=debounce_seconds)
        self._edit_lock = asyncio.Lock()

    async def sync_device(
        self, username: str, password: str, trigger_reload: bool = True
    ) -> None:
        if not username or not password:
            raise CredentialStoreError("username and password are required")

        async with self._edit_lock:
            await self._run(self.mosquitto_passwd, "-b", self.passwd_file, username, password)
        logger.info(f"Synced MQTT credentials for {username}")

        if trigger_reload:
            self.debouncer.schedule(username)

    async def remove_device(self, username: str) -> None:
        if not username:
            raise CredentialStoreError("username is required")

        async with self._edit_lock:
            await self._run(self.mosquitto_passwd, "-D", self.passwd_file, username)
        logger.info(f"Removed MQTT credentials for {username}")
        self.debouncer.schedule(username)

    async def reload(self) -> None:
        await self._run(*self.reload_command)

    async def aclose(self) -> None:
        await self.debouncer.flush()

    async def _run(self, *args: str) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CredentialStoreError(f"Could not run {args[0]}: {exc}") from exc

        _, stderr = await process.communicate()
        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip()
            raise CredentialStoreError(
                f"{args[0]} exited with status {process.returncode}: {message}"
            )
