import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class CredentialStoreError(Exception):
    """The broker credential backend rejected or failed an operation"""


class ICredentialStore(ABC):
    """
    MQTT broker authentication backend.

    Password-file implementations batch broker reloads: many writes in a short window
    result in a single reload.
    """

    @abstractmethod
    async def sync_device(
        self, username: str, password: str, trigger_reload: bool = True
    ) -> None:
        """Add or replace one credential entry. Raises CredentialStoreError."""
        pass

    @abstractmethod
    async def remove_device(self, username: str) -> None:
        """Delete one credential entry. Raises CredentialStoreError."""
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Flush any pending reload and release broker connections"""
        pass


async def remove_device_quietly(store: ICredentialStore, username: str) -> bool:
    """Remove broker credentials where cleanup is not correctness-critical"""
    try:
        await store.remove_device(username)
        return True
    except CredentialStoreError as exc:
        logger.warning(f"Could not remove MQTT credentials for {username}: {exc}")
        return False
