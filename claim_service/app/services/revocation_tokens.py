"""
In-memory revocation tokens.

When an admin unclaims a device the server publishes a revoke instruction
carrying a token. Before wiping its credentials the device calls back with
that token; only tokens issued here, unexpired and bound to the calling
device, are accepted.

Tokens live in process memory. A restart forgets them, in which case the
device converges through claim-status polling instead.
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple
from uuid import UUID

from claim_service.domain.device_identity import mqtt_client_id_from_mac

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class RevocationEntry:
    device_id: UUID
    tenant_id: UUID
    mqtt_client_id: str
    expires_at: float


class RevocationTokenStore:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, RevocationEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def issue(self, device_id: UUID, tenant_id: UUID, mqtt_client_id: str) -> str:
        token = secrets.token_hex(32)
        self._entries[token] = RevocationEntry(
            device_id=device_id,
            tenant_id=tenant_id,
            mqtt_client_id=mqtt_client_id,
            expires_at=self._clock() + self.ttl_seconds,
        )
        return token

    def validate(self, token: str) -> Optional[RevocationEntry]:
        """Return the entry for an unexpired token without consuming it"""
        entry = self._entries.get(token)
        if entry is None or entry.expires_at < self._clock():
            return None
        return entry

    def verify(self, token: Optional[str], mac: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Confirm a device's revoke instruction.

        Returns (valid, reason). A successful check consumes the token.
        """
        if not token or not mac:
            return False, "missing_params"

        entry = self._entries.get(token)
        if entry is None:
            return False, "invalid_token"

        if entry.expires_at < self._clock():
            del self._entries[token]
            return False, "token_expired"

        if entry.mqtt_client_id != mqtt_client_id_from_mac(mac):
            return False, "device_mismatch"

        del self._entries[token]
        return True, None

    def sweep(self) -> int:
        now = self._clock()
        expired = [token for token, entry in self._entries.items() if entry.expires_at < now]
        for token in expired:
            del self._entries[token]
        return len(expired)

    async def run_sweeper(self, interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        while True:
            await asyncio.sleep(interval)
            removed = self.sweep()
            if removed:
                logger.info(f"Swept {removed} expired revocation token(s)")
