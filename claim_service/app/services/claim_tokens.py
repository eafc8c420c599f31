"""
Device self-registration tokens.

Devices sign ``"{mac}:{timestamp}"`` with a secret burned into their
firmware using HMAC-SHA256 and send the hex digest along with the
timestamp. A token proves the request came from genuine hardware within a
short time window.
"""

import hashlib
import hmac
import time
from typing import Iterable, Optional

DEFAULT_MAX_AGE_SECONDS = 300


def sign_claim_token(secret: str, mac: str, timestamp) -> str:
    message = f"{mac}:{timestamp}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_claim_token(
    secret_keys: Iterable[str],
    mac: str,
    timestamp: str,
    token: str,
    now: Optional[float] = None,
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
) -> bool:
    """
    Check a device claim token.

    Args:
        secret_keys: accepted secrets, current first; older secrets stay valid
            while devices in the field are being re-flashed
        mac: MAC exactly as the device signed it
        timestamp: Unix seconds as sent by the device
        token: hex HMAC digest, case-insensitive
        now: current Unix time, defaults to time.time()
        max_age_seconds: allowed clock skew in either direction (inclusive)

    Returns:
        True if the token is fresh and matches one of the secrets
    """
    if not mac or not timestamp or not token:
        return False

    try:
        request_time = int(timestamp)
    except (TypeError, ValueError):
        return False

    current = time.time() if now is None else now
    if abs(current - request_time) > max_age_seconds:
        return False

    presented = token.lower().encode()
    matched = False
    for secret in secret_keys:
        if not secret:
            continue
        expected = sign_claim_token(secret, mac, timestamp).encode()
        # Check every secret so timing does not reveal which one matched
        matched |= hmac.compare_digest(presented, expected)
    return matched
