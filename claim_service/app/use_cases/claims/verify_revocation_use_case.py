"""
Verify Revocation Use Case

A device that received a revoke instruction over MQTT asks whether the
token in it was really issued by this server before wiping itself.
"""

import logging
from typing import Optional

from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.libs.result import Result, Return
from .dtos import VerifyRevocationResponse

logger = logging.getLogger(__name__)


class VerifyRevocationUseCase:
    """
    Business Rules:
    - Token must exist, be unexpired and be bound to the calling device
    - A valid token is single-use
    - Outcome is always reported as data, never as an error
    """

    def __init__(self, tokens: RevocationTokenStore):
        self.tokens = tokens

    async def execute(
        self, mac: Optional[str], token: Optional[str]
    ) -> Result[VerifyRevocationResponse]:
        valid, reason = self.tokens.verify(token, mac)

        if not valid:
            logger.warning(f"Revocation token rejected for {mac}: {reason}")
            return Return.ok(VerifyRevocationResponse(valid=False, reason=reason))

        logger.info(f"Revocation confirmed by {mac}")
        return Return.ok(
            VerifyRevocationResponse(valid=True, message="Revocation verified. Proceed with unclaim.")
        )
