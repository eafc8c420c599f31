from typing import Optional

import bcrypt
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.app.repositories.session_repository import ISessionRepository
from claim_service.domain.entities import Session


class SessionRepository(ISessionRepository):
    """Session repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, session_obj: Session) -> Session:
        """Create a new session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def update(self, session_obj: Session) -> Session:
        """Update existing session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def find_by_refresh_token(self, refresh_token: str) -> Optional[Session]:
        """
        Find session by verifying refresh token hash.

        Only non-revoked sessions are candidates; expiry is checked in the
        use case so it can report a distinct error.
        """
        stmt = select(Session).where(Session.revoked == False)
        result = await self.session.execute(stmt)
        sessions = list(result.scalars().all())

        refresh_token_bytes = refresh_token.encode()
        for session_obj in sessions:
            try:
                if bcrypt.checkpw(refresh_token_bytes, session_obj.refresh_token_hash.encode()):
                    return session_obj
            except ValueError:
                # Skip sessions with malformed hashes
                continue

        return None
