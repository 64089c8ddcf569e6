"""User repository - voter identity lookup

Accounts are created by the auth service; the voting core only needs to
know that a voter exists.
"""

from database.repositories_async.base import BaseRepository


class UserRepository(BaseRepository):
    """Read-only view of registered users"""

    async def voter_exists(self, user_id: str) -> bool:
        row = await self._fetchrow("SELECT 1 FROM users WHERE id = $1", user_id)
        return row is not None
