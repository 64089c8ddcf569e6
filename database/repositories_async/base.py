"""Base repository with async PostgreSQL connection pooling

All repositories inherit from BaseRepository and share:
- Connection pool (no connection per-instance)
- Transaction context managers
- Query helpers that translate driver errors into evote exceptions

Return Type Conventions
-----------------------
    get_X(id) -> Optional[T]
        Single entity lookup by primary key.
        Returns None if entity not found.

    get_Xs(...) -> List[T]
        Multiple entity retrieval with filters.
        Returns empty list [] if none match.

    Conditional writes (record_vote, set_status_if) return None / False when
    their guard did not match instead of raising; the caller decides which
    business error that means.

Connection Patterns
-------------------
    self.pool.acquire()
        Use for single-statement reads and atomic single-statement writes.

    self.transaction()
        Use for read-modify-write sequences that need a row lock.
"""

from contextlib import asynccontextmanager
from typing import Any, List, Optional

import asyncpg

from config import get_logger
from exceptions import ConflictError, DatabaseError

logger = get_logger(__name__).bind(component="repository")


class BaseRepository:
    """Base class for async PostgreSQL repositories

    Design Principles:
    - Pool is passed in, not created (shared by every repository)
    - Transactions are explicit (async with self.transaction())
    - Queries use $1, $2 placeholders (PostgreSQL parameterization)
    - All methods are async (no sync fallbacks)
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        """Execute query and fetch single row"""
        async with self.pool.acquire() as conn:
            return await self._run(conn.fetchrow, query, *args)

    async def _fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        """Execute query and fetch all rows"""
        async with self.pool.acquire() as conn:
            return await self._run(conn.fetch, query, *args)

    async def _execute(self, query: str, *args: Any) -> str:
        """Execute query without returning rows (INSERT, UPDATE, DELETE)"""
        async with self.pool.acquire() as conn:
            return await self._run(conn.execute, query, *args)

    @staticmethod
    async def _run(method, query: str, *args: Any):
        """Run a connection method, mapping driver errors onto our hierarchy"""
        try:
            return await method(query, *args)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("Resource already exists", context={"constraint": e.constraint_name})
        except asyncpg.CheckViolationError as e:
            logger.error("check constraint violated", constraint=e.constraint_name, error=str(e))
            raise DatabaseError("Data integrity violation", context={"constraint": e.constraint_name})
        except asyncpg.PostgresError as e:
            logger.error("query failed", error=str(e), sqlstate=e.sqlstate)
            raise DatabaseError(f"Database query failed: {e.__class__.__name__}")

    @asynccontextmanager
    async def transaction(self):
        """Context manager for explicit transactions

        Usage:
            async with self.transaction() as conn:
                row = await conn.fetchrow("SELECT ... FOR UPDATE", ...)
                await conn.execute("UPDATE ...")
                # Auto-commits on successful exit
                # Auto-rolls back on exception
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    @staticmethod
    def _parse_row_count(result: str) -> int:
        """Extract row count from PostgreSQL result like 'UPDATE 5' or 'DELETE 3'."""
        if not result:
            return 0
        return int(result.split()[-1])
