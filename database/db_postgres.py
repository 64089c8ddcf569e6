"""PostgreSQL Database Layer with Repository Pattern

Database owns the asyncpg pool and hands it to every repository.
All reads and writes go through the repositories.
"""

import json
from pathlib import Path
from typing import Optional

import asyncpg

from config import config, get_logger
from database.repositories_async import (
    ElectionRepository,
    SettingsRepository,
    UserRepository,
)
from exceptions import DatabaseConnectionError

logger = get_logger(__name__).bind(component="database_postgres")


def _jsonb_encoder(obj):
    """JSONB encoder that also accepts objects exposing to_dict()/model_dump()"""
    def default(o):
        if hasattr(o, "model_dump"):
            return o.model_dump()
        if hasattr(o, "to_dict"):
            return o.to_dict()
        raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")

    return json.dumps(obj, default=default)


class Database:
    """Async PostgreSQL database with repository pattern

    Usage:
        db = await Database.create()
        election = await db.elections.get_election(election_id)
        await db.close()
    """

    pool: asyncpg.Pool

    elections: ElectionRepository
    settings: SettingsRepository
    users: UserRepository

    def __init__(self, pool: asyncpg.Pool):
        """Use Database.create() instead of direct instantiation."""
        self.pool = pool

        self.elections = ElectionRepository(pool)
        self.settings = SettingsRepository(pool)
        self.users = UserRepository(pool)

        logger.info("database initialized with repositories")

    @classmethod
    async def create(
        cls,
        dsn: Optional[str] = None,
        min_size: int = config.POSTGRES_POOL_MIN_SIZE,
        max_size: int = config.POSTGRES_POOL_MAX_SIZE,
    ) -> "Database":
        """Create database with connection pool

        Args:
            dsn: PostgreSQL connection string (defaults to config.get_postgres_dsn())
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        if dsn is None:
            dsn = config.get_postgres_dsn()

        async def init_connection(conn):
            await conn.set_type_codec(
                "jsonb",
                encoder=_jsonb_encoder,
                decoder=json.loads,
                schema="pg_catalog",
            )

        try:
            pool = await asyncpg.create_pool(
                dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=60,
                init=init_connection,
            )
            logger.info("connection pool created", min_size=min_size, max_size=max_size)
            return cls(pool)
        except (asyncpg.PostgresError, OSError, ConnectionError) as e:
            # Connection-specific errors only - let programming errors fail loudly
            logger.error("failed to create connection pool", error=str(e))
            raise DatabaseConnectionError(f"Failed to connect to PostgreSQL: {e}")

    async def close(self):
        await self.pool.close()
        logger.info("connection pool closed")

    async def init_schema(self):
        """Create tables, indexes and constraints. Safe to call repeatedly."""
        schema_path = Path(__file__).parent / "schema_postgres.sql"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        async with self.pool.acquire() as conn:
            await conn.execute(schema_path.read_text())

        logger.info("schema initialized")

    async def get_stats(self) -> dict:
        """Counts per election status, used by the health endpoint"""
        by_status = await self.elections.count_by_status()
        return {"elections": sum(by_status.values()), "by_status": by_status}
