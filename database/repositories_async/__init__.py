"""Async PostgreSQL repositories using asyncpg connection pooling"""

from database.repositories_async.base import BaseRepository
from database.repositories_async.elections import ElectionRepository
from database.repositories_async.settings import SettingsRepository
from database.repositories_async.users import UserRepository

__all__ = [
    "BaseRepository",
    "ElectionRepository",
    "SettingsRepository",
    "UserRepository",
]
