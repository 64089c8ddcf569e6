"""Settings repository - the single global settings row"""

from datetime import datetime
from typing import Optional

from config import get_logger
from database.models import Settings
from database.repositories_async.base import BaseRepository
from database.repositories_async.helpers import build_settings

logger = get_logger(__name__).bind(component="settings_repository")

SETTINGS_ROW_ID = 1


class SettingsRepository(BaseRepository):
    """Repository for the global settings document"""

    async def get_settings(self) -> Optional[Settings]:
        row = await self._fetchrow(
            """
            SELECT maintenance_mode, registration_enabled, updated_by, updated_at
            FROM settings WHERE id = $1
            """,
            SETTINGS_ROW_ID,
        )
        return build_settings(row) if row else None

    async def load_or_create_default(self) -> Settings:
        """Return the stored settings, inserting defaults on first boot.

        ON CONFLICT DO NOTHING keeps concurrent first boots from racing.
        """
        defaults = Settings()
        await self._execute(
            """
            INSERT INTO settings (id, maintenance_mode, registration_enabled)
            VALUES ($1, $2, $3)
            ON CONFLICT (id) DO NOTHING
            """,
            SETTINGS_ROW_ID,
            defaults.maintenance_mode,
            defaults.registration_enabled,
        )
        settings = await self.get_settings()
        logger.info(
            "settings loaded",
            maintenance_mode=settings.maintenance_mode,
            registration_enabled=settings.registration_enabled,
        )
        return settings

    async def save(self, settings: Settings, updated_by: Optional[str], now: datetime) -> Settings:
        row = await self._fetchrow(
            """
            INSERT INTO settings (id, maintenance_mode, registration_enabled, updated_by, updated_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE SET
                maintenance_mode = EXCLUDED.maintenance_mode,
                registration_enabled = EXCLUDED.registration_enabled,
                updated_by = EXCLUDED.updated_by,
                updated_at = EXCLUDED.updated_at
            RETURNING maintenance_mode, registration_enabled, updated_by, updated_at
            """,
            SETTINGS_ROW_ID,
            settings.maintenance_mode,
            settings.registration_enabled,
            updated_by,
            now,
        )
        return build_settings(row)
