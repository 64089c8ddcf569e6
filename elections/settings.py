"""Global settings service

Loaded once at startup and kept in memory. Writes go to the repository
first and only then replace the cached copy.
"""

import dataclasses
from datetime import datetime, timezone
from typing import Callable, Optional

from config import get_logger
from database.models import Principal, Settings
from exceptions import ForbiddenError

logger = get_logger(__name__).bind(component="settings_service")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SettingsService:
    """Owns the process-wide Settings

    Args:
        repository: SettingsRepository
        clock: Returns the current time (injectable for tests)
    """

    def __init__(self, repository, clock: Callable[[], datetime] = _utcnow):
        self.repository = repository
        self.clock = clock
        self._settings = Settings()

    async def load(self) -> Settings:
        self._settings = await self.repository.load_or_create_default()
        return self._settings

    def get(self) -> Settings:
        """Cached settings (defaults until load() ran)"""
        return self._settings

    async def update(
        self,
        principal: Principal,
        maintenance_mode: Optional[bool] = None,
        registration_enabled: Optional[bool] = None,
    ) -> Settings:
        if not principal.is_admin:
            raise ForbiddenError("Admin access required")

        changes = {}
        if maintenance_mode is not None:
            changes["maintenance_mode"] = maintenance_mode
        if registration_enabled is not None:
            changes["registration_enabled"] = registration_enabled

        candidate = dataclasses.replace(self._settings, **changes)
        saved = await self.repository.save(candidate, updated_by=principal.id, now=self.clock())
        self._settings = saved

        logger.info(
            "settings updated",
            updated_by=principal.id,
            maintenance_mode=saved.maintenance_mode,
            registration_enabled=saved.registration_enabled,
        )
        return saved
