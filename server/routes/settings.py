"""Settings API - global maintenance and registration switches"""

from fastapi import APIRouter, Depends

from database.models import Principal
from elections.settings import SettingsService
from server.dependencies import get_current_principal, get_settings_service, require_admin
from server.models.requests import SettingsUpdateRequest
from server.utils.responses import success_response

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


@router.get("")
async def get_settings(
    principal: Principal = Depends(get_current_principal),
    settings: SettingsService = Depends(get_settings_service),
):
    return success_response(settings.get().to_dict())


@router.patch("")
async def update_settings(
    body: SettingsUpdateRequest,
    principal: Principal = Depends(require_admin),
    settings: SettingsService = Depends(get_settings_service),
):
    updated = await settings.update(
        principal,
        maintenance_mode=body.maintenance_mode,
        registration_enabled=body.registration_enabled,
    )
    return success_response(updated.to_dict(), message="Settings updated")
