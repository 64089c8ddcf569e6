"""FastAPI Dependencies

Centralized dependency injection for reuse across all route modules.
"""

from typing import Optional

from fastapi import Depends, Request

from auth.jwt import principal_from_token
from config import config
from database.db_postgres import Database
from database.models import Principal
from elections.service import ElectionService
from elections.settings import SettingsService
from exceptions import ForbiddenError, UnauthenticatedError
from server.metrics import metrics


def get_db(request: Request) -> Database:
    """Shared database instance from app state

    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(db: Database = Depends(get_db)):
            ...
    """
    return request.app.state.db


def get_settings_service(request: Request) -> SettingsService:
    return request.app.state.settings


def get_election_service(
    db: Database = Depends(get_db),
    settings: SettingsService = Depends(get_settings_service),
) -> ElectionService:
    return ElectionService(db, settings, metrics=metrics)


def _extract_token(request: Request) -> Optional[str]:
    """Token from the auth cookie, falling back to a Bearer header"""
    token = request.cookies.get(config.AUTH_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):]
    return None


async def get_optional_principal(request: Request) -> Optional[Principal]:
    """Principal if a valid token was sent, None otherwise"""
    token = _extract_token(request)
    if not token:
        return None
    return principal_from_token(token)


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Raises:
        UnauthenticatedError: no token, or the token is invalid/expired
    """
    if principal is None:
        raise UnauthenticatedError("Not authenticated")
    return principal


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Admin access required")
    return principal


async def require_sysadmin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_sysadmin:
        raise ForbiddenError("System admin access required")
    return principal
