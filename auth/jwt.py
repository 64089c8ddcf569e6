"""
JWT verification for the auth collaborator

Tokens are issued by the accounts service; this module only verifies them
and turns the payload into a Principal. generate_access_token exists for
operator tooling and tests.

Note: Uses module-level state initialized once at server startup.
For testing, call init_jwt() before using any token functions.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from database.models import Principal, Role
from exceptions import ConfigurationError

# Module-level secret (initialized once at startup via init_jwt)
_SECRET_KEY: Optional[str] = None
_ALGORITHM = "HS256"

_ACCESS_TOKEN_EXPIRY = timedelta(days=1)


def init_jwt(secret: str) -> None:
    """
    Initialize JWT module with secret key.

    Should be called once at server startup. Subsequent calls will
    raise ValueError to prevent accidental re-initialization.

    Raises:
        ValueError: If secret is empty or module already initialized
    """
    global _SECRET_KEY

    if not secret or not secret.strip():
        raise ValueError("JWT secret cannot be empty")

    if _SECRET_KEY is not None:
        raise ValueError("JWT module already initialized. Do not re-initialize.")

    _SECRET_KEY = secret


def is_initialized() -> bool:
    return _SECRET_KEY is not None


def _get_secret() -> str:
    if _SECRET_KEY is None:
        raise ConfigurationError("JWT module not initialized", config_key="EVOTE_JWT_SECRET")
    return _SECRET_KEY


def generate_access_token(user_id: str, role: Role = Role.USER, expires_in: timedelta = _ACCESS_TOKEN_EXPIRY) -> str:
    """Signed token carrying {user_id, role}"""
    payload = {
        "user_id": user_id,
        "role": Role(role).value,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, _get_secret(), algorithm=_ALGORITHM)


def verify_token(token: str) -> Optional[dict]:
    """Verify JWT token and return payload, or None if invalid/expired."""
    secret = _get_secret()
    try:
        return jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None


def principal_from_token(token: str) -> Optional[Principal]:
    """Principal for a valid token, None for anything unusable"""
    payload = verify_token(token)
    if not payload or not payload.get("user_id"):
        return None
    try:
        role = Role(payload.get("role", Role.USER.value))
    except ValueError:
        return None
    return Principal(id=str(payload["user_id"]), role=role)
