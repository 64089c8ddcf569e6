"""Token verification for API callers"""

from auth.jwt import (
    init_jwt,
    is_initialized,
    generate_access_token,
    verify_token,
    principal_from_token,
)

__all__ = [
    "init_jwt",
    "is_initialized",
    "generate_access_token",
    "verify_token",
    "principal_from_token",
]
