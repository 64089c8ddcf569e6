"""Standardized API response helpers.

Ensures consistent response structure across all endpoints:
{"success": True, "data": ...} or {"success": False, "message": ...}
"""

from typing import Any, Optional


def success_response(data: Any, **extras) -> dict:
    """Standard success response wrapper.

    Usage:
        return success_response(election.to_dict())

    Returns:
        {"success": True, "data": data, **extras}
    """
    return {"success": True, "data": data, **extras}


def list_response(items: list, total: Optional[int] = None, **extras) -> dict:
    """Standard list response with total count.

    Returns:
        {"success": True, "data": items, "total": N, **extras}
    """
    return {
        "success": True,
        "data": items,
        "total": total if total is not None else len(items),
        **extras,
    }


def error_response(message: str, **extras) -> dict:
    """Standard error payload, used by the exception handlers.

    Returns:
        {"success": False, "message": message, **extras}
    """
    return {"success": False, "message": message, **extras}
