"""
ID Generation - Opaque identifiers for elections and candidates

Single source of truth for ALL ID generation. Callers never invent IDs.

Entity ID Patterns:
- Election ID: 24 lowercase hex chars - e.g., "65f1c0a9e3b24d7f9a1c2b3d"
- Candidate ID: 24 lowercase hex chars, unique within its election

The 24-hex shape matches the document IDs existing clients already
handle, so stored links keep working.

Design Philosophy:
- IDs are random, not derived: nothing about an election leaks through its ID
- IDs are validated at the API boundary so malformed IDs read as "not found"
"""

import re
import secrets

_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def generate_id() -> str:
    """Generate a new opaque 24-hex identifier"""
    return secrets.token_hex(12)


def generate_election_id() -> str:
    return generate_id()


def generate_candidate_id(existing: set[str] | None = None) -> str:
    """Generate a candidate ID not already used inside the same election

    Args:
        existing: IDs already present on the parent election

    Returns:
        New candidate ID
    """
    taken = existing or set()
    while True:
        candidate_id = generate_id()
        if candidate_id not in taken:
            return candidate_id


def validate_id(value: str) -> bool:
    """Check that a value has the 24-hex ID shape

    Examples:
        >>> validate_id("65f1c0a9e3b24d7f9a1c2b3d")
        True
        >>> validate_id("not-an-id")
        False
    """
    if not value or not isinstance(value, str):
        return False
    return bool(_ID_PATTERN.match(value))
