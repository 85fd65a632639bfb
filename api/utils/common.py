"""
Common utility functions used across multiple routes.
"""

import re
from datetime import datetime
from typing import Optional

_UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def iso_format(dt: datetime) -> str:
    """Format datetime as ISO string with Z suffix."""
    return dt.isoformat() + "Z"


def is_valid_session_id(session_id: Optional[str]) -> bool:
    """Anonymous session and student ids are client-generated UUID v4 strings."""
    return bool(session_id) and bool(_UUID_V4.match(session_id))


def truncate(text: str, max_length: int = 50) -> str:
    if not text or len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."


def preview(text: str, max_length: int = 50) -> str:
    """Log-safe preview of user text: first characters only, newlines flattened."""
    return truncate((text or "").replace("\n", " "), max_length)
