"""
Shared utility functions for booknet.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone
from typing import Callable

# Injectable time source; services accept one so tests can pin "now"
Clock = Callable[[], datetime]


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.
    
    Args:
        prefix: Optional prefix (e.g., "user", "book", "tok")
        
    Returns:
        A unique ID like "book_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def generate_numeric_code(length: int) -> str:
    """Random decimal code from a CSPRNG, e.g. "048213"."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)
