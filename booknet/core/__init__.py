"""Core models, errors and utilities."""

from booknet.core.models import (
    ActivationToken,
    Book,
    BorrowRecord,
    Identity,
    PageResponse,
    Principal,
    Role,
    RoleRecord,
)
from booknet.core.utils import generate_id, utc_now

__all__ = [
    "ActivationToken",
    "Book",
    "BorrowRecord",
    "Identity",
    "PageResponse",
    "Principal",
    "Role",
    "RoleRecord",
    "generate_id",
    "utc_now",
]
