"""
Core data models for booknet.

Identities, their activation tokens, and the lendable resources
(books and the borrow history). All resources carry audit columns.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Generic, Iterable, Protocol, TypeVar

from pydantic import BaseModel, Field

from booknet.core.utils import generate_id, utc_now


# =============================================================================
# Roles
# =============================================================================


class Role(str, Enum):
    """Platform-wide roles."""
    
    USER = "USER"    # Default role granted at registration
    ADMIN = "ADMIN"  # Overrides ownership checks, manages accounts


# =============================================================================
# Auditing
# =============================================================================


class Audited(BaseModel):
    """Audit columns populated from the request's AuthContext."""
    
    created_at: datetime = Field(default_factory=utc_now)
    created_by: str | None = None
    modified_at: datetime | None = None
    modified_by: str | None = None


# =============================================================================
# Identity
# =============================================================================


class Principal(Protocol):
    """The capability set the auth pipeline needs from an account."""
    
    @property
    def id(self) -> str: ...
    
    @property
    def authorities(self) -> frozenset[str]: ...
    
    @property
    def is_enabled(self) -> bool: ...
    
    @property
    def is_locked(self) -> bool: ...


class RoleRecord(BaseModel):
    """A row in the role table."""
    
    name: str
    created_at: datetime = Field(default_factory=utc_now)


class Identity(Audited):
    """
    A principal capable of authenticating.
    
    The password is only ever held as a hash. New identities start
    disabled until their activation token is consumed.
    """
    
    id: str = Field(default_factory=lambda: generate_id("user"))
    email: str
    firstname: str = ""
    lastname: str = ""
    password_hash: str
    roles: list[str] = Field(default_factory=list)
    enabled: bool = False
    account_locked: bool = False
    
    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()
    
    @property
    def authorities(self) -> frozenset[str]:
        return frozenset(self.roles)
    
    @property
    def is_enabled(self) -> bool:
        return self.enabled
    
    @property
    def is_locked(self) -> bool:
        return self.account_locked


class ActivationToken(BaseModel):
    """Short-lived, single-use code that activates an Identity."""
    
    id: str = Field(default_factory=lambda: generate_id("act"))
    token: str
    user_id: str
    created_at: datetime = Field(default_factory=utc_now)
    expires_at: datetime
    validated_at: datetime | None = None
    invalidated_at: datetime | None = None
    
    @property
    def is_consumed(self) -> bool:
        return self.validated_at is not None
    
    @property
    def is_usable(self) -> bool:
        return self.validated_at is None and self.invalidated_at is None
    
    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# =============================================================================
# Books
# =============================================================================


class Book(Audited):
    """A lendable book owned by one identity."""
    
    id: str = Field(default_factory=lambda: generate_id("book"))
    title: str
    author_name: str
    isbn: str
    synopsis: str = ""
    owner_id: str
    shareable: bool = False
    archived: bool = False


class BorrowRecord(Audited):
    """
    One borrow of one book by one user.
    
    Lifecycle: borrowed → returned (by borrower) → return_approved (by owner).
    """
    
    id: str = Field(default_factory=lambda: generate_id("borrow"))
    book_id: str
    user_id: str
    owner_id: str
    returned: bool = False
    return_approved: bool = False


# =============================================================================
# Pagination
# =============================================================================


T = TypeVar("T")


class PageResponse(BaseModel, Generic[T]):
    """One page of a sorted result set."""
    
    content: list[T]
    number: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool
    
    @classmethod
    def of(cls, items: Iterable[T], page: int, size: int) -> "PageResponse[T]":
        """Slice an already-sorted sequence into the requested page."""
        items = list(items)
        total = len(items)
        total_pages = (total + size - 1) // size if size > 0 else 0
        start = page * size
        return cls(
            content=items[start:start + size],
            number=page,
            size=size,
            total_elements=total,
            total_pages=total_pages,
            first=page == 0,
            last=page >= total_pages - 1,
        )
