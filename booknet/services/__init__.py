"""
Resource services.

- BookService: books and the borrow → return → approve cycle
- UserAdminService: account locking, enabling and role grants
"""

from booknet.services.books import BookRequest, BookResponse, BookService, BorrowedBookResponse
from booknet.services.search import BookFilter
from booknet.services.users import UserAdminService

__all__ = [
    "BookFilter",
    "BookRequest",
    "BookResponse",
    "BookService",
    "BorrowedBookResponse",
    "UserAdminService",
]
