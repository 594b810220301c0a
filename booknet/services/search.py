"""
Book search filters.

A BookFilter is a fixed set of optional criteria. Each criterion that is
set becomes one predicate; predicates are combined with AND. The keyword
criterion matches any of the text fields.
"""

from __future__ import annotations

from typing import Callable

from pydantic import BaseModel

from booknet.core.models import Book

Predicate = Callable[[Book], bool]

TEXT_FIELDS = ("title", "author_name", "isbn", "synopsis")


def _contains(haystack: str | None, needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


class BookFilter(BaseModel):
    """
    Search criteria.

    Text criteria are case-insensitive substring matches, except isbn
    which must match exactly.
    """
    
    owner_id: str | None = None
    title: str | None = None
    author_name: str | None = None
    isbn: str | None = None
    synopsis: str | None = None
    shareable: bool | None = None
    archived: bool | None = None
    keyword: str | None = None
    
    def predicates(self) -> list[Predicate]:
        preds: list[Predicate] = []
        
        if self.owner_id is not None:
            owner_id = self.owner_id
            preds.append(lambda b: b.owner_id == owner_id)
        if self.title:
            title = self.title
            preds.append(lambda b: _contains(b.title, title))
        if self.author_name:
            author = self.author_name
            preds.append(lambda b: _contains(b.author_name, author))
        if self.isbn:
            isbn = self.isbn
            preds.append(lambda b: b.isbn == isbn)
        if self.synopsis:
            synopsis = self.synopsis
            preds.append(lambda b: _contains(b.synopsis, synopsis))
        if self.shareable is not None:
            shareable = self.shareable
            preds.append(lambda b: b.shareable == shareable)
        if self.archived is not None:
            archived = self.archived
            preds.append(lambda b: b.archived == archived)
        if self.keyword:
            keyword = self.keyword
            preds.append(
                lambda b: any(_contains(getattr(b, name), keyword) for name in TEXT_FIELDS)
            )
        
        return preds
    
    def matches(self, book: Book) -> bool:
        return all(pred(book) for pred in self.predicates())
    
    def is_empty(self) -> bool:
        return not self.predicates()
