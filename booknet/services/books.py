"""
Book service - the lending state machine.

A book is owned by one identity. Other identities may borrow it while it
is shareable and not archived; the borrower returns it and the owner
approves the return, which frees the book for the next borrower.

Every operation takes the caller's AuthContext explicitly and asks the
AccessPolicyEvaluator before touching storage. The precondition records
(an open borrow, a returned-but-unapproved borrow) are looked up here and
handed to the evaluator as facts.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from booknet.auth.context import AuthContext
from booknet.auth.policies import (
    AccessPolicyEvaluator,
    Operation,
    forbids_fact,
    not_owner,
    requires_fact,
    resource_available,
)
from booknet.core.audit import stamp_created, stamp_modified
from booknet.core.errors import EntityNotFoundError
from booknet.core.models import Book, BorrowRecord, PageResponse
from booknet.core.utils import Clock, utc_now
from booknet.services.search import BookFilter
from booknet.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Operations
# =============================================================================


CREATE = Operation("book.create")
READ = Operation("book.read")
LIST = Operation("book.list")

TOGGLE_SHAREABLE = Operation(
    "book.toggle_shareable",
    owner_scoped=True,
    not_owner_message="You cannot update others books shareable status",
)

TOGGLE_ARCHIVED = Operation(
    "book.toggle_archived",
    owner_scoped=True,
    not_owner_message="You cannot update others books archived status",
)

BORROW = Operation(
    "book.borrow",
    rules=(
        resource_available("The requested book cannot be borrowed since it is archived or not shareable"),
        not_owner("You cannot borrow your own book"),
        forbids_fact(
            "borrowed_by_caller",
            "You already borrowed this book and it is still not returned "
            "or the return is not approved by the owner",
        ),
        forbids_fact("borrowed", "The requested book is already borrowed"),
    ),
)

RETURN = Operation(
    "book.return",
    rules=(
        resource_available("The requested book is archived or not shareable"),
        not_owner("You cannot borrow or return your own book"),
        requires_fact("open_borrow", "You did not borrow this book"),
    ),
)

APPROVE_RETURN = Operation(
    "book.approve_return",
    owner_scoped=True,
    not_owner_message="You cannot approve the return of a book you do not own",
    preconditions=(resource_available("The requested book is archived or not shareable"),),
    rules=(
        requires_fact("returned_record", "The book is not returned yet. You cannot approve its return"),
    ),
)


# =============================================================================
# Models
# =============================================================================


class BookRequest(BaseModel):
    title: str = Field(min_length=1)
    author_name: str = Field(min_length=1)
    isbn: str = Field(min_length=1)
    synopsis: str = ""
    shareable: bool = False


class BookResponse(BaseModel):
    id: str
    title: str
    author_name: str
    isbn: str
    synopsis: str
    owner_id: str
    shareable: bool
    archived: bool

    @classmethod
    def from_book(cls, book: Book) -> BookResponse:
        return cls(
            id=book.id,
            title=book.title,
            author_name=book.author_name,
            isbn=book.isbn,
            synopsis=book.synopsis,
            owner_id=book.owner_id,
            shareable=book.shareable,
            archived=book.archived,
        )


class BorrowedBookResponse(BaseModel):
    """A borrow record joined with the book it is about."""

    id: str
    borrow_id: str
    title: str
    author_name: str
    isbn: str
    borrower_id: str
    returned: bool
    return_approved: bool


# =============================================================================
# Service
# =============================================================================


class BookService:

    def __init__(
        self,
        metadata: MetadataStorage,
        policies: AccessPolicyEvaluator,
        clock: Clock = utc_now,
    ):
        self.metadata = metadata
        self.policies = policies
        self._clock = clock

    # -------------------------------------------------------------------------
    # Storage helpers
    # -------------------------------------------------------------------------

    async def _load(self, book_id: str) -> Book:
        data = await self.metadata.get(Collections.BOOKS, book_id)
        if data is None:
            raise EntityNotFoundError(f"No book found with ID:: {book_id}")
        return Book.model_validate(data)

    async def _save_book(self, book: Book) -> None:
        await self.metadata.save(Collections.BOOKS, book.id, book.model_dump())

    async def _save_borrow(self, record: BorrowRecord) -> None:
        await self.metadata.save(Collections.BORROWS, record.id, record.model_dump())

    async def _all_books(self, filters: dict | None = None) -> list[Book]:
        rows = await self.metadata.query(Collections.BOOKS, filters, limit=None)
        return [Book.model_validate(r) for r in rows]

    async def _borrows(self, **filters) -> list[BorrowRecord]:
        rows = await self.metadata.query(Collections.BORROWS, filters, limit=None)
        return [BorrowRecord.model_validate(r) for r in rows]

    @staticmethod
    def _newest_first(items: list) -> list:
        return sorted(items, key=lambda i: i.created_at, reverse=True)

    async def _borrowed_responses(self, records: list[BorrowRecord]) -> list[BorrowedBookResponse]:
        responses = []
        for record in records:
            book = await self._load(record.book_id)
            responses.append(BorrowedBookResponse(
                id=book.id,
                borrow_id=record.id,
                title=book.title,
                author_name=book.author_name,
                isbn=book.isbn,
                borrower_id=record.user_id,
                returned=record.returned,
                return_approved=record.return_approved,
            ))
        return responses

    # -------------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------------

    async def create(self, request: BookRequest, ctx: AuthContext) -> Book:
        self.policies.enforce(ctx, CREATE)
        book = Book(
            title=request.title,
            author_name=request.author_name,
            isbn=request.isbn,
            synopsis=request.synopsis,
            shareable=request.shareable,
            owner_id=ctx.user_id,
        )
        stamp_created(book, ctx, self._clock)
        await self._save_book(book)
        logger.info(f"Book created: {book.id} by {ctx.user_id}")
        return book

    async def get_by_id(self, book_id: str, ctx: AuthContext) -> BookResponse:
        self.policies.enforce(ctx, READ)
        return BookResponse.from_book(await self._load(book_id))

    async def list_displayable(self, ctx: AuthContext, page: int = 0, size: int = 10) -> PageResponse[BookResponse]:
        """Books others are sharing: shareable, not archived, not the caller's own."""
        self.policies.enforce(ctx, LIST)
        books = [
            b for b in await self._all_books({"shareable": True, "archived": False})
            if b.owner_id != ctx.user_id
        ]
        return PageResponse[BookResponse].of(
            [BookResponse.from_book(b) for b in self._newest_first(books)], page, size
        )

    async def list_by_owner(self, ctx: AuthContext, page: int = 0, size: int = 10) -> PageResponse[BookResponse]:
        self.policies.enforce(ctx, LIST)
        books = await self._all_books({"owner_id": ctx.user_id})
        return PageResponse[BookResponse].of(
            [BookResponse.from_book(b) for b in self._newest_first(books)], page, size
        )

    async def search(
        self,
        criteria: BookFilter,
        ctx: AuthContext,
        page: int = 0,
        size: int = 10,
    ) -> PageResponse[BookResponse]:
        """
        Filter books by the given criteria.

        Only books the caller can see are searched: their own, plus books
        others are sharing. Admins search everything.
        """
        self.policies.enforce(ctx, LIST)
        predicates = criteria.predicates()
        results = []
        for book in await self._all_books():
            visible = (
                book.owner_id == ctx.user_id
                or (book.shareable and not book.archived)
                or ctx.has_any_role(*self.policies.override_roles)
            )
            if visible and all(pred(book) for pred in predicates):
                results.append(book)
        return PageResponse[BookResponse].of(
            [BookResponse.from_book(b) for b in self._newest_first(results)], page, size
        )

    async def toggle_shareable(self, book_id: str, ctx: AuthContext) -> str:
        book = await self._load(book_id)
        self.policies.enforce(ctx, TOGGLE_SHAREABLE, book)
        book.shareable = not book.shareable
        stamp_modified(book, ctx, self._clock)
        await self._save_book(book)
        logger.info(f"Book {book_id} shareable={book.shareable}")
        return book_id

    async def toggle_archived(self, book_id: str, ctx: AuthContext) -> str:
        book = await self._load(book_id)
        self.policies.enforce(ctx, TOGGLE_ARCHIVED, book)
        book.archived = not book.archived
        stamp_modified(book, ctx, self._clock)
        await self._save_book(book)
        logger.info(f"Book {book_id} archived={book.archived}")
        return book_id

    # -------------------------------------------------------------------------
    # Lending
    # -------------------------------------------------------------------------

    async def list_borrowed(self, ctx: AuthContext, page: int = 0, size: int = 10) -> PageResponse[BorrowedBookResponse]:
        """Every borrow the caller has made."""
        self.policies.enforce(ctx, LIST)
        records = self._newest_first(await self._borrows(user_id=ctx.user_id))
        return PageResponse[BorrowedBookResponse].of(await self._borrowed_responses(records), page, size)

    async def list_returned(self, ctx: AuthContext, page: int = 0, size: int = 10) -> PageResponse[BorrowedBookResponse]:
        """Lending history of the caller's own books."""
        self.policies.enforce(ctx, LIST)
        records = self._newest_first(await self._borrows(owner_id=ctx.user_id))
        return PageResponse[BorrowedBookResponse].of(await self._borrowed_responses(records), page, size)

    async def borrow(self, book_id: str, ctx: AuthContext) -> str:
        book = await self._load(book_id)
        unapproved = await self._borrows(book_id=book_id, return_approved=False)
        facts = {
            "borrowed_by_caller": any(r.user_id == ctx.user_id for r in unapproved),
            "borrowed": bool(unapproved),
        }
        self.policies.enforce(ctx, BORROW, book, facts)

        record = BorrowRecord(book_id=book.id, user_id=ctx.user_id, owner_id=book.owner_id)
        stamp_created(record, ctx, self._clock)
        await self._save_borrow(record)
        logger.info(f"Book {book_id} borrowed by {ctx.user_id}")
        return record.id

    async def return_borrowed(self, book_id: str, ctx: AuthContext) -> str:
        book = await self._load(book_id)
        open_borrows = await self._borrows(
            book_id=book_id, user_id=ctx.user_id, returned=False, return_approved=False
        )
        record = open_borrows[0] if open_borrows else None
        self.policies.enforce(ctx, RETURN, book, {"open_borrow": record})

        record.returned = True
        stamp_modified(record, ctx, self._clock)
        await self._save_borrow(record)
        logger.info(f"Book {book_id} returned by {ctx.user_id}")
        return record.id

    async def approve_return(self, book_id: str, ctx: AuthContext) -> str:
        book = await self._load(book_id)
        returned = await self._borrows(
            book_id=book_id, owner_id=book.owner_id, returned=True, return_approved=False
        )
        record = returned[0] if returned else None
        self.policies.enforce(ctx, APPROVE_RETURN, book, {"returned_record": record})

        record.return_approved = True
        stamp_modified(record, ctx, self._clock)
        await self._save_borrow(record)
        logger.info(f"Return of book {book_id} approved by {ctx.user_id}")
        return record.id
