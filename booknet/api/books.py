# =============================================================================
# Book API Routes
# =============================================================================
#
# Endpoints (all require authentication):
#   POST  /books                              - Add a book you own
#   GET   /books                              - Books others are sharing
#   GET   /books/owner                        - Your books
#   GET   /books/borrowed                     - Books you borrowed
#   GET   /books/returned                     - Lending history of your books
#   POST  /books/search                       - Filtered search
#   GET   /books/{book_id}                    - One book
#   PATCH /books/shareable/{book_id}          - Toggle shareable (owner)
#   PATCH /books/archived/{book_id}           - Toggle archived (owner)
#   POST  /books/borrow/{book_id}             - Borrow
#   PATCH /books/borrow/return/{book_id}      - Return (borrower)
#   PATCH /books/borrow/return/approve/{id}   - Approve return (owner)
#
# =============================================================================

from fastapi import APIRouter, Depends, Query, Request, status

from booknet.auth.context import AuthContext
from booknet.auth.policies import require_auth
from booknet.core.models import PageResponse
from booknet.services.books import BookRequest, BookResponse, BookService, BorrowedBookResponse
from booknet.services.search import BookFilter

router = APIRouter(prefix="/books", tags=["books"])


def get_book_service(request: Request) -> BookService:
    return request.app.state.container.books


class Paging:
    def __init__(
        self,
        page: int = Query(0, ge=0),
        size: int = Query(10, ge=1, le=100),
    ):
        self.page = page
        self.size = size


# =============================================================================
# Books
# =============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def save_book(
    data: BookRequest,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    book = await service.create(data, ctx)
    return {"id": book.id}


@router.get("", response_model=PageResponse[BookResponse])
async def find_all_books(
    paging: Paging = Depends(),
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.list_displayable(ctx, paging.page, paging.size)


@router.get("/owner", response_model=PageResponse[BookResponse])
async def find_all_books_by_owner(
    paging: Paging = Depends(),
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.list_by_owner(ctx, paging.page, paging.size)


@router.get("/borrowed", response_model=PageResponse[BorrowedBookResponse])
async def find_all_borrowed_books(
    paging: Paging = Depends(),
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.list_borrowed(ctx, paging.page, paging.size)


@router.get("/returned", response_model=PageResponse[BorrowedBookResponse])
async def find_all_returned_books(
    paging: Paging = Depends(),
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.list_returned(ctx, paging.page, paging.size)


@router.post("/search", response_model=PageResponse[BookResponse])
async def search_books(
    criteria: BookFilter,
    paging: Paging = Depends(),
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.search(criteria, ctx, paging.page, paging.size)


@router.get("/{book_id}", response_model=BookResponse)
async def find_book_by_id(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return await service.get_by_id(book_id, ctx)


@router.patch("/shareable/{book_id}")
async def update_shareable_status(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return {"id": await service.toggle_shareable(book_id, ctx)}


@router.patch("/archived/{book_id}")
async def update_archived_status(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return {"id": await service.toggle_archived(book_id, ctx)}


# =============================================================================
# Lending
# =============================================================================

@router.post("/borrow/{book_id}")
async def borrow_book(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return {"id": await service.borrow(book_id, ctx)}


@router.patch("/borrow/return/{book_id}")
async def return_borrowed_book(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return {"id": await service.return_borrowed(book_id, ctx)}


@router.patch("/borrow/return/approve/{book_id}")
async def approve_return_borrowed_book(
    book_id: str,
    ctx: AuthContext = Depends(require_auth()),
    service: BookService = Depends(get_book_service),
):
    return {"id": await service.approve_return(book_id, ctx)}
