"""
Route definitions for the catalogue API.

Endpoints under /api/catalog:
- GET    /books                       : list books with filters and rating summaries
- POST   /books                       : upload a book (login required)
- GET    /books/{book_id}             : get one book
- PUT    /books/{book_id}             : edit a book (uploader only)
- DELETE /books/{book_id}?confirm=true: delete a book and its reviews (uploader only)
- POST   /books/{book_id}/attachment  : attach a PDF/TXT file (uploader only)
- GET    /books/{book_id}/attachment  : download the attachment
- GET    /books/{book_id}/reviews     : reviews for a book, newest first
- POST   /books/{book_id}/reviews     : rate and comment on a book
- GET    /subjects                    : distinct subjects, for the filter chips
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from ..accounts.service import AccountService
from ..config import settings
from ..deps import get_accounts, get_catalog
from ..errors import NotFound, PermissionDenied, ValidationError
from ..models import Book, BookForm, BookList, BookSummary, Review, ReviewForm, User
from .attachments import content_disposition, decode_attachment, encode_attachment
from .store import CatalogStore, now_ms

router = APIRouter(prefix="/api/catalog", tags=["catalog"])

REQUIRED_BOOK_FIELDS = ("title", "author", "subject", "edition", "syllabus")


def _validate_form(form: BookForm) -> Dict[str, str]:
    """Return the trimmed form values, or raise with every blank field."""
    values = {name: (getattr(form, name) or "").strip() for name in REQUIRED_BOOK_FIELDS}
    errors = {name: "Required" for name, value in values.items() if not value}
    if errors:
        raise ValidationError("Please fill in all required fields", errors)
    return values


def _require_user(accounts: AccountService, action: str) -> User:
    user = accounts.current_user()
    if user is None:
        raise PermissionDenied(f"Please login to {action}")
    return user


def _require_book(catalog: CatalogStore, book_id: str) -> Book:
    book = catalog.get_book(book_id)
    if book is None:
        raise NotFound("Book not found")
    return book


def _require_uploader(accounts: AccountService, book: Book, action: str) -> User:
    user = _require_user(accounts, action)
    if book.uploader_id != user.id:
        raise PermissionDenied(f"Only the uploader can {action} this book")
    return user


@router.get("/books", response_model=BookList)
def list_books(
    q: Optional[str] = Query(default=None, description="Search title, author or subject"),
    syllabus: Optional[str] = Query(default=None, description="Syllabus reference (e.g. CCIM, NCISM)"),
    subject: Optional[str] = Query(default=None, description="Filter by subject"),
    catalog: CatalogStore = Depends(get_catalog),
) -> BookList:
    books = catalog.filter_books(q, syllabus, subject)
    reviews = catalog.list_reviews()
    items: List[BookSummary] = []
    for b in books:
        rs = [r for r in reviews if r.book_id == b.id]
        items.append(
            BookSummary(
                **b.model_dump(),
                average_rating=catalog.average_rating(b.id, rs),
                review_count=len(rs),
            )
        )
    return BookList(total=len(items), items=items)


@router.get("/subjects", response_model=List[str])
def list_subjects(catalog: CatalogStore = Depends(get_catalog)) -> List[str]:
    return catalog.subjects()


@router.post("/books", response_model=Book)
def upload_book(
    form: BookForm,
    catalog: CatalogStore = Depends(get_catalog),
    accounts: AccountService = Depends(get_accounts),
) -> Book:
    user = _require_user(accounts, "upload")
    values = _validate_form(form)
    now = now_ms()
    book = Book(
        id=catalog.store.generate_id(),
        uploader_id=user.id,
        created_at=now,
        updated_at=now,
        **values,
    )
    return catalog.upsert_book(book)


@router.get("/books/{book_id}", response_model=Book)
def get_book(book_id: str, catalog: CatalogStore = Depends(get_catalog)) -> Book:
    return _require_book(catalog, book_id)


@router.put("/books/{book_id}", response_model=Book)
def edit_book(
    book_id: str,
    form: BookForm,
    catalog: CatalogStore = Depends(get_catalog),
    accounts: AccountService = Depends(get_accounts),
) -> Book:
    book = _require_book(catalog, book_id)
    _require_uploader(accounts, book, "edit")
    values = _validate_form(form)
    updated = book.model_copy(update={**values, "updated_at": now_ms()})
    return catalog.upsert_book(updated)


@router.delete("/books/{book_id}")
def delete_book(
    book_id: str,
    confirm: bool = Query(default=False, description="Must be true to delete"),
    catalog: CatalogStore = Depends(get_catalog),
    accounts: AccountService = Depends(get_accounts),
):
    book = catalog.get_book(book_id)
    if book is None:
        # Already gone; deleting is idempotent.
        return {"status": "ok"}
    _require_uploader(accounts, book, "delete")
    if not confirm:
        raise ValidationError("Delete this book and its reviews? Pass confirm=true")
    catalog.delete_book(book_id)
    return {"status": "ok"}


@router.post("/books/{book_id}/attachment", response_model=Book)
async def attach_file(
    book_id: str,
    file: UploadFile = File(...),
    catalog: CatalogStore = Depends(get_catalog),
    accounts: AccountService = Depends(get_accounts),
) -> Book:
    book = _require_book(catalog, book_id)
    _require_uploader(accounts, book, "edit")
    content = await file.read()
    name, data_url = encode_attachment(file.filename, content, settings.MAX_ATTACHMENT_BYTES)
    updated = book.model_copy(
        update={"file_name": name, "file_data_url": data_url, "updated_at": now_ms()}
    )
    return catalog.upsert_book(updated)


@router.get("/books/{book_id}/attachment")
def download_file(book_id: str, catalog: CatalogStore = Depends(get_catalog)) -> Response:
    book = _require_book(catalog, book_id)
    if not book.file_data_url:
        raise NotFound("This book has no attachment")
    mime, content = decode_attachment(book.file_data_url)
    filename = book.file_name or f"{book.title}.file"
    return Response(
        content=content,
        media_type=mime,
        headers={"Content-Disposition": content_disposition(filename)},
    )


@router.get("/books/{book_id}/reviews", response_model=List[Review])
def list_reviews(book_id: str, catalog: CatalogStore = Depends(get_catalog)) -> List[Review]:
    return catalog.reviews_for_book(book_id)


@router.post("/books/{book_id}/reviews", response_model=Review)
def add_review(
    book_id: str,
    form: ReviewForm,
    catalog: CatalogStore = Depends(get_catalog),
    accounts: AccountService = Depends(get_accounts),
) -> Review:
    _require_book(catalog, book_id)
    comment = (form.comment or "").strip()
    if not comment:
        raise ValidationError("Comment is required", {"comment": "Required"})
    me = accounts.current_user()
    display_name = (form.display_name or "").strip() or (me.display_name if me else None)
    review = Review(
        id=catalog.store.generate_id(),
        book_id=book_id,
        rating=form.rating,
        comment=comment,
        user_id=me.id if me else None,
        display_name=display_name,
        created_at=now_ms(),
    )
    return catalog.add_review(review)
