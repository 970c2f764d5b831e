"""
Books and reviews on top of the key-value ``Store``.

Both collections are read in full, changed in memory and written back in
full on every mutation. Books are kept most-recent-first (new uploads are
prepended); reviews are prepended too, so ``reviews_for_book()`` returns
the newest review first.

Deleting a book is two rewrites: the book collection first, then the
reviews that point at it. If the process stops between the two, the
remaining reviews are orphans. Nothing here joins a review to a missing
book, so orphans are harmless and the next ``delete_book()`` call for the
same id removes them.
"""

from __future__ import annotations

import base64
import logging
import math
import time
from typing import Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from ..models import Book, Review
from ..storage import Store, storage_keys


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def now_ms() -> int:
    return int(time.time() * 1000)


def _norm(s: Optional[str]) -> str:
    """Lowercase and strip ``s``; ``None`` becomes an empty string."""
    return (s or "").strip().lower()


def text_data_url(text: str) -> str:
    """Encode ``text`` as an inline ``text/plain`` data URL."""
    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    return "data:text/plain;charset=utf-8;base64," + payload


def _round_half_up(value: float, digits: int = 1) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


class CatalogStore:
    """Domain operations over the book and review collections."""

    def __init__(self, store: Store, prefix: str = "medtextdb"):
        self.store = store
        keys = storage_keys(prefix)
        self.books_key = keys["books"]
        self.reviews_key = keys["reviews"]

    # -- collection I/O -------------------------------------------------

    def _load(self, key: str, model: Type[M]) -> List[M]:
        raw = self.store.read(key, [])
        if not isinstance(raw, list):
            logger.warning("Expected a list under %s, got %s; ignoring it", key, type(raw).__name__)
            return []
        items: List[M] = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except SchemaError as exc:
                logger.warning("Skipping malformed %s record under %s: %s", model.__name__, key, exc)
        return items

    def _save(self, key: str, items: Iterable[BaseModel]) -> None:
        self.store.write(key, [item.to_record() for item in items])

    # -- books ----------------------------------------------------------

    def list_books(self) -> List[Book]:
        return self._load(self.books_key, Book)

    def save_books(self, books: Iterable[Book]) -> None:
        self._save(self.books_key, books)

    def get_book(self, book_id: str) -> Optional[Book]:
        return next((b for b in self.list_books() if b.id == book_id), None)

    def upsert_book(self, book: Book) -> Book:
        """Replace the book with the same id in place, or prepend it."""
        books = self.list_books()
        idx = next((i for i, b in enumerate(books) if b.id == book.id), None)
        if idx is not None:
            books[idx] = book
        else:
            books.insert(0, book)
        self.save_books(books)
        return book

    def delete_book(self, book_id: str) -> None:
        """Delete a book and every review that points at it.

        Unknown ids are a no-op (both collections are still rewritten
        unchanged, so calling this twice is the same as calling it once).
        """
        books = [b for b in self.list_books() if b.id != book_id]
        self.save_books(books)
        reviews = self.list_reviews()
        kept = [r for r in reviews if r.book_id != book_id]
        self.save_reviews(kept)
        if len(kept) != len(reviews):
            logger.info("Deleted book %s and %d review(s)", book_id, len(reviews) - len(kept))

    def filter_books(
        self,
        query: Optional[str] = "",
        syllabus: Optional[str] = "",
        subject: Optional[str] = "",
        books: Optional[List[Book]] = None,
    ) -> List[Book]:
        """Return the books matching all three filters.

        ``query`` is a case-insensitive substring of the title, author or
        subject; ``syllabus`` must equal the book's syllabus ignoring case;
        ``subject`` is a case-insensitive substring of the subject. Empty
        values match everything.
        """
        nq = _norm(query)
        nsyl = _norm(syllabus)
        nsub = _norm(subject)
        items = self.list_books() if books is None else list(books)

        def _matches(book: Book) -> bool:
            if nq and not any(nq in (v or "").lower() for v in (book.title, book.author, book.subject)):
                return False
            if nsyl and (book.syllabus or "").lower() != nsyl:
                return False
            if nsub and nsub not in (book.subject or "").lower():
                return False
            return True

        return [b for b in items if _matches(b)]

    def subjects(self) -> List[str]:
        return sorted({b.subject for b in self.list_books()})

    # -- reviews --------------------------------------------------------

    def list_reviews(self) -> List[Review]:
        return self._load(self.reviews_key, Review)

    def save_reviews(self, reviews: Iterable[Review]) -> None:
        self._save(self.reviews_key, reviews)

    def add_review(self, review: Review) -> Review:
        # The book reference is not checked here; callers do that.
        reviews = self.list_reviews()
        reviews.insert(0, review)
        self.save_reviews(reviews)
        return review

    def reviews_for_book(self, book_id: str) -> List[Review]:
        return [r for r in self.list_reviews() if r.book_id == book_id]

    def average_rating(self, book_id: str, reviews: Optional[List[Review]] = None) -> float:
        """Mean rating of a book's reviews, rounded half-up to one decimal.

        Returns 0 when the book has no reviews.
        """
        rs = self.reviews_for_book(book_id) if reviews is None else reviews
        if not rs:
            return 0
        total = sum(r.rating or 0 for r in rs)
        return _round_half_up(total / len(rs), 1)

    # -- sample data ----------------------------------------------------

    def seed_if_empty(self) -> bool:
        """Store a few demo books when the catalogue is empty.

        Returns ``True`` when the sample books were written.
        """
        if self.list_books():
            return False
        now = now_ms()
        demo = text_data_url("Demo file for local testing. Not the actual textbook.")
        samples = [
            ("Robbins & Cotran Pathologic Basis of Disease", "Kumar, Abbas, Aster",
             "Pathology", "10th", "NCISM", "Robbins-demo.txt"),
            ("Harrison's Principles of Internal Medicine", "J. Larry Jameson et al.",
             "Internal Medicine", "21st", "NCISM", "Harrisons-demo.txt"),
            ("Gray's Anatomy for Students", "Richard L. Drake",
             "Anatomy", "4th", "CCIM", "Grays-demo.txt"),
        ]
        books = [
            Book(
                id=self.store.generate_id(),
                title=title,
                author=author,
                subject=subject,
                edition=edition,
                syllabus=syllabus,
                file_name=file_name,
                file_data_url=demo,
                created_at=now,
                updated_at=now,
            )
            for title, author, subject, edition, syllabus, file_name in samples
        ]
        self.save_books(books)
        logger.info("Seeded %d sample books", len(books))
        return True
