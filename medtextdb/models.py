# medtextdb/models.py
"""
Pydantic records persisted by the store, plus the request bodies accepted
by the HTTP layer.

Records are stored with camelCase keys (``bookId``, ``createdAt`` ...),
so every model uses a camelCase alias generator and accepts either
spelling on input. Use ``to_record()`` to get the stored form.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


KNOWN_SYLLABI = ("NCISM", "CCIM")


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Book(Record):
    id: str
    title: str
    author: str
    subject: str
    edition: str
    # Free-form, usually one of KNOWN_SYLLABI.
    syllabus: str
    file_name: Optional[str] = None
    file_data_url: Optional[str] = None
    uploader_id: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0


class Review(Record):
    id: str
    book_id: str
    rating: int = Field(ge=1, le=5)
    comment: str
    user_id: Optional[str] = None
    display_name: Optional[str] = None
    created_at: int = 0


class User(Record):
    id: str
    username: str
    display_name: str
    password_hash: str


class Session(Record):
    user_id: str


# ---------------------------------------------------------------------------
# Request / response bodies


class BookForm(Record):
    """Upload and edit form. Blank fields are reported, not rejected here."""

    title: str = ""
    author: str = ""
    subject: str = ""
    edition: str = ""
    syllabus: str = "NCISM"


class ReviewForm(Record):
    rating: int = Field(default=5, ge=1, le=5)
    comment: str = ""
    display_name: Optional[str] = None


class RegisterRequest(Record):
    username: str = ""
    password: str = ""
    display_name: str = ""


class LoginRequest(Record):
    username: str = ""
    password: str = ""


class UserOut(Record):
    id: str
    username: str
    display_name: str


class BookSummary(Book):
    """A book as listed in the catalogue, with its rating summary."""

    average_rating: float = 0
    review_count: int = 0


class BookList(Record):
    total: int
    items: List[BookSummary]
