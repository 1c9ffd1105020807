"""Record schemas and the collections that store them.

Schemas are validated at the store boundary, so every repository backend
rejects the same documents with the same messages.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, StringConstraints, ValidationInfo, field_validator, model_validator
from pydantic_core import PydanticCustomError

Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_TOUR_NAME = re.compile(r"^[A-Za-z]+(?: [A-Za-z]+)*$")
MIN_PASSWORD_LENGTH = 8
# Error type for rule violations whose message is already client-ready.
RULE_ERROR_TYPE = "record_rule"


def slugify(text: str) -> str:
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")


def _check_email(value: str) -> str:
    email = value.strip().lower()
    if not _EMAIL.match(email):
        raise PydanticCustomError(RULE_ERROR_TYPE, "Please provide a valid email")
    return email


Email = Annotated[str, AfterValidator(_check_email)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BookRecord(_Record):
    name: Trimmed
    price: float
    pages: int
    author: Trimmed
    in_stock: bool = True
    languages: list[str] = []
    publisher: str | None = None
    publication_date: datetime | None = None
    weight: float | None = None
    dimensions: str | None = None
    genre: list[str] = []
    rating: float = 0
    description: Trimmed | None = None


class TourRecord(_Record):
    name: Trimmed
    slug: str | None = None
    duration: int
    max_group_size: int
    difficulty: str
    ratings_average: float = 4.5
    ratings_quantity: int = 0
    price: float
    price_discount: float | None = None
    summary: Trimmed
    description: Trimmed | None = None
    image_cover: str
    images: list[str] = []
    start_dates: list[datetime] = []
    secret_tour: bool = False

    @model_validator(mode="before")
    @classmethod
    def _derive_slug(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            return {**data, "slug": slugify(data["name"])}
        return data

    @field_validator("name")
    @classmethod
    def _alphabetic_name(cls, value: str) -> str:
        if not _TOUR_NAME.match(value):
            raise PydanticCustomError(RULE_ERROR_TYPE, "The name for the tour should be alphabetical only")
        return value

    @field_validator("price_discount")
    @classmethod
    def _discount_below_price(cls, value: float | None, info: ValidationInfo) -> float | None:
        price = info.data.get("price")
        if value is not None and price is not None and value >= price:
            raise PydanticCustomError(
                RULE_ERROR_TYPE,
                "Discount price ({discount}) should be below regular price",
                {"discount": value},
            )
        return value


class UserRecord(_Record):
    name: Trimmed
    email: Email
    role: Literal["reader", "admin"] = "reader"
    password: str
    password_changed_at: datetime | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None


class PasswordRecord(_Record):
    password: str
    password_confirm: str

    @field_validator("password")
    @classmethod
    def _long_enough(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise PydanticCustomError(
                RULE_ERROR_TYPE,
                "Password should be at least {minimum} characters long",
                {"minimum": MIN_PASSWORD_LENGTH},
            )
        return value

    @field_validator("password_confirm")
    @classmethod
    def _matches_password(cls, value: str, info: ValidationInfo) -> str:
        if "password" in info.data and value != info.data["password"]:
            raise PydanticCustomError(RULE_ERROR_TYPE, "The password does not match please try again")
        return value


class SignupRecord(PasswordRecord):
    name: Trimmed
    email: Email


class GuessWordRecord(_Record):
    question: Trimmed
    answer: Trimmed


@dataclass(frozen=True)
class Collection:
    """Where and how one record type is stored."""

    name: str
    resource: str
    schema: type[BaseModel]
    required_messages: Mapping[str, str] = field(default_factory=dict)
    unique_fields: tuple[str, ...] = ()
    hidden_fields: tuple[str, ...] = ()
    # Applied to every read, on top of the caller's filters.
    base_filter: Mapping[str, Any] = field(default_factory=dict)


BOOKS = Collection(
    name="books",
    resource="Book",
    schema=BookRecord,
    required_messages={
        "name": "Book should have a name",
        "price": "Book should have a price",
        "pages": "Book should have no of pages",
        "author": "Book should have a author",
    },
    unique_fields=("name",),
)

TOURS = Collection(
    name="tours",
    resource="Tour",
    schema=TourRecord,
    required_messages={
        "name": "Tour should have a name",
        "duration": "A tour must have a duration",
        "max_group_size": "Tour must have a group size",
        "difficulty": "Tour should have a difficulty",
        "price": "Tour should have a price",
        "summary": "Tour should have a summary",
        "image_cover": "A tour must have a cover image",
    },
    unique_fields=("name", "slug"),
    base_filter={"secret_tour": {"ne": True}},
)

USERS = Collection(
    name="users",
    resource="User",
    schema=UserRecord,
    required_messages={
        "name": "User should have a name",
        "email": "User should have an email",
        "password": "Please provide a password",
        "password_confirm": "Please confirm the password",
    },
    unique_fields=("email",),
    hidden_fields=("password", "password_reset_token", "password_reset_expires"),
)

GUESS_WORDS = Collection(
    name="guess_words",
    resource="Guess word",
    schema=GuessWordRecord,
    required_messages={
        "question": "Question not found, please add a question",
        "answer": "Answer not found, please add an answer",
    },
)

COLLECTIONS = (BOOKS, TOURS, USERS, GUESS_WORDS)
