from __future__ import annotations

from collections.abc import Callable, Generator

from fastapi import Depends, Request

from practice_api.domain.records import BOOKS, COLLECTIONS, GUESS_WORDS, TOURS, USERS
from practice_api.infra.repositories.document_repository import (
    Document,
    DocumentRepository,
    InMemoryDocumentRepository,
)
from practice_api.services.auth_service import AuthService
from practice_api.services.document_service import DocumentService
from practice_api.services.email_sender import EmailSender, LogEmailSender
from practice_api.services.errors import AppError
from practice_api.services.guess_service import GuessWordService
from practice_api.services.tour_service import TourService
from practice_api.services.user_service import UserService
from practice_api.settings import Settings, load_settings

TOKEN_COOKIE = "jwt"

Repositories = dict[str, DocumentRepository]

settings = load_settings()
_memory_repositories: Repositories = {
    collection.name: InMemoryDocumentRepository(collection) for collection in COLLECTIONS
}


def _get_memory_repositories() -> Repositories:
    return _memory_repositories


def _get_sql_repositories() -> Generator[Repositories, None, None]:
    from practice_api.infra.db.models import MODELS
    from practice_api.infra.db.session import get_db
    from practice_api.infra.repositories.sql_document_repository import SqlDocumentRepository

    for db in get_db():
        yield {
            collection.name: SqlDocumentRepository(db, MODELS[collection.name], collection)
            for collection in COLLECTIONS
        }


if settings.db_backend == "sql":
    get_repositories = _get_sql_repositories
else:
    get_repositories = _get_memory_repositories


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_book_service(repositories: Repositories = Depends(get_repositories)) -> DocumentService:
    return DocumentService(repositories[BOOKS.name])


def get_tour_service(repositories: Repositories = Depends(get_repositories)) -> TourService:
    return TourService(repositories[TOURS.name])


def get_guess_word_service(repositories: Repositories = Depends(get_repositories)) -> GuessWordService:
    return GuessWordService(repositories[GUESS_WORDS.name])


def get_user_service(repositories: Repositories = Depends(get_repositories)) -> UserService:
    return UserService(repositories[USERS.name])


def get_email_sender() -> EmailSender:
    return LogEmailSender()


def get_auth_service(
    repositories: Repositories = Depends(get_repositories),
    active_settings: Settings = Depends(get_settings),
    sender: EmailSender = Depends(get_email_sender),
) -> AuthService:
    return AuthService(repositories[USERS.name], active_settings, sender)


def _read_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return request.cookies.get(TOKEN_COOKIE)


def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> Document:
    return auth.authenticate(_read_token(request))


def restrict_to(*roles: str) -> Callable[..., Document]:
    def guard(user: Document = Depends(get_current_user)) -> Document:
        if user.get("role") not in roles:
            raise AppError("You do not have permission to perform this action", 403)
        return user

    return guard
