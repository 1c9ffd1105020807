from __future__ import annotations

from collections.abc import Iterator
from dataclasses import replace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from practice_api.api.deps import Repositories, get_email_sender, get_repositories
from practice_api.domain.records import COLLECTIONS
from practice_api.infra.repositories.document_repository import InMemoryDocumentRepository
from practice_api.main import create_app
from practice_api.settings import Settings, load_settings


class RecordingSender:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    def send(self, *, to: str, subject: str, message: str) -> None:
        self.sent.append({"to": to, "subject": subject, "message": message})


@pytest.fixture
def settings() -> Settings:
    return replace(
        load_settings(),
        environment="production",
        debug=False,
        db_backend="memory",
        jwt_secret="test-secret",
        jwt_expires_in="1h",
        password_reset_expires_in="10m",
    )


@pytest.fixture
def repositories() -> Repositories:
    return {collection.name: InMemoryDocumentRepository(collection) for collection in COLLECTIONS}


@pytest.fixture
def mailbox() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def app(settings: Settings, repositories: Repositories, mailbox: RecordingSender) -> FastAPI:
    application = create_app(settings)
    application.dependency_overrides[get_repositories] = lambda: repositories
    application.dependency_overrides[get_email_sender] = lambda: mailbox
    return application


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
