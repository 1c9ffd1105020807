from practice_api.infra.repositories.document_repository import (
    Document,
    DocumentRepository,
    InMemoryDocumentRepository,
)

__all__ = [
    "Document",
    "DocumentRepository",
    "InMemoryDocumentRepository",
]
