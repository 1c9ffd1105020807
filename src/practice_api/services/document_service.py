from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from practice_api.domain.query import DEFAULT_PROJECTION, build_query
from practice_api.domain.records import Collection
from practice_api.infra.repositories.document_repository import Document, DocumentRepository


class DocumentService:
    def __init__(self, repository: DocumentRepository) -> None:
        self._repository = repository

    @property
    def collection(self) -> Collection:
        return self._repository.collection

    def _decorate(self, document: Document) -> Document:
        return document

    def _present(self, document: Document) -> Document:
        return self._decorate(DEFAULT_PROJECTION.apply(document))

    def list_documents(self, params: Mapping[str, Any]) -> list[Document]:
        query = build_query(params)
        return [self._decorate(document) for document in self._repository.find(query)]

    def get_document(self, document_id: str) -> Document:
        return self._present(self._repository.get(document_id))

    def create_document(self, payload: Mapping[str, Any]) -> Document:
        return self._present(self._repository.create(payload))

    def update_document(self, document_id: str, changes: Mapping[str, Any]) -> Document:
        return self._present(self._repository.update(document_id, changes))

    def delete_document(self, document_id: str) -> None:
        self._repository.delete(document_id)
