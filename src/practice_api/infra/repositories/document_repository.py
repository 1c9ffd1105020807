from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Protocol
from uuid import UUID, uuid4

from practice_api.domain.query import QuerySpec
from practice_api.domain.records import Collection
from practice_api.infra.errors import CastError, DuplicateKeyError, validate_document
from practice_api.infra.repositories.matching import compile_filters, sort_documents
from practice_api.services.errors import NotFoundError

Document = dict[str, Any]

META_FIELDS = frozenset({"id", "created_at", "updated_at", "version", "active"})


def check_document_id(document_id: str) -> None:
    try:
        UUID(str(document_id))
    except ValueError as exc:
        raise CastError("id", document_id) from exc


class DocumentRepository(Protocol):
    collection: Collection

    def find(self, query: QuerySpec) -> list[Document]: ...

    def find_one(self, filters: Mapping[str, Any], *, include_hidden: bool = False) -> Document | None: ...

    def get(self, document_id: str, *, include_hidden: bool = False) -> Document: ...

    def create(self, payload: Mapping[str, Any]) -> Document: ...

    def create_many(self, payloads: Iterable[Mapping[str, Any]]) -> list[Document]: ...

    def update(self, document_id: str, changes: Mapping[str, Any]) -> Document: ...

    def delete(self, document_id: str) -> None: ...

    def delete_all(self) -> int: ...

    def count(self) -> int: ...


class InMemoryDocumentRepository:
    def __init__(self, collection: Collection) -> None:
        self.collection = collection
        self._lock = Lock()
        self._documents: dict[str, Document] = {}
        self._base_filter = compile_filters(collection.schema, collection.base_filter)

    def _validate(self, payload: Mapping[str, Any]) -> Document:
        return validate_document(
            self.collection.schema,
            payload,
            resource=self.collection.resource,
            required_messages=self.collection.required_messages,
        )

    def _visible(self, document: Document) -> bool:
        return document["active"] and self._base_filter.matches(document)

    def _public(self, document: Document, *, include_hidden: bool = False) -> Document:
        hidden = {"active"} if include_hidden else {"active", *self.collection.hidden_fields}
        return copy.deepcopy({key: value for key, value in document.items() if key not in hidden})

    def _ensure_unique(self, document: Document, existing: Iterable[Document]) -> None:
        existing = list(existing)
        for name in self.collection.unique_fields:
            value = document.get(name)
            if value is None:
                continue
            for other in existing:
                if other["id"] != document["id"] and other.get(name) == value:
                    raise DuplicateKeyError(self.collection.resource, {name: value})

    def _get_visible(self, document_id: str) -> Document:
        check_document_id(document_id)
        document = self._documents.get(document_id)
        if document is None or not self._visible(document):
            raise NotFoundError(self.collection.resource, document_id)
        return document

    def find(self, query: QuerySpec) -> list[Document]:
        condition = compile_filters(self.collection.schema, query.filters)
        with self._lock:
            candidates = [
                document
                for document in self._documents.values()
                if self._visible(document) and condition.matches(document)
            ]
        ordered = sort_documents(candidates, query.sort)
        end = None if query.limit is None else query.skip + query.limit
        results = [self._public(document) for document in ordered[query.skip:end]]
        if query.projection is not None:
            results = [query.projection.apply(document) for document in results]
        return results

    def find_one(self, filters: Mapping[str, Any], *, include_hidden: bool = False) -> Document | None:
        condition = compile_filters(self.collection.schema, filters)
        with self._lock:
            for document in self._documents.values():
                if self._visible(document) and condition.matches(document):
                    return self._public(document, include_hidden=include_hidden)
        return None

    def get(self, document_id: str, *, include_hidden: bool = False) -> Document:
        with self._lock:
            return self._public(self._get_visible(document_id), include_hidden=include_hidden)

    def _new_document(self, payload: Mapping[str, Any], now: datetime) -> Document:
        return {
            "id": str(uuid4()),
            **self._validate(payload),
            "created_at": now,
            "updated_at": now,
            "version": 0,
            "active": True,
        }

    def create(self, payload: Mapping[str, Any]) -> Document:
        document = self._new_document(payload, datetime.now(timezone.utc))
        with self._lock:
            self._ensure_unique(document, self._documents.values())
            self._documents[document["id"]] = document
        return self._public(document)

    def create_many(self, payloads: Iterable[Mapping[str, Any]]) -> list[Document]:
        """Insert every payload, or none of them when one is rejected."""
        now = datetime.now(timezone.utc)
        documents = [self._new_document(payload, now) for payload in payloads]
        with self._lock:
            accepted: list[Document] = []
            for document in documents:
                self._ensure_unique(document, [*self._documents.values(), *accepted])
                accepted.append(document)
            for document in accepted:
                self._documents[document["id"]] = document
        return [self._public(document) for document in accepted]

    def update(self, document_id: str, changes: Mapping[str, Any]) -> Document:
        with self._lock:
            current = self._get_visible(document_id)
            merged = {key: value for key, value in current.items() if key not in META_FIELDS}
            merged.update(changes)
            fields = self._validate(merged)
            document = {
                **current,
                **fields,
                "updated_at": datetime.now(timezone.utc),
                "version": current["version"] + 1,
            }
            self._ensure_unique(document, self._documents.values())
            self._documents[document_id] = document
            return self._public(document)

    def delete(self, document_id: str) -> None:
        with self._lock:
            document = self._get_visible(document_id)
            document["active"] = False
            document["updated_at"] = datetime.now(timezone.utc)

    def delete_all(self) -> int:
        with self._lock:
            removed = len(self._documents)
            self._documents.clear()
            return removed

    def count(self) -> int:
        with self._lock:
            return sum(1 for document in self._documents.values() if self._visible(document))
