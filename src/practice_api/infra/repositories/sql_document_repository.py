from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic_core import to_jsonable_python
from sqlalchemy import JSON, ColumnElement, Select, delete, false, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from practice_api.domain.query import QuerySpec
from practice_api.domain.records import Collection
from practice_api.infra.db.models import DocumentMixin
from practice_api.infra.errors import CastError, DuplicateKeyError, validate_document
from practice_api.infra.repositories.document_repository import (
    META_FIELDS,
    Document,
    DocumentRepository,
    check_document_id,
)
from practice_api.infra.repositories.matching import SUPPORTED_OPERATORS, cast_value
from practice_api.services.errors import NotFoundError


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlDocumentRepository(DocumentRepository):
    def __init__(self, db: Session, model: type[DocumentMixin], collection: Collection) -> None:
        self._db = db
        self._model = model
        self._columns = model.__table__.columns
        self.collection = collection

    def _validate(self, payload: Mapping[str, Any]) -> Document:
        return validate_document(
            self.collection.schema,
            payload,
            resource=self.collection.resource,
            required_messages=self.collection.required_messages,
        )

    def _to_document(self, row: DocumentMixin, *, include_hidden: bool = False) -> Document:
        stored = {}
        for column in self._columns:
            if column.name in META_FIELDS:
                continue
            value = getattr(row, column.name)
            stored[column.name] = _as_utc(value) if isinstance(value, datetime) else value
        document = {
            "id": row.id,
            **self._validate(stored),
            "created_at": _as_utc(row.created_at),
            "updated_at": _as_utc(row.updated_at),
            "version": row.version,
        }
        if not include_hidden:
            for name in self.collection.hidden_fields:
                document.pop(name, None)
        return document

    def _to_columns(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, value in fields.items():
            column = self._columns.get(name)
            if column is None:
                continue
            values[name] = to_jsonable_python(value) if isinstance(column.type, JSON) else value
        return values

    def _cast(self, name: str, python_type: type, raw: Any) -> Any:
        value = cast_value(python_type, raw, name)
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value

    def _condition(self, name: str, op: str, raw: Any) -> ColumnElement[bool]:
        if op not in SUPPORTED_OPERATORS:
            raise CastError(name, {op: raw})
        column = self._columns.get(name)
        if column is None:
            return false()
        if isinstance(column.type, JSON):
            raise CastError(name, raw)

        python_type = column.type.python_type
        if op == "in":
            candidates = raw if isinstance(raw, (list, tuple)) else [part for part in str(raw).split(",") if part]
            return column.in_([self._cast(name, python_type, candidate) for candidate in candidates])

        value = self._cast(name, python_type, raw)
        if op == "eq":
            return column.is_(None) if value is None else column == value
        if op == "ne":
            return column.is_not(None) if value is None else or_(column != value, column.is_(None))
        if op == "gte":
            return column >= value
        if op == "gt":
            return column > value
        if op == "lte":
            return column <= value
        return column < value

    def _conditions(self, filters: Mapping[str, Any]) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        for name, condition in filters.items():
            if isinstance(condition, Mapping):
                conditions.extend(self._condition(name, op, raw) for op, raw in condition.items())
            else:
                conditions.append(self._condition(name, "eq", condition))
        return conditions

    def _visible(self) -> Select[tuple[DocumentMixin]]:
        return select(self._model).where(
            self._model.active.is_(True),
            *self._conditions(self.collection.base_filter),
        )

    def _get_row(self, document_id: str) -> DocumentMixin:
        check_document_id(document_id)
        row = self._db.scalars(self._visible().where(self._model.id == document_id)).first()
        if row is None:
            raise NotFoundError(self.collection.resource, document_id)
        return row

    def _commit(self, written: Sequence[tuple[Mapping[str, Any], str]]) -> None:
        try:
            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            seen: set[tuple[str, Any]] = set()
            for fields, document_id in written:
                for name in self.collection.unique_fields:
                    value = fields.get(name)
                    if value is None:
                        continue
                    if (name, value) in seen:
                        raise DuplicateKeyError(self.collection.resource, {name: value}) from exc
                    seen.add((name, value))
                    clash = self._db.scalar(
                        select(self._model.id).where(self._columns[name] == value, self._model.id != document_id).limit(1)
                    )
                    if clash is not None:
                        raise DuplicateKeyError(self.collection.resource, {name: value}) from exc
            raise

    def find(self, query: QuerySpec) -> list[Document]:
        statement = self._visible().where(*self._conditions(query.filters))
        for key in query.sort:
            column = self._columns.get(key.field)
            if column is not None:
                statement = statement.order_by(column.desc() if key.descending else column.asc())
        if query.skip:
            statement = statement.offset(query.skip)
        if query.limit is not None:
            statement = statement.limit(query.limit)

        documents = [self._to_document(row) for row in self._db.scalars(statement).all()]
        if query.projection is not None:
            documents = [query.projection.apply(document) for document in documents]
        return documents

    def find_one(self, filters: Mapping[str, Any], *, include_hidden: bool = False) -> Document | None:
        row = self._db.scalars(self._visible().where(*self._conditions(filters)).limit(1)).first()
        if row is None:
            return None
        return self._to_document(row, include_hidden=include_hidden)

    def get(self, document_id: str, *, include_hidden: bool = False) -> Document:
        return self._to_document(self._get_row(document_id), include_hidden=include_hidden)

    def _new_row(self, fields: Mapping[str, Any], now: datetime) -> DocumentMixin:
        return self._model(
            id=str(uuid4()),
            created_at=now,
            updated_at=now,
            version=0,
            active=True,
            **self._to_columns(fields),
        )

    def create(self, payload: Mapping[str, Any]) -> Document:
        fields = self._validate(payload)
        row = self._new_row(fields, datetime.now(timezone.utc))
        self._db.add(row)
        self._commit([(fields, row.id)])
        self._db.refresh(row)
        return self._to_document(row)

    def create_many(self, payloads: Iterable[Mapping[str, Any]]) -> list[Document]:
        """Insert every payload in one transaction, or none of them when one is rejected."""
        validated = [self._validate(payload) for payload in payloads]
        now = datetime.now(timezone.utc)
        rows = [self._new_row(fields, now) for fields in validated]
        self._db.add_all(rows)
        self._commit([(fields, row.id) for fields, row in zip(validated, rows)])
        for row in rows:
            self._db.refresh(row)
        return [self._to_document(row) for row in rows]

    def update(self, document_id: str, changes: Mapping[str, Any]) -> Document:
        row = self._get_row(document_id)
        merged = {column.name: getattr(row, column.name) for column in self._columns if column.name not in META_FIELDS}
        merged.update(changes)
        fields = self._validate(merged)

        for name, value in self._to_columns(fields).items():
            setattr(row, name, value)
        row.updated_at = datetime.now(timezone.utc)
        row.version = row.version + 1
        self._db.add(row)
        self._commit([(fields, document_id)])
        self._db.refresh(row)
        return self._to_document(row)

    def delete(self, document_id: str) -> None:
        row = self._get_row(document_id)
        row.active = False
        row.updated_at = datetime.now(timezone.utc)
        self._db.add(row)
        self._db.commit()

    def delete_all(self) -> int:
        result = self._db.execute(delete(self._model))
        self._db.commit()
        return result.rowcount

    def count(self) -> int:
        statement = select(func.count()).select_from(self._visible().subquery())
        return self._db.scalar(statement) or 0
