"""Failure shapes raised by the document store.

These are not operational errors: the API error formatter decides how (and
whether) to show them to clients.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from practice_api.domain.records import RULE_ERROR_TYPE


class StoreError(Exception):
    """Base class for document store failures."""


class CastError(StoreError):
    def __init__(self, path: str, value: Any):
        self.path = path
        self.value = value
        super().__init__(f"Cast failed for value {value!r} at path {path!r}")


class DuplicateKeyError(StoreError):
    def __init__(self, resource: str, key_value: Mapping[str, Any]):
        self.resource = resource
        self.key_value = dict(key_value)
        keys = ", ".join(f"{key}: {value!r}" for key, value in self.key_value.items())
        super().__init__(f"duplicate key for {resource}: {keys}")


class DocumentValidationError(StoreError):
    def __init__(self, resource: str, errors: Mapping[str, str]):
        self.resource = resource
        self.errors = dict(errors)
        details = ", ".join(f"{path}: {message}" for path, message in self.errors.items())
        super().__init__(f"{resource} validation failed: {details}")

    @classmethod
    def from_pydantic(
        cls,
        resource: str,
        exc: PydanticValidationError,
        required_messages: Mapping[str, str],
    ) -> DocumentValidationError:
        errors: dict[str, str] = {}
        for error in exc.errors():
            path = ".".join(str(part) for part in error["loc"]) or "document"
            if path in errors:
                continue
            if error["type"] == "missing":
                errors[path] = required_messages.get(path, f"{path} is required")
            elif error["type"] == RULE_ERROR_TYPE:
                errors[path] = error["msg"]
            else:
                errors[path] = f"{path}: {error['msg']}"
        return cls(resource, errors)


def validate_document(
    schema: type[BaseModel],
    payload: Mapping[str, Any],
    *,
    resource: str,
    required_messages: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Validate ``payload`` against ``schema`` and return the cleaned fields."""
    try:
        model = schema.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise DocumentValidationError.from_pydantic(resource, exc, required_messages or {}) from exc
    return model.model_dump()
