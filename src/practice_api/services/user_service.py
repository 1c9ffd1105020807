from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from practice_api.infra.repositories.document_repository import Document
from practice_api.services.document_service import DocumentService
from practice_api.services.errors import AppError

SELF_EDITABLE_FIELDS = ("name", "email")
PASSWORD_FIELDS = ("password", "password_confirm")


class UserService(DocumentService):
    def update_me(self, user_id: str, payload: Mapping[str, Any]) -> Document:
        if any(name in payload for name in PASSWORD_FIELDS):
            raise AppError("This route is not for password updates. Please use /update-password", 400)
        changes = {name: payload[name] for name in SELF_EDITABLE_FIELDS if name in payload}
        return self.update_document(user_id, changes)

    def delete_me(self, user_id: str) -> None:
        self.delete_document(user_id)
