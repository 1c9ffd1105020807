"""Signup, login and bearer-token authentication for users."""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from practice_api.domain.query import DEFAULT_PROJECTION
from practice_api.domain.records import USERS, PasswordRecord, SignupRecord
from practice_api.infra.errors import validate_document
from practice_api.infra.repositories.document_repository import Document, DocumentRepository
from practice_api.services.email_sender import EmailSender, LogEmailSender
from practice_api.services.errors import AppError
from practice_api.settings import Settings

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
BCRYPT_ROUNDS = 12
RESET_TOKEN_BYTES = 32

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

_DURATION = re.compile(r"^\s*(?P<amount>\d+)\s*(?P<unit>[smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> timedelta:
    """Parse ``90d``, ``12h``, ``30m``, ``45s`` or a bare number of seconds."""
    match = _DURATION.match(value)
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    return timedelta(seconds=int(match.group("amount")) * _UNIT_SECONDS[match.group("unit")])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, encoded: str) -> bool:
    if pwd_context.identify(encoded) is None:
        return False
    return pwd_context.verify(password, encoded)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def password_changed_after(user: Mapping[str, Any], issued_at: int) -> bool:
    changed_at = user.get("password_changed_at")
    if changed_at is None:
        return False
    return issued_at < int(_as_utc(changed_at).timestamp())


class AuthService:
    def __init__(self, users: DocumentRepository, settings: Settings, sender: EmailSender | None = None) -> None:
        self._users = users
        self._settings = settings
        self._sender = sender or LogEmailSender()

    def _without_hidden(self, user: Document) -> Document:
        for name in self._users.collection.hidden_fields:
            user.pop(name, None)
        return DEFAULT_PROJECTION.apply(user)

    def _validate_password(self, password: str | None, password_confirm: str | None) -> dict[str, Any]:
        submitted = {"password": password, "password_confirm": password_confirm}
        return validate_document(
            PasswordRecord,
            {key: value for key, value in submitted.items() if value is not None},
            resource=USERS.resource,
            required_messages=USERS.required_messages,
        )

    def _set_password(self, user_id: str, password: str, **extra: Any) -> tuple[Document, str]:
        # Backdated so the token issued below is never older than the change.
        changed_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        updated = self._users.update(
            user_id,
            {"password": hash_password(password), "password_changed_at": changed_at, **extra},
        )
        return DEFAULT_PROJECTION.apply(updated), self.sign_token(user_id)

    def _secret(self) -> str:
        if not self._settings.jwt_secret:
            raise RuntimeError("JWT_SECRET is not configured")
        return self._settings.jwt_secret

    def sign_token(self, user_id: str, *, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "iat": issued_at,
            "exp": issued_at + parse_duration(self._settings.jwt_expires_in),
        }
        return jwt.encode(payload, self._secret(), algorithm=TOKEN_ALGORITHM)

    def decode_token(self, token: str) -> dict[str, Any]:
        return jwt.decode(token, self._secret(), algorithms=[TOKEN_ALGORITHM])

    def signup(self, payload: Mapping[str, Any]) -> tuple[Document, str]:
        fields = validate_document(
            SignupRecord,
            payload,
            resource=USERS.resource,
            required_messages=USERS.required_messages,
        )
        user = self._users.create(
            {
                "name": fields["name"],
                "email": fields["email"],
                "password": hash_password(fields["password"]),
            }
        )
        logger.info("User %s signed up", user["id"])
        return DEFAULT_PROJECTION.apply(user), self.sign_token(user["id"])

    def login(self, email: str | None, password: str | None) -> tuple[Document, str]:
        if not email or not password:
            raise AppError("Email and password both are required in order to login", 400)

        user = self._users.find_one({"email": email.strip().lower()}, include_hidden=True)
        if user is None or not verify_password(password, user["password"]):
            raise AppError("Incorrect email or password", 401)

        return self._without_hidden(user), self.sign_token(user["id"])

    def authenticate(self, token: str | None) -> Document:
        if not token:
            raise AppError("You are not logged in. Please log in to get access", 401)

        claims = self.decode_token(token)
        user = self._users.find_one({"id": str(claims.get("id"))})
        if user is None:
            raise AppError("The user belonging to this token no longer exists", 401)
        if password_changed_after(user, int(claims["iat"])):
            raise AppError("User recently changed password. Please log in again", 401)
        return user

    def update_password(
        self,
        user_id: str,
        *,
        current_password: str | None,
        password: str | None,
        password_confirm: str | None,
    ) -> tuple[Document, str]:
        user = self._users.get(user_id, include_hidden=True)
        if not current_password or not verify_password(current_password, user["password"]):
            raise AppError("Your current password is wrong", 401)

        fields = self._validate_password(password, password_confirm)
        return self._set_password(user_id, fields["password"])

    def forgot_password(self, email: str | None, reset_url: Callable[[str], str]) -> None:
        """Store a hashed, expiring reset token and mail its URL to the user."""
        user = self._users.find_one({"email": (email or "").strip().lower()})
        if user is None:
            raise AppError("There is no user with that email address", 404)

        token = secrets.token_hex(RESET_TOKEN_BYTES)
        expires = datetime.now(timezone.utc) + parse_duration(self._settings.password_reset_expires_in)
        self._users.update(
            user["id"],
            {"password_reset_token": hash_reset_token(token), "password_reset_expires": expires},
        )
        url = reset_url(token)
        try:
            self._sender.send(
                to=user["email"],
                subject="Your password reset token",
                message=f"Forgot your password? Submit your new password and its confirmation to {url}",
            )
        except Exception as exc:
            self._users.update(user["id"], {"password_reset_token": None, "password_reset_expires": None})
            logger.error("Sending reset mail to user %s failed", user["id"], exc_info=exc)
            raise AppError("There was an error sending the email. Try again later", 500) from exc
        logger.info("Password reset requested for user %s", user["id"])

    def reset_password(
        self,
        token: str,
        *,
        password: str | None,
        password_confirm: str | None,
    ) -> tuple[Document, str]:
        user = self._users.find_one({"password_reset_token": hash_reset_token(token)}, include_hidden=True)
        expires = user.get("password_reset_expires") if user is not None else None
        if expires is None or _as_utc(expires) <= datetime.now(timezone.utc):
            raise AppError("Token is invalid or has expired", 400)

        fields = self._validate_password(password, password_confirm)
        return self._set_password(
            user["id"],
            fields["password"],
            password_reset_token=None,
            password_reset_expires=None,
        )
