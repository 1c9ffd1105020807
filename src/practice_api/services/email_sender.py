from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    def send(self, *, to: str, subject: str, message: str) -> None: ...


class LogEmailSender:
    """Writes outgoing mail to the log; there is no SMTP transport."""

    def send(self, *, to: str, subject: str, message: str) -> None:
        logger.info("Mail to %s | %s | %s", to, subject, message)
