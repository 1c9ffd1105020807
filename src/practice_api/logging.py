from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

request_logger = logging.getLogger("practice_api.requests")


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
        return

    root.setLevel(level)


def install_request_logger(app: FastAPI) -> None:
    """Log one line per request: method, path, status and duration."""

    @app.middleware("http")
    async def log_request(request: Request, call_next: Any) -> Any:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        request_logger.info(
            "%s %s %d %.1f ms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response
