from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request

from practice_api.api.errors import ErrorFormatter, register_error_handlers
from practice_api.api.routers.books import router as books_router
from practice_api.api.routers.guess_words import router as guess_words_router
from practice_api.api.routers.health import router as health_router
from practice_api.api.routers.tours import router as tours_router
from practice_api.api.routers.users import router as users_router
from practice_api.logging import configure_logging, install_request_logger
from practice_api.settings import Settings, load_settings

API_PREFIX = "/api/v1"


def create_app(settings: Settings | None = None) -> FastAPI:
    active_settings = settings or load_settings()
    configure_logging(debug=active_settings.debug)

    app = FastAPI(title=active_settings.app_name, version=active_settings.app_version)
    app.state.settings = active_settings

    register_error_handlers(app, ErrorFormatter(development=active_settings.is_development))

    @app.middleware("http")
    async def stamp_request_time(request: Request, call_next: Any) -> Any:
        request.state.requested_at = datetime.now(timezone.utc)
        return await call_next(request)

    if active_settings.is_development:
        install_request_logger(app)

    app.include_router(health_router)
    app.include_router(books_router, prefix=API_PREFIX)
    app.include_router(tours_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(guess_words_router, prefix=API_PREFIX)

    return app


app = create_app()
