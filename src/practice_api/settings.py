from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

PASSWORD_PLACEHOLDER = "<PASSWORD>"


def _load_local_env_file() -> None:
    """Load variables from a local .env file without overriding exported ones."""
    env_path = Path('.env')
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


_load_local_env_file()


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    environment: str
    debug: bool
    port: int
    db_backend: str
    database_url: str | None
    jwt_secret: str | None
    jwt_expires_in: str
    jwt_cookie_expires_in: int
    password_reset_expires_in: str

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _database_url() -> str | None:
    url = os.getenv("DATABASE_URL")
    password = os.getenv("DATABASE_PASSWORD")
    if url and password:
        return url.replace(PASSWORD_PLACEHOLDER, password)
    return url


def load_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "practice-api"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        environment=os.getenv("APP_ENV", "production").strip().lower(),
        debug=os.getenv("APP_DEBUG", "false").lower() in {"1", "true", "yes"},
        port=int(os.getenv("PORT", "3000")),
        db_backend=os.getenv("DB_BACKEND", "memory"),
        database_url=_database_url(),
        jwt_secret=os.getenv("JWT_SECRET"),
        jwt_expires_in=os.getenv("JWT_EXPIRES_IN", "90d"),
        jwt_cookie_expires_in=int(os.getenv("JWT_COOKIE_EXPIRES_IN", "90")),
        password_reset_expires_in=os.getenv("PASSWORD_RESET_EXPIRES_IN", "10m"),
    )
