from __future__ import annotations

import uvicorn

from practice_api.settings import load_settings


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "practice_api.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
