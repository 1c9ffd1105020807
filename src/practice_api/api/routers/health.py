from __future__ import annotations

from fastapi import APIRouter, Depends

from practice_api.api.deps import get_settings
from practice_api.api.schemas import HealthResponse
from practice_api.settings import Settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    return HealthResponse(status="ok", version=settings.app_version, environment=settings.environment)
