from __future__ import annotations

from fastapi import APIRouter

from timetabler.api.deps import settings
from timetabler.api.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        name=settings.app_name,
        version=settings.app_version,
        db_backend=settings.db_backend,
    )
