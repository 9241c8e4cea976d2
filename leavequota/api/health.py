import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leavequota.config import get_settings
from leavequota.db import SessionDep

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Liveness plus record store reachability."""

    status: Literal["ok", "degraded"]
    service: str
    version: str
    environment: str
    database: bool


@health_router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report whether the service can reach its record store."""
    settings = get_settings()
    database = True
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: record store unreachable")
        database = False

    return HealthResponse(
        status="ok" if database else "degraded",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        database=database,
    )
