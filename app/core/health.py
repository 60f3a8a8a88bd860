"""Liveness and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

# Tables the bulk collections write to
CATALOG_TABLES = ("store", "product", "sales")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: Literal["ok", "degraded", "unhealthy"]
    database: Literal["connected", "disconnected"] | None = None
    missing_tables: list[str] = Field(default_factory=list)


@router.get("/health", response_model=HealthResponse, response_model_exclude_defaults=True)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the database."""
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=HealthResponse, response_model_exclude_defaults=True)
async def readiness_check(
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Readiness check for the bulk endpoints.

    ``unhealthy`` when the database cannot be reached, ``degraded`` when it
    is reachable but a catalog table is missing (migrations not applied).
    """
    missing: list[str] = []
    try:
        for table in CATALOG_TABLES:
            result = await db.execute(text("SELECT to_regclass(:name)"), {"name": table})
            if result.scalar() is None:
                missing.append(table)
    except Exception as e:
        logger.error(
            "health.database_disconnected",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        return HealthResponse(status="unhealthy", database="disconnected")

    if missing:
        logger.warning("health.catalog_tables_missing", missing_tables=missing)
        return HealthResponse(status="degraded", database="connected", missing_tables=missing)

    return HealthResponse(status="ok", database="connected")
