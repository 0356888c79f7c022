"""Liveness endpoint for load balancers and uptime checks."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import APPLICATION_NAME, get_async_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status; degraded means the API is up but PostgreSQL is not answering."""

    service: str
    status: str
    database: str


async def _database_reachable(db: AsyncSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Database health check failed")
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_async_session)) -> HealthResponse:
    """Always 200 so the process stays in rotation; inspect status for the database."""
    if await _database_reachable(db):
        return HealthResponse(service=APPLICATION_NAME, status="healthy", database="healthy")
    return HealthResponse(service=APPLICATION_NAME, status="degraded", database="unhealthy")
