"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter()


class ProbeStatus(BaseModel):
    status: str = "ok"


@router.get("", response_model=ProbeStatus, summary="Liveness probe")
async def health_check() -> ProbeStatus:
    return ProbeStatus()


@router.get("/ready", response_model=ProbeStatus, summary="Readiness probe")
async def readiness_check(session: DbSession) -> ProbeStatus:
    """503 until the database answers a trivial query."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database did not answer the readiness query")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )
    return ProbeStatus()
