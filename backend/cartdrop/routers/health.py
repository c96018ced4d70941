"""Liveness and readiness checks."""

from datetime import datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from cartdrop.config import settings
from cartdrop.database import engine
from cartdrop.utils.redis import get_redis

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return "ok"


async def _check_redis() -> str:
    client = await get_redis()
    await client.ping()
    return "ok"


@router.get("/health")
async def health_check():
    """Process is up. Touches neither the database nor Redis."""
    return {
        "status": "ok",
        "service": "CartDrop",
        "environment": settings.environment,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/ready")
async def readiness_check():
    """200 when the database and Redis both answer, 503 otherwise."""
    checks: dict[str, str] = {}
    for name, check in (("database", _check_database), ("redis", _check_redis)):
        try:
            checks[name] = await check()
        except Exception as exc:
            checks[name] = f"error: {str(exc)[:100]}"

    ready = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ready else "unhealthy",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )
