import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from ghoste.db.base import get_session_factory
from ghoste.db.models import CreditCost
from ghoste.db.redis import get_redis

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE = "ghoste-credits"


@router.get("/health")
async def health_check(request: Request):
    """Liveness probe. Returns 503 once shutdown has begun."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE})
    return {"status": "healthy", "service": SERVICE}


@router.get("/ready")
async def readiness_check():
    """Readiness probe.

    The ledger database must answer and hold a seeded cost table; an empty
    table would make every feature free. Redis only backs the cost cache, so
    it is reported but does not fail readiness.
    """
    checks = {"database": False, "cost_table": False, "redis": False}

    try:
        async with get_session_factory()() as session:
            cost_rows = await session.scalar(select(func.count()).select_from(CreditCost))
        checks["database"] = True
        checks["cost_table"] = bool(cost_rows)
    except Exception as e:
        logger.error("readiness_database_failed", error=str(e))

    try:
        await get_redis().ping()
        checks["redis"] = True
    except Exception as e:
        logger.warning("readiness_redis_failed", error=str(e))

    ready = checks["database"] and checks["cost_table"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )
