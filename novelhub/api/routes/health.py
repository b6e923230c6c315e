import logging

from fastapi import APIRouter, Depends, Response
import redis
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, db: Session = Depends(get_db)) -> dict:
    """Readiness probe: the unlock flows need both PostgreSQL and Redis."""
    checks = {"database": "ok", "redis": "ok"}
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        checks["database"] = str(e)
    try:
        redis.Redis.from_url(settings.redis_url, decode_responses=True).ping()
    except redis.RedisError as e:
        checks["redis"] = str(e)

    if any(value != "ok" for value in checks.values()):
        response.status_code = 503
        logger.warning("readiness_failed", extra={"error": checks})
        return {"status": "not_ready", "checks": checks}
    return {"status": "ready", "checks": checks}
