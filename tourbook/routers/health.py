"""
Health Check Endpoints

- /health        - liveness (process is up)
- /health/ready  - readiness (database reachable)
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
import logging
import time

from ..database import get_db
from ..utils.db_helpers import dialect_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": dialect_name(db)
        }
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": "down",
            "error": str(e)[:100]
        }


@router.get("")
@router.get("/")
async def liveness_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
@router.get("/ready/")
async def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe: 503 while the database is unreachable"""
    db_health = get_db_health(db)
    timestamp = datetime.now(timezone.utc).isoformat()

    if db_health["status"] == "up":
        return {"status": "ready", "database": db_health, "timestamp": timestamp}

    return JSONResponse(
        status_code=503,
        content={
            "status": "not_ready",
            "reason": "database_unavailable",
            "timestamp": timestamp
        }
    )
