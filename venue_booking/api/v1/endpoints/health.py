# venue_booking/api/v1/endpoints/health.py
"""
Health check endpoints for monitoring system status.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.orm import Session

from venue_booking.api import deps
from venue_booking.core.circuit_breaker import get_all_circuit_breaker_stats
from venue_booking.db.redis import redis_client

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_check():
    """Basic health check - API is responding."""
    return {"status": "healthy", "service": "venue-booking"}


@router.get("/db")
def database_health(db: Session = Depends(deps.get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "healthy", "component": "database"}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database unhealthy: {e}")


@router.get("/redis")
def redis_health():
    try:
        redis_client.ping()
        return {"status": "healthy", "component": "redis"}
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Redis unhealthy: {e}")


@router.get("/circuits")
def circuit_health():
    return get_all_circuit_breaker_stats()
