"""
Health check API endpoints.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_lab.core.config import settings
from dental_lab.core.logging import get_logger
from dental_lab.dependencies import get_db
from dental_lab.utils.helpers import utcnow

logger = get_logger(__name__)

router = APIRouter()


def health_payload() -> dict:
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }


@router.get("")
async def health_check():
    """Basic health check endpoint."""
    return {"success": True, "data": health_payload()}


@router.get("/db")
async def database_health_check(db: Session = Depends(get_db)):
    """Health check including database connectivity."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "message": "Database unavailable",
                "code": "DATABASE_UNAVAILABLE"
            }
        )

    payload = health_payload()
    payload["database"] = {"status": "healthy", "url": settings.database_url_safe}
    return {"success": True, "data": payload}
