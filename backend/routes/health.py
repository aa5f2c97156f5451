"""
Health check endpoints.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from services.email_service import email_service
from services import whatsapp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check: verifies database connectivity and reports providers."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": False,
                "error": "database unavailable",
            },
        )
    return {
        "status": "healthy",
        "environment": settings.environment,
        "database": True,
        "emailService": email_service.get_available_service(),
        "whatsapp": whatsapp_service.is_configured(),
        "cloudinary": settings.cloudinary_configured,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/email/health")
async def email_health():
    service = email_service.get_available_service()
    return {"configured": service != "None", "service": service}
