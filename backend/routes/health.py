"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from database import get_db
from db_models import RegistryState
from domain.constants import REGISTRY_STATE_ID

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check — verifies the database answers and reports registry status."""
    try:
        await db.execute(text("SELECT 1"))
        registry = await db.get(RegistryState, REGISTRY_STATE_ID)
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database_connected": False,
                "error": str(e),
            },
        )
    return {
        "status": "healthy",
        "database_connected": True,
        "registry_initialized": registry is not None,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
