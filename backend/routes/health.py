"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from deps import get_store
from services.store import OrderStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(store: OrderStore = Depends(get_store)):
    """Health check — verifies the order store answers."""
    try:
        stats = await store.stats()
        return {
            "status": "healthy",
            "store": stats,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "store": None,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
