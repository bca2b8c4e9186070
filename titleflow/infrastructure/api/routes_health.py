"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text

from titleflow.config import settings
from titleflow.infrastructure.api.dependencies import Repositories, get_repositories

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(repos: Repositories = Depends(get_repositories)):
    """Check API and storage connectivity."""
    if repos.session is None:
        db_status = "memory"
    else:
        try:
            result = await repos.session.execute(text("SELECT 1"))
            result.scalar()
            db_status = "connected"
        except Exception as e:
            db_status = f"error: {e}"

    return {
        "status": "ok" if db_status in ("connected", "memory") else "degraded",
        "storage": settings.storage_backend,
        "database": db_status,
        "service": "titleflow - title search allocation engine",
    }
