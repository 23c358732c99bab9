from fastapi import APIRouter

from app.core.config import settings

router = APIRouter()

@router.get("/health", summary="Health Check", description="Check the health status of the analysis service.")
async def health_check():
    return {
        "status": "healthy",
        "default_model": settings.default_model,
        "cache_backend": settings.cache_backend,
    }
