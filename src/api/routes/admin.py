"""
Admin / observability endpoints
===============================

GET /api/v1/admin/health -- liveness plus storage backend in use
"""

from fastapi import APIRouter

from src.api.schemas import HealthResponse
from src.config import settings

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse(storage=settings.storage_backend)
