"""
System endpoints
================

GET /api/health -- liveness probe (no authentication)
"""

from fastapi import APIRouter

from fleet.api.schemas import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
