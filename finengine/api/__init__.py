"""
API routes for the finance engine.
"""

from fastapi import APIRouter

from finengine.api import calculations, forecasts

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(forecasts.router, prefix="/forecasts", tags=["forecasts"])
