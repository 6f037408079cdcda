"""
API routes for the title splitting calculator.
"""

from fastapi import APIRouter

from titlesplit.api import calculations, extraction, sessions

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(extraction.router, prefix="/extract", tags=["extraction"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
