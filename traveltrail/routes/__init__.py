"""
HTTP routes for the TravelTrail CMS API.
"""

from fastapi import APIRouter

from traveltrail.routes import accommodations, admin, cms, sheets, trips

router = APIRouter()
router.include_router(admin.router)
router.include_router(cms.router)
router.include_router(trips.router)
router.include_router(accommodations.router)
router.include_router(sheets.router)
