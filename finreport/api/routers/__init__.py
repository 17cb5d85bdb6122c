"""
finreport/api/routers package marker.
"""

from finreport.api.routers.reports import router as reports_router
from finreport.api.routers.uploads import router as uploads_router

__all__ = [
    "reports_router",
    "uploads_router",
]
