"""
Routes package for the Verified Visuals API
"""

from verified_visuals.routes.reports import router as reports_router

__all__ = ["reports_router"]
