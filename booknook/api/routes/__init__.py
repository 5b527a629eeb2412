"""
API Routes for BookNook

Route modules:
- analytics: Catalog statistics for the admin dashboard
"""

from booknook.api.routes.analytics import router as analytics_router

__all__ = [
    "analytics_router",
]
