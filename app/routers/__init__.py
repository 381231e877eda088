# app/routers/__init__.py
"""
API routers for v1 endpoints.
"""

from app.routers.admin_maintenance import router as admin_maintenance_router

__all__ = [
    "admin_maintenance_router",
]
