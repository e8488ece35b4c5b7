# app/routers/__init__.py
"""
API routers for v1 endpoints.
"""

from app.routers.files import router as files_router

__all__ = [
    "files_router",
]
