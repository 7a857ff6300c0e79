# app/routers/__init__.py

from .admin import router as admin_router
from .public import router as public_router

__all__ = [
    "admin_router",
    "public_router",
]
