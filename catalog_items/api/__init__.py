"""API layer module.

Contains the FastAPI routers and middleware.
"""

from catalog_items.api.health import router as health_router
from catalog_items.api.middleware import setup_middleware

__all__ = [
    "health_router",
    "setup_middleware",
]
