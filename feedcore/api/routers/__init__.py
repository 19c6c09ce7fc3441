"""API routers package."""
from .feed import router as feed_router
from .health import router as health_router
from .keys import router as keys_router
from .media import router as media_router

__all__ = ["feed_router", "health_router", "keys_router", "media_router"]
