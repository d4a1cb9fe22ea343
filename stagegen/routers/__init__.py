"""API routers."""

from .generate import router as generate_router
from .proxy import router as proxy_router

__all__ = ["generate_router", "proxy_router"]
