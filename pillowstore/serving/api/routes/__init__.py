"""
API Routes Module
"""
from .admin import router as admin_router
from .brands import router as brands_router
from .chat_history import router as chat_history_router
from .health import router as health_router
from .measurements import router as measurements_router
from .products import router as products_router
from .profiles import router as profiles_router

__all__ = [
    "admin_router",
    "brands_router",
    "chat_history_router",
    "health_router",
    "measurements_router",
    "products_router",
    "profiles_router",
]
