"""API routes package."""
from .system import router as system_router
from .weather import router as weather_router

__all__ = [
    "system_router",
    "weather_router",
]
