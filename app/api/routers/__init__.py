"""
app/api/routers package marker.
"""

from app.api.routers.load_profile import router as load_profile_router

__all__ = [
    "load_profile_router",
]
