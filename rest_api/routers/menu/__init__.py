"""
Menu and dining table listings.
"""

from rest_api.routers.menu.routes import router

__all__ = ["router"]
