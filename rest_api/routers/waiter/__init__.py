"""
Waiter endpoints.
"""

from rest_api.routers.waiter.routes import router

__all__ = ["router"]
