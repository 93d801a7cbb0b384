"""
Customer order endpoints.
"""

from rest_api.routers.orders.routes import router

__all__ = ["router"]
