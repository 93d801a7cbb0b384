"""
Kitchen endpoints.
"""

from rest_api.routers.kitchen.routes import router

__all__ = ["router"]
