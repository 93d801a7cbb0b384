"""
Cashier endpoints.
"""

from rest_api.routers.billing.routes import router

__all__ = ["router"]
