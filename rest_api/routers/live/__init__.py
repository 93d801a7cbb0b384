"""
Live order feed over WebSocket.
"""

from rest_api.routers.live.routes import router

__all__ = ["router"]
