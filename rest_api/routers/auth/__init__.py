"""
Authentication routers - /api/auth/*
Handles login, customer and staff registration and user info.
"""

from .routes import router

__all__ = ["router"]
