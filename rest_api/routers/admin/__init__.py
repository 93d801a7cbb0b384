"""
Admin routers - /api/admin/*
Staff account approval.
"""

from .routes import router

__all__ = ["router"]
