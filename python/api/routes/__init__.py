"""
API Routes Package

Contains the route modules for the budget allocation API.
"""

from .allocation import router as allocation_router

__all__ = [
    "allocation_router",
]
