"""
FastAPI Backend for Marketing Budget Allocation

Provides REST API endpoints for the budget allocation editor.
"""

from .main import app

__all__ = ["app"]
