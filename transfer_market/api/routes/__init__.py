"""
API Routes Package

All route modules are aggregated here for easy importing into main.py.
"""

from .health import router as health_router
from .teams import router as teams_router
from .transfers import router as transfers_router

__all__ = [
    'health_router',
    'teams_router',
    'transfers_router',
]
