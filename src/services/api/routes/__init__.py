# src/services/api/routes/__init__.py
"""
HTTP роутеры API.
"""

from src.services.api.routes.charters import router as charters_router
from src.services.api.routes.conversations import router as conversations_router
from src.services.api.routes.matches import router as matches_router
from src.services.api.routes.reports import router as reports_router
from src.services.api.routes.trips import router as trips_router

__all__ = [
    "charters_router",
    "conversations_router",
    "matches_router",
    "reports_router",
    "trips_router",
]
