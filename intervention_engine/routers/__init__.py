"""Intervention Engine - API Routers"""
from .domains import router as interventions_router
from .level_a import router as level_a_router
from .cases import router as cases_router
from .scheduler import router as scheduler_router

__all__ = [
    "interventions_router",
    "level_a_router",
    "cases_router",
    "scheduler_router",
]
