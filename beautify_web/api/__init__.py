# API routes
from .health import router as health_router
from .generate import router as generate_router
from .history import router as history_router
from .jobs import router as jobs_router
from .results import router as results_router

__all__ = ["health_router", "generate_router", "history_router", "jobs_router", "results_router"]
