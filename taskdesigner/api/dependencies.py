"""
Shared dependencies for API routes.
"""

from functools import lru_cache

from taskdesigner.config import settings
from taskdesigner.services.orchestrator import PerformanceTaskService, create_service


@lru_cache()
def get_service() -> PerformanceTaskService:
    """Process-wide service instance (owns the session table)."""
    return create_service(settings)
