"""
API endpoints for the performance task designer.
"""

from taskdesigner.api.session import router as session_router

__all__ = [
    "session_router",
]
