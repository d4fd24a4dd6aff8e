"""
app/api/routers package marker.
"""

from app.api.routers.submission_ingestion import router as submission_ingestion_router

__all__ = [
    "submission_ingestion_router",
]
