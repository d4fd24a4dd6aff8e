"""
app/services package marker.
"""

from app.services.ingestion_pipeline import IngestionPipeline, get_ingestion_pipeline
from app.services.relational_sink import RelationalSink, SinkTransaction

__all__ = [
    "IngestionPipeline",
    "get_ingestion_pipeline",
    "RelationalSink",
    "SinkTransaction",
]
