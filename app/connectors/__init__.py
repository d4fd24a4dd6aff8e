"""
app/connectors package marker.
"""

from app.connectors.attachment_fetcher import AttachmentFetcher
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.sheets_connector import SheetsSubmissionSource, build_authorized_session

__all__ = [
    "AttachmentFetcher",
    "BaseConnector",
    "ConnectorRequestError",
    "SheetsSubmissionSource",
    "build_authorized_session",
]
