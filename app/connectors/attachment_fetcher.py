"""
app/connectors/attachment_fetcher.py

Binary download of attachments referenced by submission URLs.
"""

from __future__ import annotations

import logging

import requests

from app.config import AttachmentSettings, ExternalHTTPSettings
from app.connectors.base import BaseConnector, ConnectorRequestError, ResponseTooLargeError
from app.errors import DownloadFailedError

logger = logging.getLogger(__name__)


class AttachmentFetcher(BaseConnector):
    """
    Stateless fetcher returning the full body of an attachment URL.
    """

    def __init__(
        self,
        *,
        http_settings: ExternalHTTPSettings,
        settings: AttachmentSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="attachment", http_settings=http_settings, session=session)
        self._max_bytes = (settings or AttachmentSettings()).max_bytes

    def fetch(self, url: str) -> bytes:
        """
        Download `url` and return its body as bytes.

        Raises DownloadFailedError on network errors, timeouts, non-success
        statuses, or bodies larger than the configured limit.
        """

        try:
            content = self._request_bytes(method="GET", url=url, max_bytes=self._max_bytes)
        except ResponseTooLargeError as exc:
            raise DownloadFailedError(url, f"Attachment url={url} rejected: {exc}") from exc
        except ConnectorRequestError as exc:
            raise DownloadFailedError(url, f"Failed to download attachment url={url}: {exc}") from exc

        logger.debug("Downloaded attachment url=%s bytes=%s", url, len(content))
        return content
