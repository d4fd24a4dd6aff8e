"""
app/connectors/sheets_connector.py

Google Sheets client that reads pending form submissions and clears them
once they have been consumed.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from app.config import SHEETS_SCOPE, ExternalHTTPSettings, SheetsSourceSettings
from app.connectors.base import BaseConnector, ConnectorRequestError
from app.errors import ClearFailedError, SourceUnavailableError

logger = logging.getLogger(__name__)


def build_authorized_session(settings: SheetsSourceSettings) -> AuthorizedSession:
    """
    Build a requests session signed with the configured service account.

    Raises SourceUnavailableError when credentials are missing or malformed.
    """

    if not settings.client_email or not settings.private_key:
        raise SourceUnavailableError(
            "Google service account credentials are not configured "
            "(GOOGLE_CLIENT_EMAIL / GOOGLE_PRIVATE_KEY)."
        )

    info = {
        "type": "service_account",
        "client_email": settings.client_email,
        "private_key": settings.private_key,
        "token_uri": "https://oauth2.googleapis.com/token",
    }
    try:
        credentials = service_account.Credentials.from_service_account_info(
            info,
            scopes=[SHEETS_SCOPE],
        )
    except (ValueError, GoogleAuthError) as exc:
        raise SourceUnavailableError("Google service account credentials are invalid.") from exc
    return AuthorizedSession(credentials)


class SheetsSubmissionSource(BaseConnector):
    """
    Reads and clears the submission range of one spreadsheet.
    """

    def __init__(
        self,
        *,
        settings: SheetsSourceSettings,
        http_settings: ExternalHTTPSettings,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(source="google_sheets", http_settings=http_settings, session=session)
        self._settings = settings
        self._authorized = session is not None

    @property
    def sheet_name(self) -> str:
        return self._settings.sheet_name

    def fetch_rows(self) -> list[list[Any]]:
        """
        Return every pending submission row; an empty list when there are none.

        Raises SourceUnavailableError on authentication, transport or payload
        failures. No partial result is ever returned.
        """

        url = self._values_url(self._settings.read_range)
        try:
            self._ensure_session()
            payload = self._request_json(method="GET", url=url)
        except (ConnectorRequestError, GoogleAuthError) as exc:
            raise SourceUnavailableError(f"Failed to read submissions: {exc}") from exc

        if not isinstance(payload, dict):
            raise SourceUnavailableError("Unexpected Sheets payload shape.")

        values = payload.get("values") or []
        if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
            raise SourceUnavailableError("Unexpected Sheets values shape.")

        logger.info(
            "Fetched submission rows spreadsheet=%s range=%s rows=%s",
            self._settings.spreadsheet_id,
            self._settings.read_range,
            len(values),
        )
        return values

    def clear_rows(self, sheet_name: str | None = None) -> bool:
        """
        Clear the data range (header row excluded) of the given sheet.

        Returns False when the clear failed; the failure is logged, never raised.
        """

        clear_range = self._settings.clear_range(sheet_name)
        try:
            self._post_clear(clear_range)
        except ClearFailedError as exc:
            logger.error(
                "Clearing consumed submissions failed spreadsheet=%s error=%s",
                self._settings.spreadsheet_id,
                exc,
            )
            return False

        logger.info(
            "Cleared submission rows spreadsheet=%s range=%s",
            self._settings.spreadsheet_id,
            clear_range,
        )
        return True

    def _post_clear(self, clear_range: str) -> None:
        try:
            url = f"{self._values_url(clear_range)}:clear"
            self._ensure_session()
            self._request_json(method="POST", url=url, json_body={})
        except (ConnectorRequestError, GoogleAuthError, SourceUnavailableError) as exc:
            raise ClearFailedError(f"Failed to clear range {clear_range}: {exc}") from exc

    def _ensure_session(self) -> None:
        if self._authorized:
            return
        authorized_session = build_authorized_session(self._settings)
        self._session.close()
        self._session = authorized_session
        self._authorized = True

    def _values_url(self, cell_range: str) -> str:
        if not self._settings.spreadsheet_id:
            raise SourceUnavailableError("SPREADSHEET_ID is not configured.")
        return (
            f"{self._settings.base_url.rstrip('/')}/spreadsheets/"
            f"{quote(self._settings.spreadsheet_id, safe='')}/values/"
            f"{quote(cell_range, safe='!:')}"
        )
