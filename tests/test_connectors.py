"""
tests/test_connectors.py

Spreadsheet client and attachment fetcher against a scripted HTTP session.
"""

from __future__ import annotations

import io
import json
from typing import Any

import pytest
import requests

from app.config import AttachmentSettings, ExternalHTTPSettings, SheetsSourceSettings
from app.connectors.attachment_fetcher import AttachmentFetcher
from app.connectors.base import STREAM_CHUNK_BYTES
from app.connectors.sheets_connector import SheetsSubmissionSource, build_authorized_session
from app.errors import DownloadFailedError, SourceUnavailableError

HTTP_SETTINGS = ExternalHTTPSettings(
    timeout_seconds=5.0,
    max_retries=1,
    backoff_initial_seconds=0.0,
    backoff_multiplier=1.0,
    rate_limit_per_second=0.0,
)

SHEETS_SETTINGS = SheetsSourceSettings(
    client_email="ingest@project.iam.gserviceaccount.com",
    private_key="unused",
    spreadsheet_id="sheet-123",
)


class _CountingBody(io.BytesIO):
    """Raw response stream that records how many bytes were actually read."""

    def __init__(self, data: bytes) -> None:
        super().__init__(data)
        self.bytes_read = 0

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        self.bytes_read += len(chunk)
        return chunk


def _response(
    status_code: int,
    *,
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = "https://example.test",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.raw = _CountingBody(body)
    response.headers.update(headers or {})
    response.url = url
    return response


def _json_response(payload: Any, status_code: int = 200) -> requests.Response:
    return _response(status_code, body=json.dumps(payload).encode())


class ScriptedSession:
    """Replays queued responses or exceptions and records every request."""

    def __init__(self, *outcomes: requests.Response | Exception) -> None:
        self._outcomes = list(outcomes)
        self.requests: list[dict[str, Any]] = []
        self.closed = False

    def request(self, **kwargs: Any) -> requests.Response:
        self.requests.append(kwargs)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# SheetsSubmissionSource
# ---------------------------------------------------------------------------


class TestSheetsFetchRows:
    def test_reads_the_fixed_range(self) -> None:
        session = ScriptedSession(_json_response({"range": "Hoja1!B2:P1000", "values": [["a@example.com", "Guide"]]}))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        rows = source.fetch_rows()

        assert rows == [["a@example.com", "Guide"]]
        request = session.requests[0]
        assert request["method"] == "GET"
        assert request["url"] == "https://sheets.googleapis.com/v4/spreadsheets/sheet-123/values/Hoja1!B2:P"
        assert request["timeout"] == 5.0

    def test_missing_values_means_no_new_rows(self) -> None:
        session = ScriptedSession(_json_response({"range": "Hoja1!B2:P1000"}))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        assert source.fetch_rows() == []

    def test_retries_transient_status_then_succeeds(self) -> None:
        session = ScriptedSession(_response(503), _json_response({"values": [["a@example.com"]]}))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        assert source.fetch_rows() == [["a@example.com"]]
        assert len(session.requests) == 2

    @pytest.mark.parametrize(
        "outcomes",
        [
            (_response(403),),
            (_response(500), _response(500)),
            (requests.ConnectionError("dns failure"), requests.ConnectionError("dns failure")),
            (_response(200, body=b"<html>not json</html>"),),
            (_json_response(["unexpected"]),),
            (_json_response({"values": "unexpected"}),),
        ],
    )
    def test_failures_raise_source_unavailable(self, outcomes: tuple) -> None:
        session = ScriptedSession(*outcomes)
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        with pytest.raises(SourceUnavailableError):
            source.fetch_rows()

    def test_missing_spreadsheet_id(self) -> None:
        settings = SheetsSourceSettings(client_email="x", private_key="y", spreadsheet_id=None)
        source = SheetsSubmissionSource(settings=settings, http_settings=HTTP_SETTINGS, session=ScriptedSession())

        with pytest.raises(SourceUnavailableError):
            source.fetch_rows()

    def test_missing_credentials_fail_before_any_request(self) -> None:
        settings = SheetsSourceSettings(spreadsheet_id="sheet-123")
        source = SheetsSubmissionSource(settings=settings, http_settings=HTTP_SETTINGS)

        with pytest.raises(SourceUnavailableError):
            source.fetch_rows()


class TestSheetsClearRows:
    def test_clears_everything_below_the_header(self) -> None:
        session = ScriptedSession(_json_response({"clearedRange": "Hoja1!A2:P1000"}))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        assert source.clear_rows("Hoja1") is True

        request = session.requests[0]
        assert request["method"] == "POST"
        assert request["url"] == "https://sheets.googleapis.com/v4/spreadsheets/sheet-123/values/Hoja1!A2:P:clear"

    def test_sheet_name_with_spaces_uses_a1_quotes(self) -> None:
        session = ScriptedSession(_json_response({}))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        source.clear_rows("Form Responses")

        assert session.requests[0]["url"].endswith("/values/%27Form%20Responses%27!A2:P:clear")

    @pytest.mark.parametrize("status_code", [403, 404])
    def test_failure_is_logged_and_reported_as_false(self, status_code: int, caplog) -> None:
        session = ScriptedSession(_response(status_code))
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        with caplog.at_level("ERROR", logger="app.connectors.sheets_connector"):
            assert source.clear_rows() is False

        assert "Failed to clear range Hoja1!A2:P" in caplog.text

    def test_missing_spreadsheet_id_is_reported_as_false(self) -> None:
        settings = SheetsSourceSettings(client_email="x", private_key="y", spreadsheet_id=None)
        session = ScriptedSession()
        source = SheetsSubmissionSource(settings=settings, http_settings=HTTP_SETTINGS, session=session)

        assert source.clear_rows() is False
        assert session.requests == []


class TestSheetsSessionLifecycle:
    def test_close_releases_the_http_session(self) -> None:
        session = ScriptedSession()
        source = SheetsSubmissionSource(settings=SHEETS_SETTINGS, http_settings=HTTP_SETTINGS, session=session)

        source.close()

        assert session.closed is True


def test_build_authorized_session_requires_credentials() -> None:
    with pytest.raises(SourceUnavailableError):
        build_authorized_session(SheetsSourceSettings(client_email="ingest@example.com"))


# ---------------------------------------------------------------------------
# AttachmentFetcher
# ---------------------------------------------------------------------------


class TestAttachmentFetcher:
    def test_returns_raw_bytes(self) -> None:
        payload = b"%PDF-1.7\x00\xff binary"
        session = ScriptedSession(_response(200, body=payload))
        fetcher = AttachmentFetcher(http_settings=HTTP_SETTINGS, session=session)

        assert fetcher.fetch("https://files.example.com/guide.pdf") == payload
        assert session.requests[0]["url"] == "https://files.example.com/guide.pdf"

    @pytest.mark.parametrize(
        "outcomes",
        [
            (_response(404),),
            (_response(502), _response(502)),
            (requests.Timeout("read timed out"), requests.Timeout("read timed out")),
        ],
    )
    def test_failures_raise_download_failed(self, outcomes: tuple) -> None:
        fetcher = AttachmentFetcher(http_settings=HTTP_SETTINGS, session=ScriptedSession(*outcomes))

        with pytest.raises(DownloadFailedError) as ctx:
            fetcher.fetch("https://files.example.com/missing.pdf")

        assert ctx.value.url == "https://files.example.com/missing.pdf"

    def test_body_over_limit_is_rejected(self) -> None:
        fetcher = AttachmentFetcher(
            http_settings=HTTP_SETTINGS,
            settings=AttachmentSettings(max_bytes=4),
            session=ScriptedSession(_response(200, body=b"12345")),
        )

        with pytest.raises(DownloadFailedError):
            fetcher.fetch("https://files.example.com/big.pdf")

    def test_body_at_limit_is_accepted(self) -> None:
        fetcher = AttachmentFetcher(
            http_settings=HTTP_SETTINGS,
            settings=AttachmentSettings(max_bytes=5),
            session=ScriptedSession(_response(200, body=b"12345")),
        )

        assert fetcher.fetch("https://files.example.com/exact.pdf") == b"12345"

    def test_large_body_is_streamed_and_abandoned_past_the_limit(self) -> None:
        response = _response(200, body=b"x" * (10 * 1024 * 1024))
        session = ScriptedSession(response)
        fetcher = AttachmentFetcher(
            http_settings=HTTP_SETTINGS,
            settings=AttachmentSettings(max_bytes=10),
            session=session,
        )

        with pytest.raises(DownloadFailedError) as ctx:
            fetcher.fetch("https://files.example.com/huge.bin")

        assert ctx.value.url == "https://files.example.com/huge.bin"
        assert session.requests[0]["stream"] is True
        assert response.raw.bytes_read <= STREAM_CHUNK_BYTES

    def test_declared_length_over_limit_is_rejected_before_reading(self) -> None:
        response = _response(200, body=b"x" * 4096, headers={"Content-Length": "4096"})
        fetcher = AttachmentFetcher(
            http_settings=HTTP_SETTINGS,
            settings=AttachmentSettings(max_bytes=1024),
            session=ScriptedSession(response),
        )

        with pytest.raises(DownloadFailedError):
            fetcher.fetch("https://files.example.com/declared.bin")

        assert response.raw.bytes_read == 0

    def test_close_releases_the_http_session(self) -> None:
        session = ScriptedSession()
        fetcher = AttachmentFetcher(http_settings=HTTP_SETTINGS, session=session)

        fetcher.close()

        assert session.closed is True

    def test_invalid_url_is_not_retried(self) -> None:
        session = ScriptedSession(requests.exceptions.InvalidURL("no host"))
        fetcher = AttachmentFetcher(http_settings=HTTP_SETTINGS, session=session)

        with pytest.raises(DownloadFailedError):
            fetcher.fetch("not a url")
        assert len(session.requests) == 1
