"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

CLEAR_POLICY_AFTER_COMMIT = "after_commit"
CLEAR_POLICY_PER_ROW = "per_row"
_ALLOWED_CLEAR_POLICIES = {CLEAR_POLICY_AFTER_COMMIT, CLEAR_POLICY_PER_ROW}

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
_PLAIN_SHEET_NAME = re.compile(r"^[A-Za-z0-9_]+$")


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(*names: str) -> str | None:
    """
    Read the first non-empty value among several environment variable names.
    """

    _load_env_once()
    for name in names:
        value = os.getenv(name)
        if value is None:
            continue
        stripped = value.strip()
        if stripped:
            return stripped
    return None


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for outbound connectors.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class SheetsSourceSettings:
    """
    Google Sheets submission source settings.
    """

    client_email: str | None = None
    private_key: str | None = None
    spreadsheet_id: str | None = None
    sheet_name: str = "Hoja1"
    read_columns: str = "B2:P"
    clear_columns: str = "A2:P"
    base_url: str = "https://sheets.googleapis.com/v4"

    @property
    def read_range(self) -> str:
        return a1_range(self.sheet_name, self.read_columns)

    def clear_range(self, sheet_name: str | None = None) -> str:
        return a1_range(sheet_name or self.sheet_name, self.clear_columns)


def a1_range(sheet_name: str, columns: str) -> str:
    """
    Build an A1-notation range; sheet names other than plain words are
    single-quoted, with embedded quotes doubled.
    """

    if _PLAIN_SHEET_NAME.match(sheet_name):
        return f"{sheet_name}!{columns}"
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{columns}"


@dataclass(frozen=True)
class AttachmentSettings:
    """
    Attachment download limits.
    """

    max_bytes: int | None = None


@dataclass(frozen=True)
class SubmissionPipelineSettings:
    """
    Runtime settings for the periodic submission ingestion pipeline.
    """

    poll_interval_seconds: float = 60.0
    clear_policy: str = CLEAR_POLICY_AFTER_COMMIT
    scheduler_enabled: bool = True


def _normalize_private_key(raw: str | None) -> str | None:
    # Keys pasted into .env files usually carry literal "\n" sequences.
    if raw is None:
        return None
    return raw.replace("\\n", "\n")


def _resolve_clear_policy() -> str:
    raw = _get_str_env("SUBMISSIONS_CLEAR_POLICY", CLEAR_POLICY_AFTER_COMMIT).lower()
    if raw not in _ALLOWED_CLEAR_POLICIES:
        raise RuntimeError(
            f"SUBMISSIONS_CLEAR_POLICY '{raw}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_CLEAR_POLICIES)}."
        )
    return raw


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_sheets_source_settings() -> SheetsSourceSettings:
    """
    Return Google Sheets source settings from environment variables.
    """

    return SheetsSourceSettings(
        client_email=_get_optional_str_env("GOOGLE_CLIENT_EMAIL", "CLIENT_EMAIL"),
        private_key=_normalize_private_key(_get_optional_str_env("GOOGLE_PRIVATE_KEY", "PRIVATE_KEY")),
        spreadsheet_id=_get_optional_str_env("SPREADSHEET_ID"),
        sheet_name=_get_str_env("SUBMISSIONS_SHEET_NAME", "Hoja1"),
        base_url=_get_str_env("SHEETS_API_BASE_URL", "https://sheets.googleapis.com/v4"),
    )


@lru_cache(maxsize=1)
def get_attachment_settings() -> AttachmentSettings:
    """
    Return attachment download settings. A non-positive limit disables the cap.
    """

    max_bytes = _get_int_env("ATTACHMENT_MAX_BYTES", 0)
    return AttachmentSettings(max_bytes=max_bytes if max_bytes > 0 else None)


@lru_cache(maxsize=1)
def get_submission_pipeline_settings() -> SubmissionPipelineSettings:
    """
    Return pipeline scheduling settings from environment variables.

    Raises RuntimeError if SUBMISSIONS_CLEAR_POLICY is not a known policy.
    """

    return SubmissionPipelineSettings(
        poll_interval_seconds=max(1.0, _get_float_env("SUBMISSIONS_POLL_INTERVAL_SECONDS", 60.0)),
        clear_policy=_resolve_clear_policy(),
        scheduler_enabled=_get_bool_env("SUBMISSIONS_SCHEDULER_ENABLED", True),
    )
