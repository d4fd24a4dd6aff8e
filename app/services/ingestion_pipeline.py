"""
app/services/ingestion_pipeline.py

Poll cycle for spreadsheet submissions: fetch rows, validate them, download
their attachments, insert them under one batch transaction and clear the
consumed rows from the sheet.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from app.config import (
    CLEAR_POLICY_AFTER_COMMIT,
    CLEAR_POLICY_PER_ROW,
    get_attachment_settings,
    get_external_http_settings,
    get_sheets_source_settings,
    get_submission_pipeline_settings,
)
from app.connectors import AttachmentFetcher, SheetsSubmissionSource
from app.domain.ingestion import PipelineState, PollCycleOutcome, PollCycleSummary
from app.domain.submission import Submission, has_valid_email
from app.errors import (
    InsertFailedError,
    SourceUnavailableError,
    TransactionInProgressError,
)
from app.services.relational_sink import RelationalSink

logger = logging.getLogger(__name__)


class SubmissionSource(Protocol):
    sheet_name: str

    def fetch_rows(self) -> list[list[Any]]:
        ...

    def clear_rows(self, sheet_name: str | None = None) -> bool:
        ...

    def close(self) -> None:
        ...


class AttachmentDownloader(Protocol):
    def fetch(self, url: str) -> bytes:
        ...

    def close(self) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IngestionPipeline:
    """
    Runs one submission poll cycle at a time.

    Cycles are serialized by a batch lock shared by the scheduled loop and
    the on-demand trigger. A batch is committed as a whole or rolled back on
    the first row failure; rows without an email are skipped.
    """

    def __init__(
        self,
        *,
        source: SubmissionSource,
        fetcher: AttachmentDownloader,
        sink: RelationalSink,
        clear_policy: str = CLEAR_POLICY_AFTER_COMMIT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if clear_policy not in {CLEAR_POLICY_AFTER_COMMIT, CLEAR_POLICY_PER_ROW}:
            raise ValueError(f"Unsupported clear policy '{clear_policy}'.")
        self._source = source
        self._fetcher = fetcher
        self._sink = sink
        self._clear_policy = clear_policy
        self._clock = clock
        self._batch_lock = threading.Lock()
        self._state = PipelineState.IDLE
        self._last_summary: PollCycleSummary | None = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def last_summary(self) -> PollCycleSummary | None:
        return self._last_summary

    @property
    def is_running(self) -> bool:
        return self._batch_lock.locked()

    def run_cycle(self, *, wait: bool = True) -> PollCycleSummary:
        """
        Execute one poll cycle.

        With wait=False a cycle already in progress makes this call return a
        `busy` summary instead of blocking.
        """

        started_at = self._clock()
        if not self._batch_lock.acquire(blocking=wait):
            logger.warning("Submission cycle already running; request rejected")
            return self._summary(PollCycleOutcome.BUSY, started_at, error="A poll cycle is already running.")

        try:
            summary = self._run_locked(started_at)
        finally:
            self._set_state(PipelineState.SLEEPING)
            self._batch_lock.release()

        self._last_summary = summary
        return summary

    def _run_locked(self, started_at: datetime) -> PollCycleSummary:
        self._set_state(PipelineState.POLLING)
        try:
            rows = self._source.fetch_rows()
        except SourceUnavailableError as exc:
            logger.error("Submission source unavailable error=%s", exc)
            return self._summary(PollCycleOutcome.SOURCE_UNAVAILABLE, started_at, error=str(exc))

        if not rows:
            logger.info("No new submissions found. Waiting for the next interval.")
            return self._summary(PollCycleOutcome.EMPTY, started_at)

        try:
            tx = self._sink.begin_transaction()
        except TransactionInProgressError as exc:
            logger.warning("Submission batch deferred error=%s", exc)
            return self._summary(
                PollCycleOutcome.BUSY,
                started_at,
                rows_fetched=len(rows),
                error=str(exc),
            )

        inserted = 0
        skipped = 0
        cleared = False
        row_index = -1
        rows_done = False
        try:
            for row_index, row in enumerate(rows):
                self._set_state(PipelineState.VALIDATING)
                if not has_valid_email(row):
                    skipped += 1
                    logger.info("Skipping submission row index=%s: empty or invalid email", row_index)
                    continue
                submission = Submission.from_row(row)

                self._set_state(PipelineState.DOWNLOADING)
                authorization_letter = self._download(submission.authorization_letter_url)
                download_content = self._download(submission.download_url)

                self._set_state(PipelineState.INSERTING)
                record_id = tx.insert_record(
                    submission,
                    download_content=download_content,
                    authorization_letter=authorization_letter,
                )
                inserted += 1
                logger.info(
                    "Inserted submission row index=%s record_id=%s email=%s",
                    row_index,
                    record_id,
                    submission.email,
                )

                if self._clear_policy == CLEAR_POLICY_PER_ROW:
                    cleared = self._clear_source() or cleared
            rows_done = True
        except Exception as exc:
            self._set_state(PipelineState.ABORTING)
            logger.exception(
                "Submission batch aborted row_index=%s rows=%s error=%s",
                row_index,
                len(rows),
                exc,
            )
            tx.rollback()
            self._set_state(PipelineState.ROLLED_BACK)
            return self._summary(
                PollCycleOutcome.ROLLED_BACK,
                started_at,
                rows_fetched=len(rows),
                rows_skipped=skipped,
                source_cleared=cleared,
                error=str(exc),
            )
        finally:
            # Interrupts (KeyboardInterrupt, SystemExit) must not leave the batch open.
            if not rows_done and tx.is_open:
                tx.rollback()

        try:
            tx.commit()
        except InsertFailedError as exc:
            logger.exception("Submission batch commit failed rows=%s error=%s", len(rows), exc)
            self._set_state(PipelineState.ROLLED_BACK)
            return self._summary(
                PollCycleOutcome.ROLLED_BACK,
                started_at,
                rows_fetched=len(rows),
                rows_skipped=skipped,
                source_cleared=cleared,
                error=str(exc),
            )

        logger.info(
            "Submission batch committed rows=%s inserted=%s skipped=%s",
            len(rows),
            inserted,
            skipped,
        )

        if self._clear_policy == CLEAR_POLICY_AFTER_COMMIT and inserted > 0:
            cleared = self._clear_source()

        return self._summary(
            PollCycleOutcome.COMMITTED,
            started_at,
            rows_fetched=len(rows),
            rows_inserted=inserted,
            rows_skipped=skipped,
            source_cleared=cleared,
        )

    def shutdown(self) -> None:
        """Close the HTTP clients and release pooled connections. Waits for an in-flight cycle first."""
        with self._batch_lock:
            self._set_state(PipelineState.IDLE)
            try:
                self._source.close()
                self._fetcher.close()
            finally:
                self._sink.dispose()

    def _download(self, url: str | None) -> bytes | None:
        if not url:
            return None
        return self._fetcher.fetch(url)

    def _clear_source(self) -> bool:
        self._set_state(PipelineState.CLEARING)
        return self._source.clear_rows(self._source.sheet_name)

    def _set_state(self, state: str) -> None:
        if state != self._state:
            logger.debug("Submission pipeline state %s -> %s", self._state, state)
        self._state = state

    def _summary(self, outcome: str, started_at: datetime, **counts: Any) -> PollCycleSummary:
        return PollCycleSummary(
            outcome=outcome,
            started_at=started_at,
            finished_at=self._clock(),
            **counts,
        )


@lru_cache(maxsize=1)
def get_ingestion_pipeline() -> IngestionPipeline:
    """
    Build and cache the process-wide submission pipeline.
    """

    from db.session import SessionLocal, dispose_engine

    http_settings = get_external_http_settings()
    pipeline_settings = get_submission_pipeline_settings()
    return IngestionPipeline(
        source=SheetsSubmissionSource(
            settings=get_sheets_source_settings(),
            http_settings=http_settings,
        ),
        fetcher=AttachmentFetcher(
            http_settings=http_settings,
            settings=get_attachment_settings(),
        ),
        sink=RelationalSink(session_factory=SessionLocal, dispose=dispose_engine),
        clear_policy=pipeline_settings.clear_policy,
    )
