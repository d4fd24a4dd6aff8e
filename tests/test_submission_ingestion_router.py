"""
tests/test_submission_ingestion_router.py

On-demand trigger and status endpoints, mounted on a bare FastAPI app.
"""

from __future__ import annotations

import threading

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.routers import submission_ingestion_router
from app.services.ingestion_pipeline import IngestionPipeline, get_ingestion_pipeline
from app.services.relational_sink import RelationalSink
from fakes import FakeFetcher, FakeSource, make_row


def _client(pipeline: object) -> TestClient:
    application = FastAPI()
    application.include_router(submission_ingestion_router)
    application.dependency_overrides[get_ingestion_pipeline] = lambda: pipeline
    return TestClient(application)


@pytest.fixture()
def pipeline(sink: RelationalSink) -> IngestionPipeline:
    source = FakeSource([make_row("ana@example.com"), make_row("")])
    return IngestionPipeline(source=source, fetcher=FakeFetcher(), sink=sink)


def test_run_returns_the_cycle_summary(pipeline: IngestionPipeline, list_records) -> None:
    response = _client(pipeline).post("/ingestion/submissions/run")

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "committed"
    assert body["rows_inserted"] == 1
    assert body["rows_skipped"] == 1
    assert body["source_cleared"] is True
    assert len(list_records()) == 1


def test_run_while_a_cycle_holds_the_lock_returns_409(pipeline: IngestionPipeline) -> None:
    lock: threading.Lock = pipeline._batch_lock
    lock.acquire()
    try:
        response = _client(pipeline).post("/ingestion/submissions/run")
    finally:
        lock.release()

    assert response.status_code == 409


def test_pipeline_exception_surfaces_generic_500() -> None:
    class _Broken:
        def run_cycle(self, *, wait: bool = True):
            raise RuntimeError("password=hunter2 leaked in driver error")

    response = _client(_Broken()).post("/ingestion/submissions/run")

    assert response.status_code == 500
    assert response.json() == {
        "detail": "Internal error while running the submission ingestion pipeline."
    }


def test_status_reports_state_and_last_summary(pipeline: IngestionPipeline) -> None:
    client = _client(pipeline)

    before = client.get("/ingestion/submissions/status").json()
    client.post("/ingestion/submissions/run")
    after = client.get("/ingestion/submissions/status").json()

    assert before == {"state": "idle", "running": False, "last_summary": None}
    assert after["state"] == "sleeping"
    assert after["last_summary"]["outcome"] == "committed"
