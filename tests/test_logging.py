"""
Tests for logging helpers and job context.
"""

import logging

import pytest
import structlog

from sitegen.logging import bind_thread_id, generate_job_id, resolve_level, set_job_context


@pytest.fixture(autouse=True)
def _clean_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


class TestLevels:
    def test_named_level(self):
        assert resolve_level("warning") == logging.WARNING

    def test_debug_overrides_level(self):
        assert resolve_level("ERROR", debug=True) == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        assert resolve_level("chatty") == logging.INFO


class TestJobContext:
    def test_generate_job_id(self):
        job_id = generate_job_id()
        assert job_id.startswith("job_")
        assert job_id != generate_job_id()

    def test_set_job_context_generates_id(self):
        job_id = set_job_context()

        assert structlog.contextvars.get_contextvars() == {"job_id": job_id}

    def test_bind_thread_id(self):
        set_job_context("job-1")
        bind_thread_id("t1")

        assert structlog.contextvars.get_contextvars() == {"job_id": "job-1", "thread_id": "t1"}

    def test_new_job_drops_previous_thread(self):
        set_job_context("job-1", "t1")
        set_job_context("job-2")

        assert structlog.contextvars.get_contextvars() == {"job_id": "job-2"}

    def test_context_merged_into_events(self):
        set_job_context("job-1", "t1")

        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "Stream opened"})

        assert event == {"event": "Stream opened", "job_id": "job-1", "thread_id": "t1"}
