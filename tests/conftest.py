"""
Shared pytest fixtures and helpers for all tests.
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
import pytest_asyncio

from sitegen.api import SitegenAPI
from sitegen.artifacts import ArtifactStore
from sitegen.config import Settings
from sitegen.models import PageContent, PageUpdate
from sitegen.pipeline import PipelineStateMachine
from sitegen.progress.animator import ProgressAnimator

BASE_URL = "http://sitegen.test"
GENERATE_PATH = "/api/generate-website"
UPDATE_PATH = "/api/update-website"


def sse_body(events: list[dict[str, Any] | str]) -> bytes:
    """Encode events as ``data: `` records; strings are sent verbatim."""
    lines = []
    for event in events:
        if isinstance(event, str):
            lines.append(event)
        else:
            lines.append(f"data: {json.dumps(event, ensure_ascii=False)}\n\n")
    return "".join(lines).encode("utf-8")


async def chunked(data: bytes, size: int | None = None) -> AsyncIterator[bytes]:
    if not size:
        yield data
        return
    for i in range(0, len(data), size):
        yield data[i : i + size]


def stream_response(events: list[dict[str, Any] | str], chunk_size: int | None = None) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/event-stream"},
        content=chunked(sse_body(events), chunk_size),
    )


def completed_run(pages: dict[str, Any] | None = None, **data: Any) -> list[dict[str, Any]]:
    """A full, uninterrupted pipeline run ending in ``complete``."""
    pages = pages or {"home": {"html": "<h1>Home</h1>", "css": "h1 { color: red; }"}}
    return [
        {"step": "planning", "status": "in_progress", "message": "Planning"},
        {"step": "planning", "status": "completed"},
        {"step": "image_description", "status": "in_progress"},
        {"step": "image_description", "status": "completed"},
        {"step": "image_generation", "status": "in_progress"},
        {"step": "image_generation", "status": "completed"},
        {"step": "html_generation", "status": "in_progress"},
        {"step": "html_generation", "status": "completed"},
        {"step": "html_validation", "status": "in_progress"},
        {"step": "html_validation", "status": "completed"},
        {"step": "file_storage", "status": "in_progress"},
        {"step": "file_storage", "status": "completed"},
        {"step": "complete", "status": "completed", "data": {"pages": pages, **data}},
    ]


class FakeServer:
    """Scripted generation server behind ``httpx.MockTransport``.

    Queue stream event lists (or ready-made responses) on ``streams`` and
    update responses on ``updates``; every request body is recorded.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.streams: list[list[dict[str, Any] | str] | httpx.Response] = []
        self.updates: list[httpx.Response] = []
        self.chunk_size: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append({"path": request.url.path, "body": body})

        if request.url.path == GENERATE_PATH:
            item = self.streams.pop(0)
            if isinstance(item, httpx.Response):
                return item
            return stream_response(item, self.chunk_size)

        if request.url.path == UPDATE_PATH:
            return self.updates.pop(0)

        return httpx.Response(404, json={"detail": "Not Found"})

    def bodies(self, path: str = GENERATE_PATH) -> list[dict[str, Any]]:
        return [r["body"] for r in self.requests if r["path"] == path]


class FakeEditor:
    """In-memory stand-in for the visual page editor."""

    def __init__(self) -> None:
        self.pages: dict[str, PageContent] = {}
        self.global_css = ""
        self.initialized_with: str | None = None

    def get_current_pages(self) -> dict[str, PageContent]:
        return {name: page.model_copy() for name, page in self.pages.items()}

    def get_global_css(self) -> str:
        return self.global_css

    def update_pages(self, pages: dict[str, PageUpdate]) -> None:
        for name, page in pages.items():
            existing = self.pages.get(name)
            css = page.css if page.css is not None else (existing.css if existing else "")
            self.pages[name] = PageContent(html=page.html, css=css)

    def update_global_css(self, css: str) -> None:
        self.global_css = css

    async def initialize(self, html: str) -> None:
        self.initialized_with = html


class StaticTemplate:
    def __init__(self, html: str | None) -> None:
        self.html = html

    def has_selected_template(self) -> bool:
        return self.html is not None

    def get_selected_template_html(self) -> str | None:
        return self.html


@pytest.fixture
def test_settings() -> Settings:
    return Settings(api_base_url=BASE_URL, progress_tick_interval=0.001)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def api(server: FakeServer, test_settings: Settings) -> AsyncIterator[SitegenAPI]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    yield SitegenAPI(test_settings, client=client)
    await client.aclose()


@pytest.fixture
def store() -> ArtifactStore:
    return ArtifactStore()


@pytest_asyncio.fixture
async def pipeline(api: SitegenAPI, store: ArtifactStore) -> AsyncIterator[PipelineStateMachine]:
    machine = PipelineStateMachine(api, store, animator=ProgressAnimator(interval=0.001))
    yield machine
    machine.animator.stop()


def update_response(
    updated_pages: dict[str, Any] | None = None,
    updated_global_css: str | None = None,
    changes_summary: str = "Updated",
) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "updated_pages": updated_pages or {},
            "updated_global_css": updated_global_css,
            "changes_summary": changes_summary,
        },
    )


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "unit: mark test as unit test")
