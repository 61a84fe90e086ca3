"""Pydantic models for progress updates."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class ProgressUpdate(BaseModel):
    job_id: str | None = None
    thread_id: str | None = None
    step: str | None = None
    status: str  # Stream status or pipeline state name
    label: str | None = None
    progress: float  # Target percentage for the display, 0-100
    message: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
