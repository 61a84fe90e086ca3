"""
Interfaces of the UI-side collaborators the client works with.
"""

from collections.abc import Awaitable
from pathlib import Path
from typing import Protocol, runtime_checkable

from .models import PageContent, PageUpdate


@runtime_checkable
class VisualEditor(Protocol):
    """A page editor that can load, extract and replace HTML+CSS.

    The editor itself is opaque; only these calls are used.
    """

    def get_current_pages(self) -> dict[str, PageContent]:
        """Return every page with the user's latest manual edits."""
        ...

    def get_global_css(self) -> str:
        ...

    def update_pages(self, pages: dict[str, PageUpdate]) -> None:
        """Replace the named pages, leaving the others alone."""
        ...

    def update_global_css(self, css: str) -> None:
        ...

    def initialize(self, html: str) -> Awaitable[None]:
        """Load a complete document into a fresh editor."""
        ...


@runtime_checkable
class TemplateSource(Protocol):
    """Supplies an optional template page used as a styling reference."""

    def has_selected_template(self) -> bool:
        ...

    def get_selected_template_html(self) -> str | None:
        ...


class FileTemplateSource:
    """Template read from an HTML file on disk."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else None

    def select(self, path: str | Path | None) -> None:
        self.path = Path(path) if path is not None else None

    def has_selected_template(self) -> bool:
        return self.path is not None and self.path.is_file()

    def get_selected_template_html(self) -> str | None:
        if not self.has_selected_template():
            return None
        return self.path.read_text(encoding="utf-8")
