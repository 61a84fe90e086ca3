"""
In-memory record of the generated website.

The store is shared by the generation pipeline and the update session.
``apply_patch`` is its only mutator, so readers must call ``get_pages()`` /
``get_global_css()`` again after any commit instead of holding on to results.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .logging import get_logger
from .markup import order_page_names
from .models import GeneratedArtifact, PageContent, PageUpdate

logger = get_logger(__name__)


class ArtifactStore:
    def __init__(self) -> None:
        self._artifact: GeneratedArtifact | None = None
        self.version = 0

    def is_empty(self) -> bool:
        return self._artifact is None or not self._artifact.pages

    def get_pages(self) -> dict[str, PageContent]:
        if self._artifact is None:
            return {}
        return {name: page.model_copy() for name, page in self._artifact.pages.items()}

    def get_global_css(self) -> str:
        return self._artifact.global_css if self._artifact is not None else ""

    def get_artifact(self) -> GeneratedArtifact | None:
        return self._artifact.model_copy(deep=True) if self._artifact is not None else None

    def page_names(self) -> list[str]:
        if self._artifact is None:
            return []
        return order_page_names(self._artifact.pages)

    @property
    def folder_path(self) -> str | None:
        return self._artifact.folder_path if self._artifact is not None else None

    @property
    def saved_files(self) -> dict[str, str]:
        return dict(self._artifact.saved_files) if self._artifact is not None else {}

    @property
    def image_urls(self) -> dict[str, Any]:
        return dict(self._artifact.image_urls) if self._artifact is not None else {}

    @property
    def plan(self) -> Any:
        return self._artifact.plan if self._artifact is not None else None

    def apply_patch(
        self,
        pages: Mapping[str, PageContent | PageUpdate] | None = None,
        global_css: str | None = None,
        *,
        artifact: GeneratedArtifact | None = None,
    ) -> None:
        """Mutate the record.

        Args:
            pages: Pages to overwrite by name; pages not named are untouched. A
                page update without css keeps the existing page's css.
            global_css: Replacement global stylesheet, if given.
            artifact: A freshly generated artifact replacing the whole record,
                applied before ``pages`` and ``global_css``.
        """
        if artifact is not None:
            self._artifact = artifact.model_copy(deep=True)
        elif self._artifact is None:
            self._artifact = GeneratedArtifact()

        for name, page in (pages or {}).items():
            existing = self._artifact.pages.get(name)
            css = page.css
            if css is None:
                css = existing.css if existing is not None else ""
            self._artifact.pages[name] = PageContent(html=page.html, css=css)

        if global_css is not None:
            self._artifact.global_css = global_css

        self.version += 1
        logger.debug(
            "Artifact store patched",
            version=self.version,
            replaced=artifact is not None,
            pages=list(pages or {}),
            global_css_changed=global_css is not None,
        )
