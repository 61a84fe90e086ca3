"""
One user's website-building session: generation, review of edits, export.

Wires the pipeline and the update session to a shared artifact store and to
the optional UI collaborators, which are injected rather than looked up.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType

from .api import SitegenAPI
from .artifacts import ArtifactStore
from .collaborators import TemplateSource, VisualEditor
from .config import Settings
from .export import write_site_archive, write_site_directory
from .logging import get_logger
from .markup import create_full_html, extract_body_content, format_page_name
from .models import GenerationComplete, GenerationOutcome, PageUpdate, PendingUpdate
from .pipeline import PipelineStateMachine
from .progress.animator import ProgressAnimator
from .updates import UpdateSession

logger = get_logger(__name__)


class SiteWorkspace:
    def __init__(
        self,
        api: SitegenAPI | None = None,
        settings: Settings | None = None,
        editor: VisualEditor | None = None,
        template_source: TemplateSource | None = None,
        animator: ProgressAnimator | None = None,
    ) -> None:
        self.api = api or SitegenAPI(settings)
        self.store = ArtifactStore()
        self.editor = editor
        self.pipeline = PipelineStateMachine(
            self.api,
            self.store,
            animator=animator,
            template_source=template_source,
        )
        self.updates = UpdateSession(self.api, self.store, editor=editor)

    async def __aenter__(self) -> SiteWorkspace:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.pipeline.animator.stop()
        await self.api.aclose()

    async def generate(self, description: str) -> GenerationOutcome:
        """Start a new job, discarding any previous conversation."""
        return await self._finish(await self.pipeline.start(description))

    async def answer(self, text: str) -> GenerationOutcome:
        return await self._finish(await self.pipeline.resume(text))

    async def approve(self) -> GenerationOutcome:
        return await self._finish(await self.pipeline.approve())

    async def request_revision(self, feedback: str) -> GenerationOutcome:
        return await self._finish(await self.pipeline.request_revision(feedback))

    async def _finish(self, outcome: GenerationOutcome) -> GenerationOutcome:
        if isinstance(outcome, GenerationComplete) and self.editor is not None:
            await self._load_editor()
        return outcome

    async def _load_editor(self) -> None:
        names = self.store.page_names()
        if not names:
            logger.warning("Generated website has no pages to load")
            return
        pages = self.store.get_pages()
        first = pages[names[0]]
        await self.editor.initialize(
            create_full_html(
                extract_body_content(first.html),
                self.store.get_global_css(),
                title=format_page_name(names[0]),
            )
        )
        self.editor.update_pages(
            {name: PageUpdate(html=pages[name].html, css=pages[name].css) for name in names}
        )
        logger.info("Editor loaded with generated pages", pages=names)

    async def propose_update(self, instruction: str) -> PendingUpdate:
        """Propose an edit against the pages as they currently stand.

        With an editor attached its pages win, since they include manual edits.
        """
        if self.editor is not None:
            pages = self.editor.get_current_pages()
            global_css = self.editor.get_global_css()
        else:
            pages = self.store.get_pages()
            global_css = self.store.get_global_css()
        return await self.updates.propose(pages, global_css, instruction, self.store.folder_path)

    def apply_update(self) -> PendingUpdate:
        return self.updates.commit()

    def reject_update(self) -> PendingUpdate:
        return self.updates.discard()

    def export_archive(self, path: str | Path) -> Path:
        return write_site_archive(self.store, path)

    def export_directory(self, directory: str | Path) -> list[Path]:
        return write_site_directory(self.store, directory)
