"""
Natural-language edits to a generated website, reviewed before they land.

``propose`` asks the server for a change and holds it as pending; nothing in
the artifact store moves until ``commit``. ``discard`` drops the proposal.

When a folder path is sent with the proposal the server saves the edited
pages during that same call. Discarding such a proposal only rolls back the
client's view; the saved files keep the change, and the discarded update
reports where via ``persisted_to``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import ValidationError as PydanticValidationError

from .api import SitegenAPI
from .artifacts import ArtifactStore
from .collaborators import VisualEditor
from .errors import Busy, NoPendingUpdate, ValidationError
from .logging import get_logger
from .models import PageContent, PendingUpdate, UpdateRequest

logger = get_logger(__name__)


@dataclass
class UpdateRecord:
    """An update that was committed to the artifact store."""

    changes_summary: str
    update: PendingUpdate
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class UpdateSession:
    def __init__(
        self,
        api: SitegenAPI,
        store: ArtifactStore,
        editor: VisualEditor | None = None,
    ) -> None:
        self.api = api
        self.store = store
        self.editor = editor
        self.history: list[UpdateRecord] = []
        self._pending: PendingUpdate | None = None
        self._in_flight = False

    @property
    def pending(self) -> PendingUpdate | None:
        return self._pending

    @property
    def is_busy(self) -> bool:
        return self._in_flight or self._pending is not None

    async def propose(
        self,
        current_pages: Mapping[str, PageContent | dict],
        current_global_css: str | None,
        instruction: str,
        folder_path: str | None = None,
    ) -> PendingUpdate:
        """Request an edit and hold the result as the pending update.

        Raises:
            Busy: If a proposal is in flight or a pending update is unresolved
            ValidationError: If the instruction is too short or there are no pages
            ConnectionError: If the update endpoint fails
        """
        if self._in_flight:
            raise Busy("An update is already being prepared")
        if self._pending is not None:
            raise Busy("Apply or reject the pending changes before requesting new ones")

        if folder_path and not self.api.settings.autosave_on_propose:
            logger.debug("Autosave disabled; not sending folder path", folder_path=folder_path)
            folder_path = None

        try:
            request = UpdateRequest(
                pages=dict(current_pages or {}),
                global_css=current_global_css or "",
                edit_request=instruction or "",
                folder_path=folder_path,
            )
        except PydanticValidationError as e:
            raise ValidationError("Pages must map names to {html, css}") from e
        self.api.validate_update(request)

        self._in_flight = True
        try:
            update = await self.api.update_website(request)
        finally:
            self._in_flight = False

        self._pending = update
        logger.info(
            "Update pending review",
            pages=list(update.updated_pages),
            summary=update.changes_summary,
            persisted_to=update.persisted_to,
        )
        return update

    def commit(self) -> PendingUpdate:
        """Apply the pending update to the editor and the artifact store."""
        if self._pending is None:
            raise NoPendingUpdate("There are no pending changes to apply")
        update = self._pending
        # An empty stylesheet in the response means "unchanged"
        global_css = update.updated_global_css or None

        if self.editor is not None:
            if global_css is not None:
                self.editor.update_global_css(global_css)
            if update.updated_pages:
                self.editor.update_pages(dict(update.updated_pages))

        self.store.apply_patch(update.updated_pages, global_css)
        self.history.append(UpdateRecord(changes_summary=update.changes_summary, update=update))
        self._pending = None

        logger.info(
            "Update applied",
            pages=list(update.updated_pages),
            global_css_changed=global_css is not None,
            history_length=len(self.history),
        )
        return update

    def discard(self) -> PendingUpdate:
        """Drop the pending update without touching the artifact store."""
        if self._pending is None:
            raise NoPendingUpdate("There are no pending changes to reject")
        update, self._pending = self._pending, None

        if update.persisted_to:
            logger.warning(
                "Rejected update was already saved by the server",
                folder_path=update.persisted_to,
                pages=list(update.updated_pages),
            )
        else:
            logger.info("Update rejected", pages=list(update.updated_pages))
        return update
