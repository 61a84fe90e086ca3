"""
HTTP client for the website generation server.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from types import TracebackType

import httpx
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .config import settings as default_settings
from .errors import ConnectionError, ValidationError
from .logging import get_logger
from .models import GenerationRequest, PendingUpdate, StreamEvent, UpdateRequest
from .transport import StreamTransport, error_detail

logger = get_logger(__name__)


class SitegenAPI:
    """Async client for the generate-website and update-website endpoints.

    Pass ``client`` to share an existing ``httpx.AsyncClient``; otherwise one
    is created and closed with this object.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
        )
        self.transport = StreamTransport(self.client, self.settings)

    async def __aenter__(self) -> SitegenAPI:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def validate_description(self, description: str | None) -> str:
        minimum = self.settings.min_description_length
        if not description or len(description.strip()) < minimum:
            raise ValidationError(f"Description must be at least {minimum} characters long")
        return description.strip()

    def validate_update(self, request: UpdateRequest) -> None:
        if not request.pages:
            raise ValidationError("At least one page must be provided")
        minimum = self.settings.min_instruction_length
        if not request.edit_request or len(request.edit_request.strip()) < minimum:
            raise ValidationError(f"Edit request must be at least {minimum} characters long")

    def stream_generation(self, request: GenerationRequest) -> AsyncIterator[StreamEvent]:
        """Open the generation stream for ``request``.

        Validation happens here, before any connection is attempted.
        """
        self.validate_description(request.description)
        payload = request.to_payload()
        logger.info(
            "Requesting website generation",
            url=self.settings.generate_url,
            follow_up=bool(request.thread_id),
            message_count=len(request.messages or []),
            has_template=bool(request.template_html),
        )
        return self.transport.events("POST", self.settings.generate_url, payload)

    async def update_website(self, request: UpdateRequest) -> PendingUpdate:
        """Send an edit instruction and return the proposed change.

        Raises:
            ValidationError: If no pages are given or the instruction is too short
            ConnectionError: On transport failure, error status, or a malformed body
        """
        self.validate_update(request)
        url = self.settings.update_url
        logger.info(
            "Requesting website update",
            url=url,
            pages=list(request.pages),
            has_css=bool(request.global_css),
            autosave=bool(request.folder_path),
        )

        try:
            response = await self.client.post(
                url,
                json=request.to_payload(),
                timeout=httpx.Timeout(
                    self.settings.request_timeout, connect=self.settings.connect_timeout
                ),
            )
        except httpx.HTTPError as e:
            logger.error("Update request failed", url=url, error=str(e))
            raise ConnectionError(
                f"Connection to generation server failed: {str(e) or type(e).__name__}"
            ) from e

        if not response.is_success:
            detail = error_detail(response)
            logger.error("Update request rejected", status_code=response.status_code, detail=detail)
            raise ConnectionError(detail, status_code=response.status_code)

        try:
            update = PendingUpdate.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            logger.error("Update response could not be decoded", error=str(e))
            raise ConnectionError(
                "Invalid response from update endpoint", status_code=response.status_code
            ) from e

        if request.folder_path:
            update.persisted_to = request.folder_path
        logger.info(
            "Update proposed",
            updated_pages=list(update.updated_pages),
            updated_css=update.updated_global_css is not None,
        )
        return update
