"""
Pydantic models for the generation protocol, the conversation that scopes a
generation job, and the generated website artifact.

Field names follow the server's snake_case JSON so payloads validate as-is.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .logging import get_logger
from .markup import extract_css

logger = get_logger(__name__)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# External message tags (LangChain "type" values and OpenAI-style roles)
_ROLE_ALIASES = {
    "user": Role.USER,
    "human": Role.USER,
    "humanmessage": Role.USER,
    "assistant": Role.ASSISTANT,
    "ai": Role.ASSISTANT,
    "aimessage": Role.ASSISTANT,
}


class Message(BaseModel):
    role: Role
    content: str


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Content blocks: [{"type": "text", "text": "..."}, ...]
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return "" if content is None else str(content)


def normalize_message(raw: Any) -> Message | None:
    """Map an externally tagged message into the internal role schema.

    Accepts ``{"role": ...}`` or ``{"type": ...}`` tagging with human/ai or
    user/assistant values. Messages whose tag has no internal role (system,
    tool) return None.
    """
    if isinstance(raw, Message):
        return raw
    if not isinstance(raw, dict):
        logger.debug("Dropping non-object message", message_type=type(raw).__name__)
        return None

    tag = raw.get("role") or raw.get("type") or ""
    role = _ROLE_ALIASES.get(str(tag).lower())
    if role is None:
        logger.debug("Dropping message with unmapped role", tag=tag)
        return None
    return Message(role=role, content=_content_text(raw.get("content")))


class ConversationContext(BaseModel):
    """Server-issued thread ID plus the transcript of one generation job."""

    thread_id: str | None = None
    messages: list[Message] = Field(default_factory=list)

    def reset(self) -> None:
        self.thread_id = None
        self.messages = []

    def add_user(self, content: str) -> Message:
        message = Message(role=Role.USER, content=content)
        self.messages.append(message)
        return message

    def add_assistant(self, content: str) -> Message:
        message = Message(role=Role.ASSISTANT, content=content)
        self.messages.append(message)
        return message

    def absorb(self, thread_id: str | None, raw_messages: list[Any] | None) -> None:
        """Fold an interrupt's thread ID and transcript into this context.

        The thread ID is assigned once per job. The server transcript replaces
        the local one when it is at least as long; otherwise only its assistant
        turns are appended. The transcript never shrinks.
        """
        if thread_id:
            if self.thread_id is None:
                self.thread_id = thread_id
            elif thread_id != self.thread_id:
                logger.warning(
                    "Server issued a different thread id mid-job; keeping the original",
                    thread_id=self.thread_id,
                    received_thread_id=thread_id,
                )

        if not raw_messages:
            return

        incoming = [m for m in (normalize_message(raw) for raw in raw_messages) if m is not None]
        if len(incoming) >= len(self.messages):
            self.messages = incoming
        else:
            self.messages.extend(m for m in incoming if m.role is Role.ASSISTANT)

    def to_wire(self) -> list[dict[str, str]]:
        return [{"role": m.role.value, "content": m.content} for m in self.messages]


class StreamStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    AWAITING_INPUT = "awaiting_input"
    AWAITING_APPROVAL = "awaiting_approval"


class StreamEvent(BaseModel):
    """One record of the generation stream."""

    step: str | None = None
    status: StreamStatus
    progress: float | None = None
    message: str | None = None
    data: dict[str, Any] | None = None
    error: str | None = None
    ready: bool | None = None
    questions: list[str] | None = None
    plan: Any = None
    design_system: Any = None
    thread_id: str | None = None
    messages: list[Any] | None = None

    @property
    def is_interrupt(self) -> bool:
        return self.status in (StreamStatus.AWAITING_INPUT, StreamStatus.AWAITING_APPROVAL)

    @property
    def is_terminal_success(self) -> bool:
        return self.step == "complete" and self.status is StreamStatus.COMPLETED


class PageContent(BaseModel):
    html: str
    css: str = ""

    @field_validator("css", mode="before")
    @classmethod
    def css_none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class PageUpdate(BaseModel):
    """A page as returned by the update endpoint; css may be omitted."""

    html: str
    css: str | None = None


class GeneratedArtifact(BaseModel):
    """The website produced by a completed pipeline run."""

    pages: dict[str, PageContent] = Field(default_factory=dict)
    global_css: str = ""
    image_urls: dict[str, Any] = Field(default_factory=dict)
    plan: Any = None
    folder_path: str | None = None
    saved_files: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> GeneratedArtifact:
        """Build the artifact from the ``data`` of the final stream event.

        When the server sends no global stylesheet, the first page's <style>
        blocks (or failing that its css) stand in for it.
        """
        data = dict(data or {})
        artifact = cls.model_validate(
            {
                "pages": data.get("pages") or {},
                "global_css": data.get("global_css") or "",
                "image_urls": data.get("image_urls") or {},
                "plan": data.get("plan"),
                "folder_path": data.get("folder_path"),
                "saved_files": data.get("saved_files") or {},
            }
        )
        if not artifact.global_css and artifact.pages:
            first = next(iter(artifact.pages.values()))
            artifact.global_css = extract_css(first.html) or first.css
        return artifact


class PendingUpdate(BaseModel):
    """A proposed edit awaiting commit or discard."""

    updated_pages: dict[str, PageUpdate] = Field(default_factory=dict)
    updated_global_css: str | None = None
    changes_summary: str = ""
    # Folder the server already saved this change to, if any
    persisted_to: str | None = None


class GenerationRequest(BaseModel):
    description: str
    template_html: str | None = None
    thread_id: str | None = None
    messages: list[dict[str, str]] | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"description": self.description.strip()}
        if self.template_html:
            payload["template_html"] = self.template_html
        if self.thread_id:
            payload["thread_id"] = self.thread_id
        if self.messages:
            payload["messages"] = self.messages
        return payload


class UpdateRequest(BaseModel):
    pages: dict[str, PageContent]
    global_css: str = ""
    edit_request: str
    folder_path: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "pages": {name: page.model_dump() for name, page in self.pages.items()},
            "global_css": self.global_css or "",
            "edit_request": self.edit_request.strip(),
        }
        if self.folder_path:
            payload["folder_path"] = self.folder_path
        return payload


class ClarificationRequest(BaseModel):
    """The pipeline paused to ask the user questions."""

    questions: list[str] = Field(default_factory=list)
    ready: bool = False
    thread_id: str | None = None
    message: str | None = None


class ApprovalRequest(BaseModel):
    """The pipeline paused for the user to approve its plan."""

    plan: Any = None
    design_system: Any = None
    thread_id: str | None = None
    message: str | None = None


class GenerationComplete(BaseModel):
    artifact: GeneratedArtifact


GenerationOutcome = ClarificationRequest | ApprovalRequest | GenerationComplete
