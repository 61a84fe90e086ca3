"""
Tests for protocol and artifact models.
"""

import pytest
from pydantic import ValidationError

from sitegen.models import (
    ConversationContext,
    GeneratedArtifact,
    GenerationRequest,
    Message,
    PageContent,
    PendingUpdate,
    Role,
    StreamEvent,
    StreamStatus,
    UpdateRequest,
    normalize_message,
)


class TestNormalizeMessage:
    """Tests for mapping external message tagging to internal roles."""

    @pytest.mark.parametrize(
        "raw,role",
        [
            ({"role": "user", "content": "hi"}, Role.USER),
            ({"role": "assistant", "content": "hi"}, Role.ASSISTANT),
            ({"type": "human", "content": "hi"}, Role.USER),
            ({"type": "ai", "content": "hi"}, Role.ASSISTANT),
            ({"role": "AI", "content": "hi"}, Role.ASSISTANT),
        ],
    )
    def test_known_tags(self, raw, role):
        message = normalize_message(raw)
        assert message == Message(role=role, content="hi")

    def test_content_blocks_are_joined(self):
        raw = {"type": "ai", "content": [{"type": "text", "text": "What is "}, "your budget?"]}
        assert normalize_message(raw).content == "What is your budget?"

    def test_unmapped_roles_are_dropped(self):
        assert normalize_message({"role": "system", "content": "rules"}) is None
        assert normalize_message({"type": "tool", "content": "{}"}) is None
        assert normalize_message("just a string") is None


class TestConversationContext:
    """Tests for ConversationContext bookkeeping."""

    def test_reset(self):
        context = ConversationContext(thread_id="t1")
        context.add_user("hello")

        context.reset()

        assert context.thread_id is None
        assert context.messages == []

    def test_absorb_assigns_thread_and_takes_longer_transcript(self):
        context = ConversationContext()
        context.add_user("A bakery in Lisbon")

        context.absorb(
            "t1",
            [
                {"type": "human", "content": "A bakery in Lisbon"},
                {"type": "ai", "content": "What is your price range?"},
            ],
        )

        assert context.thread_id == "t1"
        assert [m.role for m in context.messages] == [Role.USER, Role.ASSISTANT]
        assert context.messages[1].content == "What is your price range?"

    def test_absorb_keeps_original_thread_id(self):
        context = ConversationContext(thread_id="t1")

        context.absorb("t2", None)

        assert context.thread_id == "t1"

    def test_absorb_shorter_transcript_appends_assistant_turns(self):
        context = ConversationContext()
        context.add_user("one")
        context.add_user("two")
        context.add_user("three")

        context.absorb("t1", [{"role": "user", "content": "one"}, {"role": "assistant", "content": "q?"}])

        assert len(context.messages) == 4
        assert context.messages[-1] == Message(role=Role.ASSISTANT, content="q?")

    def test_to_wire(self):
        context = ConversationContext()
        context.add_user("hi")
        context.add_assistant("hello")

        assert context.to_wire() == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]


class TestStreamEvent:
    """Tests for StreamEvent parsing."""

    def test_minimal_event(self):
        event = StreamEvent.model_validate({"step": "planning", "status": "in_progress"})
        assert event.status is StreamStatus.IN_PROGRESS
        assert not event.is_interrupt
        assert not event.is_terminal_success

    def test_interrupt_event(self):
        event = StreamEvent.model_validate(
            {
                "status": "awaiting_input",
                "ready": False,
                "questions": ["What is your price range?"],
                "thread_id": "t1",
                "messages": [],
            }
        )
        assert event.is_interrupt
        assert event.questions == ["What is your price range?"]

    def test_terminal_success(self):
        event = StreamEvent.model_validate({"step": "complete", "status": "completed", "data": {}})
        assert event.is_terminal_success

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            StreamEvent.model_validate({"step": "planning", "status": "paused"})

    def test_extra_fields_ignored(self):
        event = StreamEvent.model_validate({"status": "completed", "timestamp": "2024-01-01"})
        assert event.status is StreamStatus.COMPLETED


class TestGeneratedArtifact:
    """Tests for building the artifact from the final event payload."""

    def test_from_payload(self):
        artifact = GeneratedArtifact.from_payload(
            {
                "pages": {"home": {"html": "<h1>Hi</h1>", "css": "h1{}"}},
                "global_css": "body{}",
                "image_urls": {"hero": "https://img/hero.png"},
                "plan": {"pages": ["home"]},
                "folder_path": "output/bakery",
                "saved_files": {"home": "index.html"},
            }
        )

        assert artifact.pages["home"] == PageContent(html="<h1>Hi</h1>", css="h1{}")
        assert artifact.global_css == "body{}"
        assert artifact.image_urls == {"hero": "https://img/hero.png"}
        assert artifact.folder_path == "output/bakery"
        assert artifact.saved_files == {"home": "index.html"}

    def test_global_css_from_first_page_styles(self):
        artifact = GeneratedArtifact.from_payload(
            {"pages": {"home": {"html": "<html><head><style>body{margin:0}</style></head></html>"}}}
        )
        assert artifact.global_css == "body{margin:0}"

    def test_global_css_falls_back_to_page_css(self):
        artifact = GeneratedArtifact.from_payload({"pages": {"home": {"html": "<p>x</p>", "css": "p{}"}}})
        assert artifact.global_css == "p{}"

    def test_null_page_css(self):
        artifact = GeneratedArtifact.from_payload({"pages": {"home": {"html": "<p>x</p>", "css": None}}})
        assert artifact.pages["home"].css == ""

    def test_empty_payload(self):
        artifact = GeneratedArtifact.from_payload(None)
        assert artifact.pages == {}
        assert artifact.folder_path is None


class TestRequests:
    """Tests for request payload construction."""

    def test_generation_request_minimal(self):
        request = GenerationRequest(description="  A bakery in Lisbon  ")
        assert request.to_payload() == {"description": "A bakery in Lisbon"}

    def test_generation_request_follow_up(self):
        request = GenerationRequest(
            description="A bakery in Lisbon",
            template_html="<html></html>",
            thread_id="t1",
            messages=[{"role": "user", "content": "hi"}],
        )
        assert request.to_payload() == {
            "description": "A bakery in Lisbon",
            "template_html": "<html></html>",
            "thread_id": "t1",
            "messages": [{"role": "user", "content": "hi"}],
        }

    def test_update_request_payload(self):
        request = UpdateRequest(
            pages={"home": {"html": "<h1>Old</h1>"}},
            global_css="",
            edit_request=" make the heading bold ",
            folder_path="output/site",
        )
        assert request.to_payload() == {
            "pages": {"home": {"html": "<h1>Old</h1>", "css": ""}},
            "global_css": "",
            "edit_request": "make the heading bold",
            "folder_path": "output/site",
        }

    def test_pending_update_allows_missing_css(self):
        update = PendingUpdate.model_validate(
            {"updated_pages": {"home": {"html": "<h1>New</h1>"}}, "changes_summary": "x"}
        )
        assert update.updated_pages["home"].css is None
        assert update.updated_global_css is None
