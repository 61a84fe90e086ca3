"""
Client-side state machine for one website generation job.

A job runs as one or more streamed calls. The server may pause the pipeline
to ask clarifying questions or to get its plan approved; the call then ends
and the job continues with ``resume()``, which sends the answer together with
the preserved thread id and transcript.

    IDLE -> GENERATING -> AWAITING_CLARIFICATION | AWAITING_APPROVAL
         -> GENERATING (resumed) -> COMPLETE
    GENERATING -> FAILED
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import aclosing
from enum import Enum

from pydantic import ValidationError as PydanticValidationError

from .api import SitegenAPI
from .artifacts import ArtifactStore
from .collaborators import TemplateSource
from .errors import (
    Cancelled,
    ConcurrentOperation,
    ConnectionError,
    GenerationFailed,
    InvalidState,
    ValidationError,
)
from .logging import bind_thread_id, get_logger, set_job_context
from .models import (
    ApprovalRequest,
    ClarificationRequest,
    ConversationContext,
    GeneratedArtifact,
    GenerationComplete,
    GenerationOutcome,
    GenerationRequest,
    StreamEvent,
    StreamStatus,
)
from .progress.animator import ProgressAnimator
from .progress.models import ProgressUpdate
from .progress.publisher import ProgressCallback, ProgressPublisher
from .stages import INITIAL_PROGRESS, get_stage

logger = get_logger(__name__)

APPROVE_MESSAGE = "Approve"


class PipelineState(Enum):
    IDLE = "idle"
    GENERATING = "generating"
    AWAITING_CLARIFICATION = "awaiting_clarification"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETE = "complete"
    FAILED = "failed"


AWAITING_STATES = (PipelineState.AWAITING_CLARIFICATION, PipelineState.AWAITING_APPROVAL)


class PipelineStateMachine:
    """Drives generation calls and interprets their event streams.

    At most one call is in flight per instance.
    """

    def __init__(
        self,
        api: SitegenAPI,
        store: ArtifactStore,
        animator: ProgressAnimator | None = None,
        publisher: ProgressPublisher | None = None,
        template_source: TemplateSource | None = None,
    ) -> None:
        self.api = api
        self.store = store
        self.animator = animator or ProgressAnimator(settings=api.settings)
        self.publisher = publisher or ProgressPublisher()
        self.template_source = template_source

        self.state = PipelineState.IDLE
        self.context = ConversationContext()
        self.description: str | None = None
        self.job_id: str | None = None
        self.current_step: str | None = None
        self.pending_interrupt: ClarificationRequest | ApprovalRequest | None = None
        self.last_error: GenerationFailed | None = None

        self._consumer: asyncio.Task[GenerationOutcome] | None = None
        self._cancel_requested = False

    @property
    def is_generating(self) -> bool:
        return self.state is PipelineState.GENERATING

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Observe stage transitions; returns an unsubscribe function."""
        return self.publisher.subscribe(callback)

    async def start(
        self,
        description: str,
        context: ConversationContext | None = None,
        is_follow_up: bool = False,
    ) -> GenerationOutcome:
        """Run one generation call until it completes or is interrupted.

        Returns a ``GenerationComplete`` or the interrupt payload
        (``ClarificationRequest`` / ``ApprovalRequest``).

        Raises:
            ConcurrentOperation: If a call is already in flight
            ValidationError: If the description is too short
            ConnectionError: If the server could not be reached or rejected the
                request; the pipeline is left as it was
            GenerationFailed: If the server reported failure or the stream
                ended early
            Cancelled: If ``cancel()`` abandoned the call
        """
        if self.state is PipelineState.GENERATING:
            raise ConcurrentOperation("A website generation is already in progress")

        description = self.api.validate_description(description)

        previous_state = self.state
        previous_context = self.context.model_copy(deep=True)
        previous_job = (self.description, self.job_id)
        previous_interrupt = self.pending_interrupt

        if context is not None:
            self.context = context
        if not is_follow_up:
            self.context.reset()
            self.context.add_user(description)
            self.job_id = set_job_context()
            self.animator.reset()
            self.animator.animate_to(INITIAL_PROGRESS)
        else:
            set_job_context(self.job_id, self.context.thread_id)
        self.description = description

        self.state = PipelineState.GENERATING
        self.pending_interrupt = None
        self.last_error = None
        self._cancel_requested = False

        request = GenerationRequest(
            description=description,
            template_html=self._template_html(),
            thread_id=self.context.thread_id,
            messages=self.context.to_wire(),
        )
        logger.info(
            "Generation call started",
            follow_up=is_follow_up,
            message_count=len(self.context.messages),
        )

        self._consumer = asyncio.ensure_future(self._consume(request))
        try:
            return await self._consumer
        except asyncio.CancelledError:
            # cancel(), or the caller's own task (e.g. a wait_for timeout)
            if not self._consumer.done():
                self._consumer.cancel()
            self.animator.stop()
            self._discard_job()
            self.state = PipelineState.IDLE
            if not self._cancel_requested:
                logger.info("Generation abandoned by the calling task")
                raise
            logger.info("Generation cancelled by caller")
            raise Cancelled("Website generation was cancelled") from None
        except ConnectionError as e:
            if e.streaming_started:
                raise self._fail(str(e), self.current_step) from e
            # Nothing reached the pipeline: restore the pre-call state
            self.animator.stop()
            self.state = previous_state
            self.context = previous_context
            self.description, self.job_id = previous_job
            self.pending_interrupt = previous_interrupt
            raise
        except Exception as e:
            if self.state is not PipelineState.GENERATING:
                raise
            logger.exception("Unexpected error while consuming the generation stream")
            raise self._fail(
                f"Website generation failed unexpectedly: {e}", self.current_step
            ) from e
        finally:
            self._consumer = None

    async def resume(self, answer: str) -> GenerationOutcome:
        """Continue an interrupted job with the user's answer or decision."""
        if self.state is PipelineState.GENERATING:
            raise ConcurrentOperation("A website generation is already in progress")
        if self.state not in AWAITING_STATES or self.description is None:
            raise InvalidState("There is no paused generation to continue")
        if not answer or not answer.strip():
            raise ValidationError("An answer is required to continue the generation")

        context = self.context.model_copy(deep=True)
        context.add_user(answer.strip())
        return await self.start(self.description, context, is_follow_up=True)

    async def approve(self) -> GenerationOutcome:
        """Approve the plan the pipeline is waiting on."""
        if self.state is not PipelineState.AWAITING_APPROVAL:
            raise InvalidState("There is no plan waiting for approval")
        return await self.resume(APPROVE_MESSAGE)

    async def request_revision(self, feedback: str) -> GenerationOutcome:
        """Ask the pipeline to revise its plan instead of approving it."""
        if self.state is not PipelineState.AWAITING_APPROVAL:
            raise InvalidState("There is no plan waiting for approval")
        return await self.resume(feedback)

    def cancel(self) -> bool:
        """Abandon the in-flight call, closing its connection.

        Returns False when nothing was in flight.
        """
        if self._consumer is None or self._consumer.done():
            return False
        self._cancel_requested = True
        self._consumer.cancel()
        return True

    def _template_html(self) -> str | None:
        if self.template_source is None or not self.template_source.has_selected_template():
            return None
        logger.info("Using selected template as styling reference")
        return self.template_source.get_selected_template_html()

    async def _consume(self, request: GenerationRequest) -> GenerationOutcome:
        # Closing the stream also drops the connection when an interrupt ends the call early
        async with aclosing(self.api.stream_generation(request)) as events:
            async for event in events:
                outcome = await self._handle_event(event)
                if outcome is not None:
                    return outcome

        raise self._fail(
            "The generation stream ended before the website was complete",
            self.current_step,
        )

    async def _handle_event(self, event: StreamEvent) -> GenerationOutcome | None:
        logger.debug("Stream event", step=event.step, status=event.status.value)
        if event.step:
            self.current_step = event.step

        if event.status is StreamStatus.FAILED:
            raise self._fail(event.error or event.message or "Website generation failed", event.step)

        if event.is_interrupt:
            return await self._interrupt(event)

        stage = get_stage(event.step)

        if event.is_terminal_success:
            try:
                artifact = GeneratedArtifact.from_payload(event.data)
            except PydanticValidationError as e:
                raise self._fail("Invalid website data in completion event", event.step) from e
            self.store.apply_patch(artifact=artifact)
            self.animator.animate_to(100, fast=True)
            self.state = PipelineState.COMPLETE
            await self._publish(event, 100, stage.label if stage else None)
            logger.info(
                "Website generation complete",
                pages=list(artifact.pages),
                folder_path=artifact.folder_path,
            )
            self._discard_job()
            return GenerationComplete(artifact=artifact)

        if stage is None:
            logger.debug("Ignoring event for unknown step", step=event.step)
            return None

        if event.status is StreamStatus.IN_PROGRESS:
            self.animator.animate_to(stage.start)
            await self._publish(event, stage.start, stage.label)
        elif event.status is StreamStatus.COMPLETED:
            self.animator.animate_to(stage.end)
            await self._publish(event, stage.end, stage.label)
        return None

    async def _interrupt(self, event: StreamEvent) -> GenerationOutcome:
        self.context.absorb(event.thread_id, event.messages)
        bind_thread_id(self.context.thread_id)

        interrupt: ClarificationRequest | ApprovalRequest
        if event.status is StreamStatus.AWAITING_INPUT:
            interrupt = ClarificationRequest(
                questions=event.questions or [],
                ready=bool(event.ready),
                thread_id=self.context.thread_id,
                message=event.message,
            )
            if not event.messages:
                self.context.add_assistant(event.message or "\n".join(interrupt.questions))
            self.state = PipelineState.AWAITING_CLARIFICATION
        else:
            interrupt = ApprovalRequest(
                plan=event.plan,
                design_system=event.design_system,
                thread_id=self.context.thread_id,
                message=event.message,
            )
            if not event.messages:
                self.context.add_assistant(event.message or "Please review the proposed plan.")
            self.state = PipelineState.AWAITING_APPROVAL

        self.pending_interrupt = interrupt
        await self._publish(event, self.animator.target, None)
        logger.info(
            "Generation paused for user input",
            state=self.state.value,
            question_count=len(event.questions or []),
        )
        return interrupt

    def _fail(self, reason: str, step: str | None) -> GenerationFailed:
        self.animator.stop()
        self.state = PipelineState.FAILED
        self._discard_job()
        error = GenerationFailed(reason, step=step)
        self.last_error = error
        logger.error("Website generation failed", reason=reason, step=step)
        return error

    def _discard_job(self) -> None:
        self.context = ConversationContext()
        self.pending_interrupt = None

    async def _publish(self, event: StreamEvent, progress: float, label: str | None) -> None:
        await self.publisher.publish(
            ProgressUpdate(
                job_id=self.job_id,
                thread_id=self.context.thread_id,
                step=event.step,
                status=event.status.value,
                label=label,
                progress=progress,
                message=event.message or event.error,
            )
        )
