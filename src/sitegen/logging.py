"""
Structured logging for the sitegen client.

Logs go to stderr so they never mix with command output. Every record
emitted while a generation job runs carries that job's ``job_id`` and, once
the server has issued one, its ``thread_id``.
"""

import logging
import sys
import uuid

import structlog


def resolve_level(log_level: str = "INFO", debug: bool = False) -> int:
    """Map a level name to a stdlib level; unknown names fall back to INFO."""
    if debug:
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO)


def configure_logging(debug: bool = False, log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging on stderr.

    Args:
        debug: Colored console output at DEBUG level instead of JSON lines
        log_level: Level name used when ``debug`` is off
    """
    level = resolve_level(log_level, debug)
    logging.basicConfig(level=level, stream=sys.stderr, format="%(message)s", force=True)

    # httpx logs every request at INFO; the stream client logs its own events
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=True) if debug else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def generate_job_id() -> str:
    """Short client-side identifier for one generation job."""
    return f"job_{uuid.uuid4().hex[:12]}"


def set_job_context(job_id: str | None = None, thread_id: str | None = None) -> str:
    """Bind a job (and optionally its thread) to the current log context.

    Returns the job ID now in effect, generating one when none is given.
    """
    job_id = job_id or generate_job_id()
    structlog.contextvars.bind_contextvars(job_id=job_id)
    if thread_id is not None:
        structlog.contextvars.bind_contextvars(thread_id=thread_id)
    else:
        structlog.contextvars.unbind_contextvars("thread_id")
    return job_id


def bind_thread_id(thread_id: str | None) -> None:
    """Attach the server-issued thread ID to the current job's log context."""
    if thread_id:
        structlog.contextvars.bind_contextvars(thread_id=thread_id)
