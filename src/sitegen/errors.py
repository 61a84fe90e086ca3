"""
Exception hierarchy for the sitegen client.

Every error carries a message suitable for showing to the user as-is.
"""


class SitegenError(Exception):
    """Base exception for sitegen operations."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SitegenError):
    """Raised for malformed caller input, before any network call."""

    pass


class ConnectionError(SitegenError):  # noqa: A001
    """Transport failure, or a non-success status before streaming began."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        streaming_started: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.streaming_started = streaming_started


class GenerationFailed(SitegenError):
    """The pipeline reported failure, or the stream ended before completion."""

    def __init__(self, reason: str, step: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.step = step


class ConcurrentOperation(SitegenError):
    """A generation was requested while another one is still in flight."""

    pass


class Busy(ConcurrentOperation):
    """An update proposal was requested while another one is outstanding."""

    pass


class NoPendingUpdate(SitegenError):
    """Commit or discard was requested with no pending update."""

    pass


class InvalidState(SitegenError):
    """The operation is not valid in the pipeline's current state."""

    pass


class Cancelled(SitegenError):
    """The in-flight generation was abandoned by the caller."""

    pass
