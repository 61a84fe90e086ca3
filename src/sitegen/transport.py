"""
Streaming transport for the generation protocol.

The server answers a generation request with newline-delimited records, each
prefixed with ``data: `` and carrying one JSON object. Records may be split
across network chunks at any byte, including inside a multi-byte character.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .config import settings as default_settings
from .errors import ConnectionError
from .logging import get_logger
from .models import StreamEvent

logger = get_logger(__name__)

RECORD_PREFIX = "data: "


class RecordDecoder:
    """Incremental decoder turning raw stream chunks into parsed records.

    Partial trailing lines are buffered until the rest of the line arrives.
    Malformed records are logged and skipped without interrupting the stream.
    """

    def __init__(self, record_type: type[BaseModel] = StreamEvent) -> None:
        self.record_type = record_type
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.skipped = 0

    def feed(self, chunk: bytes | str) -> list[Any]:
        """Consume one chunk and return the records completed by it."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        lines = self._buffer.split("\n")
        # The last element is the (possibly empty) incomplete line
        self._buffer = lines.pop()

        records = []
        for line in lines:
            record = self._parse_line(line.rstrip("\r"))
            if record is not None:
                records.append(record)
        return records

    def flush(self) -> list[Any]:
        """Parse whatever remains once the transport signals end-of-stream."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer.strip(), ""
        if not remainder.startswith(RECORD_PREFIX):
            if remainder:
                logger.debug("Discarding trailing non-record data", length=len(remainder))
            return []
        record = self._parse_line(remainder)
        return [record] if record is not None else []

    def _parse_line(self, line: str) -> Any | None:
        if not line.startswith(RECORD_PREFIX):
            # Blank separators and ": keep-alive" comments
            return None
        payload = line[len(RECORD_PREFIX) :]
        try:
            return self.record_type.model_validate(json.loads(payload))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            self.skipped += 1
            logger.warning(
                "Skipping malformed stream record",
                error=str(e),
                record_preview=payload[:100],
            )
            return None


def error_detail(response: httpx.Response) -> str:
    """Extract the server's error message from a failed response."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        body = None

    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if value:
                return json.dumps(value)
    return f"HTTP error! status: {response.status_code}"


class StreamTransport:
    """Opens a streaming HTTP request and yields decoded records in order.

    The returned sequence is lazy, sequential and cannot be restarted.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings | None = None,
        record_type: type[BaseModel] = StreamEvent,
    ) -> None:
        self.client = client
        self.settings = settings or default_settings
        self.record_type = record_type

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.settings.connect_timeout,
            read=self.settings.stream_idle_timeout,
            write=self.settings.connect_timeout,
            pool=self.settings.connect_timeout,
        )

    async def events(
        self, method: str, url: str, body: dict[str, Any] | None = None
    ) -> AsyncIterator[Any]:
        """Yield records from the stream.

        Raises:
            ConnectionError: If the connection fails, the server rejects the
                request, or the stream breaks off mid-way (``streaming_started``
                tells the last two apart).
        """
        streaming_started = False
        decoder = RecordDecoder(self.record_type)
        try:
            async with self.client.stream(
                method,
                url,
                json=body,
                headers={"Accept": "text/event-stream"},
                timeout=self._timeout(),
            ) as response:
                if not response.is_success:
                    await response.aread()
                    detail = error_detail(response)
                    logger.error(
                        "Stream request rejected",
                        url=url,
                        status_code=response.status_code,
                        detail=detail,
                    )
                    raise ConnectionError(detail, status_code=response.status_code)

                streaming_started = True
                logger.info("Stream opened", url=url, status_code=response.status_code)

                async for chunk in response.aiter_bytes():
                    for record in decoder.feed(chunk):
                        yield record

            for record in decoder.flush():
                yield record

            logger.info("Stream closed", url=url, skipped_records=decoder.skipped)
        except httpx.HTTPError as e:
            logger.error(
                "Stream transport failed",
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                streaming_started=streaming_started,
            )
            message = str(e) or type(e).__name__
            raise ConnectionError(
                f"Connection to generation server failed: {message}",
                streaming_started=streaming_started,
            ) from e
