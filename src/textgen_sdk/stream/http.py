"""HTTP/SSE transport for streaming responses.

EventSource opens one streaming HTTP request, splits the body into SSE
events and forwards them to an EventHandler. A failed connection is
reported once and never retried.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import NamedTuple, Protocol

import httpx

from ..errors import TransportError

logger = logging.getLogger(__name__)


class EventHandler(Protocol):
    """Callbacks invoked by EventSource, in this order per connection:
    on_open, then on_message/on_comment for each event, then at most one
    on_error, then on_closed."""

    def on_open(self) -> None: ...

    def on_message(self, event_type: str, data: str) -> None: ...

    def on_comment(self, comment: str) -> None: ...

    def on_error(self, error: Exception) -> None: ...

    def on_closed(self) -> None: ...


class SSEEvent(NamedTuple):
    """One parsed SSE block. Comment blocks have comment set and no data."""

    event_type: str
    data: str | None
    comment: str | None = None


def _normalize_newlines(text: str) -> str:
    # \r\n, \n and a lone \r are all SSE line terminators
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _parse_sse_block(block: str) -> list[SSEEvent]:
    event_type = "message"
    data_lines: list[str] = []
    events: list[SSEEvent] = []

    for line in block.split("\n"):
        if not line:
            continue
        if line.startswith(":"):
            events.append(SSEEvent(event_type, None, line[1:].lstrip(" ")))
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value
        elif field == "data":
            data_lines.append(value)

    if data_lines:
        events.append(SSEEvent(event_type, "\n".join(data_lines)))
    return events


async def parse_sse_stream(response: httpx.Response) -> AsyncIterator[SSEEvent]:
    """Parse SSE events from response stream.

    SSE format: "event: name\\ndata: {...}\\n\\n", where the event line is
    optional and defaults to "message".
    """
    buffer = ""
    pending = ""
    async for chunk in response.aiter_text():
        text = pending + chunk
        # A trailing \r may be the first half of a \r\n split across reads
        if text.endswith("\r"):
            text, pending = text[:-1], "\r"
        else:
            pending = ""
        buffer += _normalize_newlines(text)

        # SSE events are separated by blank lines
        while "\n\n" in buffer:
            block, buffer = buffer.split("\n\n", 1)
            for event in _parse_sse_block(block):
                yield event

    # Process any remaining data in buffer
    buffer += _normalize_newlines(pending)
    if buffer.strip():
        for event in _parse_sse_block(buffer):
            yield event


def error_from_response(response: httpx.Response) -> TransportError:
    """Build an error from a non-success response, handling non-JSON bodies."""
    text = response.text
    message = f"HTTP {response.status_code} {response.reason_phrase}"
    code = None
    try:
        error = response.json().get("error")
    except (ValueError, AttributeError):
        error = None
    if isinstance(error, dict):
        message = error.get("message") or message
        code = error.get("code") or error.get("type")
    elif isinstance(error, str):
        message = error
    return TransportError(message, code, text, status_code=response.status_code)


class EventSource:
    """A single, non-retrying SSE connection."""

    def __init__(
        self,
        handler: EventHandler,
        url: str,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> None:
        self._handler = handler
        self.url = url
        self.method = method
        self._headers = dict(headers or {})
        self._body = body
        self._timeout = timeout
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._closed_notified = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> asyncio.Task[None]:
        """Begin reading the stream on the running event loop."""
        if self._task is not None:
            raise RuntimeError("EventSource already started")
        self._task = asyncio.get_running_loop().create_task(self._run())
        # A task cancelled before its first step never enters _run
        self._task.add_done_callback(self._notify_closed)
        return self._task

    def close(self) -> None:
        """Stop the connection. Safe to call from a handler callback or
        from another thread."""
        if self._closed:
            return
        self._closed = True
        task = self._task
        if task is None or task.done():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not task.get_loop():
            task.get_loop().call_soon_threadsafe(task.cancel)
        elif asyncio.current_task() is not task:
            task.cancel()
        # Otherwise called from inside a callback; the read loop checks _closed.

    async def aclose(self) -> None:
        """Stop the connection and wait until it is released."""
        self.close()
        if self._task is not None:
            await asyncio.wait([self._task])

    async def _run(self) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream(
                    self.method,
                    self.url,
                    headers=self._headers,
                    content=self._body,
                ) as response:
                    if not response.is_success:
                        await response.aread()
                        raise error_from_response(response)

                    logger.debug("SSE connection opened: %s", self.url)
                    self._handler.on_open()

                    async for event in parse_sse_stream(response):
                        if event.comment is not None:
                            self._handler.on_comment(event.comment)
                        elif event.data is not None:
                            self._handler.on_message(event.event_type, event.data)
                        if self._closed:
                            break
        except TransportError as e:
            self._handler.on_error(e)
        except httpx.HTTPError as e:
            self._handler.on_error(
                TransportError(f"Connection to {self.url} failed: {e}")
            )
        except Exception as e:
            # Raised by a handler callback; the handler reports it as the failure
            logger.debug("SSE handler raised: %r", e)
            self._handler.on_error(e)
        finally:
            self._notify_closed()

    def _notify_closed(self, _task: object = None) -> None:
        if self._closed_notified:
            return
        self._closed_notified = True
        self._closed = True
        logger.debug("SSE connection closed: %s", self.url)
        self._handler.on_closed()
