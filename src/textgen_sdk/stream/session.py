"""Stream session: turns transport callbacks into an async chunk sequence."""

import asyncio
import logging
import threading
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import StreamError
from ..types import FinishReason, GenerationChunk, StreamCompletion
from .decoder import Terminate, decode_event

logger = logging.getLogger(__name__)


class Connection(Protocol):
    def close(self) -> None: ...

    async def aclose(self) -> None: ...


@dataclass(frozen=True)
class _StreamEnd:
    error: StreamError | None = None


class StreamSession:
    """State and output of one streaming request.

    The session is the EventHandler for exactly one EventSource. Transport
    callbacks are serialized with a lock and may arrive on any thread;
    emitted items are handed to the event loop the session was created on.

    Consume it with ``async for chunk in session``. Iteration ends after
    the [DONE] sentinel and raises StreamError if the connection fails.
    ``await session.result()`` gives the StreamCompletion.

    Important: sessions are single-use and support a single consumer.
    """

    def __init__(
        self,
        *,
        on_chunk: Callable[[GenerationChunk], Any] | None = None,
        on_complete: Callable[[StreamCompletion], Any] | None = None,
    ) -> None:
        self._loop = asyncio.get_running_loop()
        self._lock = threading.RLock()
        self._queue: asyncio.Queue[GenerationChunk | _StreamEnd] = asyncio.Queue()
        self._done = asyncio.Event()
        self._on_chunk = on_chunk
        self._on_complete = on_complete
        self._connection: Connection | None = None
        self._opened = False

        self.accumulated_text = ""
        self.last_chunk: GenerationChunk | None = None
        self.finish_reason: FinishReason | None = None
        self.terminated = False
        self.error: StreamError | None = None

    # -- transport binding -------------------------------------------------

    def attach(self, connection: Connection) -> None:
        """Bind the transport connection this session reads from."""
        with self._lock:
            if self._connection is not None:
                raise RuntimeError("StreamSession is single-use; already attached")
            self._connection = connection

    # -- EventHandler callbacks ----------------------------------------------

    def on_open(self) -> None:
        with self._lock:
            logger.debug("Stream opened")
            if self._opened or self.finish_reason is not None:
                logger.warning(
                    "Stream opened on a session that was already used "
                    "(finish_reason=%s)",
                    self.finish_reason,
                )
            self._opened = True

    def on_message(self, event_type: str, data: str) -> None:
        with self._lock:
            if self.terminated:
                logger.debug("Ignoring %s event after termination", event_type)
                return

            decoded = decode_event(data)
            if decoded is None:
                return
            if isinstance(decoded, Terminate):
                logger.debug("Received [DONE] sentinel")
                self._terminate(None)
                return

            chunk = decoded
            self.last_chunk = chunk
            if chunk.choices:
                first = chunk.choices[0]
                if self.finish_reason is None and first.finish_reason is not None:
                    self.finish_reason = first.finish_reason
                self.accumulated_text += first.text
            self._emit(chunk)

            # State and output are updated before user code can raise
            if self._on_chunk is not None:
                self._on_chunk(chunk)

    def on_comment(self, comment: str) -> None:
        logger.debug("Stream comment: %s", comment)

    def on_error(self, error: Exception) -> None:
        with self._lock:
            if self.terminated:
                return
            if isinstance(error, StreamError):
                stream_error = error
            else:
                stream_error = StreamError(f"Stream failed: {error}")
                stream_error.__cause__ = error
            self._terminate(stream_error)

    def on_closed(self) -> None:
        with self._lock:
            logger.debug("Stream closed")
            if not self.terminated:
                self._terminate(
                    StreamError(
                        "Connection closed before [DONE] was received",
                        "STREAM_INCOMPLETE",
                    )
                )

    # -- consumer API --------------------------------------------------------

    def __aiter__(self) -> AsyncIterator[GenerationChunk]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[GenerationChunk]:
        while True:
            item = await self._queue.get()
            if isinstance(item, _StreamEnd):
                # Leave the marker for any later iterator
                self._queue.put_nowait(item)
                if item.error is not None:
                    raise item.error
                return
            yield item

    async def result(self) -> StreamCompletion:
        """Wait for termination. Resolves after [DONE]; raises StreamError
        if the stream failed or was cancelled."""
        await self._done.wait()
        if self.error is not None:
            raise self.error
        return self.completion()

    def completion(self) -> StreamCompletion:
        """Snapshot of the finish reason and accumulated text so far."""
        return StreamCompletion(
            finish_reason=self.finish_reason,
            text=self.accumulated_text,
        )

    async def aclose(self) -> None:
        """Abandon the stream and release the connection."""
        with self._lock:
            if not self.terminated:
                self.terminated = True
                self.error = StreamError("Stream cancelled", "STREAM_CANCELLED")
                self._emit(_StreamEnd())
                self._deliver(self._done.set)
        if self._connection is not None:
            await self._connection.aclose()

    async def __aenter__(self) -> "StreamSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- internals -----------------------------------------------------------

    def _terminate(self, error: StreamError | None) -> None:
        self.terminated = True
        self.error = error
        self._emit(_StreamEnd(error))
        self._deliver(self._done.set)

        if error is None:
            logger.debug(
                "Stream finished with %s reason",
                self.finish_reason.value if self.finish_reason else "unknown",
            )
        else:
            logger.debug("Stream failed: %r", error)

        if self._connection is not None:
            self._connection.close()
        if error is None and self._on_complete is not None:
            self._on_complete(self.completion())

    def _emit(self, item: GenerationChunk | _StreamEnd) -> None:
        self._deliver(self._queue.put_nowait, item)

    def _deliver(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            callback(*args)
        else:
            self._loop.call_soon_threadsafe(callback, *args)
