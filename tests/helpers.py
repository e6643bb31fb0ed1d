"""Shared payload builders for tests."""

import asyncio
import json
from collections.abc import AsyncIterator

import httpx


def chunk_payload(text: str, finish_reason: str | None = None, id: str = "x") -> str:
    choice: dict = {"index": 0, "text": text}
    if finish_reason is not None:
        choice["finish_reason"] = finish_reason
    return json.dumps({"id": id, "object": "o", "choices": [choice]})


def sse_body(payloads: list[str]) -> str:
    """Format payloads as an SSE response body."""
    return "".join(f"data: {payload}\n\n" for payload in payloads)


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered in the given network reads."""

    def __init__(self, parts: list[bytes]) -> None:
        self._parts = parts

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for part in self._parts:
            yield part


class HeldOpenStream(httpx.AsyncByteStream):
    """Response body that sends its first part, then waits for release."""

    def __init__(self, first: bytes, release: asyncio.Event) -> None:
        self._first = first
        self._release = release

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield self._first
        await self._release.wait()
