"""Streaming module for the textgen SDK.

Streaming responses are read over HTTP/SSE by EventSource, decoded
payload by payload, and surfaced through a StreamSession.
"""

from .decoder import DONE_SENTINEL, TERMINATE, Terminate, decode_event
from .http import EventHandler, EventSource, SSEEvent, parse_sse_stream
from .session import StreamSession

__all__ = [
    "DONE_SENTINEL",
    "TERMINATE",
    "EventHandler",
    "EventSource",
    "SSEEvent",
    "StreamSession",
    "Terminate",
    "decode_event",
    "parse_sse_stream",
]
