"""Python SDK for a hosted text-generation API.

Example:
    config = TextGenConfig.from_env()
    async with TextGenClient(config) as client:
        result = await client.complete("Count to three:")

        session = await client.stream_complete("Count to three:")
        async for chunk in session:
            print(chunk.text, end="")
        print((await session.result()).reason)
"""

from .client import TextGenClient
from .endpoints import Endpoint
from .errors import (
    DecodeError,
    NoCredentialError,
    StreamError,
    TextGenError,
    TransportError,
)
from .stream import EventSource, StreamSession, decode_event
from .types import (
    Choice,
    FinishReason,
    GenerationChunk,
    GenerationResult,
    StreamCompletion,
    TextGenConfig,
)

__version__ = "0.1.0"

__all__ = [
    "Choice",
    "DecodeError",
    "Endpoint",
    "EventSource",
    "FinishReason",
    "GenerationChunk",
    "GenerationResult",
    "NoCredentialError",
    "StreamCompletion",
    "StreamError",
    "StreamSession",
    "TextGenClient",
    "TextGenConfig",
    "TextGenError",
    "TransportError",
    "decode_event",
]
