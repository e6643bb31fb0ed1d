"""Client for the text-generation API."""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
from pydantic import ValidationError

from .endpoints import Endpoint
from .errors import DecodeError, NoCredentialError, TransportError
from .stream.http import EventSource, error_from_response
from .stream.session import StreamSession
from .types import GenerationChunk, GenerationResult, StreamCompletion, TextGenConfig

logger = logging.getLogger(__name__)


def _build_request_body(**kwargs: Any) -> dict[str, Any]:
    """Build request body, omitting None values."""
    return {k: v for k, v in kwargs.items() if v is not None}


class TextGenClient:
    """Async client for the completions and edits endpoints.

    Every request carries ``Authorization: Bearer <auth_key>``. A missing
    key fails fast with NoCredentialError before any connection is made,
    for one-shot and streaming calls alike.

    Streaming connections opened by this client are tracked until they
    finish; ``aclose()`` shuts down any that are still open.
    """

    def __init__(self, config: TextGenConfig) -> None:
        self.config = config
        self._connections: set[EventSource] = set()

    @property
    def open_connections(self) -> int:
        return len(self._connections)

    def _headers(self, *, streaming: bool = False) -> dict[str, str]:
        if not self.config.auth_key:
            raise NoCredentialError()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.auth_key}",
        }
        if streaming:
            headers["Accept"] = "text/event-stream"
            headers["Cache-Control"] = "no-cache"
        return headers

    async def _send(self, endpoint: Endpoint, body: dict[str, Any]) -> GenerationResult:
        headers = self._headers()
        url = endpoint.url(self.config.base_url)

        try:
            async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                response = await client.request(
                    endpoint.method, url, headers=headers, json=body
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            raise error_from_response(response)

        try:
            return GenerationChunk.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(
                f"Invalid response from {endpoint.path}: {e}",
                raw_text=response.text,
            ) from e

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int = 16,
        stop: list[str] | None = None,
        echo: bool | None = None,
    ) -> GenerationResult:
        """Generate a completion in a single request.

        Args:
            prompt: The text prompt
            model: Model name; defaults to config.model
            max_tokens: Maximum tokens to generate
            stop: Optional stop sequences
            echo: Optionally echo the prompt in the result

        Returns:
            GenerationResult with the generated choices

        Raises:
            NoCredentialError: No API key configured
            TransportError: Network failure or error response
            DecodeError: Response body did not match the expected shape
        """
        body = _build_request_body(
            prompt=prompt,
            model=model or self.config.model,
            max_tokens=max_tokens,
            stream=False,
            stop=stop,
            echo=echo,
        )
        return await self._send(Endpoint.COMPLETIONS, body)

    async def edit(
        self,
        instruction: str,
        *,
        model: str | None = None,
        input: str = "",
    ) -> GenerationResult:
        """Apply an edit instruction to the input text.

        Args:
            instruction: How to edit the input, e.g. "Fix the spelling mistakes"
            model: Model name; defaults to config.edit_model
            input: The text to edit

        Raises:
            NoCredentialError, TransportError, DecodeError: As for complete()
        """
        body = _build_request_body(
            instruction=instruction,
            model=model or self.config.edit_model,
            input=input,
        )
        return await self._send(Endpoint.EDITS, body)

    async def stream_complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        max_tokens: int = 16,
        stop: list[str] | None = None,
        echo: bool | None = None,
        on_chunk: Callable[[GenerationChunk], Any] | None = None,
        on_complete: Callable[[StreamCompletion], Any] | None = None,
    ) -> StreamSession:
        """Stream a completion as it is generated.

        Returns a StreamSession immediately; the connection is read in the
        background. Iterate the session for chunks, or await
        ``session.result()`` for the finish reason and accumulated text.
        Connection failures surface as StreamError from the session and are
        never retried.

        Raises:
            NoCredentialError: No API key configured; no connection is made
        """
        headers = self._headers(streaming=True)
        body = _build_request_body(
            prompt=prompt,
            model=model or self.config.model,
            max_tokens=max_tokens,
            stream=True,
            stop=stop,
            echo=echo,
        )

        session = StreamSession(on_chunk=on_chunk, on_complete=on_complete)
        source = EventSource(
            session,
            Endpoint.COMPLETIONS.url(self.config.base_url),
            method=Endpoint.COMPLETIONS.method,
            headers=headers,
            body=json.dumps(body).encode(),
            timeout=self.config.timeout,
        )
        session.attach(source)

        self._connections.add(source)
        task = source.start()
        task.add_done_callback(lambda _: self._connections.discard(source))
        logger.debug("Opened completion stream (%d open)", len(self._connections))
        return session

    async def aclose(self) -> None:
        """Close every streaming connection that is still open."""
        if self._connections:
            await asyncio.gather(*(source.aclose() for source in list(self._connections)))

    async def __aenter__(self) -> "TextGenClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
