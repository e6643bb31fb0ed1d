"""Type definitions for the textgen SDK."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict

DEFAULT_BASE_URL = "https://api.openai.com"
DEFAULT_COMPLETION_MODEL = "text-davinci-003"
DEFAULT_EDIT_MODEL = "text-davinci-edit-001"


@dataclass(frozen=True)
class TextGenConfig:
    """Configuration for connecting to the text-generation API."""

    auth_key: str | None
    """Bearer token attached to every request"""

    base_url: str = DEFAULT_BASE_URL
    """Base URL of the API host"""

    timeout: float = 60.0
    """Request timeout in seconds"""

    model: str = DEFAULT_COMPLETION_MODEL
    """Default model for completion requests"""

    edit_model: str = DEFAULT_EDIT_MODEL
    """Default model for edit requests"""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TextGenConfig":
        """Build a config from OPENAI_API_KEY, OPENAI_BASE_URL and OPENAI_TIMEOUT."""
        env = os.environ if environ is None else environ
        return cls(
            auth_key=env.get("OPENAI_API_KEY") or None,
            base_url=env.get("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
            timeout=float(env.get("OPENAI_TIMEOUT") or 60.0),
        )


class FinishReason(str, Enum):
    """Why generation stopped for a choice."""

    STOP = "stop"
    LENGTH = "length"


class Choice(BaseModel):
    """One candidate completion within a response."""

    model_config = ConfigDict(frozen=True)

    index: int
    text: str
    finish_reason: FinishReason | None = None


class GenerationChunk(BaseModel):
    """One decoded response body or SSE payload.

    In streaming mode each chunk carries a fragment of text; in one-shot
    mode the single chunk carries the full generation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    object: str
    model: str | None = None
    created: int | None = None
    choices: list[Choice]

    @property
    def text(self) -> str:
        """Text of the first choice, or an empty string."""
        return self.choices[0].text if self.choices else ""


GenerationResult = GenerationChunk


@dataclass(frozen=True)
class StreamCompletion:
    """Outcome of a stream that reached the [DONE] sentinel."""

    finish_reason: FinishReason | None
    """Finish reason from the first chunk that carried one"""

    text: str
    """Concatenated text of the first choice across all chunks"""

    @property
    def reason(self) -> str:
        """Finish reason value, or "unknown" if none was observed."""
        return self.finish_reason.value if self.finish_reason else "unknown"
