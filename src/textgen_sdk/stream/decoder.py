"""Decoding of individual SSE payloads."""

import logging
from enum import Enum
from typing import Final

from pydantic import ValidationError

from ..types import GenerationChunk

logger = logging.getLogger(__name__)

DONE_SENTINEL: Final = "[DONE]"


class Terminate(Enum):
    """Marker returned when the payload is the stream terminator."""

    TERMINATE = DONE_SENTINEL


TERMINATE: Final = Terminate.TERMINATE


def decode_event(data: str) -> GenerationChunk | Terminate | None:
    """Decode one SSE message payload.

    Returns TERMINATE for the [DONE] sentinel, the decoded chunk for a
    well-formed payload, and None for anything else. Malformed payloads are
    dropped rather than raised so a noisy frame cannot fail the stream.
    """
    if data.startswith(DONE_SENTINEL):
        return TERMINATE

    try:
        return GenerationChunk.model_validate_json(data)
    except ValidationError:
        logger.debug("Dropping undecodable SSE payload: %.200s", data)
        return None
