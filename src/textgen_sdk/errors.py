"""Error types for the textgen SDK."""


class TextGenError(Exception):
    """Base error raised by the textgen SDK.

    Attributes:
        code: Machine-readable error code (e.g. "DECODE_ERROR")
        raw_text: Raw response text, when the error came from a response body
    """

    default_code = "TEXTGEN_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        raw_text: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.raw_text = raw_text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {str(self)!r})"


class TransportError(TextGenError):
    """Network failure or non-success HTTP response."""

    default_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        raw_text: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, code, raw_text)
        self.status_code = status_code


class DecodeError(TextGenError):
    """Response body did not match the expected shape."""

    default_code = "DECODE_ERROR"


class NoCredentialError(TextGenError):
    """No API token is configured."""

    default_code = "NO_CREDENTIAL"

    def __init__(
        self,
        message: str = "No API key configured",
        code: str | None = None,
        raw_text: str | None = None,
    ) -> None:
        super().__init__(message, code, raw_text)


class StreamError(TextGenError):
    """Failure observed after a stream was opened.

    The underlying transport error, if any, is chained as ``__cause__``.
    """

    default_code = "STREAM_ERROR"
