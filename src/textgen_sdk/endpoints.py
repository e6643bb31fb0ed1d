"""API routes used by the client."""

from enum import Enum


class Endpoint(str, Enum):
    """Routes of the text-generation API, keyed by path."""

    COMPLETIONS = "/v1/completions"
    EDITS = "/v1/edits"

    @property
    def path(self) -> str:
        """Route path relative to the base URL."""
        return self.value

    @property
    def method(self) -> str:
        """HTTP method; every route is a POST."""
        return "POST"

    def url(self, base_url: str) -> str:
        """Full URL of this route on the given host."""
        return f"{base_url.rstrip('/')}{self.path}"
