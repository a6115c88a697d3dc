"""
Error taxonomy for the Lever API client.

Every failure that crosses the client boundary is one of these classes. Retries are
fully contained in the executor, so a caller only ever sees the final classification.
"""

from typing import Optional

# Upstream error bodies can be whole HTML pages; keep messages readable.
MAX_BODY_CHARS = 500


def truncate_body(body: Optional[str], limit: int = MAX_BODY_CHARS) -> str:
    """Trim an upstream response body for inclusion in an error message."""
    if not body:
        return ""
    body = body.strip()
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


class LeverAPIError(Exception):
    """Base class for all classified Lever client failures."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        attempts: int = 1,
        path: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        self.attempts = attempts
        self.path = path
        super().__init__(message)


class RateLimitExceededError(LeverAPIError):
    """Every attempt against a 429 response was used up."""


class TransientServerError(LeverAPIError):
    """Repeated 5xx responses outlasted the retry budget."""


class ClientRequestError(LeverAPIError):
    """A non-429 4xx response. Never retried."""

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class NetworkError(LeverAPIError):
    """Connection-level failures outlasted the retry budget.

    The original transport exception is chained as ``__cause__``.
    """


class EmptyResourceError(LeverAPIError):
    """A single-resource fetch answered 2xx without an identifiable payload."""


class MalformedResponseError(LeverAPIError):
    """A 2xx response whose body is not the JSON shape the endpoint promises."""


class LeverConfigError(Exception):
    """The client cannot be built from the current configuration (e.g. no API key)."""
