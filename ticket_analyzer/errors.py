"""Error taxonomy for the ticket analyzer.

Every failure the pipeline can surface derives from ``TicketAnalyzerError`` so
callers can separate expected operational failures (bad credentials, HTTP
errors, unreachable endpoints, unparseable model output) from programming
errors. The batch runner relies on this to count and skip per-ticket failures
without hiding real bugs.
"""

from typing import Optional


class TicketAnalyzerError(Exception):
    """Base class for all ticket analyzer failures."""


class ConfigurationError(TicketAnalyzerError):
    """Required configuration (credentials, endpoint) is missing or invalid."""


class AuthError(TicketAnalyzerError):
    """The helpdesk API rejected the configured credentials (HTTP 401)."""


class HttpError(TicketAnalyzerError):
    """A remote endpoint answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code of the response.
        body: Response body, truncated by the caller.
    """

    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"HTTP {status_code}: {body}".rstrip(": "))


class NetworkError(TicketAnalyzerError):
    """A request could not be delivered (DNS, connection refused, timeout)."""


class ParseError(TicketAnalyzerError):
    """A response could not be interpreted in the expected shape."""


class OperationInProgressError(TicketAnalyzerError):
    """A fetch or classification batch is already running on this analyzer."""
