"""Error taxonomy for the aggregation engine.

Every error carries the HTTP status it is surfaced with and a stable code
used in the ``{"error": {...}}`` response envelope.
"""

from __future__ import annotations


class ComexDataError(Exception):
    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class QueryValidationError(ComexDataError):
    """Bad selector or period, rejected before any upstream call."""

    status_code = 400
    code = "validation_error"


class UpstreamRejected(ComexDataError):
    """Upstream answered with ``success: false``."""

    status_code = 503
    code = "upstream_rejected"


class UpstreamUnreachable(ComexDataError):
    """No response from upstream (connection failure or timeout)."""

    status_code = 503
    code = "upstream_unreachable"


class UpstreamHttpError(ComexDataError):
    """Upstream answered with an HTTP error; its status is forwarded."""

    code = "upstream_http_error"

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code
