"""
Error taxonomy for the crash query layer.

Every fatal error surfaces to the caller as an error response; none of
them is retried here.
"""

from typing import List, Optional

from .schemas import FilterIssue


class CrashMapError(Exception):
    """Base class for all errors raised by the query layer."""


class FilterValidationError(CrashMapError):
    """Raw filter input violated one or more constraints."""

    def __init__(self, issues: List[FilterIssue]):
        self.issues = issues
        fields = ", ".join(issue.field for issue in issues)
        super().__init__(f"Invalid query ({fields})")


class ConfigurationError(CrashMapError):
    """A required upstream identifier is not configured."""


class UpstreamError(CrashMapError):
    """The remote data service failed or refused the query."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class MalformedResponseError(UpstreamError):
    """The remote response did not parse as the expected envelope."""
