"""
Exceptions raised while configuring and calling PagerDuty clients.
"""
from typing import Any, List, Optional


INVALID_CREDENTIALS_GUIDANCE = """

No valid credentials found for PagerDuty provider.
Please see https://www.terraform.io/docs/providers/pagerduty/index.html
for more information on providing credentials for this provider.
"""


class PagerDutyError(Exception):
    """Base class for pagerduty_client errors."""
    pass


class CredentialsError(PagerDutyError):
    """Raised when a required token is missing or rejected by the API.

    The message always ends with INVALID_CREDENTIALS_GUIDANCE, prefixed by
    the underlying cause when there is one.
    """

    def __init__(self, cause: Optional[str] = None):
        self.cause = cause
        if cause:
            message = f"{cause}\n{INVALID_CREDENTIALS_GUIDANCE}"
        else:
            message = INVALID_CREDENTIALS_GUIDANCE
        super().__init__(message)


class ClientConstructionError(PagerDutyError):
    """Raised when the client factory rejects the configuration."""
    pass


class ApiError(PagerDutyError):
    """Non-2xx response from the PagerDuty API."""

    def __init__(
        self,
        method: str,
        url: str,
        status_code: int,
        reason: str = "",
        code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
        message: Optional[str] = None,
    ):
        self.method = method
        self.url = url
        self.status_code = status_code
        self.reason = reason
        self.code = code
        self.errors = errors or []
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        text = f"{self.method} API call to {self.url} failed {self.status_code} {self.reason}".rstrip()
        if self.code is None and not self.errors and not self.message:
            return text
        return (
            f"{text}. Code: {self.code}, Errors: {self.errors}, "
            f"Message: {self.message}"
        )
