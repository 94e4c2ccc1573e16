"""Exception types raised by the partner package."""

from __future__ import annotations


class PartnerError(Exception):
    """Base exception for all application-specific errors."""


class RequestError(PartnerError):
    """Raised when the completions endpoint rejects or fails a request.

    Carries the HTTP status code (0 for transport-level failures) and
    whatever error text the server returned.
    """

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        message = f"OpenAI error {status_code}"
        if detail:
            message += f" {detail}"
        super().__init__(message)


class ConfigError(PartnerError):
    """Raised when a configuration file cannot be read or validated."""
