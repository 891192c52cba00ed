# Filename: errors.py

from typing import Optional


class TransientFetchError(Exception):
    """Network failure, timeout or provider-side error. Worth retrying."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitError(TransientFetchError):
    """Provider answered 429 / 503."""


class ValidationSkip(Exception):
    """A single provider record is malformed and must be dropped."""


class ConfigurationError(Exception):
    """A required setting or credential is missing. The bot must not start."""
