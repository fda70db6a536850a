"""Centralized customized exceptions for cloudbind.

All project-specific exceptions live in this module so that callers have a
single import location:

    from cloudbind.core.exception import ConfigError, AcquisitionError

Configuration errors (`ConfigError` and subclasses) come from credential
resolution, provider binding and connection validation. Connector errors come
from the vendor client adapters.
"""

from __future__ import annotations

__all__ = [
    "ConfigError",
    "MissingCredential",
    "UnknownProvider",
    "InvalidEndpoint",
    "ValidationTimeout",
    "ConnectorError",
    "AcquisitionError",
]


class ConfigError(ValueError):
    """Base error for an unusable provider/credential configuration."""


class MissingCredential(ConfigError):
    """Raised when a mandatory identity or secret is absent after all fallbacks."""


class UnknownProvider(ConfigError):
    """Raised when a provider key is empty, unregistered, or registered for another family."""

    def __init__(self, provider_key: str, known: list[str] | None = None, reason: str | None = None):
        known = sorted(known or [])
        msg = reason or f"Unknown provider: {provider_key!r}. Registered: {known}"
        super().__init__(msg)
        self.provider_key = provider_key
        self.known = known


class InvalidEndpoint(ConfigError):
    """Raised when an endpoint is missing (database) or not URL-shaped."""

    def __init__(self, endpoint: str | None, reason: str):
        super().__init__(f"Invalid endpoint {endpoint!r}: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class ValidationTimeout(ConfigError):
    """Raised when the liveness probe does not finish within the time budget."""

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Liveness probe did not complete within {timeout_seconds}s")
        self.timeout_seconds = timeout_seconds


class ConnectorError(RuntimeError):
    """Base error for connector failures."""


class AcquisitionError(ConnectorError):
    """Raised when a client factory or handle fails. The vendor error is kept as __cause__."""

    def __init__(self, provider_key: str, message: str):
        super().__init__(f"[{provider_key}] {message}")
        self.provider_key = provider_key
