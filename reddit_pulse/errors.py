from __future__ import annotations


class PulseError(Exception):
    """Base error. ``str(exc)`` is safe to show to API clients."""


class ConfigError(PulseError):
    pass


class FetchError(PulseError):
    pass


class AuthError(FetchError):
    pass


class MissingCredentialsError(ConfigError, AuthError):
    pass


class EnrichmentDegraded(PulseError):
    """Completion provider failed; callers fall back to locally built analyses."""
