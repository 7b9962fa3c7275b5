"""
Exception hierarchy for the Live Captions relay.

Every error raised by the relay derives from RelayError so callers can catch
the whole family at the client link boundary.
"""


class RelayError(Exception):
    """Base exception for relay errors."""

    pass


class ConfigError(RelayError):
    """Raised when a session configuration is invalid or rejected upstream."""

    pass


class AlreadyConfiguredError(ConfigError):
    """Raised when a session receives a second configuration."""

    pass


class TransportError(RelayError):
    """Raised when a network link fails."""

    pass


class ConnectError(TransportError):
    """Raised when an upstream connection cannot be established."""

    pass


class ProviderError(RelayError):
    """Raised when the transcription provider reports a failure."""

    pass


class TranscodeError(RelayError):
    """Raised when audio or message payloads cannot be decoded."""

    pass
