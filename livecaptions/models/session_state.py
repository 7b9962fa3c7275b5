"""Session state models for the relay.

This module defines the value types that flow through a relay session:
the lifecycle and mode enumerations, the validated session configuration,
and the immutable audio frames and transcript events exchanged between the
session and its pipeline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from livecaptions.config.constants import AUTO_LANGUAGE


class SessionStatus(Enum):
    """Session lifecycle states.

    Transitions only move forward:
    IDLE -> CONFIGURING -> ACTIVE -> CLOSING -> CLOSED, with IDLE and
    CONFIGURING also allowed to jump straight to CLOSING.
    """

    IDLE = "idle"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class SessionMode(Enum):
    """Transcription mode, fixed for the lifetime of a session."""

    STREAMING = "streaming"
    BATCH = "batch"


@dataclass
class SessionConfig:
    """Configuration supplied by the client's config message."""

    api_key: str
    source_language: Optional[str] = None
    translate_to_english: bool = False

    @property
    def mode(self) -> SessionMode:
        return SessionMode.BATCH if self.translate_to_english else SessionMode.STREAMING

    @property
    def language(self) -> Optional[str]:
        """Language tag to send upstream, or None for automatic detection."""
        if not self.source_language or self.source_language == AUTO_LANGUAGE:
            return None
        return self.source_language

    def to_dict(self) -> Dict[str, Any]:
        # The key is never included
        return {
            "source_language": self.source_language,
            "translate_to_english": self.translate_to_english,
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class AudioFrame:
    """One buffer of PCM16 mono samples, tagged with its arrival order."""

    data: bytes
    sequence: int

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TranscriptEvent:
    """Recognized text relayed back to the client."""

    text: str
    is_final: bool
