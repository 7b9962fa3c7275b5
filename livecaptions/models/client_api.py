"""
Pydantic models for the client channel message schemas.

The capture client and the relay exchange JSON text frames over a single
WebSocket. Inbound frames carry the session configuration and audio; outbound
frames carry transcripts, errors and link status.

Inbound:
    {"type": "config", "apiKey": "...", "sourceLanguage": "en", "translateToEnglish": false}
    {"type": "audio", "data": "<base64 PCM16>"}

Outbound:
    {"type": "transcription", "text": "...", "isFinal": true}
    {"type": "error", "error": "..."}
    {"type": "status", "status": "connected", "detail": "..."}
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientEventType(str, Enum):
    """Message types on the client channel."""

    # Inbound
    CONFIG = "config"
    AUDIO = "audio"

    # Outbound
    TRANSCRIPTION = "transcription"
    ERROR = "error"
    STATUS = "status"


class LinkStatus(str, Enum):
    """Link status values reported to the client UI."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class BaseMessage(BaseModel):
    """Base model for all client channel messages.

    Unknown fields are ignored so older clients keep working.
    """

    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., description="Message type identifier")


# Inbound messages
class ConfigMessage(BaseMessage):
    """Session configuration, sent once before any audio.

    Example:
    {
      "type": "config",
      "apiKey": "sk-...",
      "sourceLanguage": "en",
      "translateToEnglish": false
    }
    """

    type: Literal[ClientEventType.CONFIG]
    apiKey: str = Field("", description="OpenAI API key used for this session")
    sourceLanguage: Optional[str] = Field(
        None, description="Language tag, absent or 'auto' for detection"
    )
    translateToEnglish: Optional[bool] = Field(
        False, description="Batch translation to English instead of streaming"
    )

    @field_validator("translateToEnglish")
    def default_translate_flag(cls, v):
        """Treat an explicit null as false."""
        return bool(v)


class AudioMessage(BaseMessage):
    """One frame of base64-encoded PCM16 audio."""

    type: Literal[ClientEventType.AUDIO]
    data: str = Field(..., description="Base64-encoded PCM16 mono audio at 24kHz")


# Outbound messages
class TranscriptionMessage(BaseMessage):
    type: Literal[ClientEventType.TRANSCRIPTION] = ClientEventType.TRANSCRIPTION
    text: str
    isFinal: bool


class ErrorMessage(BaseMessage):
    type: Literal[ClientEventType.ERROR] = ClientEventType.ERROR
    error: str


class StatusMessage(BaseMessage):
    """Link status change, emitted on every link transition."""

    type: Literal[ClientEventType.STATUS] = ClientEventType.STATUS
    status: LinkStatus
    detail: Optional[str] = None
