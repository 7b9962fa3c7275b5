"""
Pydantic models for the OpenAI Realtime transcription message structures.

Only the subset of the Realtime protocol used by transcription sessions is
modelled here: the session update directive, audio appends, and the server
events a transcription session emits.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from livecaptions.config.constants import (
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_TRANSCRIPTION_MODEL,
    VAD_PREFIX_PADDING_MS,
    VAD_SILENCE_DURATION_MS,
    VAD_THRESHOLD,
)


class LogEventType(str, Enum):
    """Event types that are logged but never relayed to the client."""

    TRANSCRIPTION_SESSION_CREATED = "transcription_session.created"
    TRANSCRIPTION_SESSION_UPDATED = "transcription_session.updated"
    INPUT_AUDIO_BUFFER_SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_BUFFER_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
    INPUT_AUDIO_BUFFER_COMMITTED = "input_audio_buffer.committed"


class ClientEventType(str, Enum):
    """Types of events that can be sent to the server."""

    INPUT_AUDIO_BUFFER_APPEND = "input_audio_buffer.append"
    TRANSCRIPTION_SESSION_UPDATE = "transcription_session.update"


class ServerEventType(str, Enum):
    """Types of events received from the server."""

    ERROR = "error"
    TRANSCRIPTION_SESSION_CREATED = "transcription_session.created"
    TRANSCRIPTION_SESSION_UPDATED = "transcription_session.updated"
    INPUT_AUDIO_BUFFER_COMMITTED = "input_audio_buffer.committed"
    INPUT_AUDIO_BUFFER_SPEECH_STARTED = "input_audio_buffer.speech_started"
    INPUT_AUDIO_BUFFER_SPEECH_STOPPED = "input_audio_buffer.speech_stopped"
    CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA = (
        "conversation.item.input_audio_transcription.delta"
    )
    CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_COMPLETED = (
        "conversation.item.input_audio_transcription.completed"
    )


class ClientEvent(BaseModel):
    """Base model for events sent to the server."""

    type: str
    event_id: Optional[str] = None


class ServerEvent(BaseModel):
    """Base model for events received from the server."""

    model_config = ConfigDict(extra="allow")

    type: str
    event_id: Optional[str] = None


# Client events


class TurnDetection(BaseModel):
    """Server-side voice activity detection settings."""

    type: str = "server_vad"
    threshold: float = VAD_THRESHOLD
    prefix_padding_ms: int = VAD_PREFIX_PADDING_MS
    silence_duration_ms: int = VAD_SILENCE_DURATION_MS


class InputAudioTranscription(BaseModel):
    model: str = DEFAULT_TRANSCRIPTION_MODEL
    language: Optional[str] = None


class TranscriptionSessionConfig(BaseModel):
    """Configuration for a transcription session."""

    input_audio_format: str = DEFAULT_AUDIO_FORMAT
    input_audio_transcription: InputAudioTranscription = Field(
        default_factory=InputAudioTranscription
    )
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)


class TranscriptionSessionUpdateEvent(ClientEvent):
    """Event to update a transcription session.

    Sent right after connecting and again after every reconnect.
    The server will respond with a transcription_session.updated event.
    """

    type: str = ClientEventType.TRANSCRIPTION_SESSION_UPDATE.value
    session: TranscriptionSessionConfig

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for sending, leaving out an unset language."""
        return self.model_dump(exclude_none=True)


class InputAudioBufferAppendEvent(ClientEvent):
    """Event to append audio to the input buffer.

    The server does not send a confirmation response to this event.
    """

    type: str = ClientEventType.INPUT_AUDIO_BUFFER_APPEND.value
    audio: str  # Base64 encoded audio


# Server events


class ErrorEvent(ServerEvent):
    """Error notification from the server.

    Most errors are recoverable and the session stays open.
    """

    type: str = ServerEventType.ERROR.value
    error: Optional[Any] = None

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.error, dict):
            message = self.error.get("message")
            if isinstance(message, str) and message:
                return message
        return None


class TranscriptionDeltaEvent(ServerEvent):
    """Incremental transcript text for the utterance in progress."""

    type: str = ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA.value
    item_id: Optional[str] = None
    content_index: Optional[int] = None
    delta: str = ""


class TranscriptionCompletedEvent(ServerEvent):
    """Final transcript for a completed utterance."""

    type: str = (
        ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_COMPLETED.value
    )
    item_id: Optional[str] = None
    content_index: Optional[int] = None
    transcript: str = ""
