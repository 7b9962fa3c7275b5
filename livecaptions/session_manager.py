"""Relay session management.

One RelaySession exists per client connection. It validates the client's
configuration, creates the pipeline for the requested mode, forwards audio
frames to it and relays transcript, error and status events back to the
client. Once closing has begun nothing further is sent to the client.
"""

import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ApplicationConfig
from livecaptions.config.settings import get_config
from livecaptions.exceptions import AlreadyConfiguredError, ConfigError, RelayError
from livecaptions.handlers.error_handler import ErrorContext, ErrorSeverity, handle_error
from livecaptions.models.client_api import (
    ErrorMessage,
    LinkStatus,
    StatusMessage,
    TranscriptionMessage,
)
from livecaptions.models.session_state import (
    AudioFrame,
    SessionConfig,
    SessionMode,
    SessionStatus,
    TranscriptEvent,
)
from livecaptions.pipelines.base_pipeline import BaseTranscriptionPipeline
from livecaptions.pipelines.batch_pipeline import BatchTranscriptionPipeline
from livecaptions.pipelines.streaming_pipeline import StreamingTranscriptionPipeline

logger = configure_logging("session_manager")

SendCallback = Callable[[Dict[str, Any]], Awaitable[None]]
CloseCallback = Callable[[], Awaitable[None]]
PipelineFactory = Callable[..., BaseTranscriptionPipeline]


class RelaySession:
    """State for one client's capture-to-transcript relay.

    Attributes:
        session_id: Unique hex identifier
        status: Current lifecycle state
        mode: Set once by configure() and never changed
        config: The validated session configuration
        pipeline: The single pipeline owned by this session
    """

    def __init__(
        self,
        send: SendCallback,
        on_close: Optional[CloseCallback] = None,
        config: Optional[ApplicationConfig] = None,
        pipeline_factory: Optional[PipelineFactory] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.app_config = config or get_config()
        self.status = SessionStatus.IDLE
        self.mode: Optional[SessionMode] = None
        self.config: Optional[SessionConfig] = None
        self.pipeline: Optional[BaseTranscriptionPipeline] = None
        self.created_at = datetime.now()

        self._send = send
        self._on_close = on_close
        self._pipeline_factory = pipeline_factory or self._create_pipeline
        self._sequence = 0

        self.frames_received = 0
        self.frames_dropped = 0
        self.transcripts_sent = 0

        logger.info(f"Session created: {self.session_id}")

    @property
    def accepts_events(self) -> bool:
        """True until closing begins."""
        return self.status not in (SessionStatus.CLOSING, SessionStatus.CLOSED)

    def _pipeline_active(self) -> bool:
        return self.status in (SessionStatus.CONFIGURING, SessionStatus.ACTIVE)

    def _create_pipeline(
        self, mode: SessionMode, **kwargs
    ) -> BaseTranscriptionPipeline:
        if mode == SessionMode.BATCH:
            return BatchTranscriptionPipeline(config=self.app_config, **kwargs)
        return StreamingTranscriptionPipeline(config=self.app_config, **kwargs)

    @staticmethod
    def validate_config(config: SessionConfig) -> None:
        """Raise ConfigError if the configuration cannot start a session."""
        if not isinstance(config.api_key, str) or not config.api_key.strip():
            raise ConfigError("API key is required")
        if config.source_language is not None and not isinstance(
            config.source_language, str
        ):
            raise ConfigError("sourceLanguage must be a string")

    async def configure(self, config: SessionConfig) -> None:
        """Validate the configuration and start the pipeline for its mode.

        Raises:
            AlreadyConfiguredError: If the session was already configured
            ConfigError: If the configuration is invalid; the session is closed
        """
        if not self.accepts_events:
            raise ConfigError("Session is closed")
        if self.status != SessionStatus.IDLE:
            raise AlreadyConfiguredError("Session is already configured")

        try:
            self.validate_config(config)
        except ConfigError as e:
            await self.fail(e)
            raise

        self.status = SessionStatus.CONFIGURING
        self.config = config
        self.mode = config.mode
        logger.info(f"Configuring session {self.session_id}: {config.to_dict()}")

        try:
            self.pipeline = self._pipeline_factory(
                self.mode,
                session_config=config,
                is_active=self._pipeline_active,
                on_transcript=self._relay_transcript,
                on_error=self.send_error,
                on_status=self.send_status,
                on_failure=self.fail,
            )
            await self.pipeline.start()
        except Exception as e:
            logger.exception(f"Failed to start {self.mode.value} pipeline")
            await self.fail(ConfigError(f"Failed to start session: {e}"))
            raise ConfigError(f"Failed to start session: {e}") from e

        if self.status == SessionStatus.CONFIGURING:
            self.status = SessionStatus.ACTIVE
            logger.info(f"Session {self.session_id} active in {self.mode.value} mode")

    def next_frame(self, data: bytes) -> AudioFrame:
        """Wrap raw PCM16 bytes in a frame tagged with its arrival order."""
        self._sequence += 1
        return AudioFrame(data=data, sequence=self._sequence)

    async def submit_audio_frame(self, frame: AudioFrame) -> bool:
        """Forward a frame to the pipeline. Frames are dropped unless active.

        Returns:
            bool: True if the frame reached the pipeline
        """
        self.frames_received += 1
        if self.status != SessionStatus.ACTIVE or self.pipeline is None:
            self.frames_dropped += 1
            logger.debug(
                f"Dropping frame {frame.sequence} in state {self.status.value}"
            )
            return False

        await self.pipeline.submit(frame)
        return True

    async def submit_audio(self, data: bytes) -> bool:
        return await self.submit_audio_frame(self.next_frame(data))

    async def _relay_transcript(self, event: TranscriptEvent) -> None:
        if not self.accepts_events:
            return
        self.transcripts_sent += 1
        message = TranscriptionMessage(text=event.text, isFinal=event.is_final)
        await self._emit(message.model_dump(mode="json"))

    async def send_error(self, error: str) -> None:
        await self._emit(ErrorMessage(error=error).model_dump(mode="json"))

    async def send_status(self, status: LinkStatus, detail: Optional[str] = None) -> None:
        message = StatusMessage(status=status, detail=detail)
        await self._emit(message.model_dump(mode="json", exclude_none=True))

    async def _emit(self, message: Dict[str, Any]) -> None:
        if not self.accepts_events:
            return
        try:
            await self._send(message)
        except Exception as e:
            logger.warning(f"Failed to send {message.get('type')} to client: {e}")

    async def fail(self, error: RelayError) -> None:
        """Report a fatal error once and close the session."""
        if not self.accepts_events:
            return
        await handle_error(
            error,
            context=ErrorContext.SESSION,
            severity=ErrorSeverity.HIGH,
            operation="session_failure",
            session_id=self.session_id,
        )
        await self.send_error(str(error))
        await self.close()
        if self._on_close is not None:
            try:
                await self._on_close()
            except Exception as e:
                logger.warning(f"Error closing client link: {e}")

    async def close(self) -> None:
        """Tear the session down. Safe to call more than once."""
        if not self.accepts_events:
            return

        self.status = SessionStatus.CLOSING
        logger.info(f"Closing session {self.session_id}")

        if self.pipeline is not None:
            try:
                await self.pipeline.stop()
            except Exception as e:
                await handle_error(
                    e,
                    context=ErrorContext.SESSION,
                    operation="pipeline_stop",
                    session_id=self.session_id,
                )

        self.status = SessionStatus.CLOSED
        logger.info(
            f"Session {self.session_id} closed (frames: {self.frames_received}, "
            f"dropped: {self.frames_dropped}, transcripts: {self.transcripts_sent})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "mode": self.mode.value if self.mode else None,
            "created_at": self.created_at.isoformat(),
            "frames_received": self.frames_received,
            "frames_dropped": self.frames_dropped,
            "transcripts_sent": self.transcripts_sent,
        }
