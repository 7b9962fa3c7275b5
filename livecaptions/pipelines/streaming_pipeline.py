"""
Streaming transcription pipeline.

Forwards every audio frame to the OpenAI Realtime transcription endpoint as
soon as it arrives and relays incremental and final transcripts back to the
client. Frames that arrive while the upstream link is not open are dropped.
"""

from typing import Any, Callable, Dict, Optional

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ApplicationConfig
from livecaptions.config.settings import get_config
from livecaptions.handlers.event_router import EventRouter
from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.handlers.upstream_link import UpstreamLink
from livecaptions.models.openai_api import (
    ErrorEvent,
    InputAudioTranscription,
    ServerEventType,
    TranscriptionCompletedEvent,
    TranscriptionDeltaEvent,
    TranscriptionSessionConfig,
    TranscriptionSessionUpdateEvent,
    TurnDetection,
)
from livecaptions.models.session_state import AudioFrame, SessionMode, TranscriptEvent
from livecaptions.pipelines.base_pipeline import BaseTranscriptionPipeline

logger = configure_logging("streaming_pipeline")


class StreamingTranscriptionPipeline(BaseTranscriptionPipeline):
    """Low-latency transcription over a persistent upstream link."""

    mode = SessionMode.STREAMING

    def __init__(
        self,
        *args,
        config: Optional[ApplicationConfig] = None,
        reconnection: Optional[ReconnectionManager] = None,
        connector: Optional[Callable[..., Any]] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.config = config or get_config()
        self.router = EventRouter()
        self._register_handlers()

        link_kwargs: Dict[str, Any] = {}
        if connector is not None:
            link_kwargs["connector"] = connector
        self.link = UpstreamLink(
            api_key=self.session_config.api_key,
            directive=self.build_directive(),
            router=self.router,
            is_owner_active=self._is_active,
            on_status=self.emit_status,
            on_failure=self.emit_failure,
            reconnection=reconnection,
            openai_config=self.config.openai,
            websocket_config=self.config.websocket,
            reconnect_config=self.config.reconnect,
            **link_kwargs,
        )
        self.frames_forwarded = 0
        self.frames_dropped = 0

    def build_directive(self) -> TranscriptionSessionUpdateEvent:
        """Build the transcription_session.update sent on every connection."""
        streaming = self.config.streaming
        return TranscriptionSessionUpdateEvent(
            session=TranscriptionSessionConfig(
                input_audio_format=self.config.audio.format,
                input_audio_transcription=InputAudioTranscription(
                    model=self.config.openai.transcription_model,
                    language=self.session_config.language,
                ),
                turn_detection=TurnDetection(
                    threshold=streaming.vad_threshold,
                    prefix_padding_ms=streaming.prefix_padding_ms,
                    silence_duration_ms=streaming.silence_duration_ms,
                ),
            )
        )

    def _register_handlers(self) -> None:
        self.router.register_realtime_handler(
            ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_DELTA.value,
            self.handle_transcription_delta,
        )
        self.router.register_realtime_handler(
            ServerEventType.CONVERSATION_ITEM_INPUT_AUDIO_TRANSCRIPTION_COMPLETED.value,
            self.handle_transcription_completed,
        )
        self.router.register_realtime_handler(
            ServerEventType.ERROR.value, self.handle_error_event
        )

    async def handle_transcription_delta(self, data: Dict[str, Any]) -> None:
        event = TranscriptionDeltaEvent(**data)
        if event.delta:
            await self.emit_transcript(TranscriptEvent(event.delta, False))

    async def handle_transcription_completed(self, data: Dict[str, Any]) -> None:
        event = TranscriptionCompletedEvent(**data)
        if event.transcript:
            logger.info(f"Transcript completed: {len(event.transcript)} chars")
            await self.emit_transcript(TranscriptEvent(event.transcript, True))

    async def handle_error_event(self, data: Dict[str, Any]) -> None:
        event = ErrorEvent(error=data.get("error"))
        logger.error(f"OpenAI error: {event.error}")
        await self.emit_error(event.message or "OpenAI API error")

    async def start(self) -> None:
        language = self.session_config.language or "auto"
        logger.info(f"Starting streaming pipeline (language: {language})")
        await self.link.start()

    async def submit(self, frame: AudioFrame) -> None:
        if await self.link.send_audio(frame.data):
            self.frames_forwarded += 1
        else:
            self.frames_dropped += 1

    async def stop(self) -> None:
        await self.link.close()
        logger.info(
            f"Streaming pipeline stopped (forwarded: {self.frames_forwarded}, "
            f"dropped: {self.frames_dropped})"
        )
