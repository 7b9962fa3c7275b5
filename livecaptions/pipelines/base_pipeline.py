"""
Base class for transcription pipelines.

A session owns exactly one pipeline for its whole life. The pipeline reports
back through the callbacks it was given, never through a reference to the
session itself.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from livecaptions.exceptions import RelayError
from livecaptions.models.client_api import LinkStatus
from livecaptions.models.session_state import AudioFrame, SessionConfig, SessionMode, TranscriptEvent

TranscriptCallback = Callable[[TranscriptEvent], Awaitable[None]]
ErrorCallback = Callable[[str], Awaitable[None]]
StatusCallback = Callable[[LinkStatus, Optional[str]], Awaitable[None]]
FailureCallback = Callable[[RelayError], Awaitable[None]]


class BaseTranscriptionPipeline(ABC):
    """Common wiring for streaming and batch pipelines.

    Args:
        session_config: Validated configuration of the owning session
        is_active: Returns False once the owning session stops accepting events
        on_transcript: Awaited for each transcript event
        on_error: Awaited with a message for non-fatal provider errors
        on_status: Awaited on link status changes
        on_failure: Awaited once if the pipeline can no longer continue
    """

    mode: SessionMode

    def __init__(
        self,
        session_config: SessionConfig,
        is_active: Callable[[], bool],
        on_transcript: TranscriptCallback,
        on_error: Optional[ErrorCallback] = None,
        on_status: Optional[StatusCallback] = None,
        on_failure: Optional[FailureCallback] = None,
    ):
        self.session_config = session_config
        self._is_active = is_active
        self._on_transcript = on_transcript
        self._on_error = on_error
        self._on_status = on_status
        self._on_failure = on_failure

    @abstractmethod
    async def start(self) -> None:
        """Begin processing. Called once, after configuration."""
        pass

    @abstractmethod
    async def submit(self, frame: AudioFrame) -> None:
        """Accept one audio frame."""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Release every resource the pipeline owns."""
        pass

    async def emit_transcript(self, event: TranscriptEvent) -> None:
        if not self._is_active():
            return
        await self._on_transcript(event)

    async def emit_error(self, message: str) -> None:
        if self._on_error is not None and self._is_active():
            await self._on_error(message)

    async def emit_status(self, status: LinkStatus, detail: Optional[str] = None) -> None:
        if self._on_status is not None and self._is_active():
            await self._on_status(status, detail)

    async def emit_failure(self, error: RelayError) -> None:
        if self._on_failure is not None and self._is_active():
            await self._on_failure(error)
