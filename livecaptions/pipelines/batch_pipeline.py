"""
Batch translation pipeline.

Audio frames are accumulated in memory and a periodic timer flushes them.
Each flush takes ownership of the accumulated chunks in one step, leaving an
empty accumulator behind, and runs its translation call as an independent
task so a slow call never delays the next tick. A flush emits only after the
flush before it has finished, so results reach the client in timer-fire
order. Results that arrive after the session stopped accepting events are
dropped.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Set

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ApplicationConfig
from livecaptions.config.settings import get_config
from livecaptions.handlers.error_handler import ErrorContext, ErrorSeverity, handle_error
from livecaptions.models.client_api import LinkStatus
from livecaptions.models.session_state import AudioFrame, SessionMode, TranscriptEvent
from livecaptions.pipelines.base_pipeline import BaseTranscriptionPipeline
from livecaptions.services.translation_client import TranslationClient
from livecaptions.utils.audio_utils import AudioUtils

logger = configure_logging("batch_pipeline")


class BatchTranscriptionPipeline(BaseTranscriptionPipeline):
    """Periodic buffered translation into English."""

    mode = SessionMode.BATCH

    def __init__(
        self,
        *args,
        config: Optional[ApplicationConfig] = None,
        translation_client: Optional[TranslationClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.config = config or get_config()
        self.client = translation_client or TranslationClient(
            self.session_config.api_key, openai_config=self.config.openai
        )
        self.flush_interval = self.config.batch.flush_interval_seconds
        self.min_bytes = self.config.batch.min_bytes
        self.sample_rate = self.config.audio.sample_rate
        self._sleep = sleep

        self._buffer: List[bytes] = []
        self._timer_task: Optional[asyncio.Task] = None
        self._flush_tasks: Set[asyncio.Task] = set()
        self._last_flush: Optional[asyncio.Task] = None
        self._closer_task: Optional[asyncio.Task] = None
        self._stopped = False

    @property
    def buffered_bytes(self) -> int:
        return sum(len(chunk) for chunk in self._buffer)

    async def start(self) -> None:
        logger.info(
            f"Starting batch pipeline (flush every {self.flush_interval}s, "
            f"min {self.min_bytes} bytes)"
        )
        self._timer_task = asyncio.create_task(self._run_timer())
        await self.emit_status(LinkStatus.CONNECTED)

    async def _run_timer(self) -> None:
        while not self._stopped:
            await self._sleep(self.flush_interval)
            if self._stopped:
                break
            self.flush()

    async def submit(self, frame: AudioFrame) -> None:
        if self._stopped:
            return
        self._buffer.append(frame.data)

    def flush(self) -> Optional[asyncio.Task]:
        """Swap out the accumulator and start a translation if it is large enough.

        Returns:
            Optional[asyncio.Task]: The translation task, or None if nothing was sent
        """
        chunks, self._buffer = self._buffer, []
        if not chunks:
            return None

        pcm = b"".join(chunks)
        if len(pcm) < self.min_bytes:
            logger.debug(f"Discarding {len(pcm)} bytes, below {self.min_bytes} byte minimum")
            return None

        task = asyncio.create_task(self._translate(pcm, self._last_flush))
        self._last_flush = task
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)
        return task

    async def _translate(self, pcm: bytes, previous: Optional[asyncio.Task] = None) -> None:
        duration = AudioUtils.calculate_audio_duration(pcm, self.sample_rate)
        logger.info(f"Translating {duration:.2f}s of audio ({len(pcm)} bytes)")
        wav = AudioUtils.pcm16_to_wav(pcm, self.sample_rate)

        text: Optional[str] = None
        try:
            text = await self.client.translate(wav)
        except Exception as e:
            await handle_error(
                e,
                context=ErrorContext.BATCH,
                severity=ErrorSeverity.MEDIUM,
                operation="batch_translation",
                bytes=len(pcm),
            )

        # Emit only after the previous flush, even when this one failed
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        text = (text or "").strip()
        if not text:
            logger.info("Translation produced no text")
            return

        if self._stopped or not self._is_active():
            logger.info("Dropping translation that finished after the session closed")
            return

        await self.emit_transcript(TranscriptEvent(text, True))

    async def stop(self) -> None:
        self._stopped = True
        self._buffer = []

        task = self._timer_task
        self._timer_task = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # In-flight translations are left to finish and are discarded on completion
        if self._flush_tasks:
            logger.info(f"{len(self._flush_tasks)} translation(s) still in flight at stop")
            self._closer_task = asyncio.create_task(
                self._close_client_after(list(self._flush_tasks))
            )
        else:
            await self.client.close()
        logger.info("Batch pipeline stopped")

    async def _close_client_after(self, tasks: List[asyncio.Task]) -> None:
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.client.close()
