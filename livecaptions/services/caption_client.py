"""
Capture-side client for the Live Captions relay.

CaptionClient connects to the relay, sends the session configuration on
every (re)connection, streams audio and hands transcripts, errors and status
updates to callbacks. While recording it reconnects with the same bounded
backoff the relay uses upstream; after stop() it never reconnects.

Usage Example:
```python
client = CaptionClient("ws://localhost:3000/ws", api_key="sk-...", source_language="en")
client.on_transcription = lambda text, is_final: print(text, is_final)
await client.start()
await client.send_samples(float_samples)
await client.stop()
```
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

import numpy as np
import websockets
from websockets.exceptions import ConnectionClosed

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ReconnectConfig, WebSocketConfig
from livecaptions.config.settings import get_config
from livecaptions.exceptions import ConnectError
from livecaptions.handlers.error_handler import ErrorContext, ErrorSeverity, handle_error
from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.models.client_api import (
    AudioMessage,
    ClientEventType,
    ConfigMessage,
    LinkStatus,
)
from livecaptions.utils.audio_utils import AudioUtils

logger = configure_logging("caption_client")

CONNECTION_LOST = "connection lost. please restart."


class CaptionClient:
    """WebSocket client that streams capture audio to the relay."""

    def __init__(
        self,
        url: str,
        api_key: str,
        source_language: Optional[str] = None,
        translate_to_english: bool = False,
        reconnection: Optional[ReconnectionManager] = None,
        websocket_config: Optional[WebSocketConfig] = None,
        reconnect_config: Optional[ReconnectConfig] = None,
        connector: Callable[..., Awaitable[Any]] = websockets.connect,
    ):
        if websocket_config is None or (reconnection is None and reconnect_config is None):
            config = get_config()
            websocket_config = websocket_config or config.websocket
            reconnect_config = reconnect_config or config.reconnect

        self.url = url
        self.config_message = ConfigMessage(
            type=ClientEventType.CONFIG,
            apiKey=api_key,
            sourceLanguage=source_language,
            translateToEnglish=translate_to_english,
        )
        self.websocket_config = websocket_config
        self.reconnection = reconnection or ReconnectionManager.from_config(
            reconnect_config, name="relay"
        )
        self._connector = connector

        self.websocket: Optional[Any] = None
        self.connected = False
        self.recording = False
        self._receive_task: Optional[asyncio.Task] = None

        # Event handlers
        self.on_transcription: Optional[Callable[[str, bool], Any]] = None
        self.on_error: Optional[Callable[[str], Any]] = None
        self.on_status: Optional[Callable[[LinkStatus, Optional[str]], Any]] = None
        self.on_relay_status: Optional[Callable[[str, Optional[str]], Any]] = None

    async def start(self) -> None:
        """Connect and begin recording.

        Raises:
            ConnectError: If the first connection attempt fails
        """
        self.recording = True
        try:
            await self._connect()
        except ConnectError as e:
            self.recording = False
            await self._set_status(LinkStatus.ERROR, "connection failed")
            raise e

    async def stop(self) -> None:
        """Stop recording and close the connection. Never reconnects afterwards."""
        self.recording = False

        task = self._receive_task
        self._receive_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self.websocket is not None:
            try:
                await self.websocket.close()
            except Exception as e:
                await handle_error(
                    e,
                    context=ErrorContext.CLIENT,
                    severity=ErrorSeverity.LOW,
                    operation="caption_client_close",
                )
            self.websocket = None

        was_connected = self.connected
        self.connected = False
        if was_connected:
            await self._set_status(LinkStatus.DISCONNECTED)
        logger.info("Caption client stopped")

    async def _connect(self) -> None:
        await self._set_status(LinkStatus.CONNECTING, "connecting to server...")
        try:
            websocket = await self._connector(
                self.url,
                ping_interval=self.websocket_config.ping_interval,
                ping_timeout=self.websocket_config.ping_timeout,
                close_timeout=self.websocket_config.close_timeout,
            )
        except Exception as e:
            logger.error(f"Failed to connect to relay at {self.url}: {e}")
            raise ConnectError(f"Failed to connect to relay: {e}") from e

        self.websocket = websocket
        self.connected = True
        self.reconnection.reset()
        logger.info(f"Connected to relay at {self.url}")
        await self._set_status(LinkStatus.CONNECTED)

        await websocket.send(self.config_message.model_dump_json())
        self._receive_task = asyncio.create_task(self._receive_loop(websocket))

    async def send_samples(self, samples: Iterable[float]) -> bool:
        """Convert float samples to PCM16 and send them as one audio frame."""
        pcm = AudioUtils.pcm16_to_bytes(AudioUtils.float_to_pcm16(np.asarray(samples)))
        return await self.send_pcm(pcm)

    async def send_pcm(self, pcm: bytes) -> bool:
        """Send raw PCM16 bytes as one audio frame. Returns False if not connected."""
        if not self.connected or self.websocket is None:
            return False

        message = AudioMessage(type=ClientEventType.AUDIO, data=AudioUtils.convert_to_base64(pcm))
        try:
            await self.websocket.send(message.model_dump_json())
            return True
        except Exception as e:
            await handle_error(
                e,
                context=ErrorContext.CLIENT,
                severity=ErrorSeverity.MEDIUM,
                operation="caption_client_send",
            )
            return False

    async def _receive_loop(self, websocket: Any) -> None:
        try:
            async for raw in websocket:
                try:
                    message = json.loads(raw)
                except ValueError as e:
                    logger.warning(f"Failed to parse relay message: {e}")
                    continue
                if isinstance(message, dict):
                    await self._dispatch(message)
        except ConnectionClosed as e:
            logger.info(f"Relay connection closed: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await handle_error(
                e,
                context=ErrorContext.CLIENT,
                severity=ErrorSeverity.HIGH,
                operation="caption_client_receive",
            )

        self.connected = False
        self.websocket = None
        await self._handle_close()

    async def _handle_close(self) -> None:
        if not self.recording:
            await self._set_status(LinkStatus.DISCONNECTED)
            return

        async def on_attempt(attempt: int, delay: float) -> None:
            await self._set_status(
                LinkStatus.RECONNECTING,
                f"reconnecting ({attempt}/{self.reconnection.max_attempts})...",
            )

        if await self.reconnection.reconnect(
            self._connect, lambda: self.recording, on_attempt
        ):
            return

        if self.recording:
            await self._set_status(LinkStatus.DISCONNECTED, CONNECTION_LOST)
            await self.stop()

    async def _dispatch(self, message: Dict[str, Any]) -> None:
        message_type = message.get("type")
        if message_type == ClientEventType.TRANSCRIPTION.value:
            await self._safe_call_handler(
                self.on_transcription,
                message.get("text", ""),
                bool(message.get("isFinal", False)),
            )
        elif message_type == ClientEventType.ERROR.value:
            error = message.get("error") or "unknown error"
            logger.error(f"Relay error: {error}")
            await self._safe_call_handler(self.on_error, error)
            await self._set_status(LinkStatus.ERROR, error)
        elif message_type == ClientEventType.STATUS.value:
            await self._safe_call_handler(
                self.on_relay_status, message.get("status"), message.get("detail")
            )
        else:
            logger.debug(f"Ignoring relay message type: {message_type}")

    async def _set_status(self, status: LinkStatus, detail: Optional[str] = None) -> None:
        logger.info(f"Status: {status.value}{f' ({detail})' if detail else ''}")
        await self._safe_call_handler(self.on_status, status, detail)

    async def _safe_call_handler(self, handler: Optional[Callable], *args) -> None:
        """Safely call an event handler, catching exceptions."""
        if handler is None:
            return
        try:
            if asyncio.iscoroutinefunction(handler):
                await handler(*args)
            else:
                handler(*args)
        except Exception as e:
            logger.error(f"Error in event handler: {e}")
