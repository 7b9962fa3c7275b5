"""Bridge between a capture client's WebSocket and its relay session.

The bridge reads JSON text frames from the client, dispatches them by type to
the session, and writes the session's outbound events back to the client.
A malformed message is logged and dropped without affecting the session.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError
from starlette.websockets import WebSocketState

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import ApplicationConfig
from livecaptions.exceptions import AlreadyConfiguredError, ConfigError, TranscodeError
from livecaptions.handlers.error_handler import ErrorContext, ErrorSeverity, handle_error
from livecaptions.models.client_api import AudioMessage, ClientEventType, ConfigMessage
from livecaptions.models.session_state import SessionConfig
from livecaptions.session_manager import RelaySession
from livecaptions.utils.audio_utils import AudioUtils

logger = configure_logging("client_bridge")


class ClientBridge:
    """Relays one client WebSocket to one RelaySession.

    Attributes:
        client_websocket: FastAPI WebSocket connection to the capture client
        session (RelaySession): The session owned by this connection
        messages_received (int): Inbound frames read from the client
        messages_dropped (int): Inbound frames rejected as malformed
    """

    def __init__(
        self,
        client_websocket,
        config: Optional[ApplicationConfig] = None,
        session_factory: Optional[Callable[..., RelaySession]] = None,
    ):
        self.client_websocket = client_websocket
        self._closed = False
        factory = session_factory or RelaySession
        self.session = factory(
            send=self.send_client_json,
            on_close=self.close,
            config=config,
        )
        self.messages_received = 0
        self.messages_dropped = 0
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            ClientEventType.CONFIG.value: self.handle_config,
            ClientEventType.AUDIO.value: self.handle_audio,
        }

    async def send_client_json(self, payload: Dict[str, Any]) -> None:
        """Send a JSON payload to the client WebSocket."""
        if self._closed or self._is_websocket_closed():
            return
        await self.client_websocket.send_text(json.dumps(payload))

    def _is_websocket_closed(self) -> bool:
        return (
            not self.client_websocket
            or self.client_websocket.client_state == WebSocketState.DISCONNECTED
        )

    async def receive_from_client(self) -> None:
        """Read and dispatch client messages until the client disconnects."""
        async for message in self.client_websocket.iter_text():
            if self._closed:
                break
            await self.handle_message(message)

    async def handle_message(self, raw: str) -> None:
        """Parse one inbound frame and dispatch it by type."""
        self.messages_received += 1
        try:
            data = json.loads(raw)
        except ValueError as e:
            await self._drop(TranscodeError(f"Invalid JSON: {e}"), "parse_message")
            return

        if not isinstance(data, dict) or not isinstance(data.get("type"), str):
            await self._drop(TranscodeError("Message has no type"), "parse_message")
            return

        handler = self._handlers.get(data["type"])
        if handler is None:
            logger.debug(f"Ignoring unknown client message type: {data['type']}")
            return

        await handler(data)

    async def handle_config(self, data: Dict[str, Any]) -> None:
        try:
            message = ConfigMessage(**data)
        except ValidationError as e:
            error = ConfigError(f"Invalid configuration: {e.error_count()} field error(s)")
            logger.warning(f"Rejecting malformed config message: {e}")
            await self.session.fail(error)
            return

        config = SessionConfig(
            api_key=message.apiKey,
            source_language=message.sourceLanguage,
            translate_to_english=message.translateToEnglish,
        )
        try:
            await self.session.configure(config)
        except AlreadyConfiguredError as e:
            logger.warning(f"Ignoring repeated config for session {self.session.session_id}")
            await self.session.send_error(str(e))
        except ConfigError as e:
            # Already reported to the client by the session
            logger.error(f"Session configuration failed: {e}")

    async def handle_audio(self, data: Dict[str, Any]) -> None:
        try:
            message = AudioMessage(**data)
            pcm = AudioUtils.convert_from_base64(message.data)
        except ValidationError as e:
            await self._drop(TranscodeError(f"Invalid audio message: {e}"), "parse_audio")
            return
        except TranscodeError as e:
            await self._drop(e, "decode_audio")
            return

        await self.session.submit_audio(pcm)

    async def _drop(self, error: Exception, operation: str) -> None:
        self.messages_dropped += 1
        await handle_error(
            error,
            context=ErrorContext.CLIENT,
            severity=ErrorSeverity.MEDIUM,
            operation=operation,
            session_id=self.session.session_id,
        )

    async def close(self) -> None:
        """Close the session and the client connection."""
        if self._closed:
            return
        self._closed = True

        await self.session.close()

        try:
            if not self._is_websocket_closed():
                await self.client_websocket.close()
        except Exception as e:
            logger.error(f"Error closing client connection: {e}")
