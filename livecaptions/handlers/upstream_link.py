"""
Upstream link to the OpenAI Realtime transcription endpoint.

The link owns one outbound WebSocket, performs the transcription session
handshake, runs the receive loop and, when the connection drops while the
owning session still wants it, re-establishes it through a
ReconnectionManager. Each successful (re)connection resends the session
configuration before the link is considered open.

The link never holds a reference to its session; it reports back through the
callbacks it was constructed with.
"""

import asyncio
import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import OpenAIConfig, ReconnectConfig, WebSocketConfig
from livecaptions.config.settings import get_config
from livecaptions.exceptions import (
    ConfigError,
    ConnectError,
    ProviderError,
    RelayError,
)
from livecaptions.handlers.error_handler import ErrorContext, ErrorSeverity, handle_error
from livecaptions.handlers.event_router import EventRouter
from livecaptions.handlers.reconnection_manager import ReconnectionManager
from livecaptions.models.client_api import LinkStatus
from livecaptions.models.openai_api import (
    ErrorEvent,
    InputAudioBufferAppendEvent,
    ServerEventType,
    TranscriptionSessionUpdateEvent,
)
from livecaptions.utils.audio_utils import AudioUtils

logger = configure_logging("upstream_link")

ACK_EVENT_TYPES = (
    ServerEventType.TRANSCRIPTION_SESSION_CREATED.value,
    ServerEventType.TRANSCRIPTION_SESSION_UPDATED.value,
)

StatusCallback = Callable[[LinkStatus, Optional[str]], Awaitable[None]]
FailureCallback = Callable[[RelayError], Awaitable[None]]


class LinkState(Enum):
    """Upstream link connection states."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONFIGURING = "configuring"
    OPEN = "open"
    CLOSING = "closing"
    FAILED = "failed"


class UpstreamLink:
    """Outbound transcription connection with handshake and reconnection.

    Args:
        api_key: Credential forwarded as a bearer token
        directive: Session update sent on every (re)connection
        router: Dispatches provider events received while open
        is_owner_active: Returns False once the owner stops wanting the link
        on_status: Awaited on every status transition
        on_failure: Awaited once when the link fails for good
        reconnection: Backoff policy, built from config when omitted
        connector: WebSocket connect coroutine, ``websockets.connect`` by default
    """

    def __init__(
        self,
        api_key: str,
        directive: TranscriptionSessionUpdateEvent,
        router: EventRouter,
        is_owner_active: Callable[[], bool],
        on_status: Optional[StatusCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        reconnection: Optional[ReconnectionManager] = None,
        openai_config: Optional[OpenAIConfig] = None,
        websocket_config: Optional[WebSocketConfig] = None,
        reconnect_config: Optional[ReconnectConfig] = None,
        connector: Callable[..., Awaitable[Any]] = websockets.connect,
    ):
        if openai_config is None or websocket_config is None or (
            reconnection is None and reconnect_config is None
        ):
            config = get_config()
            openai_config = openai_config or config.openai
            websocket_config = websocket_config or config.websocket
            reconnect_config = reconnect_config or config.reconnect

        self.openai_config = openai_config
        self.websocket_config = websocket_config
        self._headers = openai_config.get_headers(api_key)
        self.directive = directive
        self.router = router
        self.reconnection = reconnection or ReconnectionManager.from_config(
            reconnect_config, name="upstream"
        )

        self._is_owner_active = is_owner_active
        self._on_status = on_status
        self._on_failure = on_failure
        self._connector = connector

        self.state = LinkState.DISCONNECTED
        self.websocket: Optional[Any] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._closing = False
        self._rejected = False
        self._failure_reported = False

    def _set_state(self, state: LinkState) -> None:
        if state != self.state:
            logger.debug(f"Upstream link state: {self.state.value} -> {state.value}")
            self.state = state

    async def _report_status(self, status: LinkStatus, detail: Optional[str] = None) -> None:
        if self._on_status is None or self._closing:
            return
        try:
            await self._on_status(status, detail)
        except Exception as e:
            logger.error(f"Error in upstream status callback: {e}")

    async def _report_failure(self, error: RelayError) -> None:
        if self._failure_reported or self._closing:
            return
        self._failure_reported = True
        if self._on_failure is None:
            return
        try:
            await self._on_failure(error)
        except Exception as e:
            logger.error(f"Error in upstream failure callback: {e}")

    def _should_reconnect(self) -> bool:
        return not self._closing and not self._rejected and self._is_owner_active()

    async def connect(self) -> bool:
        """Open the link and complete the configuration handshake.

        Returns:
            bool: True once the provider acknowledged the configuration,
            False if the provider rejected it (reported via on_failure)

        Raises:
            ConnectError: If the transport or handshake could not complete
        """
        try:
            await self._establish()
        except ConfigError as e:
            await self._report_status(LinkStatus.ERROR, str(e))
            await self._report_failure(e)
            return False
        return True

    async def start(self) -> bool:
        """Connect, falling back to background reconnection on transport failure.

        Returns:
            bool: True if the link is open when this returns
        """
        try:
            return await self.connect()
        except ConnectError as e:
            logger.warning(f"Initial upstream connection failed: {e}")
            self._receive_task = asyncio.create_task(self._handle_unexpected_close())
            return False

    async def _establish(self) -> None:
        """One connection attempt. Raises ConnectError or ConfigError on failure."""
        self._set_state(LinkState.CONNECTING)
        await self._report_status(LinkStatus.CONNECTING)

        try:
            websocket = await self._connector(
                self.openai_config.realtime_url,
                additional_headers=self._headers,
                open_timeout=self.openai_config.handshake_timeout,
                ping_interval=self.websocket_config.ping_interval,
                ping_timeout=self.websocket_config.ping_timeout,
                close_timeout=self.websocket_config.close_timeout,
            )
        except Exception as e:
            self._set_state(LinkState.FAILED)
            logger.error(f"Failed to connect to OpenAI Realtime API: {e}")
            raise ConnectError(f"Failed to connect to OpenAI Realtime API: {e}") from e

        self.websocket = websocket
        self._set_state(LinkState.CONFIGURING)

        try:
            await websocket.send(json.dumps(self.directive.to_wire()))
            await asyncio.wait_for(
                self._await_acknowledgement(websocket),
                timeout=self.openai_config.handshake_timeout,
            )
        except ProviderError as e:
            self._rejected = True
            await self._close_websocket(websocket)
            self._set_state(LinkState.FAILED)
            await handle_error(
                e,
                context=ErrorContext.UPSTREAM,
                severity=ErrorSeverity.HIGH,
                operation="session_handshake",
            )
            raise ConfigError(str(e)) from e
        except (asyncio.TimeoutError, ConnectionClosed, OSError) as e:
            await self._close_websocket(websocket)
            self._set_state(LinkState.FAILED)
            reason = "timed out" if isinstance(e, asyncio.TimeoutError) else str(e)
            logger.error(f"Transcription session handshake failed: {reason}")
            raise ConnectError(f"Handshake failed: {reason}") from e

        if self._closing:
            await self._close_websocket(websocket)
            return

        self._set_state(LinkState.OPEN)
        self.reconnection.reset()
        logger.info("Upstream link open")
        await self._report_status(LinkStatus.CONNECTED)
        self._receive_task = asyncio.create_task(self._receive_loop(websocket))

    async def _await_acknowledgement(self, websocket: Any) -> Dict[str, Any]:
        while True:
            data = self._decode(await websocket.recv())
            if data is None:
                continue
            event_type = data.get("type")
            if event_type in ACK_EVENT_TYPES:
                logger.info(f"Transcription session acknowledged: {event_type}")
                return data
            if event_type == ServerEventType.ERROR.value:
                event = ErrorEvent(error=data.get("error"))
                raise ProviderError(event.message or "OpenAI API error")
            await self.router.handle_realtime_event(data)

    @staticmethod
    def _decode(raw: Any) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed provider message: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning("Dropping provider message that is not an object")
            return None
        return data

    async def _receive_loop(self, websocket: Any) -> None:
        try:
            async for raw in websocket:
                data = self._decode(raw)
                if data is not None:
                    await self.router.handle_realtime_event(data)
        except ConnectionClosed as e:
            logger.warning(f"Upstream connection closed: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await handle_error(
                e,
                context=ErrorContext.UPSTREAM,
                severity=ErrorSeverity.HIGH,
                operation="receive_loop",
            )
            await self._close_websocket(websocket)

        if self._closing:
            return

        self._set_state(LinkState.DISCONNECTED)
        self.websocket = None
        await self._handle_unexpected_close()

    async def _handle_unexpected_close(self) -> None:
        if not self._should_reconnect():
            logger.info("Upstream closed while owner inactive, not reconnecting")
            return

        await self._report_status(LinkStatus.RECONNECTING)

        async def on_attempt(attempt: int, delay: float) -> None:
            await self._report_status(
                LinkStatus.RECONNECTING,
                f"attempt {attempt}/{self.reconnection.max_attempts} in {delay:g}s",
            )

        if await self.reconnection.reconnect(
            self._establish, self._should_reconnect, on_attempt
        ):
            return

        if self._closing:
            return

        self._set_state(LinkState.FAILED)
        if self._rejected:
            error: RelayError = ConfigError("OpenAI rejected transcription session")
            await self._report_status(LinkStatus.ERROR, str(error))
        else:
            error = ConnectError("Connection to OpenAI lost")
            await self._report_status(LinkStatus.DISCONNECTED, str(error))
        await self._report_failure(error)

    async def send_audio(self, data: bytes) -> bool:
        """Forward one PCM16 frame. Frames are dropped unless the link is open."""
        if self.state != LinkState.OPEN or self.websocket is None:
            logger.debug(f"Dropping {len(data)} byte frame, link is {self.state.value}")
            return False

        event = InputAudioBufferAppendEvent(audio=AudioUtils.convert_to_base64(data))
        try:
            await self.websocket.send(event.model_dump_json(exclude_none=True))
            return True
        except Exception as e:
            # The receive loop notices the closure and drives reconnection
            logger.warning(f"Failed to forward audio frame: {e}")
            return False

    async def close(self) -> None:
        """Close the link. A closed link never reconnects."""
        if self._closing:
            return
        self._closing = True
        failed = self.state == LinkState.FAILED
        self._set_state(LinkState.CLOSING)

        task = self._receive_task
        self._receive_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.error(f"Error stopping upstream receive loop: {e}")

        if self.websocket is not None:
            await self._close_websocket(self.websocket)
            self.websocket = None

        self._set_state(LinkState.FAILED if failed else LinkState.DISCONNECTED)
        logger.info("Upstream link closed")

    @staticmethod
    async def _close_websocket(websocket: Any) -> None:
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing upstream websocket: {e}")
