"""Event router for provider events on the upstream link.

Each streaming session owns one router. Handlers are registered per event
type with a priority; events listed as log-only are logged and never reach a
handler, and unrecognized events are ignored.
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Tuple

from livecaptions.config.logging_config import configure_logging
from livecaptions.models.openai_api import LogEventType

logger = configure_logging("event_router")


class EventRouter:
    """Router class for events received from the OpenAI Realtime API.

    Features:
    - Multiple handlers per event type with priority ordering
    - Error isolation so one failing handler never affects the others
    - Log-only event types that are recorded but not dispatched

    Attributes:
        realtime_handlers (Dict[str, List[Tuple[int, Callable]]]): Priority-ordered handlers
        log_event_types (List[LogEventType]): Event types that are only logged
    """

    def __init__(self):
        self.realtime_handlers: Dict[str, List[Tuple[int, Callable]]] = {}
        self.log_event_types = list(LogEventType)

    def register_realtime_handler(
        self, event_type: str, handler: Callable, priority: int = 0
    ) -> None:
        """Register a handler for a realtime event type.

        Args:
            event_type: The realtime event type to handle
            handler: The handler function to call for this event type
            priority: Handler priority (higher numbers execute first)
        """
        if event_type not in self.realtime_handlers:
            self.realtime_handlers[event_type] = []

        self.realtime_handlers[event_type].append((priority, handler))
        self.realtime_handlers[event_type].sort(key=lambda x: x[0], reverse=True)
        logger.debug(
            f"Registered realtime handler for event type: {event_type} (priority: {priority})"
        )

    def unregister_realtime_handler(self, event_type: str, handler: Callable) -> bool:
        """Unregister a realtime event handler.

        Returns:
            bool: True if handler was found and removed
        """
        handlers = self.realtime_handlers.get(event_type)
        if not handlers:
            return False

        for i, (priority, h) in enumerate(handlers):
            if h == handler:
                handlers.pop(i)
                logger.debug(f"Unregistered realtime handler for event type: {event_type}")
                return True
        return False

    async def handle_realtime_event(self, data: Dict[str, Any]) -> None:
        """Handle a realtime event.

        Args:
            data: The decoded event, which must contain a "type" field
        """
        event_type = data.get("type")
        if not isinstance(event_type, str):
            logger.warning(f"Dropping provider event without a type: {data!r}")
            return

        logger.debug(f"Received OpenAI message type: {event_type}")

        if event_type in [event.value for event in self.log_event_types]:
            await self.handle_log_event(data)
            return

        handlers = self.realtime_handlers.get(event_type, [])
        if handlers:
            await self._execute_handlers(handlers, data, f"realtime event {event_type}")
        else:
            logger.debug(f"Ignoring unhandled OpenAI event type: {event_type}")

    async def handle_log_event(self, data: Dict[str, Any]) -> None:
        """Log an event that is never relayed to the client."""
        event_type = data["type"]
        if event_type.startswith("transcription_session."):
            session = data.get("session", {})
            logger.info(f"Transcription session event: {event_type}")
            logger.debug(f"Session details: {json.dumps(session)}")
        else:
            logger.info(f"Speech boundary event: {event_type}")

    async def _execute_handlers(
        self, handlers: List[Tuple[int, Callable]], data: Dict[str, Any], context: str
    ) -> None:
        """Execute handlers in priority order with error isolation."""
        for priority, handler in list(handlers):
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(data)
                else:
                    handler(data)
            except Exception as e:
                logger.error(f"Error in {context} handler (priority {priority}): {e}")

    def get_handler_stats(self) -> Dict[str, Any]:
        """Get statistics about registered handlers."""
        return {
            "realtime_handlers": {
                "total": sum(len(h) for h in self.realtime_handlers.values()),
                "by_type": {
                    event_type: len(handlers)
                    for event_type, handlers in self.realtime_handlers.items()
                },
            },
            "log_event_types": [event.value for event in self.log_event_types],
        }
