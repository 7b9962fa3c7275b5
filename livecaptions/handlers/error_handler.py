"""
Centralized recording of recoverable relay failures.

Failures that the relay absorbs rather than propagates (a dropped client
frame, a failed batch flush, an upstream receive error, a session that had to
be closed) are reported here so they are logged consistently and show up in
the /stats endpoint.

Usage:
    await handle_error(
        exception,
        context=ErrorContext.BATCH,
        severity=ErrorSeverity.MEDIUM,
        operation="batch_translation",
        session_id=session_id,
    )
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Deque, Dict, Optional

from livecaptions.config.logging_config import configure_logging

RECENT_ERROR_LIMIT = 20


class ErrorContext(Enum):
    """Where in the relay an error was absorbed."""

    CLIENT = "client"
    UPSTREAM = "upstream"
    BATCH = "batch"
    SESSION = "session"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorInfo:
    """One recorded failure."""

    error: Exception
    context: ErrorContext
    severity: ErrorSeverity
    operation: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "context": self.context.value,
            "severity": self.severity.value,
            "operation": self.operation,
            "error": f"{type(self.error).__name__}: {self.error}",
            "session_id": self.metadata.get("session_id"),
            "timestamp": self.timestamp.isoformat(),
        }


class ErrorHandler:
    """Logs absorbed failures and keeps counters for monitoring."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        recent_limit: int = RECENT_ERROR_LIMIT,
    ):
        self.logger = logger or configure_logging("error_handler")
        self._recent: Deque[ErrorInfo] = deque(maxlen=recent_limit)
        self.reset_stats()

    async def handle_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        operation: str = "unknown",
        **metadata,
    ) -> ErrorInfo:
        """
        Record and log one failure.

        Args:
            error: The exception that was absorbed
            context: Part of the relay that absorbed it
            severity: Determines the log level
            operation: Name of the operation that failed
            **metadata: Extra fields, such as session_id

        Returns:
            ErrorInfo: The recorded entry
        """
        info = ErrorInfo(
            error=error,
            context=context,
            severity=severity,
            operation=operation,
            metadata=metadata,
        )
        self._by_context[context] += 1
        self._by_severity[severity] += 1
        self._recent.append(info)

        session = f" [session {metadata['session_id']}]" if metadata.get("session_id") else ""
        self.logger.log(
            _LOG_LEVELS[severity],
            f"Error in {context.value} ({operation}){session}: {error}",
        )
        return info

    def get_error_stats(self) -> Dict[str, Any]:
        """Counters and the most recent failures, as served by /stats."""
        return {
            "total_errors": sum(self._by_context.values()),
            "by_context": {ctx.value: count for ctx, count in self._by_context.items()},
            "by_severity": {sev.value: count for sev, count in self._by_severity.items()},
            "recent": [info.to_dict() for info in self._recent],
        }

    def reset_stats(self) -> None:
        self._by_context: Dict[ErrorContext, int] = {ctx: 0 for ctx in ErrorContext}
        self._by_severity: Dict[ErrorSeverity, int] = {sev: 0 for sev in ErrorSeverity}
        self._recent.clear()


# Global error handler instance
_global_error_handler: Optional[ErrorHandler] = None


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    global _global_error_handler
    if _global_error_handler is None:
        _global_error_handler = ErrorHandler()
    return _global_error_handler


async def handle_error(
    error: Exception,
    context: ErrorContext,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    operation: str = "unknown",
    **metadata,
) -> ErrorInfo:
    """Record a failure on the global error handler."""
    return await get_error_handler().handle_error(
        error, context, severity, operation, **metadata
    )
