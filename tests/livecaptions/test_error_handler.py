"""
Unit tests for the error handler module.

Tests recording, per-context and per-severity counters, the bounded list of
recent failures and the module-level helpers.
"""

import logging

import pytest

from livecaptions.handlers import error_handler as error_handler_module
from livecaptions.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorInfo,
    ErrorSeverity,
    get_error_handler,
    handle_error,
)


@pytest.fixture
def handler():
    return ErrorHandler(logger=logging.getLogger("test_error_handler"), recent_limit=3)


@pytest.fixture
def fresh_global_handler(monkeypatch):
    monkeypatch.setattr(error_handler_module, "_global_error_handler", None)


class TestErrorContext:
    def test_error_context_values(self):
        assert [ctx.value for ctx in ErrorContext] == [
            "client",
            "upstream",
            "batch",
            "session",
        ]


class TestErrorHandler:
    @pytest.mark.asyncio
    async def test_returns_error_info(self, handler):
        error = ValueError("bad audio")

        info = await handler.handle_error(
            error, ErrorContext.BATCH, ErrorSeverity.HIGH, "batch_translation", bytes=24000
        )

        assert isinstance(info, ErrorInfo)
        assert info.error is error
        assert info.operation == "batch_translation"
        assert info.metadata == {"bytes": 24000}

    @pytest.mark.asyncio
    async def test_severity_sets_log_level(self, handler, caplog):
        with caplog.at_level(logging.DEBUG, logger="test_error_handler"):
            await handler.handle_error(ValueError("x"), ErrorContext.CLIENT, ErrorSeverity.LOW)
            await handler.handle_error(
                ValueError("y"), ErrorContext.UPSTREAM, ErrorSeverity.HIGH, session_id="s1"
            )

        assert [record.levelno for record in caplog.records] == [logging.DEBUG, logging.ERROR]
        assert "[session s1]" in caplog.records[1].getMessage()

    @pytest.mark.asyncio
    async def test_counters(self, handler):
        await handler.handle_error(ValueError("x"), ErrorContext.CLIENT)
        await handler.handle_error(ValueError("y"), ErrorContext.CLIENT, ErrorSeverity.LOW)
        await handler.handle_error(ValueError("z"), ErrorContext.SESSION, ErrorSeverity.HIGH)

        stats = handler.get_error_stats()
        assert stats["total_errors"] == 3
        assert stats["by_context"] == {"client": 2, "upstream": 0, "batch": 0, "session": 1}
        assert stats["by_severity"]["medium"] == 1
        assert stats["by_severity"]["low"] == 1
        assert stats["by_severity"]["high"] == 1

    @pytest.mark.asyncio
    async def test_recent_errors_are_bounded(self, handler):
        for index in range(5):
            await handler.handle_error(
                RuntimeError(f"e{index}"), ErrorContext.BATCH, operation="flush", session_id="s1"
            )

        recent = handler.get_error_stats()["recent"]
        assert [entry["error"] for entry in recent] == [
            "RuntimeError: e2",
            "RuntimeError: e3",
            "RuntimeError: e4",
        ]
        assert recent[0]["context"] == "batch"
        assert recent[0]["operation"] == "flush"
        assert recent[0]["session_id"] == "s1"

    @pytest.mark.asyncio
    async def test_reset_stats(self, handler):
        await handler.handle_error(ValueError("x"), ErrorContext.CLIENT)

        handler.reset_stats()

        stats = handler.get_error_stats()
        assert stats["total_errors"] == 0
        assert stats["recent"] == []


class TestGlobalFunctions:
    def test_get_error_handler_is_singleton(self, fresh_global_handler):
        assert get_error_handler() is get_error_handler()

    @pytest.mark.asyncio
    async def test_module_level_helper(self, fresh_global_handler):
        await handle_error(RuntimeError("closed"), context=ErrorContext.SESSION)

        assert get_error_handler().get_error_stats()["by_context"]["session"] == 1
