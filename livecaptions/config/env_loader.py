"""
Environment variable loader for the relay configuration.

This module handles loading configuration from environment variables,
with type conversion, validation, and fallback to defaults.

Environment variables are read from the process environment after an
optional .env file has been loaded with load_env_file().
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, cast, get_origin

from dotenv import load_dotenv

from .constants import (
    BATCH_FLUSH_INTERVAL_MS,
    BATCH_MIN_BYTES,
    DEFAULT_HANDSHAKE_TIMEOUT,
    DEFAULT_REALTIME_URL,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TRANSCRIPTION_MODEL,
    DEFAULT_TRANSLATION_MODEL,
    RECONNECT_BACKOFF_FACTOR,
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_ATTEMPTS,
)
from .models import (
    ApplicationConfig,
    AudioConfig,
    BatchConfig,
    Environment,
    LoggingConfig,
    LogLevel,
    OpenAIConfig,
    ReconnectConfig,
    SecurityConfig,
    ServerConfig,
    StreamingConfig,
    WebSocketConfig,
)

# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def is_env_loaded() -> bool:
    return _env_loaded


def _check_env_loaded() -> None:
    """Check if environment variables have been loaded, raise error if not."""
    if not _env_loaded:
        raise RuntimeError(
            "Environment variables not loaded. Call load_env_file() before accessing configuration."
        )


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.lower() == "true")
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif target_type == Path:
            return cast(T, Path(value))
        elif get_origin(target_type) == list:
            return cast(
                T,
                (
                    [item.strip() for item in value.split(",") if item.strip()]
                    if value
                    else default
                ),
            )
        else:
            return default
    except (ValueError, TypeError):
        return default


def load_server_config() -> ServerConfig:
    """Load server configuration from environment variables."""
    _check_env_loaded()

    env_str = os.getenv("ENV", "production").lower()
    environment = {
        "development": Environment.DEVELOPMENT,
        "testing": Environment.TESTING,
    }.get(env_str, Environment.PRODUCTION)

    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=safe_convert(os.getenv("PORT"), int, 3000),
        environment=environment,
        debug=safe_convert(os.getenv("DEBUG"), bool, False),
        reload=safe_convert(os.getenv("RELOAD"), bool, False),
        timeout_keep_alive=safe_convert(os.getenv("TIMEOUT_KEEP_ALIVE"), int, 5),
        http_protocol=os.getenv("HTTP_PROTOCOL", "h11"),
        access_log=safe_convert(os.getenv("ACCESS_LOG"), bool, False),
        ws_ping_interval=safe_convert(os.getenv("SERVER_WS_PING_INTERVAL"), int, 5),
        ws_ping_timeout=safe_convert(os.getenv("SERVER_WS_PING_TIMEOUT"), int, 10),
        ws_max_size=safe_convert(os.getenv("WS_MAX_SIZE"), int, 16 * 1024 * 1024),
    )


def load_openai_config() -> OpenAIConfig:
    """Load OpenAI provider configuration from environment variables."""
    _check_env_loaded()

    return OpenAIConfig(
        realtime_url=os.getenv("OPENAI_REALTIME_URL", DEFAULT_REALTIME_URL),
        transcription_model=os.getenv(
            "OPENAI_TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL
        ),
        translation_model=os.getenv(
            "OPENAI_TRANSLATION_MODEL", DEFAULT_TRANSLATION_MODEL
        ),
        handshake_timeout=safe_convert(
            os.getenv("OPENAI_HANDSHAKE_TIMEOUT"), float, DEFAULT_HANDSHAKE_TIMEOUT
        ),
    )


def load_audio_config() -> AudioConfig:
    """Load audio configuration from environment variables."""
    _check_env_loaded()

    return AudioConfig(
        sample_rate=safe_convert(
            os.getenv("AUDIO_SAMPLE_RATE"), int, DEFAULT_SAMPLE_RATE
        ),
    )


def load_streaming_config() -> StreamingConfig:
    """Streaming VAD thresholds are part of the provider contract and fixed."""
    _check_env_loaded()
    return StreamingConfig()


def load_batch_config() -> BatchConfig:
    """Load batch translation configuration from environment variables."""
    _check_env_loaded()

    return BatchConfig(
        flush_interval_ms=safe_convert(
            os.getenv("BATCH_FLUSH_INTERVAL_MS"), int, BATCH_FLUSH_INTERVAL_MS
        ),
        min_bytes=safe_convert(os.getenv("BATCH_MIN_BYTES"), int, BATCH_MIN_BYTES),
    )


def load_reconnect_config() -> ReconnectConfig:
    """Load reconnection backoff configuration from environment variables."""
    _check_env_loaded()

    return ReconnectConfig(
        max_attempts=safe_convert(
            os.getenv("RECONNECT_MAX_ATTEMPTS"), int, RECONNECT_MAX_ATTEMPTS
        ),
        base_delay=safe_convert(
            os.getenv("RECONNECT_BASE_DELAY"), float, RECONNECT_BASE_DELAY
        ),
        backoff_factor=safe_convert(
            os.getenv("RECONNECT_BACKOFF_FACTOR"), float, RECONNECT_BACKOFF_FACTOR
        ),
    )


def load_websocket_config() -> WebSocketConfig:
    """Load outbound WebSocket configuration from environment variables."""
    _check_env_loaded()

    return WebSocketConfig(
        ping_interval=safe_convert(os.getenv("WS_PING_INTERVAL"), int, 20),
        ping_timeout=safe_convert(os.getenv("WS_PING_TIMEOUT"), int, 30),
        close_timeout=safe_convert(os.getenv("WS_CLOSE_TIMEOUT"), int, 10),
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables."""
    _check_env_loaded()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    try:
        log_level = LogLevel(log_level_str)
    except ValueError:
        log_level = LogLevel.INFO

    return LoggingConfig(
        level=log_level,
        format=os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ),
        log_dir=Path(os.getenv("LOG_DIR", "logs")),
        log_filename=os.getenv("LOG_FILENAME", "livecaptions.log"),
        max_log_size=safe_convert(os.getenv("LOG_MAX_SIZE"), int, 10 * 1024 * 1024),
        backup_count=safe_convert(os.getenv("LOG_BACKUP_COUNT"), int, 5),
    )


def load_security_config() -> SecurityConfig:
    """Load security configuration from environment variables."""
    _check_env_loaded()

    return SecurityConfig(
        allowed_origins=safe_convert(os.getenv("ALLOWED_ORIGINS"), List[str], ["*"]),
    )


def load_application_config() -> ApplicationConfig:
    """Load complete application configuration from environment variables."""
    _check_env_loaded()

    config = ApplicationConfig(
        server=load_server_config(),
        openai=load_openai_config(),
        audio=load_audio_config(),
        streaming=load_streaming_config(),
        batch=load_batch_config(),
        reconnect=load_reconnect_config(),
        websocket=load_websocket_config(),
        logging=load_logging_config(),
        security=load_security_config(),
    )

    validation_errors = config.validate()
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(
            f"  - {error}" for error in validation_errors
        )
        raise ValueError(error_msg)

    return config


def get_environment_info() -> Dict[str, Any]:
    """Get information about current environment variables for debugging."""
    _check_env_loaded()

    return {
        "environment_variables_loaded": len(
            [
                k
                for k in os.environ.keys()
                if k.startswith(("OPENAI_", "BATCH_", "RECONNECT_", "WS_", "LOG_"))
            ]
        ),
        "dotenv_loaded": Path(".env").exists(),
        "current_environment": os.getenv("ENV", "production"),
    }
