"""
Configuration models for the Live Captions relay.

This module defines dataclasses for the different configuration domains,
providing type safety and validation for all relay settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List

from livecaptions.config.constants import (
    BATCH_FLUSH_INTERVAL_MS,
    BATCH_MIN_BYTES,
    DEFAULT_AUDIO_FORMAT,
    DEFAULT_BITS_PER_SAMPLE,
    DEFAULT_CHANNELS,
    DEFAULT_HANDSHAKE_TIMEOUT,
    DEFAULT_REALTIME_URL,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TRANSCRIPTION_MODEL,
    DEFAULT_TRANSLATION_MODEL,
    RECONNECT_BACKOFF_FACTOR,
    RECONNECT_BASE_DELAY,
    RECONNECT_MAX_ATTEMPTS,
    VAD_PREFIX_PADDING_MS,
    VAD_SILENCE_DURATION_MS,
    VAD_THRESHOLD,
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServerConfig:
    """Server configuration settings."""

    host: str = "0.0.0.0"
    port: int = 3000
    environment: Environment = Environment.PRODUCTION
    debug: bool = False
    reload: bool = False
    timeout_keep_alive: int = 5

    # HTTP/WebSocket server settings
    http_protocol: str = "h11"
    access_log: bool = False
    ws_ping_interval: int = 5
    ws_ping_timeout: int = 10
    ws_max_size: int = 16 * 1024 * 1024  # 16MB


@dataclass
class OpenAIConfig:
    """OpenAI provider endpoints and models.

    The API key is never configured here: every session forwards the key its
    client supplied.
    """

    realtime_url: str = DEFAULT_REALTIME_URL
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL
    translation_model: str = DEFAULT_TRANSLATION_MODEL
    handshake_timeout: float = DEFAULT_HANDSHAKE_TIMEOUT

    def get_headers(self, api_key: str) -> Dict[str, str]:
        """Get headers for OpenAI Realtime API authentication."""
        if not api_key:
            raise ValueError("OpenAI API key is required")
        return {
            "Authorization": f"Bearer {api_key}",
            "OpenAI-Beta": "realtime=v1",
        }


@dataclass
class AudioConfig:
    """Audio format shared by the capture client and the relay."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE
    format: str = DEFAULT_AUDIO_FORMAT


@dataclass
class StreamingConfig:
    """Server-side voice activity detection policy for streaming mode."""

    vad_threshold: float = VAD_THRESHOLD
    prefix_padding_ms: int = VAD_PREFIX_PADDING_MS
    silence_duration_ms: int = VAD_SILENCE_DURATION_MS


@dataclass
class BatchConfig:
    """Batch translation flush settings."""

    flush_interval_ms: int = BATCH_FLUSH_INTERVAL_MS
    min_bytes: int = BATCH_MIN_BYTES

    @property
    def flush_interval_seconds(self) -> float:
        return self.flush_interval_ms / 1000.0


@dataclass
class ReconnectConfig:
    """Bounded exponential backoff for link reconnection."""

    max_attempts: int = RECONNECT_MAX_ATTEMPTS
    base_delay: float = RECONNECT_BASE_DELAY
    backoff_factor: float = RECONNECT_BACKOFF_FACTOR


@dataclass
class WebSocketConfig:
    """Outbound WebSocket connection parameters."""

    ping_interval: int = 20
    ping_timeout: int = 30
    close_timeout: int = 10


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_filename: str = "livecaptions.log"
    max_log_size: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5


@dataclass
class SecurityConfig:
    """Security-related configuration."""

    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class ApplicationConfig:
    """Master application configuration containing all domain configs."""

    server: ServerConfig = field(default_factory=ServerConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    streaming: StreamingConfig = field(default_factory=StreamingConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.server.port <= 0 or self.server.port > 65535:
            errors.append("Server port must be between 1 and 65535")

        if self.audio.sample_rate <= 0:
            errors.append("Audio sample rate must be positive")

        if self.streaming.vad_threshold < 0 or self.streaming.vad_threshold > 1:
            errors.append("VAD threshold must be between 0 and 1")

        if self.batch.flush_interval_ms <= 0:
            errors.append("Batch flush interval must be positive")

        if self.batch.min_bytes < 0:
            errors.append("Batch minimum size cannot be negative")

        if self.reconnect.max_attempts < 0:
            errors.append("Reconnect attempts cannot be negative")

        if self.reconnect.base_delay <= 0:
            errors.append("Reconnect base delay must be positive")

        return errors

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.server.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.server.environment == Environment.PRODUCTION
