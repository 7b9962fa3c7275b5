"""
Centralized configuration settings for the relay.

This module provides singleton access to the application configuration and
convenience accessors for each configuration domain.
"""

from typing import List, Optional

from .env_loader import (
    get_environment_info,
    is_env_loaded,
    load_application_config,
    load_env_file,
)
from .models import ApplicationConfig

# Global configuration instance
_config: Optional[ApplicationConfig] = None


def get_config() -> ApplicationConfig:
    """Get the global application configuration instance.

    Loads the default .env file first if nothing has been loaded yet.
    """
    global _config
    if _config is None:
        if not is_env_loaded():
            load_env_file()
        _config = load_application_config()
    return _config


def reload_config() -> ApplicationConfig:
    """Reload configuration from environment variables."""
    global _config
    _config = load_application_config()
    return _config


def set_config(config: Optional[ApplicationConfig]) -> None:
    """Set a custom configuration instance (useful for testing)."""
    global _config
    _config = config


def validate_configuration() -> List[str]:
    """Validate the current configuration and return any errors."""
    return get_config().validate()


def print_configuration_summary() -> None:
    """Print a summary of the current configuration."""
    config = get_config()
    env_info = get_environment_info()

    print("=== Live Captions Relay Configuration ===")
    print(f"Environment: {config.server.environment.value}")
    print(f"Server: {config.server.host}:{config.server.port}")
    print(f"Realtime URL: {config.openai.realtime_url}")
    print(f"Transcription model: {config.openai.transcription_model}")
    print(f"Translation model: {config.openai.translation_model}")
    print(f"Audio format: {config.audio.format} @ {config.audio.sample_rate}Hz")
    print(
        f"Batch flush: every {config.batch.flush_interval_ms}ms, "
        f"min {config.batch.min_bytes} bytes"
    )
    print(
        f"Reconnect: {config.reconnect.max_attempts} attempts, "
        f"base delay {config.reconnect.base_delay}s"
    )
    print(f"Log level: {config.logging.level.value}")
    print(f".env file present: {env_info['dotenv_loaded']}")

    errors = validate_configuration()
    if errors:
        print("\nConfiguration Issues:")
        for error in errors:
            print(f"  - {error}")
    else:
        print("\nConfiguration is valid")


# Convenience aliases for common configurations
def server_config():
    """Get server configuration."""
    return get_config().server


def openai_config():
    """Get OpenAI configuration."""
    return get_config().openai


def audio_config():
    """Get audio configuration."""
    return get_config().audio


def streaming_config():
    """Get streaming configuration."""
    return get_config().streaming


def batch_config():
    """Get batch configuration."""
    return get_config().batch


def reconnect_config():
    """Get reconnection configuration."""
    return get_config().reconnect


def websocket_config():
    """Get WebSocket configuration."""
    return get_config().websocket


def logging_config():
    """Get logging configuration."""
    return get_config().logging


def is_development() -> bool:
    """Check if running in development mode."""
    return get_config().is_development()


def is_production() -> bool:
    """Check if running in production mode."""
    return get_config().is_production()
