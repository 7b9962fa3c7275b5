"""
Configuration module for the Live Captions relay.

Usage:

```python
from livecaptions.config import get_config, batch_config
config = get_config()
print(f"Server: {config.server.host}:{config.server.port}")

from livecaptions.config.logging_config import configure_logging
logger = configure_logging("my_module")
```
"""

from .settings import (
    audio_config,
    batch_config,
    get_config,
    is_development,
    is_production,
    logging_config,
    openai_config,
    print_configuration_summary,
    reconnect_config,
    reload_config,
    server_config,
    set_config,
    streaming_config,
    validate_configuration,
    websocket_config,
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
from .env_loader import load_env_file
from .logging_config import configure_logging

__all__ = [
    "get_config",
    "reload_config",
    "set_config",
    "server_config",
    "openai_config",
    "audio_config",
    "streaming_config",
    "batch_config",
    "reconnect_config",
    "websocket_config",
    "logging_config",
    "validate_configuration",
    "print_configuration_summary",
    "is_development",
    "is_production",
    "load_env_file",
    "ApplicationConfig",
    "ServerConfig",
    "OpenAIConfig",
    "AudioConfig",
    "StreamingConfig",
    "BatchConfig",
    "ReconnectConfig",
    "WebSocketConfig",
    "LoggingConfig",
    "SecurityConfig",
    "Environment",
    "LogLevel",
    "configure_logging",
]
