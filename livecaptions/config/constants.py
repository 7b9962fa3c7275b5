"""
Constants and configuration values used throughout the application.

This module defines the fixed protocol values shared by the relay, the
pipelines and the capture client, so that both ends of every link agree on
audio format, batching thresholds and reconnection timing.
"""

# Logger name used throughout the application
LOGGER_NAME = "livecaptions"

# Audio constants
DEFAULT_SAMPLE_RATE = 24000  # 24kHz, the realtime transcription input rate
DEFAULT_CHANNELS = 1  # Mono
DEFAULT_BITS_PER_SAMPLE = 16  # 16-bit PCM
DEFAULT_AUDIO_FORMAT = "pcm16"

# Streaming (realtime transcription) constants
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime?intent=transcription"
DEFAULT_TRANSCRIPTION_MODEL = "gpt-4o-transcribe"
AUTO_LANGUAGE = "auto"
VAD_THRESHOLD = 0.5
VAD_PREFIX_PADDING_MS = 300
VAD_SILENCE_DURATION_MS = 500
DEFAULT_HANDSHAKE_TIMEOUT = 10.0  # seconds to wait for the session ack

# Batch (translation) constants
DEFAULT_TRANSLATION_MODEL = "whisper-1"
BATCH_FLUSH_INTERVAL_MS = 3000
BATCH_MIN_BYTES = 24000  # 0.5s at 24kHz 16-bit mono

# Reconnection constants
RECONNECT_MAX_ATTEMPTS = 5
RECONNECT_BASE_DELAY = 1.0  # seconds
RECONNECT_BACKOFF_FACTOR = 2.0
