"""
Shared audio utilities for the Live Captions relay.

This module contains the PCM16 codec used on both sides of the relay:
float sample conversion, base64 transport encoding and WAV packaging.
"""

import base64
import binascii
import struct
from typing import Iterable, Union

import numpy as np

from livecaptions.config.constants import (
    DEFAULT_BITS_PER_SAMPLE,
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
)
from livecaptions.exceptions import TranscodeError


class AudioUtils:
    """Shared audio utility functions."""

    @staticmethod
    def float_to_pcm16(samples: Union[Iterable[float], np.ndarray]) -> np.ndarray:
        """
        Convert float samples to signed 16-bit PCM.

        Each sample is clamped to [-1.0, 1.0]. Negative values are scaled by
        32768 and non-negative values by 32767, then truncated toward zero.

        Args:
            samples: Float samples in the nominal range [-1.0, 1.0]

        Returns:
            np.ndarray: int16 array with the same length as the input
        """
        values = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
        scaled = np.where(values < 0, values * 32768.0, values * 32767.0)
        return np.trunc(scaled).astype(np.int16)

    @staticmethod
    def pcm16_to_bytes(samples: np.ndarray) -> bytes:
        """Serialize int16 samples as little-endian bytes."""
        return np.asarray(samples, dtype="<i2").tobytes()

    @staticmethod
    def calculate_audio_duration(
        audio_data: bytes,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE,
    ) -> float:
        """
        Calculate the duration of audio data.

        Args:
            audio_data (bytes): Raw audio data
            sample_rate (int): Sample rate in Hz
            channels (int): Number of channels
            bits_per_sample (int): Bits per sample

        Returns:
            float: Duration in seconds
        """
        if not audio_data:
            return 0.0

        bytes_per_sample = bits_per_sample // 8
        total_samples = len(audio_data) // (channels * bytes_per_sample)
        return total_samples / sample_rate

    @staticmethod
    def convert_to_base64(audio_data: bytes) -> str:
        """
        Convert audio data to base64 string.

        Args:
            audio_data (bytes): Raw audio data

        Returns:
            str: Base64 encoded string
        """
        return base64.b64encode(audio_data).decode("ascii")

    @staticmethod
    def convert_from_base64(base64_data: str) -> bytes:
        """
        Convert base64 string back to audio data.

        Args:
            base64_data (str): Base64 encoded audio data

        Returns:
            bytes: Raw audio data

        Raises:
            TranscodeError: If the input is not valid base64
        """
        if not isinstance(base64_data, str):
            raise TranscodeError(
                f"Expected base64 text, got {type(base64_data).__name__}"
            )
        try:
            return base64.b64decode(base64_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TranscodeError(f"Invalid base64 audio data: {e}") from e

    @staticmethod
    def pcm16_to_wav(pcm_data: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
        """
        Wrap raw PCM16 mono audio in a canonical 44-byte WAV header.

        Args:
            pcm_data (bytes): Raw little-endian PCM16 samples
            sample_rate (int): Sample rate in Hz

        Returns:
            bytes: WAV file contents
        """
        data_size = len(pcm_data)
        channels = DEFAULT_CHANNELS
        bits_per_sample = DEFAULT_BITS_PER_SAMPLE
        block_align = channels * bits_per_sample // 8
        byte_rate = sample_rate * block_align

        header = bytearray()

        # RIFF header
        header.extend(b"RIFF")
        header.extend(struct.pack("<I", 36 + data_size))  # Chunk size
        header.extend(b"WAVE")

        # fmt chunk
        header.extend(b"fmt ")
        header.extend(struct.pack("<I", 16))  # Subchunk1 size
        header.extend(struct.pack("<H", 1))  # Audio format (PCM)
        header.extend(struct.pack("<H", channels))
        header.extend(struct.pack("<I", sample_rate))
        header.extend(struct.pack("<I", byte_rate))
        header.extend(struct.pack("<H", block_align))
        header.extend(struct.pack("<H", bits_per_sample))

        # data chunk
        header.extend(b"data")
        header.extend(struct.pack("<I", data_size))

        return bytes(header) + pcm_data
