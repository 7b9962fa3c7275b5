"""
Client for the OpenAI audio translation endpoint used by batch mode.

Each call uploads one WAV file and returns the English text as a plain
string. The client is created per session because the API key is supplied
by the connected client.
"""

from typing import Any, Optional

from openai import AsyncOpenAI

from livecaptions.config.logging_config import configure_logging
from livecaptions.config.models import OpenAIConfig
from livecaptions.config.settings import get_config
from livecaptions.exceptions import ProviderError

logger = configure_logging("translation_client")


class TranslationClient:
    """Thin async wrapper around ``audio.translations.create``."""

    def __init__(
        self,
        api_key: str,
        openai_config: Optional[OpenAIConfig] = None,
        client: Optional[Any] = None,
    ):
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.openai_config = openai_config or get_config().openai
        self.model = self.openai_config.translation_model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def translate(self, wav_data: bytes, filename: str = "audio.wav") -> str:
        """
        Translate a WAV clip to English text.

        Args:
            wav_data: Complete WAV file contents
            filename: Name reported with the upload

        Returns:
            str: The translated text, possibly empty

        Raises:
            ProviderError: If the API call fails
        """
        try:
            response = await self._client.audio.translations.create(
                model=self.model,
                file=(filename, wav_data, "audio/wav"),
                response_format="text",
            )
        except Exception as e:
            raise ProviderError(f"Translation request failed: {e}") from e

        # response_format="text" yields a str; older SDKs return an object
        if isinstance(response, str):
            return response
        return getattr(response, "text", "") or ""

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.debug(f"Error closing OpenAI client: {e}")
