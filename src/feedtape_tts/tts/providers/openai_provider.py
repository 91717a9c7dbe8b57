"""
OpenAI speech provider.

Uses ``client.audio.speech.create`` with model tts-1 and MP3 output, one
call per batch (4096 characters max). Each language has its own voice
(alloy, echo, nova, onyx, fable, shimmer) unless ``openai.default_voice``
pins one voice for all of them.

The API key is read by the SDK from OPENAI_API_KEY. SDK retries are turned
off (max_retries=0); a failing call becomes one DependencyError.
"""
from __future__ import annotations

from typing import Any

from openai import OpenAI, OpenAIError

from feedtape_tts.tts.language import LanguageCode
from feedtape_tts.tts.provider import BaseSynthesisProvider


class OpenAIProvider(BaseSynthesisProvider):
    name = "openai"
    upstream_errors = (OpenAIError,)

    @property
    def max_batch_size(self) -> int:
        return self.config.openai.max_batch_chars

    @property
    def output_format(self) -> str:
        return self.config.openai.response_format

    def voice_for(self, language: LanguageCode | str) -> str:
        voice = super().voice_for(language)
        return self.config.openai.default_voice or voice

    def _create_client(self) -> Any:
        return OpenAI(
            base_url=self.config.openai.base_url,
            timeout=self.config.provider.timeout_s,
            max_retries=0,
        )

    def _request(self, text: str, voice: str, language: LanguageCode) -> bytes:
        response = self.client.audio.speech.create(
            model=self.config.openai.model,
            voice=voice,
            input=text,
            response_format=self.output_format,
        )
        return response.content
