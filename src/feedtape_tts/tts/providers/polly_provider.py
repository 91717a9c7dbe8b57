"""
Amazon Polly provider.

Calls SynthesizeSpeech with the neural engine and MP3 output, one call
per batch. Voices come from the language table (Joanna, Lupe, Lea, Vicki,
Bianca, Ines). Credentials follow the standard AWS chain (environment,
shared config, instance role); only the region is configured here.

The botocore client is built with retries disabled so a failing call is
reported once, as a DependencyError, instead of being replayed.
"""
from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from feedtape_tts.core.errors import DependencyError
from feedtape_tts.tts.language import LanguageCode
from feedtape_tts.tts.provider import BaseSynthesisProvider


class PollyProvider(BaseSynthesisProvider):
    name = "polly"
    upstream_errors = (BotoCoreError, ClientError)

    @property
    def max_batch_size(self) -> int:
        return self.config.polly.max_batch_chars

    @property
    def output_format(self) -> str:
        return self.config.polly.output_format

    def _create_client(self) -> Any:
        timeout = self.config.provider.timeout_s
        return boto3.client(
            "polly",
            region_name=self.config.polly.region,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )

    def _request(self, text: str, voice: str, language: LanguageCode) -> bytes:
        response = self.client.synthesize_speech(
            Engine=self.config.polly.engine,
            OutputFormat=self.output_format,
            Text=text,
            TextType="text",
            VoiceId=voice,
        )
        stream = response.get("AudioStream")
        if stream is None:
            raise DependencyError(
                "Polly response did not include an AudioStream",
                details={"provider": self.name},
            )
        try:
            return stream.read()
        finally:
            stream.close()
