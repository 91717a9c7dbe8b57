"""
Tests for synthesis providers.

Tests cover:
- Polly request shape, voice selection and stream handling
- OpenAI request shape and default_voice override
- Upstream failures become DependencyError, with no retry
- Batch validation before any upstream call
- synthesize_all() ordering and abort on first failure
- Provider factory and shared instance
"""
import io
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, NoRegionError
from openai import OpenAIError

from feedtape_tts.core.config import Settings
from feedtape_tts.core.errors import DependencyError, ErrorCode, InvalidInputError
from feedtape_tts.tts.language import LanguageCode
from feedtape_tts.tts.provider import (
    available_providers,
    create_provider,
    get_provider,
    media_type_for,
    reset_provider,
)
from feedtape_tts.tts.providers.openai_provider import OpenAIProvider
from feedtape_tts.tts.providers.polly_provider import PollyProvider


def throttled():
    return ClientError(
        {"Error": {"Code": "ThrottlingException", "Message": "Rate exceeded"}},
        "SynthesizeSpeech",
    )


@pytest.fixture
def polly(settings, polly_client):
    return PollyProvider(settings, client=polly_client)


@pytest.fixture
def openai_settings():
    return Settings(raw={"tts": {"provider": "openai"}})


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.audio.speech.create.return_value.content = b"ID3-openai-audio"
    return client


class TestPollyProvider:
    """Tests for PollyProvider."""

    def test_request_shape(self, polly, polly_client):
        audio = polly.synthesize_batch("Hallo Welt.", LanguageCode.GERMAN)

        assert audio == b"<Vicki:Hallo Welt.>"
        polly_client.synthesize_speech.assert_called_once_with(
            Engine="neural",
            OutputFormat="mp3",
            Text="Hallo Welt.",
            TextType="text",
            VoiceId="Vicki",
        )

    def test_language_string_accepted(self, polly, polly_client):
        polly.synthesize_batch("Hola.", "es")
        assert polly_client.synthesize_speech.call_args.kwargs["VoiceId"] == "Lupe"

    def test_stream_closed(self, polly, polly_client):
        stream = MagicMock()
        stream.read.return_value = b"audio"
        polly_client.synthesize_speech.side_effect = None
        polly_client.synthesize_speech.return_value = {"AudioStream": stream}

        polly.synthesize_batch("Hello.", LanguageCode.ENGLISH)

        stream.close.assert_called_once()

    def test_capabilities(self, polly):
        caps = polly.capabilities
        assert caps.max_batch_chars == 3000
        assert caps.output_format == "mp3"
        assert caps.media_type == "audio/mpeg"
        assert set(caps.languages) == set(LanguageCode)

    def test_client_error_becomes_dependency_error(self, polly, polly_client):
        """The upstream message is kept and the call is made only once."""
        polly_client.synthesize_speech.side_effect = throttled()

        with pytest.raises(DependencyError) as exc_info:
            polly.synthesize_batch("Hello.", LanguageCode.ENGLISH)

        assert exc_info.value.code == ErrorCode.PROVIDER_FAILED
        assert "Rate exceeded" in exc_info.value.message
        assert exc_info.value.details["upstream"] == "ClientError"
        assert polly_client.synthesize_speech.call_count == 1

    def test_missing_audio_stream(self, polly, polly_client):
        polly_client.synthesize_speech.side_effect = None
        polly_client.synthesize_speech.return_value = {"ContentType": "audio/mpeg"}

        with pytest.raises(DependencyError):
            polly.synthesize_batch("Hello.", LanguageCode.ENGLISH)

    def test_empty_audio(self, polly, polly_client):
        polly_client.synthesize_speech.side_effect = None
        polly_client.synthesize_speech.return_value = {"AudioStream": io.BytesIO(b"")}

        with pytest.raises(DependencyError, match="empty audio"):
            polly.synthesize_batch("Hello.", LanguageCode.ENGLISH)

    def test_client_built_lazily_from_settings(self, settings):
        with patch("feedtape_tts.tts.providers.polly_provider.boto3.client") as mock_client:
            provider = PollyProvider(settings)
            mock_client.assert_not_called()

            provider.client
            provider.client

        mock_client.assert_called_once()
        args, kwargs = mock_client.call_args
        assert args == ("polly",)
        assert kwargs["region_name"] == "eu-west-1"

    def test_client_creation_failure_is_dependency_error(self, settings):
        with patch("feedtape_tts.tts.providers.polly_provider.boto3.client", side_effect=NoRegionError()):
            provider = PollyProvider(settings)
            with pytest.raises(DependencyError):
                provider.synthesize_batch("Hello.", LanguageCode.ENGLISH)


class TestBatchValidation:
    """Invalid batches never reach the upstream client."""

    def test_oversized_batch(self, polly, polly_client):
        with pytest.raises(InvalidInputError) as exc_info:
            polly.synthesize_batch("x" * 3001, LanguageCode.ENGLISH)

        assert exc_info.value.code == ErrorCode.TEXT_TOO_LONG
        polly_client.synthesize_speech.assert_not_called()

    def test_empty_batch(self, polly, polly_client):
        with pytest.raises(InvalidInputError):
            polly.synthesize_batch("   ", LanguageCode.ENGLISH)
        polly_client.synthesize_speech.assert_not_called()

    def test_unsupported_language(self, polly, polly_client):
        with pytest.raises(InvalidInputError) as exc_info:
            polly.synthesize_batch("Merhaba.", "tr")

        assert exc_info.value.code == ErrorCode.UNSUPPORTED_LANGUAGE
        polly_client.synthesize_speech.assert_not_called()


class TestSynthesizeAll:
    """Tests for synthesize_all()."""

    def test_sequential_in_order(self, polly, polly_client):
        audio = polly.synthesize_all(["One.", "Two.", "Three."], LanguageCode.ENGLISH)

        assert audio == b"<Joanna:One.><Joanna:Two.><Joanna:Three.>"
        texts = [c.kwargs["Text"] for c in polly_client.synthesize_speech.call_args_list]
        assert texts == ["One.", "Two.", "Three."]

    def test_aborts_on_first_failure(self, polly, polly_client):
        """No partial audio; later batches are not sent."""
        polly_client.synthesize_speech.side_effect = [
            {"AudioStream": io.BytesIO(b"first")},
            throttled(),
            {"AudioStream": io.BytesIO(b"third")},
        ]

        with pytest.raises(DependencyError):
            polly.synthesize_all(["One.", "Two.", "Three."], LanguageCode.ENGLISH)

        assert polly_client.synthesize_speech.call_count == 2

    def test_empty_list(self, polly):
        with pytest.raises(InvalidInputError):
            polly.synthesize_all([], LanguageCode.ENGLISH)


class TestOpenAIProvider:
    """Tests for OpenAIProvider."""

    def test_request_shape(self, openai_settings, openai_client):
        provider = OpenAIProvider(openai_settings, client=openai_client)

        audio = provider.synthesize_batch("Bonjour à tous.", LanguageCode.FRENCH)

        assert audio == b"ID3-openai-audio"
        openai_client.audio.speech.create.assert_called_once_with(
            model="tts-1",
            voice="nova",
            input="Bonjour à tous.",
            response_format="mp3",
        )

    def test_max_batch_size(self, openai_settings, openai_client):
        assert OpenAIProvider(openai_settings, client=openai_client).max_batch_size == 4096

    def test_default_voice_override(self, openai_client):
        settings = Settings(raw={"tts": {"provider": "openai"}, "openai": {"default_voice": "onyx"}})
        provider = OpenAIProvider(settings, client=openai_client)

        assert provider.voice_for(LanguageCode.SPANISH) == "onyx"

    def test_openai_error_becomes_dependency_error(self, openai_settings, openai_client):
        openai_client.audio.speech.create.side_effect = OpenAIError("invalid api key")
        provider = OpenAIProvider(openai_settings, client=openai_client)

        with pytest.raises(DependencyError, match="invalid api key"):
            provider.synthesize_batch("Hello.", LanguageCode.ENGLISH)
        assert openai_client.audio.speech.create.call_count == 1


class TestProviderFactory:
    """Tests for create_provider() and get_provider()."""

    def setup_method(self):
        reset_provider()

    def teardown_method(self):
        reset_provider()

    def test_available(self):
        assert available_providers() == ["openai", "polly"]

    def test_create_by_name(self, settings, openai_settings):
        assert isinstance(create_provider(settings), PollyProvider)
        assert isinstance(create_provider(openai_settings), OpenAIProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider(Settings(raw={"tts": {"provider": "espeak"}}))

    def test_injected_client(self, settings, polly_client):
        assert create_provider(settings, client=polly_client).client is polly_client

    def test_shared_instance(self, settings, openai_settings):
        first = get_provider(settings)
        assert get_provider(settings) is first

        switched = get_provider(openai_settings)
        assert isinstance(switched, OpenAIProvider)

    def test_media_types(self):
        assert media_type_for("mp3") == "audio/mpeg"
        assert media_type_for("unknown") == "application/octet-stream"
