"""Text-to-speech voice synthesis using the OpenAI TTS API.

Converts scripts into MP3 bytes for upload to blob storage. Like the script
writer, every call is a single attempt with an explicit timeout; retries are
the caller's business.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import openai
from openai import OpenAI

from .config import PipelineConfig
from .errors import PermanentAPIError, TransientAPIError, ValidationError

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 150


def estimate_duration_seconds(script_text: str) -> int:
    """Estimate spoken duration (rough approximation: 150 words per minute)."""
    word_count = len(script_text.split())
    return round((word_count / WORDS_PER_MINUTE) * 60)


@dataclass
class SynthesizedAudio:
    """Generated audio with metadata."""

    data: bytes
    duration_estimate: int  # Estimated seconds, from word count
    voice: str
    model: str
    format: str = "mp3"

    @property
    def content_type(self) -> str:
        return "audio/mpeg" if self.format == "mp3" else f"audio/{self.format}"


class OpenAITTSClient:
    """OpenAI TTS voice synthesizer.

    App voices (voice_1, voice_2, ...) are mapped to OpenAI voice names by
    ``voice_map``.
    """

    def __init__(
        self,
        api_key: str,
        voice_map: dict[str, str],
        model: str = "tts-1",
        timeout: float = 60.0,
        client: Optional[OpenAI] = None,
    ):
        if not api_key and client is None:
            raise ValueError("DAYSTART_TTS_API_KEY not configured")

        self.client = client or OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.voice_map = dict(voice_map)
        self.model = model
        self.format = "mp3"

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "OpenAITTSClient":
        key = config.api_keys.tts_api_key
        return cls(
            api_key=key.get_secret_value() if key else "",
            voice_map=config.synthesis.voice_map,
            model=config.synthesis.tts_model,
            timeout=config.synthesis.tts_timeout_seconds,
        )

    def synthesize(self, script_text: str, voice: str) -> SynthesizedAudio:
        """Synthesize speech for one script.

        Raises:
            ValidationError: Empty script or unknown voice
            TransientAPIError: Timeout, connection failure, rate limit, 5xx
            PermanentAPIError: Request rejected by the API
        """
        if not script_text or not script_text.strip():
            raise ValidationError("Cannot synthesize empty script")
        tts_voice = self.voice_map.get(voice)
        if tts_voice is None:
            raise ValidationError(f"Invalid voice: {voice}")

        logger.info(f"Synthesizing speech with voice '{voice}' ({tts_voice})")

        try:
            response = self.client.audio.speech.create(
                model=self.model,
                voice=tts_voice,
                input=script_text,
                response_format=self.format,
            )
            data = response.content
        except (openai.APIConnectionError, openai.RateLimitError, openai.InternalServerError) as e:
            raise TransientAPIError(f"OpenAI TTS unavailable: {e}") from e
        except openai.APIStatusError as e:
            raise PermanentAPIError(f"OpenAI TTS rejected request ({e.status_code}): {e}") from e
        except openai.APIError as e:
            raise PermanentAPIError(f"OpenAI TTS API error: {e}") from e

        if not data:
            raise TransientAPIError("OpenAI TTS returned no audio data")

        duration = estimate_duration_seconds(script_text)
        logger.info(f"Voice synthesis complete (~{duration}s, {len(data)} bytes)")

        return SynthesizedAudio(
            data=data,
            duration_estimate=duration,
            voice=voice,
            model=self.model,
            format=self.format,
        )
