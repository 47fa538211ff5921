"""Script generation using the Claude LLM.

Turns a block's raw content into a spoken script in one of the app voices.
SDK-level retries are disabled; the synthesizer owns retry policy, so every
call here is a single attempt with an explicit timeout.
"""

import logging
from datetime import date
from typing import Any, Optional

import anthropic
from anthropic import Anthropic

from .config import PipelineConfig
from .errors import PermanentAPIError, TransientAPIError, ValidationError
from .models import ContentType
from .prompts import build_system_prompt, build_user_prompt, prompt_for

logger = logging.getLogger(__name__)


class ClaudeScriptWriter:
    """Claude-powered script writer."""

    def __init__(self, api_key: str, model: str, timeout: float = 30.0, client: Optional[Anthropic] = None):
        """Initialize the Claude client.

        Args:
            api_key: Anthropic API key
            model: Claude model name
            timeout: Per-request timeout in seconds
            client: Pre-built client (tests)
        """
        if not api_key and client is None:
            raise ValueError("DAYSTART_LLM_API_KEY not configured")

        self.client = client or Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "ClaudeScriptWriter":
        key = config.api_keys.llm_api_key
        return cls(
            api_key=key.get_secret_value() if key else "",
            model=config.synthesis.llm_model,
            timeout=config.synthesis.llm_timeout_seconds,
        )

    def write(
        self,
        content_type: ContentType,
        content: str,
        voice: str,
        for_date: date,
        parameters: Optional[dict[str, Any]] = None,
    ) -> str:
        """Generate one script.

        Returns:
            Script text ready for TTS

        Raises:
            ValidationError: If the content type has no script prompt
            TransientAPIError: Timeout, connection failure, rate limit, 5xx, empty reply
            PermanentAPIError: Request rejected by the API
        """
        prompt = prompt_for(content_type)
        if prompt is None:
            raise ValidationError(f"Unsupported content type for scripts: {content_type.value}")

        logger.info(f"Generating {content_type.value} script for {voice} using {self.model}")

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=prompt.max_tokens,
                temperature=prompt.temperature,
                system=build_system_prompt(prompt, voice),
                messages=[{
                    "role": "user",
                    "content": build_user_prompt(prompt, content, for_date, parameters),
                }],
            )
        except (anthropic.APIConnectionError, anthropic.RateLimitError, anthropic.InternalServerError) as e:
            # APITimeoutError is an APIConnectionError
            raise TransientAPIError(f"Claude API unavailable: {e}") from e
        except anthropic.APIStatusError as e:
            raise PermanentAPIError(f"Claude API rejected request ({e.status_code}): {e}") from e
        except anthropic.APIError as e:
            raise PermanentAPIError(f"Claude API error: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        ).strip()
        if not text:
            raise TransientAPIError("No script generated by Claude")

        logger.info(f"Generated {content_type.value} script ({len(text.split())} words)")
        return text
