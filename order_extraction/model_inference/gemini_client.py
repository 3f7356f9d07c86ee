"""
Hosted Multimodal Model Client.

Thin async wrapper around the Google GenAI SDK. One call is one
request/response exchange carrying the inline document bytes with their
MIME type, a text prompt, an optional system instruction and a
JSON-schema-constrained response format.

Usage:
    client = GeminiClient()
    response = await client.generate(
        content=pdf_bytes,
        mime_type="application/pdf",
        prompt="Analyze the document and return the JSON response.",
        response_schema=schema,
    )
    print(response.text, response.input_tokens)

Author: ML Engineering Team
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from config import get_config
from order_extraction.utils.logger import get_logger
from order_extraction.utils.exceptions import ConfigurationError, InferenceError

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelResponse:
    """Text and token usage of one hosted-model exchange."""
    text: Optional[str]
    input_tokens: int = 0
    output_tokens: int = 0


class GeminiClient:
    """
    Async client for the hosted multimodal extraction model.

    Attributes:
        model_name: Hosted model identifier
        display_name: Human-readable model name used in usage metadata

    Example:
        >>> client = GeminiClient(api_key="...")
        >>> client.model_name
        'gemini-2.5-flash'
    """

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: API key. If None, read from the environment variable
                named by ``cloud.api_key_env``.
            model_name: Hosted model identifier. If None, uses config.

        Raises:
            ConfigurationError: If no API key is available.
        """
        self.model_name = model_name or get_config("cloud.model", self.DEFAULT_MODEL)
        self.display_name = get_config("cloud.display_name", self.model_name)

        key_env = get_config("cloud.api_key_env", "GEMINI_API_KEY")
        api_key = api_key or os.environ.get(key_env)
        if not api_key:
            raise ConfigurationError(
                f"No API key for the hosted model; set {key_env}",
                {"env": key_env}
            )

        self._client = genai.Client(api_key=api_key)
        logger.info(f"GeminiClient initialized with model: {self.model_name}")

    async def generate(
        self,
        content: bytes,
        mime_type: str,
        prompt: str,
        response_schema: Dict[str, Any],
        system_instruction: Optional[str] = None
    ) -> ModelResponse:
        """
        Send one document + prompt exchange and return the response text.

        Args:
            content: Raw document bytes sent inline.
            mime_type: MIME type of ``content``.
            prompt: Text part following the document.
            response_schema: Structured-output schema the reply must follow.
            system_instruction: Optional system instruction.

        Returns:
            ModelResponse with text and token counts.

        Raises:
            InferenceError: If the request fails.
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
            response_schema=response_schema,
        )

        logger.debug(
            f"Calling {self.model_name} ({len(content)} bytes {mime_type}, "
            f"prompt {len(prompt)} chars)"
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=content, mime_type=mime_type),
                    prompt,
                ],
                config=config,
            )
        except Exception as e:
            logger.error(f"Hosted model request failed: {e}")
            raise InferenceError(str(e), self.model_name) from e

        usage = response.usage_metadata
        return ModelResponse(
            text=response.text,
            input_tokens=(usage.prompt_token_count or 0) if usage else 0,
            output_tokens=(usage.candidates_token_count or 0) if usage else 0,
        )
