"""OpenAI LLM client adapter."""

import json
import re
from typing import Any

from openai import AsyncOpenAI

from dreamgate.adapters.llm.base import AbstractLLMClient
from dreamgate.core.errors import LLMAppError

DEFAULT_SYSTEM_PROMPT = "Output JSON only. No extra text or markdown formatting."

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")

_PASSTHROUGH_PARAMS = (
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
    "seed",
)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model may wrap around its JSON."""
    return _FENCE_END.sub("", _FENCE_START.sub("", text.strip())).strip()


class OpenAIClient(AbstractLLMClient):
    """Client for calling OpenAI chat completions and returning JSON.

    Uses the official OpenAI Python SDK with async support.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        """Initialize OpenAI async client.

        Args:
            api_key: OpenAI API key for authentication.
            model: Model name (e.g., "gpt-4o", "gpt-4o-mini").
            base_url: Optional custom base URL for OpenAI API.
            timeout_seconds: Timeout for requests in seconds.
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model

    async def generate_json(
        self,
        prompt: str,
        *,
        system: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate a JSON object using OpenAI chat completions in JSON mode.

        Args:
            prompt: User prompt to send to the model.
            system: Optional system prompt; a JSON-only instruction by default.
            **kwargs: temperature plus the passthrough options (max_tokens, top_p, ...).

        Returns:
            dict[str, Any]: Parsed JSON object from the LLM response.

        Raises:
            LLMAppError: If the API call fails or the response is not a JSON object.
        """
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": kwargs.pop("temperature", 0.2),
            "response_format": {"type": "json_object"},
        }
        for param in _PASSTHROUGH_PARAMS:
            if param in kwargs:
                request_params[param] = kwargs[param]

        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as exc:
            raise LLMAppError(
                code="llm_provider_error",
                message=f"OpenAI API error: {exc}",
                details={"model": self.model},
            ) from exc

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"model": self.model},
            )

        try:
            parsed = json.loads(strip_code_fences(content))
        except json.JSONDecodeError as exc:
            raise LLMAppError(
                code="llm_invalid_json",
                message=f"LLM returned invalid JSON: {exc}",
                details={"model": self.model},
            ) from exc

        if not isinstance(parsed, dict):
            raise LLMAppError(
                code="llm_invalid_json",
                message="LLM returned JSON that is not an object",
                details={"model": self.model},
            )
        return parsed
