"""Dream interpretation service: caching in front of the LLM.

Pipeline for each request:
- validate and tidy the dream text
- fingerprint the normalized text and consult the result cache
- on a miss, ask the model (one retry with a stricter JSON reminder when the
  output does not parse or validate)
- cache only validated results
"""

import logging
from typing import Any

from pydantic import ValidationError

from dreamgate.adapters.llm.base import AbstractLLMClient
from dreamgate.core.config import settings
from dreamgate.core.errors import LLMAppError, ValidationAppError
from dreamgate.schemas.interpretation import DreamInterpretation, InterpretDreamResponse
from dreamgate.utils.result_cache import ResultCache, fingerprint
from dreamgate.utils.text_normalizer import clean_dream_text

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

SYSTEM_PROMPT = """\
You are Day Dream Dictionary, an empathetic, mystical, and psychologically attuned dream interpreter.

Given a dream description, return a JSON object that strictly conforms to this schema (no extra fields):

{
  "main_themes": ["string"],
  "emotional_tone": "string",
  "symbols": [{"symbol": "string", "meaning": "string"}],
  "personal_insight": "string",
  "guidance": "string"
}

Field guidelines:
- main_themes: 2-5 recurring motifs (e.g. transformation, fear, rebirth, connection).
- emotional_tone: single evocative phrase describing the dream's mood / atmosphere.
- symbols: 2-5 key dream elements; interpret each emotionally or archetypally.
- personal_insight: 2-4 sentences on what the subconscious may be processing or seeking.
- guidance: 2-4 sentences of supportive, mystical direction. Never clinical or prescriptive.

Style: warm, poetic, intuitive. Blend Jungian symbolism with mindful awareness. Avoid cliches.

CRITICAL: Output ONLY the raw JSON object: no markdown fences, no prose, no additional text."""

JSON_REMINDER = (
    "IMPORTANT: Your response MUST be a single raw JSON object, no markdown, no extra text."
)


def build_prompt(dream_text: str, *, strict: bool = False) -> str:
    """Build the user prompt for a dream.

    Args:
        dream_text: Cleaned dream description.
        strict: Append the JSON-only reminder used on the retry attempt.

    Returns:
        Prompt string.
    """
    prompt = f"Please interpret this dream:\n\n{dream_text}"
    if strict:
        prompt = f"{prompt}\n\n{JSON_REMINDER}"
    return prompt


class InterpretationService:
    """Interprets dreams through the LLM with a result cache in front.

    Attributes:
        llm: LLM client adapter.
        cache: Result cache keyed by dream-text fingerprint.
    """

    def __init__(self, llm: AbstractLLMClient, cache: ResultCache, *, cache_ttl_ms: int | None = None) -> None:
        """Initialize with injected dependencies.

        Args:
            llm: Configured LLM client instance.
            cache: Shared result cache instance.
            cache_ttl_ms: Optional TTL override for stored interpretations.
        """
        self.llm = llm
        self.cache = cache
        self.cache_ttl_ms = cache_ttl_ms

    def _prepare(self, dream_text: str) -> str:
        """Clean dream text and enforce length bounds.

        Raises:
            ValidationAppError: If the text is too short or too long.
        """
        text = clean_dream_text(dream_text or "")
        min_chars = settings.app.min_dream_chars
        max_chars = settings.app.max_dream_chars

        if len(text) < min_chars:
            raise ValidationAppError(
                code="dream_text_too_short",
                message=f"Dream text must be at least {min_chars} characters",
                details={"min_chars": min_chars, "actual_chars": len(text)},
            )
        if len(text) > max_chars:
            raise ValidationAppError(
                code="dream_text_too_long",
                message=f"Dream text must be {max_chars} characters or fewer",
                details={"max_chars": max_chars, "actual_chars": len(text)},
            )
        return text

    async def _generate(self, dream_text: str) -> DreamInterpretation:
        """Ask the model for an interpretation, retrying once on bad output.

        Provider failures (network, auth, quota) are not retried.

        Raises:
            LLMAppError: If the provider fails or both attempts return unusable output.
        """
        options: dict[str, Any] = {
            "temperature": settings.llm.temperature,
            "max_tokens": settings.llm.max_tokens,
        }

        for attempt in range(1, MAX_ATTEMPTS + 1):
            prompt = build_prompt(dream_text, strict=attempt > 1)
            try:
                raw = await self.llm.generate_json(prompt, system=SYSTEM_PROMPT, **options)
                return DreamInterpretation.model_validate(raw)
            except LLMAppError as exc:
                if exc.code != "llm_invalid_json":
                    raise
                reason = exc.code
            except ValidationError as exc:
                reason = f"schema_errors={exc.error_count()}"

            logger.warning(
                "interpretation.invalid_output",
                extra={"attempt": attempt, "reason": reason},
            )

        raise LLMAppError(
            code="llm_invalid_output",
            message="Dream interpretation service returned invalid output. Please try again.",
            details={"attempts": MAX_ATTEMPTS},
        )

    async def interpret(self, dream_text: str) -> InterpretDreamResponse:
        """Interpret a dream, serving recent identical dreams from the cache.

        Args:
            dream_text: Dream description as submitted.

        Returns:
            InterpretDreamResponse with ``from_cache`` set accordingly.

        Raises:
            ValidationAppError: If the dream text is out of bounds.
            LLMAppError: If no valid interpretation could be produced.
        """
        text = self._prepare(dream_text)
        cache_key = fingerprint(text)

        cached = self.cache.lookup(cache_key)
        if cached is not None:
            logger.info("interpretation.cache_hit", extra={"cache_key": cache_key[:16]})
            return InterpretDreamResponse(
                interpretation=DreamInterpretation.model_validate(cached),
                from_cache=True,
            )

        interpretation = await self._generate(text)
        self.cache.store(cache_key, interpretation.model_dump(), ttl_ms=self.cache_ttl_ms)
        logger.info(
            "interpretation.generated",
            extra={"cache_key": cache_key[:16], "themes": len(interpretation.main_themes)},
        )
        return InterpretDreamResponse(interpretation=interpretation, from_cache=False)
