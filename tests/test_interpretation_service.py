"""Unit tests for InterpretationService."""

from typing import Any

import pytest

from dreamgate.core.errors import LLMAppError, ValidationAppError
from dreamgate.services.interpretation_service import (
    JSON_REMINDER,
    InterpretationService,
    build_prompt,
)
from dreamgate.utils.result_cache import ResultCache, fingerprint

DREAM = "I was flying over a silver ocean while my childhood house floated below me."


@pytest.fixture
def build_service(make_llm):
    def _build(*responses: Any, cache: ResultCache | None = None):
        llm = make_llm(*responses)
        cache = cache if cache is not None else ResultCache()
        return InterpretationService(llm=llm, cache=cache), llm

    return _build


class TestBuildPrompt:
    def test_includes_dream_text(self) -> None:
        prompt = build_prompt(DREAM)

        assert DREAM in prompt
        assert JSON_REMINDER not in prompt

    def test_strict_prompt_appends_reminder(self) -> None:
        assert build_prompt(DREAM, strict=True).endswith(JSON_REMINDER)


class TestInterpret:
    @pytest.mark.asyncio
    async def test_miss_calls_llm_and_caches_result(self, build_service, make_interpretation) -> None:
        cache = ResultCache()
        service, llm = build_service(make_interpretation(), cache=cache)

        result = await service.interpret(DREAM)

        assert result.from_cache is False
        assert result.interpretation.main_themes == ["transformation", "freedom"]
        assert len(llm.prompts) == 1
        assert cache.lookup(fingerprint(DREAM)) == result.interpretation.model_dump()

    @pytest.mark.asyncio
    async def test_hit_skips_llm(self, build_service, make_interpretation) -> None:
        service, llm = build_service(make_interpretation())

        first = await service.interpret(DREAM)
        second = await service.interpret(DREAM)

        assert second.from_cache is True
        assert second.interpretation == first.interpretation
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_case_and_spacing_variants_share_cache_entry(self, build_service, make_interpretation) -> None:
        service, llm = build_service(make_interpretation())

        await service.interpret(DREAM)
        variant = "   " + DREAM.upper().replace(" ", "   ") + "\n"
        result = await service.interpret(variant)

        assert result.from_cache is True
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_fresh_call(self, build_service, make_interpretation, clock) -> None:
        cache = ResultCache(default_ttl_ms=1_000, clock=clock)
        service, llm = build_service(make_interpretation(), make_interpretation(guidance="Rest."), cache=cache)

        await service.interpret(DREAM)
        clock.advance(1_001)
        result = await service.interpret(DREAM)

        assert result.from_cache is False
        assert result.interpretation.guidance == "Rest."
        assert len(llm.prompts) == 2

    @pytest.mark.asyncio
    async def test_ttl_override_is_used_for_store(self, make_llm, make_interpretation, clock) -> None:
        cache = ResultCache(default_ttl_ms=10_000_000, clock=clock)
        llm = make_llm(make_interpretation(), make_interpretation())
        service = InterpretationService(llm=llm, cache=cache, cache_ttl_ms=50)

        await service.interpret(DREAM)
        clock.advance(51)
        result = await service.interpret(DREAM)

        assert result.from_cache is False

    @pytest.mark.asyncio
    async def test_retries_once_on_invalid_json(self, build_service, make_interpretation) -> None:
        bad_json = LLMAppError(code="llm_invalid_json", message="LLM returned invalid JSON")
        service, llm = build_service(bad_json, make_interpretation())

        result = await service.interpret(DREAM)

        assert result.from_cache is False
        assert len(llm.prompts) == 2
        assert JSON_REMINDER not in llm.prompts[0]
        assert llm.prompts[1].endswith(JSON_REMINDER)

    @pytest.mark.asyncio
    async def test_retries_once_on_schema_violation(self, build_service, make_interpretation) -> None:
        service, llm = build_service({"main_themes": []}, make_interpretation())

        result = await service.interpret(DREAM)

        assert result.interpretation.emotional_tone == "weightless wonder"
        assert len(llm.prompts) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("themes", [[""], ["x" * 201], ["ok", ""]])
    async def test_out_of_bounds_theme_is_retried(self, build_service, make_interpretation, themes) -> None:
        cache = ResultCache()
        service, llm = build_service(make_interpretation(main_themes=themes), make_interpretation(), cache=cache)

        result = await service.interpret(DREAM)

        assert result.interpretation.main_themes == ["transformation", "freedom"]
        assert llm.prompts[1].endswith(JSON_REMINDER)
        assert cache.lookup(fingerprint(DREAM))["main_themes"] == ["transformation", "freedom"]

    @pytest.mark.asyncio
    async def test_out_of_bounds_themes_are_never_cached(self, build_service, make_interpretation) -> None:
        cache = ResultCache()
        service, llm = build_service(
            make_interpretation(main_themes=[""]),
            make_interpretation(main_themes=["x" * 5000]),
            cache=cache,
        )

        with pytest.raises(LLMAppError) as exc_info:
            await service.interpret(DREAM)

        assert exc_info.value.code == "llm_invalid_output"
        assert len(llm.prompts) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_two_invalid_outputs_raise_and_cache_nothing(self, build_service) -> None:
        cache = ResultCache()
        service, llm = build_service({"unexpected": True}, {"symbols": "nope"}, cache=cache)

        with pytest.raises(LLMAppError) as exc_info:
            await service.interpret(DREAM)

        assert exc_info.value.code == "llm_invalid_output"
        assert len(llm.prompts) == 2
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_provider_error_is_not_retried_or_cached(self, build_service, make_interpretation) -> None:
        cache = ResultCache()
        outage = LLMAppError(code="llm_provider_error", message="OpenAI API error: timeout")
        service, llm = build_service(outage, make_interpretation(), cache=cache)

        with pytest.raises(LLMAppError) as exc_info:
            await service.interpret(DREAM)

        assert exc_info.value.code == "llm_provider_error"
        assert len(llm.prompts) == 1
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_dream_text_is_cleaned_before_prompting(self, build_service, make_interpretation) -> None:
        service, llm = build_service(make_interpretation())

        await service.interpret("  I was   running\r\n\r\n\r\n\r\nthrough a forest of clocks.  ")

        assert "I was running\n\nthrough a forest of clocks." in llm.prompts[0]


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "too short", "  123456789 \n"])
    async def test_too_short_rejected(self, build_service, text: str) -> None:
        service, llm = build_service()

        with pytest.raises(ValidationAppError) as exc_info:
            await service.interpret(text)

        assert exc_info.value.code == "dream_text_too_short"
        assert llm.prompts == []

    @pytest.mark.asyncio
    async def test_too_long_rejected(self, build_service) -> None:
        service, llm = build_service()

        with pytest.raises(ValidationAppError) as exc_info:
            await service.interpret("z" * 5001)

        assert exc_info.value.code == "dream_text_too_long"
        assert exc_info.value.details == {"max_chars": 5000, "actual_chars": 5001}

    @pytest.mark.asyncio
    async def test_boundaries_accepted(self, build_service, make_interpretation) -> None:
        service, llm = build_service(make_interpretation(), make_interpretation())

        await service.interpret("a" * 10)
        await service.interpret("b" * 5000)

        assert len(llm.prompts) == 2
