"""Pydantic schemas for dream interpretation requests and responses."""

from typing import Annotated

from pydantic import BaseModel, Field

Theme = Annotated[str, Field(min_length=1, max_length=200)]


class DreamSymbol(BaseModel):
    """A dream element and what it may represent."""

    symbol: str = Field(..., min_length=1, max_length=200, description="Dream element (e.g., 'falling').")
    meaning: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Emotional or archetypal reading of the element.",
    )


class DreamInterpretation(BaseModel):
    """Structured interpretation returned by the model.

    Only results that validate against this schema are cached.
    """

    main_themes: list[Theme] = Field(
        ...,
        min_length=1,
        max_length=10,
        description="Recurring motifs (e.g., transformation, fear, rebirth).",
    )
    emotional_tone: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Single evocative phrase describing the dream's mood.",
    )
    symbols: list[DreamSymbol] = Field(
        ...,
        min_length=1,
        max_length=10,
        description="Key dream elements with their interpretation.",
    )
    personal_insight: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="What the subconscious may be processing or seeking.",
    )
    guidance: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Supportive direction for the dreamer.",
    )


class InterpretDreamRequest(BaseModel):
    """Body of ``POST /v1/dreams/interpret``."""

    dream_text: str = Field(
        ...,
        description="Free-form description of the dream (10-5000 characters after trimming).",
    )


class InterpretDreamResponse(BaseModel):
    """Interpretation plus whether it was served from the result cache."""

    interpretation: DreamInterpretation
    from_cache: bool = Field(
        False,
        description="True when an identical (normalized) dream was interpreted recently.",
    )
