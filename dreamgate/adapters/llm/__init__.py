"""LLM adapter layer - abstracts over LLM providers."""

from dreamgate.adapters.llm.base import AbstractLLMClient
from dreamgate.adapters.llm.factory import create_llm_client
from dreamgate.adapters.llm.openai_client import OpenAIClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "create_llm_client",
]
