"""LLM adapters used by research and knowledge base workflows."""
from backend.app.llm.client import (
    LLMClient,
    LLMError,
    LLMRateLimitError,
    LLMUnavailableError,
    OpenAIJSONClient,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMUnavailableError",
    "OpenAIJSONClient",
]
