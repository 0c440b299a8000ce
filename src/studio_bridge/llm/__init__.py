"""Text-generation client utilities used by the prompt route."""

from studio_bridge.llm.backends import (
    GeminiBackend,
    LLMCallResult,
    TextBackend,
    parse_page,
)
from studio_bridge.llm.client import extract_code_block, get_api_key

__all__ = [
    "GeminiBackend",
    "LLMCallResult",
    "TextBackend",
    "parse_page",
    "extract_code_block",
    "get_api_key",
]
