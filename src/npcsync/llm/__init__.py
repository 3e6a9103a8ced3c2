"""Text generation for npcsync."""

from npcsync.llm.client import LLMClient, LLMResponse
from npcsync.llm.generator import Completion, LLMGenerator, TextGenerator

__all__ = [
    "Completion",
    "LLMClient",
    "LLMGenerator",
    "LLMResponse",
    "TextGenerator",
]
