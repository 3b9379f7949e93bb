"""LLM Provider implementations for the Exam Coach System."""

from .gemini_provider import GeminiProvider

__all__ = [
    "GeminiProvider",
]
