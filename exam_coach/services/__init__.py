"""Service modules for the Exam Coach System."""

from .configuration_manager import ConfigurationManager
from .llm_manager import LLMProviderManager, LLMProvider, LLMRequest, LLMResponse

__all__ = [
    "ConfigurationManager",
    "LLMProviderManager",
    "LLMProvider",
    "LLMRequest",
    "LLMResponse",
]
