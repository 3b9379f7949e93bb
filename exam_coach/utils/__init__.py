"""Utility modules for the Exam Coach System."""

from .logging import setup_logging, get_logger, bind_session, current_session_id, log_performance
from .exceptions import (
    ExamCoachError,
    ConfigurationError,
    RemoteCallError,
    LLMProviderError,
    AuthenticationError,
    RateLimitError,
    TimeoutError,
    MalformedResponseError,
    AgentError,
)
from .text import clean_for_speech, strip_code_fence

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_session",
    "current_session_id",
    "log_performance",
    "ExamCoachError",
    "ConfigurationError",
    "RemoteCallError",
    "LLMProviderError",
    "AuthenticationError",
    "RateLimitError",
    "TimeoutError",
    "MalformedResponseError",
    "AgentError",
    "clean_for_speech",
    "strip_code_fence",
]
