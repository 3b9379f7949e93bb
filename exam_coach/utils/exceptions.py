"""Custom exceptions for the Exam Coach System.

``RemoteCallError`` and ``MalformedResponseError`` are the two failures the
exam controller turns into feedback text; everything else is a setup or
programming error.
"""

from typing import Any, Dict, Optional


class ExamCoachError(Exception):
    """Base exception carrying a readable message, a stable code and details."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}" if self.error_code else self.message


class ConfigurationError(ExamCoachError):
    """Invalid or unreadable configuration.

    Args:
        message: What is wrong
        config_key: Dotted key or file that caused it, when known
    """

    def __init__(self, message: str, config_key: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)
        self.config_key = config_key


class RemoteCallError(ExamCoachError):
    """The hosted model could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, provider_name: Optional[str] = None,
                 error_code: str = "REMOTE_CALL_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.provider_name = provider_name


class LLMProviderError(RemoteCallError):
    """Generic provider failure; ``status_code`` is set for HTTP errors."""

    def __init__(self, message: str, provider_name: Optional[str] = None,
                 status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, provider_name, "LLM_PROVIDER_ERROR", details)
        self.status_code = status_code


class AuthenticationError(RemoteCallError):
    """The API key is missing or was rejected (HTTP 401/403)."""

    def __init__(self, message: str, provider_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, provider_name, "AUTHENTICATION_ERROR", details)


class RateLimitError(RemoteCallError):
    """Quota exhausted (HTTP 429)."""

    def __init__(self, message: str, provider_name: Optional[str] = None,
                 retry_after: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, provider_name, "RATE_LIMIT_ERROR", details)
        self.retry_after = retry_after


class TimeoutError(RemoteCallError):
    """A remote call ran past its per-role time budget.

    Args:
        message: What timed out
        operation: Model endpoint that was being called
        timeout_seconds: The budget that was exceeded
    """

    def __init__(self, message: str, operation: Optional[str] = None,
                 timeout_seconds: Optional[float] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, None, "TIMEOUT_ERROR", details)
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class MalformedResponseError(ExamCoachError):
    """A model reply did not decode into the expected JSON shape.

    Args:
        message: Short description of the first problem found
        expected_schema: Name of the model the reply was decoded into
        raw_content: The reply text, kept for logging
    """

    def __init__(self, message: str, expected_schema: Optional[str] = None,
                 raw_content: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "MALFORMED_RESPONSE", details)
        self.expected_schema = expected_schema
        self.raw_content = raw_content


class AgentError(ExamCoachError):
    """Unexpected failure inside an agent, wrapped with the agent's name."""

    def __init__(self, message: str, agent_name: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AGENT_ERROR", details)
        self.agent_name = agent_name
