"""Base agent interface for the Exam Coach System."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import ValidationError

from ..models.base import BaseModel
from ..models.enums import RequestType
from ..services.llm_manager import LLMProviderManager, LLMRequest
from ..utils.exceptions import AgentError, ExamCoachError, MalformedResponseError
from ..utils.logging import get_logger
from ..utils.text import strip_code_fence

ModelT = TypeVar("ModelT", bound=BaseModel)


class BaseAgent(ABC):
    """Base interface for all agents that talk to the hosted model."""

    def __init__(self, agent_name: str, llm_manager: LLMProviderManager):
        """Initialize the base agent.

        Args:
            agent_name: Name of the agent for logging and identification
            llm_manager: Manager routing requests to the configured provider
        """
        self.agent_name = agent_name
        self.llm_manager = llm_manager
        self.logger = get_logger(f"agent.{agent_name}")

    @abstractmethod
    async def process(self, input_data: Any) -> Any:
        """Process input data and return results.

        Raises:
            ExamCoachError: If the remote call or decoding fails
        """

    async def _call_model(self, request_type: RequestType, prompt: str, json_output: bool = False) -> str:
        """Send one prompt and return the reply text.

        Provider errors propagate unchanged; anything else is wrapped in AgentError.
        """
        try:
            response = await self.llm_manager.make_request(
                LLMRequest(type=request_type, prompt=prompt, json_output=json_output)
            )
        except ExamCoachError:
            raise
        except Exception as e:
            self.log_error(e, {"request_type": request_type.value})
            raise AgentError(f"{self.agent_name} call failed: {e}", agent_name=self.agent_name)
        return response.content

    def _decode(self, content: str, model_cls: Type[ModelT]) -> ModelT:
        """Strictly decode a JSON reply into ``model_cls``."""
        try:
            return model_cls.model_validate_json(strip_code_fence(content))
        except ValidationError as e:
            self.logger.warning(f"{model_cls.__name__} decode failed: {e.error_count()} errors", extra={
                "agent": self.agent_name,
                "raw_preview": content[:200],
            })
            raise MalformedResponseError(
                f"Could not read the {model_cls.__name__} reply: {_summarize(e)}",
                expected_schema=model_cls.__name__,
                raw_content=content,
            )

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Log agent operation."""
        extra = {"agent": self.agent_name}
        if details:
            extra.update(details)

        self.logger.info(f"Operation: {operation}", extra=extra)

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
        """Log agent error with traceback."""
        extra = {"agent": self.agent_name}
        if context:
            extra.update(context)

        self.logger.error(f"Error in {self.agent_name}: {error}", extra=extra, exc_info=True)


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"{location}: {first.get('msg', 'invalid value')}"
