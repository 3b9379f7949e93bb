"""Assistant Agent: one free-form prompt, one markdown answer."""

from typing import Optional

from ..models.enums import RequestType
from ..services.llm_manager import LLMProviderManager
from ..utils.exceptions import ExamCoachError
from .base_agent import BaseAgent


class AssistantAgent(BaseAgent):
    """Sends a task to the fast model and returns its markdown reply."""

    def __init__(self, llm_manager: LLMProviderManager):
        super().__init__("AssistantAgent", llm_manager)

    async def process(self, input_data: str) -> Optional[str]:
        return await self.ask(input_data)

    async def ask(self, task: str) -> Optional[str]:
        """Return the model's answer, or ``None`` for a blank task.

        Failures come back as a markdown error line instead of raising, so the
        caller always has something to render.
        """
        if not task or not task.strip():
            return None

        self.log_operation("ask", {"task_length": len(task)})
        try:
            return await self._call_model(RequestType.ASSISTANT, task)
        except ExamCoachError as e:
            self.logger.error(f"Assistant call failed: {e}")
            return f"**Error:** {e.message}"
