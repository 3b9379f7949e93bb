"""Agent modules for the Exam Coach System."""

from .base_agent import BaseAgent
from .examiner_agent import START_MARKER, ExaminerAgent, ExaminerContext
from .coach_agent import CoachAgent, CoachContext
from .assistant_agent import AssistantAgent
from .exam_controller import ExamController

__all__ = [
    "BaseAgent",
    "START_MARKER",
    "ExaminerAgent",
    "ExaminerContext",
    "CoachAgent",
    "CoachContext",
    "AssistantAgent",
    "ExamController",
]
