"""Enumeration types for the Exam Coach System."""

from enum import Enum


class TurnRole(Enum):
    """Who produced a transcript turn."""

    TEAM = "team"
    EXAMINER = "examiner"

    @property
    def display_name(self) -> str:
        return "Team" if self == TurnRole.TEAM else "Examiner"


class ExamState(Enum):
    """Exam controller states."""

    IDLE = "idle"
    THINKING = "thinking"
    ACTIVE = "active"
    ANALYZING = "analyzing"
    FINISHED = "finished"

    @property
    def is_busy(self) -> bool:
        """True while a remote call is in flight."""
        return self in (ExamState.THINKING, ExamState.ANALYZING)


class CollaborationLevel(Enum):
    """Collaboration level reported by the coach."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def _missing_(cls, value):
        """Handle case variations such as "high" or "HIGH"."""
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized.startswith("collaborationlevel."):
                normalized = normalized.split(".", 1)[1]
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None


class RequestType(Enum):
    """Kinds of remote calls; each maps to its own model tier."""

    EXAMINER = "examiner"
    COACH = "coach"
    ASSISTANT = "assistant"
