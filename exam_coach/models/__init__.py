"""Data models for the Exam Coach System."""

from .base import BaseModel
from .enums import CollaborationLevel, ExamState, RequestType, TurnRole
from .exam import (
    ExamSession,
    ExamSnapshot,
    ExaminerDecision,
    PerformanceReport,
    Transcript,
    Turn,
)

__all__ = [
    "BaseModel",
    "CollaborationLevel",
    "ExamState",
    "RequestType",
    "TurnRole",
    "ExamSession",
    "ExamSnapshot",
    "ExaminerDecision",
    "PerformanceReport",
    "Transcript",
    "Turn",
]
