"""Exam session models for the Exam Coach System."""

from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from .base import BaseModel, IdentifiableModel, TimestampedModel
from .enums import CollaborationLevel, ExamState, TurnRole


class Turn(BaseModel):
    """One recorded exchange: a team answer or examiner feedback."""

    model_config = ConfigDict(frozen=True)

    role: TurnRole = Field(..., description="Who produced the turn")
    text: str = Field(..., description="Free-form turn text")

    @classmethod
    def team(cls, text: str) -> "Turn":
        return cls(role=TurnRole.TEAM, text=text)

    @classmethod
    def examiner(cls, text: str) -> "Turn":
        return cls(role=TurnRole.EXAMINER, text=text)


class Transcript(BaseModel):
    """Ordered, append-only conversation history sent back to the model each round."""

    turns: List[Turn] = Field(default_factory=list, description="Turns in insertion order")

    def __len__(self) -> int:
        return len(self.turns)

    def __iter__(self) -> Iterator[Turn]:  # type: ignore[override]
        return iter(self.turns)

    def append(self, turn: Turn) -> None:
        self.turns.append(turn)

    def extend(self, turns: List[Turn]) -> None:
        self.turns.extend(turns)

    def clear(self) -> None:
        self.turns.clear()

    def with_turn(self, turn: Turn) -> "Transcript":
        """Return a new transcript with ``turn`` appended, leaving this one untouched."""
        return Transcript(turns=[*self.turns, turn])

    def to_payload(self) -> List[Dict[str, str]]:
        """Serialize as role/text pairs for prompt building."""
        return [{"role": turn.role.value, "text": turn.text} for turn in self.turns]


class ExaminerDecision(BaseModel):
    """Decision returned by the examiner for one round.

    Wire format: ``{"botMessage": str, "nextQuestion": str, "isExamOver": bool}``.
    """

    message: str = Field(..., alias="botMessage", description="Feedback on the prior answer")
    next_question: str = Field(..., alias="nextQuestion", description="Next question to ask")
    exam_over: bool = Field(..., alias="isExamOver", strict=True, description="Whether the exam is complete")

    @model_validator(mode="after")
    def _require_question_while_running(self) -> "ExaminerDecision":
        if not self.exam_over and not self.next_question.strip():
            raise ValueError("nextQuestion must not be empty while the exam continues")
        return self


class PerformanceReport(BaseModel):
    """Terminal report produced by the coach once per session."""

    team_score: int = Field(..., alias="teamScore", ge=1, le=100, description="Team score 1-100")
    collaboration_level: CollaborationLevel = Field(..., alias="collaborationLevel", description="Low/Medium/High")
    behavioral_analysis: str = Field(..., alias="behavioralAnalysis", description="How the team worked together")
    improvement_plan: str = Field(..., alias="improvementPlan", description="Advice for next time")

    @field_validator("collaboration_level", mode="before")
    @classmethod
    def _coerce_collaboration_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return CollaborationLevel(value)
        return value


class ExamSession(IdentifiableModel, TimestampedModel):
    """Session-scoped state owned by a single exam controller."""

    state: ExamState = Field(default=ExamState.IDLE, description="Current controller state")
    transcript: Transcript = Field(default_factory=Transcript, description="Visible conversation history")
    current_question: str = Field(default="", description="Question the team is answering")
    feedback: Optional[str] = Field(default=None, description="Latest examiner feedback or error message")
    report: Optional[PerformanceReport] = Field(default=None, description="Coach report, once available")
    answers_submitted: int = Field(default=0, ge=0, description="Team answers sent to the examiner")
    finished_at: Optional[datetime] = Field(default=None, description="When the session reached FINISHED")

    def transition(self, state: ExamState) -> None:
        """Move to ``state`` and stamp the update time."""
        self.state = state
        if state == ExamState.FINISHED:
            self.finished_at = datetime.now()
        self.touch()


class ExamSnapshot(BaseModel):
    """Read-only view of a session handed to the presentation layer."""

    session_id: str
    state: ExamState
    current_question: str
    feedback: Optional[str]
    report: Optional[PerformanceReport]
    turns: List[Turn]
    answers_submitted: int
    max_questions: int

    @property
    def questions_remaining(self) -> int:
        return max(self.max_questions - self.answers_submitted, 0)
