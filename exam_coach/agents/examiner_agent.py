"""Examiner Agent: grades each answer and proposes the next question."""

import json
from dataclasses import dataclass

from ..models.enums import RequestType, TurnRole
from ..models.exam import ExaminerDecision, Transcript
from ..services.llm_manager import LLMProviderManager
from .base_agent import BaseAgent

START_MARKER = "START_EXAM"


@dataclass
class ExaminerContext:
    """Input for one examiner round."""

    transcript: Transcript
    answer: str

    @property
    def is_start(self) -> bool:
        return self.answer == START_MARKER

    @property
    def answers_so_far(self) -> int:
        """Team answers including the one being graded."""
        answered = sum(1 for turn in self.transcript if turn.role == TurnRole.TEAM)
        return answered if self.is_start else answered + 1


class ExaminerAgent(BaseAgent):
    """Fast per-turn call: grade, adapt difficulty, decide whether the exam is over."""

    def __init__(self, llm_manager: LLMProviderManager, subject: str = "React JS", max_questions: int = 5):
        """Initialize the ExaminerAgent.

        Args:
            llm_manager: LLM provider manager
            subject: Exam subject the questions are drawn from
            max_questions: Answers after which the model is told to end the exam
        """
        super().__init__("ExaminerAgent", llm_manager)
        self.subject = subject
        self.max_questions = max_questions

    async def process(self, input_data: ExaminerContext) -> ExaminerDecision:
        """Run one examiner round.

        Raises:
            RemoteCallError: If the call fails
            MalformedResponseError: If the reply is not a valid decision
        """
        self.log_operation("examine", {
            "is_start": input_data.is_start,
            "transcript_turns": len(input_data.transcript),
        })

        content = await self._call_model(RequestType.EXAMINER, self._build_prompt(input_data), json_output=True)
        decision = self._decode(content, ExaminerDecision)

        self.log_operation("examine_completed", {"exam_over": decision.exam_over})
        return decision

    def _build_prompt(self, context: ExaminerContext) -> str:
        """Build the examiner prompt."""
        history = json.dumps(context.transcript.to_payload(), ensure_ascii=False)
        answer = json.dumps(context.answer, ensure_ascii=False)

        return f"""You are an Adaptive {self.subject} Examiner testing a team of students.
Previous Context: {history}
Team Answer: {answer}
Answers given so far (including this one): {context.answers_so_far}

TASK:
1. If the Team Answer is "{START_MARKER}", this is the start: ask a medium-level {self.subject} question.
2. Otherwise grade the answer (Pass/Fail) and explain briefly.
3. If Pass -> generate a HARDER {self.subject} question.
4. If Fail -> generate a SIMPLER {self.subject} question.
5. If they have answered {self.max_questions} questions OR showed mastery, set "isExamOver": true.

OUTPUT JSON ONLY:
{{
  "botMessage": "string",
  "nextQuestion": "string",
  "isExamOver": boolean
}}"""
