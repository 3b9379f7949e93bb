"""Exam Controller: drives the examiner loop and hands off to the coach."""

from typing import Optional

from ..models.enums import ExamState
from ..models.exam import ExamSession, ExamSnapshot, PerformanceReport, Transcript, Turn
from ..services.llm_manager import LLMProviderManager
from ..utils.exceptions import ExamCoachError
from ..utils.logging import bind_session, get_logger
from .coach_agent import CoachAgent, CoachContext
from .examiner_agent import START_MARKER, ExaminerAgent, ExaminerContext

DEFAULT_MAX_QUESTIONS = 5


class ExamController:
    """State machine over IDLE, THINKING, ACTIVE, ANALYZING and FINISHED.

    One controller owns one ``ExamSession``. At most one examiner or coach
    call is in flight at a time: ``submit_answer`` moves to THINKING before
    its first ``await`` and every call made while a request is pending is
    refused. Remote failures never escape; they land as feedback text plus a
    state transition.
    """

    def __init__(self, examiner: ExaminerAgent, coach: CoachAgent, max_questions: int = DEFAULT_MAX_QUESTIONS):
        """Initialize the controller.

        Args:
            examiner: Agent for the per-turn examiner call
            coach: Agent for the end-of-session coach call
            max_questions: Team answers after which the exam ends even if the
                examiner has not said so
        """
        if max_questions < 1:
            raise ValueError("max_questions must be at least 1")
        self.examiner = examiner
        self.coach = coach
        self.max_questions = max_questions
        self.logger = get_logger("agent.ExamController")
        self.session = ExamSession()

    @classmethod
    def from_llm_manager(cls, llm_manager: LLMProviderManager, subject: str = "React JS",
                         max_questions: int = DEFAULT_MAX_QUESTIONS) -> "ExamController":
        return cls(
            examiner=ExaminerAgent(llm_manager, subject=subject, max_questions=max_questions),
            coach=CoachAgent(llm_manager),
            max_questions=max_questions,
        )

    @property
    def state(self) -> ExamState:
        return self.session.state

    @property
    def current_question(self) -> str:
        return self.session.current_question

    @property
    def feedback(self) -> Optional[str]:
        return self.session.feedback

    @property
    def report(self) -> Optional[PerformanceReport]:
        return self.session.report

    @property
    def transcript(self) -> Transcript:
        """A copy of the visible transcript."""
        return Transcript(turns=list(self.session.transcript.turns))

    def snapshot(self) -> ExamSnapshot:
        session = self.session
        return ExamSnapshot(
            session_id=session.session_id,
            state=session.state,
            current_question=session.current_question,
            feedback=session.feedback,
            report=session.report,
            turns=list(session.transcript.turns),
            answers_submitted=session.answers_submitted,
            max_questions=self.max_questions,
        )

    async def submit_answer(self, answer: str) -> bool:
        """Start the exam (``START_MARKER``) or submit a team answer.

        Returns:
            False if the call was refused (wrong state, blank answer or a call
            already in flight), True once the round has been processed.
        """
        is_start = answer == START_MARKER
        refusal = self._refusal_reason(answer, is_start)
        if refusal:
            self.logger.warning(f"submit_answer refused: {refusal}", extra={"state": self.state.value})
            return False

        session = self.session
        bind_session(session.session_id)
        if is_start:
            session.transcript.clear()
            session.feedback = None
        session.transition(ExamState.THINKING)

        try:
            decision = await self.examiner.process(
                ExaminerContext(transcript=self.transcript, answer=answer)
            )
        except ExamCoachError as e:
            self.logger.error(f"Examiner call failed: {e}")
            session.feedback = f"Error: {e.message}"
            # A failed start goes back to IDLE so START can be resubmitted
            session.transition(ExamState.IDLE if is_start else ExamState.ACTIVE)
            return True

        answers = session.answers_submitted if is_start else session.answers_submitted + 1
        session.answers_submitted = answers

        exam_over = decision.exam_over
        if not exam_over and answers >= self.max_questions:
            self.logger.warning(
                f"Examiner did not end the exam after {answers} answers; ending it",
                extra={"max_questions": self.max_questions},
            )
            exam_over = True

        if exam_over:
            await self.request_report(self.transcript, None if is_start else answer)
            return True

        if not is_start:
            session.transcript.extend([Turn.team(answer), Turn.examiner(decision.message)])
        session.current_question = decision.next_question
        session.feedback = decision.message
        session.transition(ExamState.ACTIVE)
        self.logger.info("Examiner round completed", extra={
            "answers_submitted": answers,
            "transcript_turns": len(session.transcript),
        })
        return True

    async def request_report(self, transcript: Transcript, final_answer: Optional[str]) -> None:
        """Run the coach call for a finished exam. Internal to ``submit_answer``.

        The session always lands in FINISHED: with the report on success, or
        with an error in ``feedback`` on failure.
        """
        session = self.session
        if session.state != ExamState.THINKING:
            self.logger.warning("request_report ignored outside an examiner round", extra={"state": session.state.value})
            return

        session.transition(ExamState.ANALYZING)
        try:
            session.report = await self.coach.process(CoachContext(transcript=transcript, final_answer=final_answer))
        except ExamCoachError as e:
            self.logger.error(f"Coach call failed: {e}")
            session.feedback = f"Error generating report: {e.message}"
        session.transition(ExamState.FINISHED)
        self.logger.info("Exam finished", extra={"report_available": session.report is not None})

    def reset(self) -> bool:
        """Discard the session and return to IDLE.

        Returns:
            False if a call is in flight and the reset was refused.
        """
        if self.state.is_busy:
            self.logger.warning("reset refused while a call is in flight", extra={"state": self.state.value})
            return False

        self.session = ExamSession()
        bind_session(self.session.session_id)
        self.logger.info("Exam session reset")
        return True

    def _refusal_reason(self, answer: str, is_start: bool) -> Optional[str]:
        state = self.state
        if state.is_busy:
            return "a call is already in flight"
        if is_start:
            return None if state == ExamState.IDLE else f"cannot start from {state.value}"
        if state != ExamState.ACTIVE:
            return f"no question is open ({state.value})"
        if not answer or not answer.strip():
            return "answer is blank"
        return None
