import anyio
import pytest

from exam_coach.agents.coach_agent import CoachAgent
from exam_coach.agents.exam_controller import ExamController
from exam_coach.agents.examiner_agent import START_MARKER, ExaminerAgent
from exam_coach.models.enums import CollaborationLevel, ExamState, TurnRole
from exam_coach.models.exam import Transcript
from exam_coach.utils.exceptions import LLMProviderError, RateLimitError, TimeoutError

from fakes import FakeLLMManager, coach_reply, examiner_reply


def _controller(replies, max_questions=5):
    manager = FakeLLMManager(replies)
    controller = ExamController(
        examiner=ExaminerAgent(manager, subject="React JS", max_questions=max_questions),
        coach=CoachAgent(manager),
        max_questions=max_questions,
    )
    return controller, manager


async def _wait_for_state(controller, state):
    with anyio.fail_after(1):
        while controller.state != state:
            await anyio.sleep(0)


@pytest.mark.anyio
async def test_start_opens_first_question_without_touching_transcript():
    controller, manager = _controller([examiner_reply("Welcome!", "What is JSX?")])

    assert await controller.submit_answer(START_MARKER) is True

    assert controller.state == ExamState.ACTIVE
    assert controller.current_question == "What is JSX?"
    assert controller.feedback == "Welcome!"
    assert len(controller.transcript) == 0
    assert manager.request_types() == ["examiner"]
    assert manager.requests[0].json_output is True


@pytest.mark.anyio
async def test_answer_round_appends_team_then_examiner_turn():
    controller, _ = _controller([
        examiner_reply("Welcome!", "What is JSX?"),
        examiner_reply("Pass. JSX compiles to calls.", "What does useMemo do?"),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("We think it is syntax sugar for createElement")

    turns = list(controller.transcript)
    assert [turn.role for turn in turns] == [TurnRole.TEAM, TurnRole.EXAMINER]
    assert turns[0].text == "We think it is syntax sugar for createElement"
    assert turns[1].text == "Pass. JSX compiles to calls."
    assert controller.current_question == "What does useMemo do?"
    assert controller.feedback == "Pass. JSX compiles to calls."
    assert controller.state == ExamState.ACTIVE
    assert controller.snapshot().answers_submitted == 1


@pytest.mark.anyio
async def test_transcript_grows_by_two_per_successful_round():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        examiner_reply(question="Q2"),
        examiner_reply(question="Q3"),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("first")
    await controller.submit_answer("second")

    assert [turn.text for turn in controller.transcript] == ["first", "Correct.", "second", "Correct."]


@pytest.mark.anyio
async def test_exam_over_hands_transcript_and_final_answer_to_coach():
    controller, manager = _controller([
        examiner_reply(question="Q1"),
        examiner_reply("Pass.", "Q2"),
        examiner_reply("Mastery shown.", "", over=True),
        coach_reply(score=88, level="High"),
    ])
    await controller.submit_answer(START_MARKER)
    await controller.submit_answer("We debated and agreed on props")

    await controller.submit_answer("Final: we agreed it is a closure")

    assert controller.state == ExamState.FINISHED
    assert controller.report.team_score == 88
    assert controller.report.collaboration_level == CollaborationLevel.HIGH
    assert manager.request_types() == ["examiner", "examiner", "examiner", "coach"]
    coach_prompt = manager.requests[-1].prompt
    assert "We debated and agreed on props" in coach_prompt
    assert "Final: we agreed it is a closure" in coach_prompt
    # The last round is not recorded in the visible transcript
    assert len(controller.transcript) == 2


@pytest.mark.anyio
async def test_exam_over_on_start_sends_empty_transcript_to_coach():
    controller, manager = _controller([
        examiner_reply("Nothing to ask.", "", over=True),
        coach_reply(score=1, level="Low"),
    ])

    await controller.submit_answer(START_MARKER)

    assert controller.state == ExamState.FINISHED
    assert controller.report.team_score == 1
    assert START_MARKER not in manager.requests[-1].prompt
    assert "transcript: []" in manager.requests[-1].prompt


@pytest.mark.anyio
async def test_examiner_failure_keeps_question_open():
    controller, _ = _controller([
        examiner_reply(question="What is JSX?"),
        LLMProviderError("Service unavailable", provider_name="gemini", status_code=503),
        examiner_reply("Pass.", "Next?"),
    ])
    await controller.submit_answer(START_MARKER)

    assert await controller.submit_answer("an answer") is True

    assert controller.state == ExamState.ACTIVE
    assert controller.feedback == "Error: Service unavailable"
    assert controller.current_question == "What is JSX?"
    assert len(controller.transcript) == 0

    await controller.submit_answer("an answer")
    assert controller.current_question == "Next?"
    assert len(controller.transcript) == 2


@pytest.mark.anyio
async def test_examiner_timeout_reports_error():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        TimeoutError("Gemini did not answer within 30s", operation="examiner", timeout_seconds=30),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("answer")

    assert controller.state == ExamState.ACTIVE
    assert controller.feedback == "Error: Gemini did not answer within 30s"


@pytest.mark.anyio
async def test_failed_start_returns_to_idle_and_can_retry():
    controller, _ = _controller([
        RateLimitError("Quota exceeded", provider_name="gemini"),
        examiner_reply("Welcome!", "What is JSX?"),
    ])

    await controller.submit_answer(START_MARKER)

    assert controller.state == ExamState.IDLE
    assert controller.feedback == "Error: Quota exceeded"

    assert await controller.submit_answer(START_MARKER) is True
    assert controller.state == ExamState.ACTIVE
    assert controller.feedback == "Welcome!"


@pytest.mark.anyio
async def test_malformed_examiner_reply_is_an_error_not_a_question():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        "I think the team did great!",
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("answer")

    assert controller.state == ExamState.ACTIVE
    assert controller.feedback.startswith("Error: Could not read the ExaminerDecision reply")
    assert controller.current_question == "Q1"
    assert len(controller.transcript) == 0


@pytest.mark.anyio
async def test_string_exam_over_flag_is_rejected():
    controller, _ = _controller([
        '{"botMessage": "ok", "nextQuestion": "Q", "isExamOver": "true"}',
    ])

    await controller.submit_answer(START_MARKER)

    assert controller.state == ExamState.IDLE
    assert controller.feedback.startswith("Error: ")


@pytest.mark.anyio
async def test_blank_next_question_keeps_previous_question_open():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        examiner_reply("Good.", question="", over=False),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("answer")

    assert controller.state == ExamState.ACTIVE
    assert controller.feedback.startswith("Error: ")
    assert controller.current_question == "Q1"
    assert len(controller.transcript) == 0


@pytest.mark.anyio
async def test_coach_failure_finishes_without_report():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        examiner_reply("Done.", "", over=True),
        LLMProviderError("Internal error", provider_name="gemini", status_code=500),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("answer")

    assert controller.state == ExamState.FINISHED
    assert controller.report is None
    assert controller.feedback == "Error generating report: Internal error"


@pytest.mark.anyio
async def test_out_of_range_score_is_a_report_error():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        examiner_reply("Done.", "", over=True),
        coach_reply(score=150),
    ])
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("answer")

    assert controller.state == ExamState.FINISHED
    assert controller.report is None
    assert controller.feedback.startswith("Error generating report: ")


@pytest.mark.anyio
async def test_exam_ends_after_max_questions_even_if_examiner_continues():
    controller, manager = _controller([
        examiner_reply(question="Q1"),
        examiner_reply(question="Q2"),
        examiner_reply(question="Q3"),
        coach_reply(),
    ], max_questions=2)
    await controller.submit_answer(START_MARKER)

    await controller.submit_answer("one")
    assert controller.state == ExamState.ACTIVE

    await controller.submit_answer("closing answer about effects")

    assert controller.state == ExamState.FINISHED
    assert manager.request_types()[-1] == "coach"
    assert "closing answer about effects" in manager.requests[-1].prompt


@pytest.mark.anyio
async def test_calls_in_the_wrong_state_are_refused():
    controller, manager = _controller([examiner_reply(question="Q1")])

    assert await controller.submit_answer("answer before start") is False
    assert manager.requests == []

    await controller.submit_answer(START_MARKER)

    assert await controller.submit_answer(START_MARKER) is False
    assert await controller.submit_answer("   ") is False
    assert await controller.submit_answer("") is False
    assert manager.request_types() == ["examiner"]
    assert controller.state == ExamState.ACTIVE


@pytest.mark.anyio
async def test_submissions_while_thinking_are_refused():
    release = anyio.Event()

    async def slow_reply(_request):
        await release.wait()
        return examiner_reply(question="Q1")

    controller, manager = _controller([slow_reply])

    async with anyio.create_task_group() as tg:
        tg.start_soon(controller.submit_answer, START_MARKER)
        await _wait_for_state(controller, ExamState.THINKING)

        assert await controller.submit_answer(START_MARKER) is False
        assert await controller.submit_answer("answer") is False
        assert controller.reset() is False
        release.set()

    assert controller.state == ExamState.ACTIVE
    assert len(manager.requests) == 1


@pytest.mark.anyio
async def test_state_is_analyzing_while_coach_runs():
    release = anyio.Event()

    async def slow_coach(_request):
        await release.wait()
        return coach_reply()

    controller, _ = _controller([examiner_reply(over=True), slow_coach])

    async with anyio.create_task_group() as tg:
        tg.start_soon(controller.submit_answer, START_MARKER)
        await _wait_for_state(controller, ExamState.ANALYZING)

        assert await controller.submit_answer(START_MARKER) is False
        assert controller.reset() is False
        release.set()

    assert controller.state == ExamState.FINISHED


@pytest.mark.anyio
async def test_reset_starts_a_fresh_session():
    controller, _ = _controller([
        examiner_reply(question="Q1"),
        examiner_reply("Done.", "", over=True),
        coach_reply(),
        examiner_reply("Welcome back!", "New Q"),
    ])
    await controller.submit_answer(START_MARKER)
    await controller.submit_answer("answer")
    old_session_id = controller.snapshot().session_id

    assert controller.reset() is True

    snapshot = controller.snapshot()
    assert snapshot.state == ExamState.IDLE
    assert snapshot.session_id != old_session_id
    assert snapshot.turns == []
    assert snapshot.report is None
    assert snapshot.feedback is None
    assert snapshot.current_question == ""

    await controller.submit_answer(START_MARKER)
    assert controller.current_question == "New Q"


@pytest.mark.anyio
async def test_request_report_is_ignored_outside_an_examiner_round():
    controller, manager = _controller([])

    await controller.request_report(Transcript(), None)

    assert controller.state == ExamState.IDLE
    assert manager.requests == []


def test_snapshot_counts_remaining_questions():
    controller, _ = _controller([], max_questions=3)

    snapshot = controller.snapshot()

    assert snapshot.max_questions == 3
    assert snapshot.questions_remaining == 3


def test_max_questions_must_be_positive():
    manager = FakeLLMManager()
    with pytest.raises(ValueError):
        ExamController(ExaminerAgent(manager), CoachAgent(manager), max_questions=0)
