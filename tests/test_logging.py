import json
import logging

import pytest

from exam_coach.utils.logging import (
    ConsoleFormatter,
    JsonFormatter,
    SessionContextFilter,
    bind_session,
    current_session_id,
    get_logger,
    setup_logging,
)


def _record(message="Examiner round completed", **extra):
    record = logging.makeLogRecord({
        "name": "exam_coach.agent.ExamController",
        "levelname": "INFO",
        "levelno": logging.INFO,
        "msg": message,
    })
    for key, value in extra.items():
        setattr(record, key, value)
    SessionContextFilter().filter(record)
    return record


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    bind_session("")
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    bind_session("")


def test_json_lines_carry_session_and_extras():
    bind_session("0f8fad5b-d9cb-469f-a165-70867728950e")

    entry = json.loads(JsonFormatter().format(_record(answers_submitted=2)))

    assert entry["session_id"] == "0f8fad5b-d9cb-469f-a165-70867728950e"
    assert entry["message"] == "Examiner round completed"
    assert entry["answers_submitted"] == 2
    assert "msg" not in entry
    assert "lineno" not in entry


def test_console_lines_show_short_session_tag():
    bind_session("0f8fad5b-d9cb-469f-a165-70867728950e")

    line = ConsoleFormatter().format(_record())

    assert "[0f8fad5b]" in line
    assert "agent.ExamController" in line
    assert "exam_coach." not in line
    assert line.endswith("Examiner round completed")


def test_console_lines_without_session_have_no_tag():
    line = ConsoleFormatter().format(_record())

    assert "[" not in line


def test_setup_logging_writes_rotating_json_file(tmp_path):
    log_file = tmp_path / "logs" / "exam.log"
    setup_logging("INFO", log_file=str(log_file), structured=True, enable_console=False)
    bind_session("session-1")

    get_logger("test").info("hello", extra={"model": "gemini-2.5-flash"})
    for handler in logging.getLogger().handlers:
        handler.flush()

    entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert entry["logger"] == "exam_coach.test"
    assert entry["session_id"] == "session-1"
    assert entry["model"] == "gemini-2.5-flash"
    assert current_session_id() == "session-1"
