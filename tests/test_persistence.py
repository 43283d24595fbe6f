from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path

import pytest

from microlesson.clock import Scheduler
from microlesson.hdd_physics import build_hdd_lesson
from microlesson.lesson import LessonModule
from microlesson.persistence import (
    DB_PATH_ENV,
    SCHEMA_VERSION,
    default_db_path,
    load_resume_phase,
    open_db,
    record_lesson_attempt,
    save_resume_phase,
)
from microlesson.results import attempt_result_from_lesson


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _submitted_lesson(correct: int) -> LessonModule:
    lesson = build_hdd_lesson(scheduler=Scheduler(FakeClock()), resume_phase="test")
    for i, q in enumerate(lesson.topic.questions):
        option_id = q.correct_option_id if i < correct else next(o.id for o in q.options if not o.is_correct)
        lesson.answer_question(i, option_id)
    lesson.submit_quiz()
    return lesson


def test_default_db_path_honours_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target = tmp_path / "custom.sqlite3"
    monkeypatch.setenv(DB_PATH_ENV, str(target))
    assert default_db_path() == target

    monkeypatch.delenv(DB_PATH_ENV)
    assert default_db_path().name == "progress.sqlite3"


def test_open_db_migrates_schema(tmp_path: Path) -> None:
    conn = open_db(tmp_path / "nested" / "db.sqlite3")
    try:
        version = conn.execute("PRAGMA user_version;").fetchone()[0]
        tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    finally:
        conn.close()

    assert version == SCHEMA_VERSION
    assert {"attempt", "metric", "quiz_answer", "lesson_progress"} <= tables


def test_attempt_result_requires_submission() -> None:
    lesson = build_hdd_lesson(scheduler=Scheduler(FakeClock()))
    with pytest.raises(ValueError):
        attempt_result_from_lesson(lesson)


def test_attempt_result_summarises_lesson() -> None:
    result = attempt_result_from_lesson(_submitted_lesson(8))

    assert result.topic_id == "hdd_physics"
    assert result.phase_reached == "test"
    assert result.score == 8
    assert result.passed is True
    assert result.accuracy == pytest.approx(0.8)
    assert result.applications_total == 4
    assert len(result.answers) == 10


def test_record_attempt_writes_rows(tmp_path: Path) -> None:
    db_path = tmp_path / "progress.sqlite3"
    result = attempt_result_from_lesson(_submitted_lesson(6))

    attempt_id = record_lesson_attempt(db_path=db_path, result=result, app_version="test")

    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute("SELECT topic_id, score, passed FROM attempt WHERE id = ?", (attempt_id,)).fetchone()
        answers = conn.execute("SELECT COUNT(*) FROM quiz_answer WHERE attempt_id = ?", (attempt_id,)).fetchone()
        metrics = dict(conn.execute("SELECT key, value FROM metric WHERE attempt_id = ?", (attempt_id,)))
    finally:
        conn.close()

    assert row == ("hdd_physics", 6, 0)
    assert answers == (10,)
    assert metrics["accuracy"] == "0.600000"
    assert metrics["applications_viewed"] == "0/4"


def test_resume_phase_round_trip(tmp_path: Path) -> None:
    db_path = tmp_path / "progress.sqlite3"
    assert load_resume_phase(db_path=db_path, topic_id="hdd_physics") is None

    save_resume_phase(db_path=db_path, topic_id="hdd_physics", phase="play")
    save_resume_phase(db_path=db_path, topic_id="hdd_physics", phase="review")
    save_resume_phase(db_path=db_path, topic_id="antenna_gain", phase="test")

    assert load_resume_phase(db_path=db_path, topic_id="hdd_physics") == "review"
    assert load_resume_phase(db_path=db_path, topic_id="antenna_gain") == "test"
    assert load_resume_phase(db_path=db_path, topic_id="thermal_throttling") is None
