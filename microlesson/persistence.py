from __future__ import annotations

import logging
import os
from pathlib import Path
import sqlite3
import time

from .results import LessonAttemptResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DB_PATH_ENV = "MICROLESSON_DB_PATH"


def default_db_path() -> Path:
    explicit = os.environ.get(DB_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".microlesson" / "progress.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attempt (
                id INTEGER PRIMARY KEY,
                topic_id TEXT NOT NULL,
                topic_version INTEGER NOT NULL,
                app_version TEXT NOT NULL,
                phase_reached TEXT NOT NULL,
                score INTEGER NOT NULL,
                question_count INTEGER NOT NULL,
                pass_threshold INTEGER NOT NULL,
                passed INTEGER NOT NULL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS metric (
                attempt_id INTEGER NOT NULL REFERENCES attempt(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                PRIMARY KEY (attempt_id, key)
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS quiz_answer (
                id INTEGER PRIMARY KEY,
                attempt_id INTEGER NOT NULL REFERENCES attempt(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                prompt TEXT NOT NULL,
                expected TEXT NOT NULL,
                response TEXT NOT NULL,
                is_correct INTEGER NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS lesson_progress (
                topic_id TEXT PRIMARY KEY,
                phase TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_quiz_answer_attempt_seq ON quiz_answer(attempt_id, seq);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def record_lesson_attempt(*, db_path: Path, result: LessonAttemptResult, app_version: str) -> int:
    conn = open_db(db_path)
    try:
        return _insert_attempt(conn=conn, result=result, app_version=app_version)
    finally:
        conn.close()


def save_resume_phase(*, db_path: Path, topic_id: str, phase: str) -> None:
    conn = open_db(db_path)
    try:
        with conn:
            conn.execute(
                """
                INSERT INTO lesson_progress(topic_id, phase, updated_at_utc)
                VALUES (?, ?, ?)
                ON CONFLICT(topic_id) DO UPDATE SET
                    phase = excluded.phase,
                    updated_at_utc = excluded.updated_at_utc
                """,
                (str(topic_id), str(phase), _utc_now_iso()),
            )
    finally:
        conn.close()


def load_resume_phase(*, db_path: Path, topic_id: str) -> str | None:
    """Stored phase for ``topic_id``, unvalidated; the lesson parses it."""

    if not db_path.exists():
        return None
    conn = open_db(db_path)
    try:
        row = conn.execute(
            "SELECT phase FROM lesson_progress WHERE topic_id = ?",
            (str(topic_id),),
        ).fetchone()
    finally:
        conn.close()
    return None if row is None else str(row[0])


def _insert_attempt(*, conn: sqlite3.Connection, result: LessonAttemptResult, app_version: str) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO attempt(
                topic_id, topic_version, app_version, phase_reached,
                score, question_count, pass_threshold, passed,
                completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(result.topic_id),
                int(result.topic_version),
                app_version,
                str(result.phase_reached),
                int(result.score),
                int(result.question_count),
                int(result.pass_threshold),
                1 if result.passed else 0,
                _utc_now_iso(),
            ),
        )
        attempt_id = int(cur.lastrowid)

        metrics = {
            "accuracy": f"{result.accuracy:.6f}",
            "prediction": result.prediction or "",
            "prediction_correct": str(int(result.prediction_correct)),
            "twist_prediction": result.twist_prediction or "",
            "twist_prediction_correct": str(int(result.twist_prediction_correct)),
            "applications_viewed": f"{result.applications_viewed}/{result.applications_total}",
        }
        for k, v in metrics.items():
            conn.execute("INSERT INTO metric(attempt_id, key, value) VALUES (?, ?, ?)", (attempt_id, k, v))

        for row in result.answers:
            conn.execute(
                """
                INSERT INTO quiz_answer(
                    attempt_id, seq, prompt, expected, response, is_correct
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    attempt_id,
                    int(row.index),
                    str(row.prompt),
                    str(row.correct_id),
                    row.chosen_id or "",
                    1 if row.is_correct else 0,
                ),
            )

    logger.info("Recorded %s attempt %d (%d/%d)", result.topic_id, attempt_id, result.score, result.question_count)
    return attempt_id
