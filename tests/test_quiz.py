from __future__ import annotations

import pytest

from microlesson.phases import Phase
from microlesson.quiz import AnswerOption, Question, QuizEngine, build_question
from microlesson.state import ModuleState


def _questions() -> list[Question]:
    return [
        build_question(f"q{i}", f"Question {i}?", ["A", "B", "C", "D"], i % 4, explanation=f"Because {i}.")
        for i in range(10)
    ]


def _engine() -> tuple[QuizEngine, ModuleState, list[Question]]:
    questions = _questions()
    state = ModuleState.fresh(phase=Phase.TEST, question_count=len(questions))
    return QuizEngine(questions=questions, state=state), state, questions


def _answer(engine: QuizEngine, questions: list[Question], correct: int) -> None:
    for i, q in enumerate(questions):
        if i < correct:
            engine.set_answer(i, q.correct_option_id)
        else:
            wrong = next(o.id for o in q.options if not o.is_correct)
            engine.set_answer(i, wrong)


def test_build_question_letters_options() -> None:
    q = build_question("x", "Pick one", ["first", "second", "third"], 2)

    assert [o.id for o in q.options] == ["a", "b", "c"]
    assert q.correct_option_id == "c"
    assert q.option("b") is not None
    assert q.option("z") is None


def test_question_validation() -> None:
    with pytest.raises(ValueError):
        Question(id="x", prompt="?", options=(AnswerOption("a", "A", True),))
    with pytest.raises(ValueError):
        Question(id="x", prompt="?", options=(AnswerOption("a", "A"), AnswerOption("b", "B")))
    with pytest.raises(ValueError):
        Question(
            id="x",
            prompt="?",
            options=(AnswerOption("a", "A", True), AnswerOption("a", "B")),
        )


def test_submit_requires_every_answer() -> None:
    engine, _, questions = _engine()
    _answer(engine, questions[:9], 9)

    assert engine.answered_count == 9
    assert engine.submit() is None
    assert engine.submitted is False


def test_seven_of_ten_passes() -> None:
    engine, state, questions = _engine()
    _answer(engine, questions, 7)

    assert engine.submit() == 7
    assert engine.passed() is True
    assert state.quiz_submitted is True
    assert state.quiz_score == 7


def test_six_of_ten_fails() -> None:
    engine, _, questions = _engine()
    _answer(engine, questions, 6)

    assert engine.submit() == 6
    assert engine.passed() is False


def test_submission_is_one_way_until_reset() -> None:
    engine, _, questions = _engine()
    _answer(engine, questions, 10)
    assert engine.submit() == 10

    assert engine.set_answer(0, "d") is False
    assert engine.submit() is None
    assert engine.score == 10

    engine.reset()
    assert engine.submitted is False
    assert engine.score == 0
    assert engine.answered_count == 0
    assert engine.passed() is False


def test_invalid_answers_ignored() -> None:
    engine, _, _ = _engine()

    assert engine.set_answer(0, "z") is False
    assert engine.set_answer(10, "a") is False
    assert engine.set_answer(-1, "a") is False
    assert engine.answer(0) is None
    assert engine.answer(42) is None


def test_non_integer_indices_are_ignored() -> None:
    engine, state, _ = _engine()

    assert engine.set_answer("0", "a") is False  # type: ignore[arg-type]
    assert engine.set_answer(1.0, "a") is False  # type: ignore[arg-type]
    assert engine.set_answer(True, "a") is False
    assert engine.select(1.0) is False  # type: ignore[arg-type]
    assert engine.select("3") is False  # type: ignore[arg-type]
    assert engine.answer("0") is None  # type: ignore[arg-type]
    assert engine.current_index == 0
    assert state.quiz_answers == [None] * 10


def test_cursor_navigation() -> None:
    engine, _, questions = _engine()

    assert engine.current_index == 0
    assert engine.previous_question() is False
    assert engine.next_question() is True
    assert engine.current_question is questions[1]
    assert engine.select(9) is True
    assert engine.next_question() is False
    assert engine.select(10) is False
    assert engine.current_index == 9


def test_review_after_submit() -> None:
    engine, _, questions = _engine()
    assert engine.review() == ()

    _answer(engine, questions, 8)
    engine.submit()
    rows = engine.review()

    assert len(rows) == 10
    assert [r.is_correct for r in rows] == [True] * 8 + [False] * 2
    assert rows[0].explanation == "Because 0."
    assert rows[9].correct_id == questions[9].correct_option_id


def test_bind_normalises_restored_answers() -> None:
    engine, _, questions = _engine()
    restored = ModuleState.fresh(phase=Phase.TEST, question_count=10)
    restored.quiz_answers = [q.correct_option_id for q in questions]
    restored.quiz_answers[3] = "nope"
    restored.quiz_submitted = True
    restored.quiz_score = 99

    engine.bind(restored)
    assert restored.quiz_answers[3] is None
    assert restored.quiz_submitted is False
    assert restored.quiz_score == 0

    complete = ModuleState.fresh(phase=Phase.TEST, question_count=10)
    complete.quiz_answers = [q.correct_option_id for q in questions]
    complete.quiz_submitted = True
    complete.quiz_score = 3
    engine.bind(complete)
    assert engine.score == 10
    assert engine.passed() is True


def test_threshold_validation() -> None:
    state = ModuleState.fresh(phase=Phase.TEST, question_count=10)
    with pytest.raises(ValueError):
        QuizEngine(questions=_questions(), state=state, pass_threshold=11)
    with pytest.raises(ValueError):
        QuizEngine(questions=[], state=state)


def test_score_independent_of_answer_order() -> None:
    forward, _, questions = _engine()
    backward, _, _ = _engine()

    def pick(i: int) -> str:
        q = questions[i]
        return q.correct_option_id if i % 2 == 0 else next(o.id for o in q.options if not o.is_correct)

    for i in range(len(questions)):
        forward.set_answer(i, pick(i))
    for i in reversed(range(len(questions))):
        backward.set_answer(i, pick(i))

    assert forward.submit() == backward.submit() == 5


def test_all_correct_scores_ten() -> None:
    engine, _, questions = _engine()
    _answer(engine, questions, 10)
    assert engine.submit() == 10
    assert engine.passed() is True
