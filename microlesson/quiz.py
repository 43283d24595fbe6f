from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .state import ModuleState, is_index

logger = logging.getLogger(__name__)

DEFAULT_PASS_THRESHOLD = 7


@dataclass(frozen=True, slots=True)
class AnswerOption:
    id: str
    label: str
    is_correct: bool = False


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    prompt: str
    options: tuple[AnswerOption, ...]
    scenario: str = ""
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("question id must be non-empty")
        if len(self.options) < 2:
            raise ValueError(f"question {self.id}: needs at least two options")
        ids = [o.id for o in self.options]
        if len(set(ids)) != len(ids):
            raise ValueError(f"question {self.id}: option ids must be unique")
        correct = sum(1 for o in self.options if o.is_correct)
        if correct != 1:
            raise ValueError(f"question {self.id}: exactly one option must be correct, got {correct}")

    @property
    def correct_option_id(self) -> str:
        return next(o.id for o in self.options if o.is_correct)

    def has_option(self, option_id: object) -> bool:
        return any(o.id == option_id for o in self.options)

    def option(self, option_id: str) -> AnswerOption | None:
        return next((o for o in self.options if o.id == option_id), None)


@dataclass(frozen=True, slots=True)
class QuestionReview:
    index: int
    prompt: str
    chosen_id: str | None
    correct_id: str
    is_correct: bool
    explanation: str


class QuizEngine:
    """Per-question answers, one-way submission and the pass/fail verdict.

    Answers live in ``ModuleState.quiz_answers``; the engine is their only
    writer. After ``submit()`` every mutation is ignored until ``reset()``.
    """

    def __init__(
        self,
        *,
        questions: Sequence[Question],
        state: ModuleState,
        pass_threshold: int = DEFAULT_PASS_THRESHOLD,
    ) -> None:
        qs = tuple(questions)
        if not qs:
            raise ValueError("questions must be non-empty")
        ids = [q.id for q in qs]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must be unique")
        if not (1 <= int(pass_threshold) <= len(qs)):
            raise ValueError("pass_threshold must be in [1, question count]")

        self._questions = qs
        self._threshold = int(pass_threshold)
        self._cursor = 0
        self._state = state
        self.bind(state)

    def normalise(self, state: ModuleState) -> None:
        """Drop answers in ``state`` that do not fit these questions and rescore it."""

        answers: list[str | None] = []
        for i, q in enumerate(self._questions):
            raw = state.quiz_answers[i] if i < len(state.quiz_answers) else None
            answers.append(raw if q.has_option(raw) else None)
        state.quiz_answers = answers
        if state.quiz_submitted and not all(a is not None for a in answers):
            state.quiz_submitted = False
        state.quiz_score = self._count_correct(answers) if state.quiz_submitted else 0

    def bind(self, state: ModuleState) -> None:
        """Adopt ``state`` after normalising it."""

        self.normalise(state)
        self._state = state
        self._cursor = 0

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def question_count(self) -> int:
        return len(self._questions)

    @property
    def pass_threshold(self) -> int:
        return self._threshold

    @property
    def submitted(self) -> bool:
        return self._state.quiz_submitted

    @property
    def score(self) -> int:
        return self._state.quiz_score

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self._state.quiz_answers if a is not None)

    @property
    def current_index(self) -> int:
        return self._cursor

    @property
    def current_question(self) -> Question:
        return self._questions[self._cursor]

    def answer(self, index: int) -> str | None:
        if not is_index(index) or not (0 <= index < len(self._questions)):
            return None
        return self._state.quiz_answers[index]

    def set_answer(self, index: int, option_id: str) -> bool:
        if self._state.quiz_submitted:
            logger.debug("Answer for question %r ignored: quiz already submitted", index)
            return False
        if not is_index(index) or not (0 <= index < len(self._questions)):
            return False
        if not self._questions[index].has_option(option_id):
            return False
        self._state.quiz_answers[index] = option_id
        return True

    def all_answered(self) -> bool:
        return all(a is not None for a in self._state.quiz_answers)

    def submit(self) -> int | None:
        """Score the quiz once. Returns the score, or None when refused."""

        if self._state.quiz_submitted:
            return None
        if not self.all_answered():
            logger.debug(
                "Submit refused: %d/%d answered", self.answered_count, self.question_count
            )
            return None
        score = self._count_correct(self._state.quiz_answers)
        self._state.quiz_score = score
        self._state.quiz_submitted = True
        logger.info("Quiz submitted: %d/%d (pass at %d)", score, self.question_count, self._threshold)
        return score

    def passed(self) -> bool:
        return self._state.quiz_submitted and self._state.quiz_score >= self._threshold

    def reset(self) -> None:
        self._state.quiz_answers = [None] * len(self._questions)
        self._state.quiz_submitted = False
        self._state.quiz_score = 0
        self._cursor = 0

    def select(self, index: int) -> bool:
        if not is_index(index) or not (0 <= index < len(self._questions)):
            return False
        self._cursor = index
        return True

    def next_question(self) -> bool:
        return self.select(self._cursor + 1)

    def previous_question(self) -> bool:
        return self.select(self._cursor - 1)

    def review(self) -> tuple[QuestionReview, ...]:
        if not self._state.quiz_submitted:
            return ()
        rows: list[QuestionReview] = []
        for i, q in enumerate(self._questions):
            chosen = self._state.quiz_answers[i]
            correct = q.correct_option_id
            rows.append(
                QuestionReview(
                    index=i,
                    prompt=q.prompt,
                    chosen_id=chosen,
                    correct_id=correct,
                    is_correct=chosen == correct,
                    explanation=q.explanation,
                )
            )
        return tuple(rows)

    def _count_correct(self, answers: Sequence[str | None]) -> int:
        return sum(
            1
            for q, a in zip(self._questions, answers)
            if a is not None and a == q.correct_option_id
        )


def build_question(
    qid: str,
    prompt: str,
    options: Sequence[str],
    correct: int,
    *,
    scenario: str = "",
    explanation: str = "",
) -> Question:
    """Question with options lettered a, b, c... and ``correct`` as an index."""

    return Question(
        id=qid,
        prompt=prompt,
        options=tuple(
            AnswerOption(id=chr(ord("a") + i), label=label, is_correct=i == correct)
            for i, label in enumerate(options)
        ),
        scenario=scenario,
        explanation=explanation,
    )
