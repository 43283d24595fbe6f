from __future__ import annotations

from dataclasses import dataclass

from .lesson import LessonModule
from .prediction import PredictionSlot
from .quiz import QuestionReview


@dataclass(frozen=True, slots=True)
class LessonAttemptResult:
    """Persistable summary of one quiz submission."""

    topic_id: str
    topic_version: int
    phase_reached: str
    prediction: str | None
    prediction_correct: bool
    twist_prediction: str | None
    twist_prediction_correct: bool
    applications_viewed: int
    applications_total: int

    score: int
    question_count: int
    pass_threshold: int
    passed: bool
    accuracy: float

    answers: list[QuestionReview]


def attempt_result_from_lesson(
    lesson: LessonModule,
    *,
    topic_version: int = 1,
) -> LessonAttemptResult:
    """Build a LessonAttemptResult from a lesson whose quiz has been submitted."""

    quiz = lesson.quiz
    if not quiz.submitted:
        raise ValueError("quiz has not been submitted")

    predictions = lesson.predictions
    count = quiz.question_count
    return LessonAttemptResult(
        topic_id=lesson.topic.topic_id,
        topic_version=int(topic_version),
        phase_reached=lesson.navigation.furthest.value,
        prediction=predictions.choice(PredictionSlot.FIRST),
        prediction_correct=predictions.is_correct(PredictionSlot.FIRST),
        twist_prediction=predictions.choice(PredictionSlot.TWIST),
        twist_prediction_correct=predictions.is_correct(PredictionSlot.TWIST),
        applications_viewed=lesson.gallery.viewed_count,
        applications_total=lesson.gallery.total_count,
        score=int(quiz.score),
        question_count=int(count),
        pass_threshold=int(quiz.pass_threshold),
        passed=quiz.passed(),
        accuracy=float(quiz.score) / float(count) if count else 0.0,
        answers=list(quiz.review()),
    )
