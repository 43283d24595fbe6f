from __future__ import annotations

from dataclasses import dataclass, field

from .phases import Phase


@dataclass(slots=True)
class ModuleState:
    """Mutable aggregate for one mounted lesson.

    Each component owns one slice of it and is the only writer of that
    slice. Hosts never mutate it directly; they take ``copy()`` snapshots and
    hand a whole state back to ``LessonModule.restore_state``.
    """

    current_phase: Phase
    quiz_answers: list[str | None]
    simulation_parameters: dict[str, float] = field(default_factory=dict)
    prediction: str | None = None
    twist_prediction: str | None = None
    gallery_viewed: set[int] = field(default_factory=set)
    quiz_submitted: bool = False
    quiz_score: int = 0
    furthest_phase: Phase | None = None

    @classmethod
    def fresh(cls, *, phase: Phase, question_count: int) -> "ModuleState":
        return cls(current_phase=phase, quiz_answers=[None] * int(question_count))

    def copy(self) -> "ModuleState":
        return ModuleState(
            current_phase=self.current_phase,
            quiz_answers=list(self.quiz_answers),
            simulation_parameters=dict(self.simulation_parameters),
            prediction=self.prediction,
            twist_prediction=self.twist_prediction,
            gallery_viewed=set(self.gallery_viewed),
            quiz_submitted=bool(self.quiz_submitted),
            quiz_score=int(self.quiz_score),
            furthest_phase=self.furthest_phase,
        )


def is_index(value: object) -> bool:
    """Plain ints only; bools and floats are not positions."""

    return isinstance(value, int) and not isinstance(value, bool)
