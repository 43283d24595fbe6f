from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from .phases import Phase
from .prediction import PredictionSet
from .quiz import DEFAULT_PASS_THRESHOLD, Question
from .simulation import SimulationKernel

QUESTION_COUNT = 10

KernelFactory = Callable[[], SimulationKernel]
KernelRequirement = Callable[[SimulationKernel], bool]


@dataclass(frozen=True, slots=True)
class AppStat:
    value: str
    label: str


@dataclass(frozen=True, slots=True)
class Application:
    title: str
    short: str
    description: str
    stats: tuple[AppStat, ...] = ()
    examples: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TopicConfig:
    """Everything that distinguishes one lesson from another.

    Construction validates the topic data; a malformed topic is a
    programming error and raises ``ValueError``.
    """

    topic_id: str
    title: str
    hook: str
    prediction: PredictionSet
    twist_prediction: PredictionSet
    questions: tuple[Question, ...]
    applications: tuple[Application, ...]
    kernel_factory: KernelFactory
    phase_labels: Mapping[Phase, str] = field(default_factory=dict)
    pass_threshold: int = DEFAULT_PASS_THRESHOLD
    review_text: str = ""
    twist_review_text: str = ""
    mastery_text: str = ""
    play_requirement: KernelRequirement | None = None
    twist_play_requirement: KernelRequirement | None = None
    play_hint: str = ""
    twist_play_hint: str = ""

    def __post_init__(self) -> None:
        if not self.topic_id.strip():
            raise ValueError("topic_id must be non-empty")
        if not self.title.strip():
            raise ValueError("title must be non-empty")
        if len(self.questions) != QUESTION_COUNT:
            raise ValueError(f"expected {QUESTION_COUNT} questions, got {len(self.questions)}")
        if not self.applications:
            raise ValueError("at least one application is required")
        if not (1 <= self.pass_threshold <= len(self.questions)):
            raise ValueError("pass_threshold must be in [1, question count]")
        for phase in self.phase_labels:
            Phase(phase)

    def requirement_for(self, phase: Phase) -> KernelRequirement | None:
        if phase is Phase.PLAY:
            return self.play_requirement
        if phase is Phase.TWIST_PLAY:
            return self.twist_play_requirement
        return None

    def hint_for(self, phase: Phase) -> str:
        if phase is Phase.PLAY:
            return self.play_hint
        if phase is Phase.TWIST_PLAY:
            return self.twist_play_hint
        return ""
