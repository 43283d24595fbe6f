from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


class Phase(StrEnum):
    HOOK = "hook"
    PREDICT = "predict"
    PLAY = "play"
    REVIEW = "review"
    TWIST_PREDICT = "twist_predict"
    TWIST_PLAY = "twist_play"
    TWIST_REVIEW = "twist_review"
    TRANSFER = "transfer"
    TEST = "test"
    MASTERY = "mastery"


PHASE_ORDER: tuple[Phase, ...] = (
    Phase.HOOK,
    Phase.PREDICT,
    Phase.PLAY,
    Phase.REVIEW,
    Phase.TWIST_PREDICT,
    Phase.TWIST_PLAY,
    Phase.TWIST_REVIEW,
    Phase.TRANSFER,
    Phase.TEST,
    Phase.MASTERY,
)

DEFAULT_PHASE_LABELS: Mapping[Phase, str] = {
    Phase.HOOK: "Introduction",
    Phase.PREDICT: "Predict",
    Phase.PLAY: "Experiment",
    Phase.REVIEW: "Understanding",
    Phase.TWIST_PREDICT: "New Variable",
    Phase.TWIST_PLAY: "Twist Experiment",
    Phase.TWIST_REVIEW: "Deep Insight",
    Phase.TRANSFER: "Real World",
    Phase.TEST: "Knowledge Test",
    Phase.MASTERY: "Mastery",
}

SIMULATION_PHASES: frozenset[Phase] = frozenset({Phase.PLAY, Phase.TWIST_PLAY})


class PhaseGraph:
    """Fixed linear ordering of the ten lesson screens.

    Pure queries only. Boundaries and unknown identifiers answer ``None``
    instead of raising; free-form strings (resume hints, persisted state) go
    through ``parse``. ``position`` and ``label`` expect a real ``Phase``.
    """

    def __init__(self, *, labels: Mapping[Phase, str] | None = None) -> None:
        merged = dict(DEFAULT_PHASE_LABELS)
        if labels:
            for phase, label in labels.items():
                merged[Phase(phase)] = str(label)
        self._labels = merged
        self._index = {p: i for i, p in enumerate(PHASE_ORDER)}

    @property
    def total(self) -> int:
        return len(PHASE_ORDER)

    @property
    def first(self) -> Phase:
        return PHASE_ORDER[0]

    @property
    def last(self) -> Phase:
        return PHASE_ORDER[-1]

    def order(self) -> list[Phase]:
        return list(PHASE_ORDER)

    def index_of(self, phase: object) -> int | None:
        parsed = self.parse(phase)
        if parsed is None:
            return None
        return self._index[parsed]

    def position(self, phase: Phase) -> int:
        """1-based screen number, as shown in the progress strip."""

        return self._index[Phase(phase)] + 1

    def next(self, phase: object) -> Phase | None:
        idx = self.index_of(phase)
        if idx is None or idx >= len(PHASE_ORDER) - 1:
            return None
        return PHASE_ORDER[idx + 1]

    def prev(self, phase: object) -> Phase | None:
        idx = self.index_of(phase)
        if idx is None or idx <= 0:
            return None
        return PHASE_ORDER[idx - 1]

    def is_valid(self, candidate: object) -> bool:
        return self.parse(candidate) is not None

    def parse(self, candidate: object) -> Phase | None:
        if isinstance(candidate, Phase):
            return candidate
        if not isinstance(candidate, str):
            return None
        try:
            return Phase(candidate.strip())
        except ValueError:
            return None

    def label(self, phase: Phase) -> str:
        return self._labels[Phase(phase)]

    def labels(self) -> tuple[str, ...]:
        return tuple(self._labels[p] for p in PHASE_ORDER)
