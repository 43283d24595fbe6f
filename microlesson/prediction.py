from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .phases import Phase
from .state import ModuleState

logger = logging.getLogger(__name__)


class PredictionSlot(StrEnum):
    FIRST = "prediction"
    TWIST = "twist_prediction"


# Which phase is allowed to write which slot.
SLOT_OWNERS: dict[Phase, PredictionSlot] = {
    Phase.PREDICT: PredictionSlot.FIRST,
    Phase.TWIST_PREDICT: PredictionSlot.TWIST,
}


@dataclass(frozen=True, slots=True)
class PredictionOption:
    id: str
    label: str


@dataclass(frozen=True, slots=True)
class PredictionSet:
    prompt: str
    options: tuple[PredictionOption, ...]
    correct_id: str

    def __post_init__(self) -> None:
        if len(self.options) < 2:
            raise ValueError("a prediction set needs at least two options")
        ids = [o.id for o in self.options]
        if len(set(ids)) != len(ids):
            raise ValueError("prediction option ids must be unique")
        if self.correct_id not in ids:
            raise ValueError(f"correct prediction id {self.correct_id!r} is not an option")

    def has_option(self, option_id: object) -> bool:
        return any(o.id == option_id for o in self.options)

    def label_of(self, option_id: str | None) -> str | None:
        return next((o.label for o in self.options if o.id == option_id), None)


class PredictionTracker:
    def __init__(
        self,
        *,
        state: ModuleState,
        first: PredictionSet,
        twist: PredictionSet,
    ) -> None:
        self._state = state
        self._sets = {PredictionSlot.FIRST: first, PredictionSlot.TWIST: twist}

    def normalise(self, state: ModuleState) -> None:
        for slot, pset in self._sets.items():
            if not pset.has_option(getattr(state, slot.value)):
                setattr(state, slot.value, None)

    def bind(self, state: ModuleState) -> None:
        self.normalise(state)
        self._state = state

    def prediction_set(self, slot: PredictionSlot) -> PredictionSet:
        return self._sets[slot]

    def choose(self, phase: Phase, option_id: str) -> PredictionSlot | None:
        """Record ``option_id`` for the slot ``phase`` owns.

        ``phase`` is the lesson's current phase; choices made anywhere else
        and ids that are not options of the slot are ignored.
        """

        slot = SLOT_OWNERS.get(phase)
        if slot is None:
            logger.debug("Prediction %r ignored outside a predict phase (%s)", option_id, phase)
            return None
        if not self._sets[slot].has_option(option_id):
            logger.debug("Unknown prediction option %r for %s", option_id, slot.value)
            return None
        setattr(self._state, slot.value, option_id)
        return slot

    def choice(self, slot: PredictionSlot) -> str | None:
        return getattr(self._state, slot.value)

    def has_answered(self, slot: PredictionSlot) -> bool:
        return self.choice(slot) is not None

    def is_correct(self, slot: PredictionSlot) -> bool:
        chosen = self.choice(slot)
        return chosen is not None and chosen == self._sets[slot].correct_id
