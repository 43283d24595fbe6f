from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from .clock import Clock

logger = logging.getLogger(__name__)


class LessonEventKind(StrEnum):
    PHASE_CHANGED = "phase_changed"
    PREDICTION_MADE = "prediction_made"
    PARAMETER_CHANGED = "parameter_changed"
    ACTION_TRIGGERED = "action_triggered"
    SIMULATION_TOGGLED = "simulation_toggled"
    APPLICATION_VIEWED = "application_viewed"
    QUIZ_ANSWERED = "quiz_answered"
    QUIZ_SUBMITTED = "quiz_submitted"
    QUIZ_RESET = "quiz_reset"
    MASTERY_REACHED = "mastery_reached"


@dataclass(frozen=True, slots=True)
class LessonEvent:
    event_type: LessonEventKind
    topic_id: str
    topic_title: str
    timestamp_ms: int
    details: Mapping[str, object] = field(default_factory=dict)


EventListener = Callable[[LessonEvent], None]


class EventEmitter:
    """Best-effort delivery of lesson events to one optional observer."""

    def __init__(
        self,
        *,
        topic_id: str,
        topic_title: str,
        clock: Clock,
        listener: EventListener | None = None,
    ) -> None:
        self._topic_id = topic_id
        self._topic_title = topic_title
        self._clock = clock
        self._listener = listener
        self._emitted = 0

    @property
    def emitted(self) -> int:
        return self._emitted

    def emit(self, kind: LessonEventKind, **details: object) -> LessonEvent:
        event = LessonEvent(
            event_type=kind,
            topic_id=self._topic_id,
            topic_title=self._topic_title,
            timestamp_ms=int(round(self._clock.now() * 1000.0)),
            details=MappingProxyType(dict(details)),
        )
        self._emitted += 1
        if self._listener is None:
            return event
        try:
            self._listener(event)
        except Exception:
            logger.exception("Event observer failed on %s", kind.value)
        return event
