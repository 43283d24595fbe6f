from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .clock import ScheduledCall, Scheduler
from .phases import Phase, PhaseGraph
from .state import ModuleState

logger = logging.getLogger(__name__)

PhaseListener = Callable[[Phase, Phase], None]


@dataclass(frozen=True, slots=True)
class NavigationConfig:
    # Double-click guard between accepted navigations.
    min_interval_s: float = 0.200
    # Screen transition animation time; further navigation is refused meanwhile.
    settle_s: float = 0.400

    def __post_init__(self) -> None:
        if self.min_interval_s < 0.0:
            raise ValueError("min_interval_s must be >= 0")
        if self.settle_s < 0.0:
            raise ValueError("settle_s must be >= 0")


class NavigationController:
    """Owns the current phase of one mounted lesson.

    - At most one navigation in flight; it is released by a scheduled call
      after ``settle_s``.
    - Accepted navigations are spaced by at least ``min_interval_s``.
    - Phase identifiers may come from persisted state, so anything invalid
      is ignored rather than raised.
    """

    def __init__(
        self,
        *,
        state: ModuleState,
        graph: PhaseGraph,
        scheduler: Scheduler,
        config: NavigationConfig | None = None,
        on_change: PhaseListener | None = None,
    ) -> None:
        self._state = state
        self._graph = graph
        self._scheduler = scheduler
        self._cfg = config or NavigationConfig()
        self._on_change = on_change

        self._in_flight = False
        self._release_call: ScheduledCall | None = None
        self._last_accepted_at_s: float | None = None

        self._initialised = False
        self._init_hint: object = None
        self._last_external_hint: object = None

        if self._state.furthest_phase is None:
            self._state.furthest_phase = self._state.current_phase

    @property
    def phase(self) -> Phase:
        return self._state.current_phase

    @property
    def furthest(self) -> Phase:
        assert self._state.furthest_phase is not None
        return self._state.furthest_phase

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def graph(self) -> PhaseGraph:
        return self._graph

    def init(self, resume_hint: object = None) -> Phase:
        if self._initialised and resume_hint == self._init_hint:
            return self._state.current_phase

        parsed = self._graph.parse(resume_hint)
        if resume_hint is not None and parsed is None:
            logger.debug("Ignoring invalid resume phase %r", resume_hint)

        self._initialised = True
        self._init_hint = resume_hint
        self._last_external_hint = resume_hint
        self._state.current_phase = parsed or self._graph.first
        self._state.furthest_phase = self._later_of(self._state.current_phase, self._state.furthest_phase)
        return self._state.current_phase

    def go_to_phase(self, target: object) -> bool:
        parsed = self._graph.parse(target)
        if parsed is None:
            logger.debug("Ignoring invalid phase target %r", target)
            return False
        if parsed is self._state.current_phase:
            return False
        if self._in_flight:
            logger.debug("Navigation to %s refused: transition in flight", parsed.value)
            return False

        now = self._scheduler.now()
        if (
            self._last_accepted_at_s is not None
            and now - self._last_accepted_at_s < self._cfg.min_interval_s
        ):
            logger.debug("Navigation to %s refused: debounce", parsed.value)
            return False

        self._last_accepted_at_s = now
        self._in_flight = True
        self._release_call = self._scheduler.call_later(self._cfg.settle_s, self._release)
        self._apply(parsed)
        return True

    def go_next(self) -> bool:
        target = self._graph.next(self._state.current_phase)
        if target is None:
            return False
        return self.go_to_phase(target)

    def go_back(self) -> bool:
        target = self._graph.prev(self._state.current_phase)
        if target is None:
            return False
        return self.go_to_phase(target)

    def can_jump_to(self, target: object) -> bool:
        parsed = self._graph.parse(target)
        if parsed is None:
            return False
        return self._graph.position(parsed) <= self._graph.position(self.furthest)

    def jump_to(self, target: object) -> bool:
        if not self.can_jump_to(target):
            return False
        return self.go_to_phase(target)

    def sync_external_phase(self, hint: object) -> bool:
        """Adopt a host-supplied phase once per distinct hint, bypassing the debounce."""

        if hint is None or hint == self._last_external_hint:
            return False
        self._last_external_hint = hint

        parsed = self._graph.parse(hint)
        if parsed is None or parsed is self._state.current_phase:
            return False
        self._apply(parsed)
        return True

    def normalise(self, state: ModuleState) -> None:
        state.current_phase = self._graph.parse(state.current_phase) or self._graph.first
        furthest = self._graph.parse(state.furthest_phase)
        state.furthest_phase = self._later_of(state.current_phase, furthest)

    def bind(self, state: ModuleState) -> None:
        """Adopt a restored state without notifying listeners."""

        self.normalise(state)
        self._state = state

    def dispose(self) -> None:
        if self._release_call is not None:
            self._release_call.cancel()
            self._release_call = None
        self._in_flight = False

    def _release(self) -> None:
        self._in_flight = False
        self._release_call = None

    def _apply(self, new_phase: Phase) -> None:
        old_phase = self._state.current_phase
        self._state.current_phase = new_phase
        self._state.furthest_phase = self._later_of(new_phase, self._state.furthest_phase)
        logger.info(
            "Phase %s -> %s (%d/%d)",
            old_phase.value,
            new_phase.value,
            self._graph.position(new_phase),
            self._graph.total,
        )
        if self._on_change is not None:
            self._on_change(old_phase, new_phase)

    def _later_of(self, a: Phase, b: Phase | None) -> Phase:
        if b is None:
            return a
        return a if self._graph.position(a) >= self._graph.position(b) else b
