from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class ScheduledCall:
    """Handle for a one-shot or periodic callback owned by a Scheduler."""

    __slots__ = ("_callback", "_due_at_s", "_period_s", "_active")

    def __init__(
        self,
        *,
        callback: Callable[[], None],
        due_at_s: float,
        period_s: float | None = None,
    ) -> None:
        self._callback = callback
        self._due_at_s = float(due_at_s)
        self._period_s = None if period_s is None else float(period_s)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def due_at_s(self) -> float:
        return self._due_at_s

    @property
    def period_s(self) -> float | None:
        return self._period_s

    def cancel(self) -> None:
        # Idempotent; a cancelled call is dropped on the next pump.
        self._active = False


class Scheduler:
    """Cooperative timer queue pumped by the host loop.

    There are no threads: ``pump()`` runs every callback whose due time has
    passed on the injected clock. A periodic call that fell far behind (host
    stall, debugger pause) runs at most ``max_catch_up`` times per pump and
    then re-anchors to the current time.
    """

    def __init__(self, clock: Clock, *, max_catch_up: int = 50) -> None:
        if max_catch_up < 1:
            raise ValueError("max_catch_up must be >= 1")
        self._clock = clock
        self._max_catch_up = int(max_catch_up)
        self._calls: list[ScheduledCall] = []

    @property
    def clock(self) -> Clock:
        return self._clock

    def now(self) -> float:
        return self._clock.now()

    def pending(self) -> int:
        return sum(1 for c in self._calls if c.active)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback=callback, due_at_s=self.now() + max(0.0, float(delay_s)))
        self._calls.append(call)
        return call

    def call_every(self, period_s: float, callback: Callable[[], None]) -> ScheduledCall:
        if period_s <= 0.0:
            raise ValueError("period_s must be > 0")
        call = ScheduledCall(
            callback=callback,
            due_at_s=self.now() + float(period_s),
            period_s=period_s,
        )
        self._calls.append(call)
        return call

    def cancel_all(self) -> None:
        for call in self._calls:
            call.cancel()
        self._calls.clear()

    def pump(self) -> int:
        """Run due callbacks. Returns the number of callbacks fired."""

        now = self.now()
        fired = 0
        for call in sorted(self._calls, key=lambda c: c.due_at_s):
            if not call.active:
                continue

            if call.period_s is None:
                if call.due_at_s <= now:
                    call.cancel()
                    call._callback()
                    fired += 1
                continue

            runs = 0
            while call.active and call.due_at_s <= now:
                if runs >= self._max_catch_up:
                    call._due_at_s = now + call.period_s
                    break
                call._due_at_s += call.period_s
                call._callback()
                runs += 1
            fired += runs

        # Calls scheduled from inside callbacks were appended and survive here.
        self._calls = [c for c in self._calls if c.active]
        return fired
