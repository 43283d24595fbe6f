from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from .clock import ScheduledCall, Scheduler

logger = logging.getLogger(__name__)

_DIV_FLOOR = 1e-9
_LOG_EPSILON = 1e-12


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    name: str
    label: str
    minimum: float
    maximum: float
    step: float
    initial: float
    unit: str = ""

    def __post_init__(self) -> None:
        for attr in ("minimum", "maximum", "step", "initial"):
            if not math.isfinite(float(getattr(self, attr))):
                raise ValueError(f"{self.name}: {attr} must be finite")
        if self.minimum > self.maximum:
            raise ValueError(f"{self.name}: minimum must be <= maximum")
        if self.step <= 0.0:
            raise ValueError(f"{self.name}: step must be > 0")
        if not (self.minimum <= self.initial <= self.maximum):
            raise ValueError(f"{self.name}: initial must be within [minimum, maximum]")

    @property
    def is_toggle(self) -> bool:
        return self.minimum == 0.0 and self.maximum == 1.0 and self.step == 1.0

    def clamp(self, value: float) -> float:
        """Clamp into range and snap onto the slider's step grid."""

        v = min(max(float(value), self.minimum), self.maximum)
        steps = round((v - self.minimum) / self.step)
        snapped = round(self.minimum + steps * self.step, 9)
        return min(max(snapped, self.minimum), self.maximum)


@dataclass(frozen=True, slots=True)
class ParameterValue:
    """View model row for one adjustable control."""

    name: str
    label: str
    unit: str
    value: float
    minimum: float
    maximum: float
    step: float
    is_toggle: bool


class SimulationKernel(Protocol):
    """Capability interface shared by every topic model."""

    tick_period_ms: float

    def tick(self, delta_ms: float) -> None: ...
    def set_parameter(self, name: str, value: float) -> bool: ...
    def parameter(self, name: str) -> float: ...
    def parameters(self) -> dict[str, float]: ...
    def parameter_specs(self) -> tuple[ParameterSpec, ...]: ...
    def actions(self) -> tuple[str, ...]: ...
    def trigger(self, action: str) -> bool: ...
    def reset(self) -> None: ...
    def derive_status(self) -> object: ...


def safe_div(numerator: float, denominator: float, *, floor: float = _DIV_FLOOR) -> float:
    """Divide with the denominator's magnitude floored away from zero."""

    d = float(denominator)
    if not math.isfinite(d):
        d = floor
    if abs(d) < floor:
        d = floor if d >= 0.0 else -floor
    return float(numerator) / d


def safe_log10(value: float, *, epsilon: float = _LOG_EPSILON) -> float:
    v = float(value)
    if not math.isfinite(v) or v < epsilon:
        v = epsilon
    return math.log10(v)


class FiniteGuard:
    """Remembers the last finite value per output and substitutes it for NaN/inf."""

    def __init__(self) -> None:
        self._last: dict[str, float] = {}

    def check(self, name: str, value: float, *, fallback: float = 0.0) -> float:
        v = float(value)
        if math.isfinite(v):
            self._last[name] = v
            return v
        logger.warning("Non-finite %s=%r replaced with last known good value", name, value)
        return self._last.get(name, float(fallback))

    def clear(self) -> None:
        self._last.clear()


class HysteresisLatch:
    """Boolean that turns on at ``on_at`` and only turns off below ``off_below``."""

    def __init__(self, *, on_at: float, off_below: float) -> None:
        if off_below > on_at:
            raise ValueError("off_below must be <= on_at")
        self._on_at = float(on_at)
        self._off_below = float(off_below)
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def update(self, value: float) -> bool:
        if not self._active and value >= self._on_at:
            self._active = True
        elif self._active and value < self._off_below:
            self._active = False
        return self._active

    def reset(self) -> None:
        self._active = False


class KernelBase:
    """Parameter bookkeeping common to all kernels.

    Subclasses supply ``tick``, ``reset`` and ``derive_status``. Unknown
    parameter names and non-numeric or non-finite values are ignored.
    """

    tick_period_ms: float = 50.0

    def __init__(self, *, specs: Iterable[ParameterSpec]) -> None:
        spec_tuple = tuple(specs)
        names = [s.name for s in spec_tuple]
        if len(set(names)) != len(names):
            raise ValueError("parameter names must be unique")
        self._specs = spec_tuple
        self._spec_by_name = {s.name: s for s in spec_tuple}
        self._values = {s.name: float(s.initial) for s in spec_tuple}
        self._guard = FiniteGuard()

    def parameter_specs(self) -> tuple[ParameterSpec, ...]:
        return self._specs

    def parameter(self, name: str) -> float:
        return self._values[name]

    def parameters(self) -> dict[str, float]:
        return dict(self._values)

    def parameter_values(self) -> tuple[ParameterValue, ...]:
        return tuple(
            ParameterValue(
                name=s.name,
                label=s.label,
                unit=s.unit,
                value=self._values[s.name],
                minimum=s.minimum,
                maximum=s.maximum,
                step=s.step,
                is_toggle=s.is_toggle,
            )
            for s in self._specs
        )

    def set_parameter(self, name: str, value: float) -> bool:
        spec = self._spec_by_name.get(name)
        if spec is None:
            logger.debug("Unknown parameter %r ignored", name)
            return False
        try:
            v = float(value)
        except (TypeError, ValueError):
            return False
        if not math.isfinite(v):
            return False
        self._values[name] = spec.clamp(v)
        return True

    def actions(self) -> tuple[str, ...]:
        return ()

    def trigger(self, action: str) -> bool:
        return False

    def _reset_parameters(self) -> None:
        for s in self._specs:
            self._values[s.name] = float(s.initial)
        self._guard.clear()


class SimulationDriver:
    """One cancellable periodic task advancing one kernel.

    The task is only scheduled while ``running``; the callback also re-checks
    the flag on every fire so a stop issued between pumps wins.
    """

    def __init__(
        self,
        *,
        kernel: SimulationKernel,
        scheduler: Scheduler,
        period_ms: float | None = None,
        on_tick: Callable[[], None] | None = None,
    ) -> None:
        period = float(kernel.tick_period_ms if period_ms is None else period_ms)
        if period <= 0.0:
            raise ValueError("period_ms must be > 0")
        self._kernel = kernel
        self._scheduler = scheduler
        self._period_ms = period
        self._on_tick = on_tick
        self._task: ScheduledCall | None = None
        self._running = False
        self._disposed = False
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def period_ms(self) -> float:
        return self._period_ms

    def start(self) -> bool:
        if self._disposed or self._running:
            return False
        self._running = True
        self._task = self._scheduler.call_every(self._period_ms / 1000.0, self._fire)
        return True

    def stop(self) -> bool:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if not self._running:
            return False
        self._running = False
        return True

    def toggle(self) -> bool:
        if self._running:
            self.stop()
        else:
            self.start()
        return self._running

    def dispose(self) -> None:
        self.stop()
        self._disposed = True

    def _fire(self) -> None:
        if not self._running:
            return
        self._kernel.tick(self._period_ms)
        self._ticks += 1
        if self._on_tick is not None:
            self._on_tick()
