from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .clock import Scheduler
from .events import EventListener
from .lesson import LessonModule
from .navigation import NavigationConfig
from .phases import Phase
from .prediction import PredictionOption, PredictionSet
from .quiz import Question, build_question
from .simulation import HysteresisLatch, KernelBase, ParameterSpec, safe_div
from .topic import Application, AppStat, TopicConfig


@dataclass(frozen=True, slots=True)
class ThermalConfig:
    tick_period_ms: float = 50.0
    ambient_c: float = 25.0
    throttle_c: float = 95.0
    critical_c: float = 105.0
    # Throttling releases only once the die is this far below throttle_c.
    hysteresis_c: float = 10.0
    # Fraction of the gap to the target temperature closed per tick.
    smoothing: float = 0.05

    initial_temp_c: float = 40.0
    base_clock_ghz: float = 3.5
    base_voltage_v: float = 1.2
    min_clock_ghz: float = 2.0
    min_voltage_v: float = 0.9
    clock_step: float = 0.95
    voltage_step: float = 0.98

    dynamic_power_scale: float = 30.0
    leakage_w: float = 5.0
    leakage_per_c: float = 0.02
    cooling_reference: float = 50.0

    def __post_init__(self) -> None:
        if self.tick_period_ms <= 0.0:
            raise ValueError("tick_period_ms must be > 0")
        if not (self.ambient_c < self.throttle_c <= self.critical_c):
            raise ValueError("expected ambient_c < throttle_c <= critical_c")
        if not (0.0 <= self.hysteresis_c < self.throttle_c - self.ambient_c):
            raise ValueError("hysteresis_c must be in [0, throttle_c - ambient_c)")
        if not (0.0 < self.smoothing <= 1.0):
            raise ValueError("smoothing must be in (0, 1]")
        if not (0.0 < self.min_clock_ghz <= self.base_clock_ghz):
            raise ValueError("expected 0 < min_clock_ghz <= base_clock_ghz")
        if not (0.0 < self.min_voltage_v <= self.base_voltage_v):
            raise ValueError("expected 0 < min_voltage_v <= base_voltage_v")
        if not (0.0 < self.clock_step <= 1.0) or not (0.0 < self.voltage_step <= 1.0):
            raise ValueError("clock_step and voltage_step must be in (0, 1]")
        if self.cooling_reference <= 0.0:
            raise ValueError("cooling_reference must be > 0")


@dataclass(frozen=True, slots=True)
class ThermalStatus:
    temperature_c: float
    target_temperature_c: float
    clock_ghz: float
    voltage_v: float
    workload_pct: float
    cooling_pct: float
    power_w: float
    thermal_resistance_c_per_w: float
    throttling: bool
    at_critical: bool
    headroom_c: float
    performance_pct: float


class ThermalKernel(KernelBase):
    """First-order die temperature with a hysteretic DVFS throttle.

    Per tick: power from V^2 * f * workload plus temperature-dependent
    leakage, a target temperature from the cooling's thermal resistance, and
    an exponential step toward it capped at ``critical_c``. While the latch
    is set, clock and voltage step down toward their floors. They are not
    restored when the latch clears; ``reset()`` does that.
    """

    def __init__(self, *, config: ThermalConfig | None = None) -> None:
        self._cfg = config or ThermalConfig()
        self.tick_period_ms = self._cfg.tick_period_ms
        super().__init__(
            specs=(
                ParameterSpec(
                    name="workload_pct",
                    label="Workload",
                    unit="%",
                    minimum=10,
                    maximum=100,
                    step=5,
                    initial=50,
                ),
                ParameterSpec(
                    name="cooling_pct",
                    label="Cooling",
                    unit="%",
                    minimum=35,
                    maximum=150,
                    step=5,
                    initial=65,
                ),
            )
        )
        self._latch = HysteresisLatch(
            on_at=self._cfg.throttle_c,
            off_below=self._cfg.throttle_c - self._cfg.hysteresis_c,
        )
        self._init_die()

    def _init_die(self) -> None:
        self._temperature_c = self._cfg.initial_temp_c
        self._clock_ghz = self._cfg.base_clock_ghz
        self._voltage_v = self._cfg.base_voltage_v
        self._latch.reset()

    @property
    def config(self) -> ThermalConfig:
        return self._cfg

    @property
    def temperature_c(self) -> float:
        return self._temperature_c

    @property
    def throttling(self) -> bool:
        return self._latch.active

    @property
    def clock_ghz(self) -> float:
        return self._clock_ghz

    @property
    def voltage_v(self) -> float:
        return self._voltage_v

    def power_w(self) -> float:
        cfg = self._cfg
        dynamic = self._voltage_v**2 * self._clock_ghz * (self.parameter("workload_pct") / 100.0)
        leakage = cfg.leakage_w * (1.0 + (self._temperature_c - cfg.ambient_c) * cfg.leakage_per_c)
        return dynamic * cfg.dynamic_power_scale + leakage

    def thermal_resistance(self) -> float:
        return safe_div(1.0, self.parameter("cooling_pct") / self._cfg.cooling_reference)

    def target_temperature_c(self) -> float:
        return self._cfg.ambient_c + self.power_w() * self.thermal_resistance()

    def tick(self, delta_ms: float) -> None:
        cfg = self._cfg
        steps = max(0.0, float(delta_ms)) / self.tick_period_ms
        if steps <= 0.0:
            return

        # Exact for steps == 1; consistent when a host ticks with another delta.
        alpha = 1.0 - (1.0 - cfg.smoothing) ** steps
        target = self._guard.check("target_temperature_c", self.target_temperature_c(), fallback=cfg.ambient_c)
        temperature = self._temperature_c + (target - self._temperature_c) * alpha
        self._temperature_c = self._guard.check(
            "temperature_c", min(temperature, cfg.critical_c), fallback=cfg.initial_temp_c
        )

        if self._latch.update(self._temperature_c):
            self._clock_ghz = max(self._clock_ghz * cfg.clock_step**steps, cfg.min_clock_ghz)
            self._voltage_v = max(self._voltage_v * cfg.voltage_step**steps, cfg.min_voltage_v)

    def reset(self) -> None:
        self._reset_parameters()
        self._init_die()

    def derive_status(self) -> ThermalStatus:
        cfg = self._cfg
        power = self._guard.check("power_w", self.power_w())
        resistance = self._guard.check("thermal_resistance", self.thermal_resistance())
        return ThermalStatus(
            temperature_c=self._temperature_c,
            target_temperature_c=self._guard.check("target_temperature_c", cfg.ambient_c + power * resistance),
            clock_ghz=self._clock_ghz,
            voltage_v=self._voltage_v,
            workload_pct=self.parameter("workload_pct"),
            cooling_pct=self.parameter("cooling_pct"),
            power_w=power,
            thermal_resistance_c_per_w=resistance,
            throttling=self._latch.active,
            at_critical=self._temperature_c >= cfg.critical_c,
            headroom_c=cfg.throttle_c - self._temperature_c,
            performance_pct=self._clock_ghz / cfg.base_clock_ghz * 100.0,
        )


THERMAL_QUESTIONS: tuple[Question, ...] = (
    build_question(
        "thermal-1",
        "What is thermal throttling?",
        [
            "Automatic reduction of processor speed to prevent overheating",
            "Manual speed control by the user",
            "A cooling fan speed adjustment",
            "Battery power limiting",
        ],
        0,
    ),
    build_question(
        "thermal-2",
        "What does DVFS stand for?",
        [
            "Direct Voltage Frequency Scaling",
            "Dynamic Voltage and Frequency Scaling",
            "Digital Variable Fan Speed",
            "Dual Voltage Frequency System",
        ],
        1,
    ),
    build_question(
        "thermal-3",
        "How does dynamic power consumption relate to voltage?",
        [
            "Power is proportional to voltage (P ~ V)",
            "Power is proportional to voltage squared (P ~ V^2)",
            "Power is inversely proportional to voltage",
            "Power is independent of voltage",
        ],
        1,
        explanation="Dynamic power is C * V^2 * f, so a small voltage cut saves a lot of heat.",
    ),
    build_question(
        "thermal-4",
        "What happens when junction temperature exceeds the throttle threshold?",
        [
            "Nothing, the chip continues normally",
            "Clock speed and voltage are reduced to lower power dissipation",
            "The chip immediately shuts down",
            "Only the GPU is affected",
        ],
        1,
    ),
    build_question(
        "thermal-5",
        "What is the typical throttle threshold for modern processors?",
        ["Around 50-60 C", "Around 70-80 C", "Around 90-100 C", "Around 120-130 C"],
        2,
    ),
    build_question(
        "thermal-6",
        "Why does better cooling enable higher performance?",
        [
            "It allows higher sustained clock speeds without hitting thermal limits",
            "It makes the electrons flow faster",
            "It reduces electrical resistance to zero",
            "It increases the battery capacity",
        ],
        0,
    ),
    build_question(
        "thermal-7",
        "What is thermal runaway in the context of processors?",
        [
            "Heat raises leakage power, which produces more heat",
            "The cooling fan runs too fast",
            "The CPU runs faster than rated",
            "The thermal paste dries out",
        ],
        0,
    ),
    build_question(
        "thermal-8",
        "Why do smartphones throttle more than desktop computers?",
        [
            "They have weaker processors",
            "They rely on passive cooling with no fans",
            "They use different operating systems",
            "They have smaller batteries",
        ],
        1,
    ),
    build_question(
        "thermal-9",
        "What is TDP (Thermal Design Power)?",
        [
            "The amount of heat the cooling system must dissipate",
            "The total battery consumption",
            "The display power usage",
            "The network transmission power",
        ],
        0,
    ),
    build_question(
        "thermal-10",
        "How does workload affect processor temperature?",
        [
            "No effect, temperature is constant",
            "Higher workload means more switching activity and heat",
            "Lower workload increases temperature",
            "Only GPU workload affects temperature",
        ],
        1,
    ),
)

THERMAL_APPLICATIONS: tuple[Application, ...] = (
    Application(
        title="Gaming Laptops",
        short="Vapor chambers and fans",
        description=(
            "High-performance laptops use multiple fans and vapor chambers so the CPU and "
            "GPU can hold boost clocks for longer before the throttle latch trips."
        ),
        stats=(AppStat("2-3", "Fans per chassis"), AppStat("95 C", "Typical throttle point")),
        examples=("Performance profiles", "Cooling pads", "Undervolting"),
    ),
    Application(
        title="Smartphones",
        short="Passive cooling only",
        description=(
            "Phones have no fans. Sustained gaming heats the SoC until DVFS steps the "
            "clocks down, which shows up as dropping frame rates."
        ),
        stats=(AppStat("0", "Fans"), AppStat("3-5 W", "Sustainable SoC power")),
        examples=("Graphite heat spreaders", "Game mode clock caps"),
    ),
    Application(
        title="Data Centers",
        short="Facility-scale cooling",
        description=(
            "Server farms spend a large share of their energy on cooling; every degree of "
            "headroom lets racks run denser and faster."
        ),
        stats=(AppStat("1.1-1.6", "Power usage effectiveness"), AppStat("30-40%", "Energy spent on cooling")),
        examples=("Hot/cold aisle containment", "Direct liquid cooling", "Immersion tanks"),
    ),
    Application(
        title="Electric Vehicles",
        short="Liquid-cooled drivetrains",
        description=(
            "EV battery packs and motors are liquid cooled; when they run hot the controller "
            "derates power the same way a CPU throttles its clock."
        ),
        stats=(AppStat("25-40 C", "Ideal pack temperature"), AppStat("50%+", "Power derate when hot")),
        examples=("Track mode pre-cooling", "Fast-charge thermal limits"),
    ),
)


def build_thermal_topic(*, config: ThermalConfig | None = None) -> TopicConfig:
    cfg = config or ThermalConfig()
    return TopicConfig(
        topic_id="thermal_throttling",
        title="Thermal Throttling",
        hook=(
            "Your phone plays a game smoothly for five minutes, then the frame rate drops. "
            "Nothing is broken. What changed?"
        ),
        prediction=PredictionSet(
            prompt="What happens when a phone's processor gets too hot?",
            options=(
                PredictionOption("damage", "The chip would be permanently damaged by overheating"),
                PredictionOption("throttle", "The chip automatically slows down to reduce heat generation"),
                PredictionOption("shutdown", "The phone immediately shuts off to protect itself"),
                PredictionOption("battery", "The battery stops charging to cool down"),
            ),
            correct_id="throttle",
        ),
        twist_prediction=PredictionSet(
            prompt="How does cooling capacity affect sustained performance?",
            options=(
                PredictionOption("same", "Cooling has no effect on maximum performance"),
                PredictionOption("better_cooling", "Better cooling directly enables higher sustained performance"),
                PredictionOption("software", "Performance is purely software limited, not thermal"),
                PredictionOption("random", "Performance varies randomly regardless of cooling"),
            ),
            correct_id="better_cooling",
        ),
        questions=THERMAL_QUESTIONS,
        applications=THERMAL_APPLICATIONS,
        kernel_factory=lambda: ThermalKernel(config=cfg),
        phase_labels={Phase.TWIST_PLAY: "Cooling Effect"},
        review_text=(
            f"At {cfg.throttle_c:.0f} C the chip lowers clock and voltage. Power scales with "
            f"V^2 * f, so heat output falls quickly. It only speeds back up below "
            f"{cfg.throttle_c - cfg.hysteresis_c:.0f} C to avoid oscillating."
        ),
        twist_review_text=(
            "Lower thermal resistance means a lower steady-state temperature for the same "
            "power, so the chip can sustain higher clocks before throttling."
        ),
        mastery_text="You can now explain why devices slow down when they get hot.",
        play_hint="Raise the workload and start the simulation. Watch for the throttle.",
        twist_play_hint="Now change the cooling and compare sustained clock speed.",
    )


def build_thermal_lesson(
    *,
    scheduler: Scheduler,
    config: ThermalConfig | None = None,
    resume_phase: object = None,
    navigation: NavigationConfig | None = None,
    on_event: EventListener | None = None,
    on_correct_answer: Callable[[], None] | None = None,
    on_incorrect_answer: Callable[[], None] | None = None,
) -> LessonModule:
    return LessonModule(
        topic=build_thermal_topic(config=config),
        scheduler=scheduler,
        resume_phase=resume_phase,
        navigation=navigation,
        on_event=on_event,
        on_correct_answer=on_correct_answer,
        on_incorrect_answer=on_incorrect_answer,
    )
