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
from .simulation import KernelBase, ParameterSpec, SimulationKernel, safe_div
from .topic import Application, AppStat, TopicConfig


@dataclass(frozen=True, slots=True)
class KickbackConfig:
    # One animation frame.
    tick_period_ms: float = 16.0
    supply_v: float = 12.0
    # Unprotected spike for a 100 mH coil; scales linearly with inductance.
    spike_v_per_100mh: float = 350.0
    clamp_v: float = 12.0
    decay_v_per_tick: float = 15.0
    spark_ms: float = 300.0
    min_duty_gap: float = 0.01
    required_toggles: int = 3

    def __post_init__(self) -> None:
        if self.tick_period_ms <= 0.0:
            raise ValueError("tick_period_ms must be > 0")
        if self.spike_v_per_100mh <= 0.0 or self.clamp_v <= 0.0:
            raise ValueError("spike voltages must be > 0")
        if self.decay_v_per_tick <= 0.0:
            raise ValueError("decay_v_per_tick must be > 0")
        if self.spark_ms < 0.0:
            raise ValueError("spark_ms must be >= 0")
        if not (0.0 < self.min_duty_gap < 1.0):
            raise ValueError("min_duty_gap must be in (0, 1)")
        if self.required_toggles < 0:
            raise ValueError("required_toggles must be >= 0")


@dataclass(frozen=True, slots=True)
class KickbackStatus:
    switch_on: bool
    flyback_diode: bool
    inductance_mh: float
    coil_current_flowing: bool
    kickback_v: float
    peak_kickback_v: float
    spark_visible: bool
    experiment_count: int
    boost_active: bool
    input_v: float
    duty_cycle_pct: float
    boost_output_v: float
    boost_ratio: float


class KickbackKernel(KernelBase):
    """Relay coil switched by hand, plus a boost converter built on the same effect."""

    ACTIONS = ("toggle_switch",)

    def __init__(self, *, config: KickbackConfig | None = None) -> None:
        self._cfg = config or KickbackConfig()
        self.tick_period_ms = self._cfg.tick_period_ms
        super().__init__(
            specs=(
                ParameterSpec(
                    name="inductance_mh",
                    label="Inductance",
                    unit="mH",
                    minimum=10,
                    maximum=500,
                    step=10,
                    initial=100,
                ),
                ParameterSpec(name="flyback_diode", label="Flyback diode", minimum=0, maximum=1, step=1, initial=0),
                ParameterSpec(
                    name="input_v",
                    label="Input voltage",
                    unit="V",
                    minimum=3,
                    maximum=12,
                    step=0.5,
                    initial=5,
                ),
                ParameterSpec(
                    name="duty_cycle_pct",
                    label="Duty cycle",
                    unit="%",
                    minimum=10,
                    maximum=90,
                    step=5,
                    initial=40,
                ),
                ParameterSpec(name="boost_active", label="Boost converter", minimum=0, maximum=1, step=1, initial=0),
            )
        )
        self._init_circuit()

    def _init_circuit(self) -> None:
        self._switch_on = True
        self._kickback_v = 0.0
        self._peak_kickback_v = 0.0
        self._spark_remaining_ms = 0.0
        self._experiment_count = 0

    @property
    def experiment_count(self) -> int:
        return self._experiment_count

    @property
    def switch_on(self) -> bool:
        return self._switch_on

    @property
    def kickback_v(self) -> float:
        return self._kickback_v

    @property
    def boost_active(self) -> bool:
        return self.parameter("boost_active") >= 1.0

    def spike_v(self) -> float:
        """Voltage across the coil the instant its current is interrupted."""

        if self.parameter("flyback_diode") >= 1.0:
            return self._cfg.clamp_v
        return self._cfg.spike_v_per_100mh * self.parameter("inductance_mh") / 100.0

    def boost_output_v(self) -> float:
        duty = self.parameter("duty_cycle_pct") / 100.0
        gap = max(1.0 - duty, self._cfg.min_duty_gap)
        return safe_div(self.parameter("input_v"), gap)

    def actions(self) -> tuple[str, ...]:
        return self.ACTIONS

    def trigger(self, action: str) -> bool:
        if action != "toggle_switch":
            return False
        if self._switch_on:
            spike = self.spike_v()
            self._kickback_v = spike
            self._peak_kickback_v = max(self._peak_kickback_v, spike)
            if self.parameter("flyback_diode") < 1.0:
                self._spark_remaining_ms = self._cfg.spark_ms
        self._switch_on = not self._switch_on
        self._experiment_count += 1
        return True

    def tick(self, delta_ms: float) -> None:
        elapsed = max(0.0, float(delta_ms))
        steps = elapsed / self.tick_period_ms
        if self._kickback_v > 0.0:
            self._kickback_v = max(0.0, self._kickback_v - self._cfg.decay_v_per_tick * steps)
        if self._spark_remaining_ms > 0.0:
            self._spark_remaining_ms = max(0.0, self._spark_remaining_ms - elapsed)

    def reset(self) -> None:
        self._reset_parameters()
        self._init_circuit()

    def derive_status(self) -> KickbackStatus:
        input_v = self.parameter("input_v")
        output_v = self._guard.check("boost_output_v", self.boost_output_v(), fallback=input_v)
        return KickbackStatus(
            switch_on=self._switch_on,
            flyback_diode=self.parameter("flyback_diode") >= 1.0,
            inductance_mh=self.parameter("inductance_mh"),
            coil_current_flowing=self._switch_on,
            kickback_v=self._kickback_v,
            peak_kickback_v=self._peak_kickback_v,
            spark_visible=self._spark_remaining_ms > 0.0,
            experiment_count=self._experiment_count,
            boost_active=self.boost_active,
            input_v=input_v,
            duty_cycle_pct=self.parameter("duty_cycle_pct"),
            boost_output_v=output_v,
            boost_ratio=self._guard.check("boost_ratio", safe_div(output_v, input_v), fallback=1.0),
        )


def experimented_enough(required: int) -> Callable[[SimulationKernel], bool]:
    def check(kernel: SimulationKernel) -> bool:
        return isinstance(kernel, KickbackKernel) and kernel.experiment_count >= required

    return check


def boost_explored(kernel: SimulationKernel) -> bool:
    return isinstance(kernel, KickbackKernel) and kernel.boost_active


KICKBACK_QUESTIONS: tuple[Question, ...] = (
    build_question(
        "kickback-1",
        "What is the most likely cause of the switch contact damage?",
        [
            "The switch is rated for too low a current",
            "Inductive kickback from the relay coil is arcing across the switch contacts",
            "The 12V power supply is providing too much voltage",
            "Static electricity is building up in the circuit",
        ],
        1,
        scenario="A 12 V relay coil switched by a mechanical switch leaves burn marks on the contacts.",
        explanation="Interrupting coil current gives V = -L di/dt, hundreds of volts across the opening contacts.",
    ),
    build_question(
        "kickback-2",
        "What should be added across the relay coil to protect the microcontroller?",
        [
            "A capacitor to store the excess energy",
            "A resistor to limit current flow",
            "A flyback diode, reverse-biased across the coil",
            "A fuse to break the circuit during spikes",
        ],
        2,
        scenario="A microcontroller with 5 V pins drives a 24 V relay.",
        explanation="The diode conducts only when the coil voltage reverses, clamping the spike near the supply.",
    ),
    build_question(
        "kickback-3",
        "What is the purpose of installing the flyback diode cathode-to-positive?",
        [
            "To block current in normal operation while conducting during kickback",
            "To increase motor efficiency by reducing resistance",
            "To convert the AC motor current to DC",
            "To prevent the motor from spinning backwards",
        ],
        0,
    ),
    build_question(
        "kickback-4",
        "What most likely destroyed the H-bridge MOSFET when the motor reversed quickly?",
        [
            "The motor drew too much continuous current",
            "Inductive kickback from the motor exceeded the MOSFET voltage rating",
            "The PWM frequency was set too high",
            "The gate driver voltage was insufficient",
        ],
        1,
    ),
    build_question(
        "kickback-5",
        "How does an ignition coil turn 12 V into about 40,000 V?",
        [
            "An internal battery booster multiplies the voltage",
            "Many secondary turns plus rapid current interruption step up the kickback",
            "Capacitors store energy and release it all at once",
            "The spark plugs themselves amplify the voltage",
        ],
        1,
    ),
    build_question(
        "kickback-6",
        "What lets a relay release faster while still protecting against kickback?",
        [
            "Remove the diode and accept the spikes",
            "Add a resistor in series with the flyback diode",
            "Replace the diode with a larger capacitor",
            "Use a higher supply voltage",
        ],
        1,
        explanation="The resistor lets a controlled spike dissipate the field energy faster than a diode alone.",
    ),
    build_question(
        "kickback-7",
        "Why might a 100 V MOSFET be inadequate in a 48 V flyback converter?",
        [
            "It is too physically large for the board",
            "Kickback spikes can exceed twice the input voltage plus ringing",
            "48 V systems require special low-voltage MOSFETs",
            "The switching frequency will be too slow",
        ],
        1,
    ),
    build_question(
        "kickback-8",
        "How does a flyback converter use kickback to transfer energy?",
        [
            "Energy transfers continuously while the switch is closed",
            "When the switch opens, the collapsing field transfers energy to the secondary",
            "The transformer steps down AC directly from the wall",
            "The transformer eliminates kickback for smooth DC",
        ],
        1,
    ),
    build_question(
        "kickback-9",
        "What is most likely resetting factory electronics whenever large motors turn off?",
        [
            "Radio interference from motor brushes",
            "Ground loops between motor and control circuits",
            "EMI from inductive kickback coupling into nearby circuits",
            "Supply droop when motors start",
        ],
        2,
    ),
    build_question(
        "kickback-10",
        "How can a motor's inductance help recover braking energy?",
        [
            "By letting the motor spin freely as a generator",
            "By switching so back-EMF and inductive energy are routed to the battery",
            "By adding batteries that only charge during braking",
            "By turning kinetic energy into heat in the windings",
        ],
        1,
    ),
)

KICKBACK_APPLICATIONS: tuple[Application, ...] = (
    Application(
        title="Automotive Ignition Systems",
        short="40 kV from a 12 V battery",
        description=(
            "The ignition coil is energised from the battery and then interrupted; the "
            "collapsing field, multiplied by the turns ratio, fires the spark plug."
        ),
        stats=(AppStat("40,000V", "Spark voltage"), AppStat("12V", "Input voltage"), AppStat("3,000x", "Voltage boost")),
        examples=("Coil-on-plug ignition", "Small engine magnetos"),
    ),
    Application(
        title="DC-DC Boost Converters",
        short="Controlled kickback",
        description=(
            "A transistor chops current through an inductor; each turn-off dumps the "
            "kickback into a capacitor at a higher voltage, giving Vout = Vin / (1 - D)."
        ),
        stats=(AppStat("95%", "Efficiency"), AppStat("100kHz+", "Switching freq"), AppStat("2-10x", "Boost ratio")),
        examples=("USB power banks", "Solar charge controllers", "LED drivers"),
    ),
    Application(
        title="Electric Guitar Pickups",
        short="Induction in reverse",
        description=(
            "A vibrating steel string changes the flux through a coil of thousands of "
            "turns, inducing the audio voltage; coil inductance shapes the tone."
        ),
        stats=(AppStat("10mV", "Output voltage"), AppStat("8,000", "Wire turns"), AppStat("5-15k", "Ohms resistance")),
        examples=("Single-coil pickups", "Humbuckers"),
    ),
    Application(
        title="Relay & Snubber Protection",
        short="Pennies that save chips",
        description=(
            "Flyback diodes, RC snubbers and TVS parts give the collapsing field a safe "
            "path so switch contacts and transistors survive."
        ),
        stats=(AppStat("100V+", "Unprotected spike"), AppStat("1V", "Protected spike"), AppStat("$0.10", "Diode cost")),
        examples=("Relay driver boards", "Solenoid valves", "Motor drivers"),
    ),
)


def build_kickback_topic(*, config: KickbackConfig | None = None) -> TopicConfig:
    cfg = config or KickbackConfig()
    return TopicConfig(
        topic_id="inductive_kickback",
        title="Inductive Kickback",
        hook=(
            "Switch off a 12 V relay coil and a spark jumps across the switch. "
            "Where do hundreds of volts come from in a 12 V circuit?"
        ),
        prediction=PredictionSet(
            prompt="What happens to the coil voltage when the switch opens?",
            options=(
                PredictionOption("zero", "Drops to 0V immediately"),
                PredictionOption("gradual", "Gradually decreases from 12V to 0V"),
                PredictionOption("spike", "Spikes to hundreds of volts briefly"),
            ),
            correct_id="spike",
        ),
        twist_prediction=PredictionSet(
            prompt="Can kickback ever be useful?",
            options=(
                PredictionOption("nothing", "It's only a problem to be prevented"),
                PredictionOption("spark", "To create sparks in spark plugs"),
                PredictionOption("both", "Both spark plugs AND voltage boosting circuits"),
            ),
            correct_id="both",
        ),
        questions=KICKBACK_QUESTIONS,
        applications=KICKBACK_APPLICATIONS,
        kernel_factory=lambda: KickbackKernel(config=cfg),
        phase_labels={Phase.TWIST_PLAY: "Boost Converter"},
        review_text=(
            "An inductor resists changes in current: V = -L di/dt. Opening the switch "
            "forces di/dt to be huge, so the voltage spikes until something conducts."
        ),
        twist_review_text=(
            "A boost converter harvests that spike on purpose every switching cycle, "
            "stepping the input up to Vin / (1 - D)."
        ),
        mastery_text="You can now explain, protect against and exploit inductive kickback.",
        play_requirement=experimented_enough(cfg.required_toggles),
        twist_play_requirement=boost_explored,
        play_hint=f"Toggle the switch at least {cfg.required_toggles} times, with and without the diode.",
        twist_play_hint="Activate the boost converter and vary the duty cycle.",
    )


def build_kickback_lesson(
    *,
    scheduler: Scheduler,
    config: KickbackConfig | None = None,
    resume_phase: object = None,
    navigation: NavigationConfig | None = None,
    on_event: EventListener | None = None,
    on_correct_answer: Callable[[], None] | None = None,
    on_incorrect_answer: Callable[[], None] | None = None,
) -> LessonModule:
    return LessonModule(
        topic=build_kickback_topic(config=config),
        scheduler=scheduler,
        resume_phase=resume_phase,
        navigation=navigation,
        on_event=on_event,
        on_correct_answer=on_correct_answer,
        on_incorrect_answer=on_incorrect_answer,
    )
