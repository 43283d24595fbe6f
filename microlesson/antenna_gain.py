from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass

from .clock import Scheduler
from .events import EventListener
from .lesson import LessonModule
from .navigation import NavigationConfig
from .phases import Phase
from .prediction import PredictionOption, PredictionSet
from .quiz import Question, build_question
from .simulation import KernelBase, ParameterSpec, safe_div, safe_log10
from .topic import Application, AppStat, TopicConfig


@dataclass(frozen=True, slots=True)
class AntennaConfig:
    tick_period_ms: float = 100.0
    # Wavelength in metres is wavelength_factor / frequency in GHz.
    wavelength_factor: float = 0.3
    aperture_efficiency: float = 0.55
    beamwidth_constant_deg: float = 70.0
    pattern_floor: float = 0.001
    # Below this electrical size the pattern is treated as isotropic.
    min_electrical_size: float = 0.5
    pattern_sample_step_deg: float = 5.0

    def __post_init__(self) -> None:
        if self.tick_period_ms <= 0.0:
            raise ValueError("tick_period_ms must be > 0")
        if self.wavelength_factor <= 0.0:
            raise ValueError("wavelength_factor must be > 0")
        if not (0.0 < self.aperture_efficiency <= 1.0):
            raise ValueError("aperture_efficiency must be in (0, 1]")
        if not (0.0 < self.pattern_floor < 1.0):
            raise ValueError("pattern_floor must be in (0, 1)")
        if self.pattern_sample_step_deg <= 0.0:
            raise ValueError("pattern_sample_step_deg must be > 0")


@dataclass(frozen=True, slots=True)
class AntennaStatus:
    diameter_m: float
    frequency_ghz: float
    pointing_deg: float
    wavelength_m: float
    electrical_size: float
    linear_gain: float
    gain_dbi: float
    beamwidth_deg: float
    pattern_value: float
    effective_gain_dbi: float


class AntennaKernel(KernelBase):
    """Parabolic dish gain. Pure function of the parameters; ticking is a no-op."""

    def __init__(self, *, config: AntennaConfig | None = None) -> None:
        self._cfg = config or AntennaConfig()
        self.tick_period_ms = self._cfg.tick_period_ms
        super().__init__(
            specs=(
                ParameterSpec(
                    name="diameter_m",
                    label="Dish diameter",
                    unit="m",
                    minimum=0.1,
                    maximum=3.0,
                    step=0.1,
                    initial=1.0,
                ),
                ParameterSpec(
                    name="frequency_ghz",
                    label="Frequency",
                    unit="GHz",
                    minimum=1,
                    maximum=30,
                    step=1,
                    initial=10,
                ),
                ParameterSpec(
                    name="pointing_deg",
                    label="Off-axis angle",
                    unit="deg",
                    minimum=-90,
                    maximum=90,
                    step=5,
                    initial=0,
                ),
            )
        )

    def wavelength_m(self) -> float:
        return safe_div(self._cfg.wavelength_factor, self.parameter("frequency_ghz"))

    def electrical_size(self) -> float:
        return safe_div(self.parameter("diameter_m"), self.wavelength_m())

    def linear_gain(self) -> float:
        return (math.pi * self.electrical_size()) ** 2 * self._cfg.aperture_efficiency

    def gain_dbi(self) -> float:
        return 10.0 * safe_log10(self.linear_gain())

    def beamwidth_deg(self) -> float:
        return safe_div(self._cfg.beamwidth_constant_deg, self.electrical_size())

    def pattern(self, angle_deg: float) -> float:
        """Normalised (sin u / u)^2 power pattern, floored."""

        size = self.electrical_size()
        if size < self._cfg.min_electrical_size:
            return 1.0
        u = math.pi * size * math.sin(math.radians(angle_deg))
        if abs(u) < 0.001:
            return 1.0
        value = (math.sin(u) / u) ** 2
        return min(max(value, self._cfg.pattern_floor), 1.0)

    def pattern_samples(self, step_deg: float | None = None) -> tuple[tuple[float, float], ...]:
        """(angle, pattern) pairs from -90 to 90 degrees for polar plots."""

        step = self._cfg.pattern_sample_step_deg if step_deg is None else float(step_deg)
        if step <= 0.0:
            raise ValueError("step_deg must be > 0")
        count = int(math.floor(180.0 / step + 1e-9))
        return tuple(
            (angle, self.pattern(angle))
            for angle in (-90.0 + i * step for i in range(count + 1))
        )

    def tick(self, delta_ms: float) -> None:
        return None

    def reset(self) -> None:
        self._reset_parameters()

    def derive_status(self) -> AntennaStatus:
        gain_dbi = self._guard.check("gain_dbi", self.gain_dbi())
        pattern_value = self._guard.check(
            "pattern_value", self.pattern(self.parameter("pointing_deg")), fallback=1.0
        )
        return AntennaStatus(
            diameter_m=self.parameter("diameter_m"),
            frequency_ghz=self.parameter("frequency_ghz"),
            pointing_deg=self.parameter("pointing_deg"),
            wavelength_m=self._guard.check("wavelength_m", self.wavelength_m()),
            electrical_size=self._guard.check("electrical_size", self.electrical_size()),
            linear_gain=self._guard.check("linear_gain", self.linear_gain()),
            gain_dbi=gain_dbi,
            beamwidth_deg=self._guard.check("beamwidth_deg", self.beamwidth_deg()),
            pattern_value=pattern_value,
            effective_gain_dbi=self._guard.check(
                "effective_gain_dbi", gain_dbi + 10.0 * safe_log10(pattern_value)
            ),
        )


ANTENNA_QUESTIONS: tuple[Question, ...] = (
    build_question(
        "antenna-1",
        "Why does a larger dish antenna receive a stronger signal?",
        [
            "Larger dishes have better quality electronics inside",
            "A larger aperture collects more energy and focuses it more precisely",
            "The satellite transmits more power to larger receivers",
            "Larger dishes are always positioned at better locations",
        ],
        1,
        scenario="An installer finds a larger dish receives a stronger signal from the same satellite.",
        explanation="Gain = 4*pi*A / wavelength^2: more aperture area collects more of the wave.",
    ),
    build_question(
        "antenna-2",
        "Why might a low-gain omnidirectional antenna be better for office coverage?",
        [
            "Low-gain antennas use less power",
            "It spreads energy in all horizontal directions, giving broader coverage",
            "High-gain antennas only work outdoors",
            "Directional antennas interfere with office equipment",
        ],
        1,
        scenario="A Wi-Fi engineer must cover a whole office floor.",
        explanation="More gain means a narrower beam; coverage needs spreading, not focusing.",
    ),
    build_question(
        "antenna-3",
        "How much more signal does a 100 m telescope collect than a 1 m dish at the same frequency?",
        [
            "100 times (proportional to diameter)",
            "10,000 times (proportional to area)",
            "1,000,000 times (proportional to diameter cubed)",
            "The same amount, just more precisely aimed",
        ],
        1,
        scenario="A radio astronomer observes a distant galaxy with a 100 m dish.",
        explanation="Gain scales with aperture area: (100/1)^2 = 10,000, or 40 dB.",
    ),
    build_question(
        "antenna-4",
        "Why do higher frequencies produce narrower beams for the same antenna size?",
        [
            "Higher frequencies carry more data, leaving less room for spreading",
            "Shorter wavelengths make the antenna electrically larger, increasing directivity",
            "Higher frequency signals are absorbed more by air",
            "The antenna electronics are faster at higher frequencies",
        ],
        1,
        scenario="A network runs 700 MHz and 2.6 GHz sectors from the same mast.",
        explanation="Gain grows with (D/wavelength)^2; beamwidth shrinks as D/wavelength grows.",
    ),
    build_question(
        "antenna-5",
        "If one 30 dBi antenna in a link is replaced with a 20 dBi antenna, how much does the received signal drop?",
        ["By 5 dB", "By 10 dB", "By 20 dB", "No change, the other antenna compensates"],
        1,
        scenario="A point-to-point microwave link uses 30 dBi antennas at both ends.",
        explanation="Antenna gains add in a link budget, so losing 10 dB at one end costs 10 dB.",
    ),
    build_question(
        "antenna-6",
        "Why is doubling antenna size often more effective for radar than doubling transmitter power?",
        [
            "Antennas are always cheaper than transmitters",
            "The larger antenna increases gain for both transmission and reception",
            "Transmitters have strict regulatory limits",
            "Larger antennas look more impressive",
        ],
        1,
        scenario="A radar must detect small aircraft at long range.",
    ),
    build_question(
        "antenna-7",
        "What causes the 'overhead null' when a drone flies directly above its ground station?",
        [
            "The drone's motors interfere with radio signals when overhead",
            "The ground antenna's radiation pattern has low gain straight up",
            "Signals cannot travel straight up effectively",
            "The drone's antenna is blocked by its own body",
        ],
        1,
        scenario="A drone's signal weakens when it is closest, directly overhead.",
    ),
    build_question(
        "antenna-8",
        "How does an antenna array create a steerable beam?",
        [
            "Each element rotates mechanically toward the user",
            "Adjusting the phase of each element so signals add up in the desired direction",
            "The array turns on only the elements facing the user",
            "Software filters out signals from other directions",
        ],
        1,
        scenario="A 5G base station steers beams to users without moving the antenna.",
    ),
    build_question(
        "antenna-9",
        "What does 6 dBi gain mean for an antenna?",
        [
            "It creates 6 times more electromagnetic field",
            "In its main beam it concentrates power about 4x compared with an isotropic radiator",
            "It operates 6% more efficiently than average",
            "It can receive signals from 6 decibels further away",
        ],
        1,
        explanation="10^(6/10) is about 4. The antenna borrows power from other directions.",
    ),
    build_question(
        "antenna-10",
        "What is a key advantage of a phased array for a deep space mission?",
        [
            "Phased arrays are always lighter than dishes",
            "They keep the beam pointed without mechanical movement",
            "Phased arrays work better in vacuum",
            "Dishes cannot achieve the same gain as phased arrays",
        ],
        1,
        scenario="A designer chooses between a 2 m dish and a 100-element phased array.",
    ),
)

ANTENNA_APPLICATIONS: tuple[Application, ...] = (
    Application(
        title="Satellite Communications",
        short="Earth-to-space connectivity",
        description=(
            "Ground stations use large parabolic dishes to focus energy on one satellite "
            "36,000 km away; a 10 m dish at Ku-band has a beam about 0.1 degrees wide."
        ),
        stats=(
            AppStat("70 dBi", "Large ground station gain"),
            AppStat("36,000 km", "Geostationary distance"),
            AppStat("0.1 deg", "Typical beamwidth"),
        ),
        examples=("Satellite ground stations", "User terminals", "Deep space tracking"),
    ),
    Application(
        title="5G Cellular Networks",
        short="Massive MIMO beamforming",
        description=(
            "Arrays of 64-256 elements form a separate beam for each user, adding 15-20 dB "
            "of gain toward the phone and little elsewhere."
        ),
        stats=(
            AppStat("64-256", "Elements per array"),
            AppStat("20 dB", "Beamforming gain"),
            AppStat("100x", "Capacity vs 4G"),
        ),
        examples=("Urban macro cells", "Stadium coverage", "Fixed wireless access"),
    ),
    Application(
        title="Radar Systems",
        short="Detecting and tracking targets",
        description=(
            "Radar uses antenna gain twice, focusing the pulse out and collecting the faint "
            "echo back, which is why aperture matters more than transmitter power."
        ),
        stats=(
            AppStat("1000s", "Elements in military arrays"),
            AppStat("400+ km", "Air defence range"),
            AppStat("<1 ms", "Electronic beam steering"),
        ),
        examples=("Airport surveillance radar", "Weather radar", "Automotive radar"),
    ),
    Application(
        title="Radio Astronomy",
        short="Listening to the universe",
        description=(
            "Cosmic sources are so faint that telescopes need enormous apertures; arrays of "
            "dishes synthesise an aperture as large as their spacing."
        ),
        stats=(
            AppStat("500 m", "Largest single dish"),
            AppStat("80 dBi", "Effective array gain"),
            AppStat("27", "Dishes in a classic array"),
        ),
        examples=("Single-dish telescopes", "Interferometer arrays", "Event-horizon imaging"),
    ),
)


def build_antenna_topic(*, config: AntennaConfig | None = None) -> TopicConfig:
    cfg = config or AntennaConfig()
    return TopicConfig(
        topic_id="antenna_gain",
        title="Antenna Gain",
        hook=(
            "A satellite dish does not create power, yet a bigger one hears a satellite "
            "much better. Where does the extra signal come from?"
        ),
        prediction=PredictionSet(
            prompt="Why does a bigger antenna give a stronger signal?",
            options=(
                PredictionOption("a", "Bigger antennas amplify the signal, creating more energy"),
                PredictionOption("b", "Bigger antennas focus energy into a narrower beam"),
                PredictionOption("c", "Bigger antennas receive signals from more directions at once"),
            ),
            correct_id="b",
        ),
        twist_prediction=PredictionSet(
            prompt="What happens to the beam of the same dish at a higher frequency?",
            options=(
                PredictionOption("a", "The pattern stays the same, frequency does not matter"),
                PredictionOption("b", "Shorter wavelength makes the dish larger in wavelengths, so the beam narrows"),
                PredictionOption("c", "Higher frequencies travel further, so the beam only appears narrower"),
            ),
            correct_id="b",
        ),
        questions=ANTENNA_QUESTIONS,
        applications=ANTENNA_APPLICATIONS,
        kernel_factory=lambda: AntennaKernel(config=cfg),
        phase_labels={Phase.TWIST_PLAY: "Explore Frequency"},
        review_text=(
            "Gain = efficiency * (pi * D / wavelength)^2. Doubling the diameter quadruples "
            "the gain (+6 dB) and halves the beamwidth."
        ),
        twist_review_text=(
            "What matters is size in wavelengths. Raising the frequency shrinks the "
            "wavelength, so the same dish becomes electrically larger and more directive."
        ),
        mastery_text="You can now explain how antennas trade coverage for gain.",
        play_hint="Change the dish diameter and watch gain and beamwidth.",
        twist_play_hint="Sweep the frequency and the pointing angle.",
    )


def build_antenna_lesson(
    *,
    scheduler: Scheduler,
    config: AntennaConfig | None = None,
    resume_phase: object = None,
    navigation: NavigationConfig | None = None,
    on_event: EventListener | None = None,
    on_correct_answer: Callable[[], None] | None = None,
    on_incorrect_answer: Callable[[], None] | None = None,
) -> LessonModule:
    return LessonModule(
        topic=build_antenna_topic(config=config),
        scheduler=scheduler,
        resume_phase=resume_phase,
        navigation=navigation,
        on_event=on_event,
        on_correct_answer=on_correct_answer,
        on_incorrect_answer=on_incorrect_answer,
    )
