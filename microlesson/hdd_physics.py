from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass

from .clock import Scheduler
from .events import EventListener
from .lesson import LessonModule
from .navigation import NavigationConfig
from .phases import Phase
from .prediction import PredictionOption, PredictionSet
from .quiz import Question, build_question
from .simulation import KernelBase, ParameterSpec, safe_div
from .topic import Application, AppStat, TopicConfig


@dataclass(frozen=True, slots=True)
class DriveProfile:
    name: str
    rpm: int
    seek_ms: float
    throughput_mb_s: float


DRIVE_PROFILES: tuple[DriveProfile, ...] = (
    DriveProfile(name="5400 RPM laptop", rpm=5400, seek_ms=12.0, throughput_mb_s=100.0),
    DriveProfile(name="7200 RPM desktop", rpm=7200, seek_ms=9.0, throughput_mb_s=150.0),
    DriveProfile(name="10K RPM enterprise", rpm=10000, seek_ms=6.0, throughput_mb_s=200.0),
    DriveProfile(name="15K RPM server", rpm=15000, seek_ms=4.0, throughput_mb_s=250.0),
)


@dataclass(frozen=True, slots=True)
class HddConfig:
    tick_period_ms: float = 10.0
    # Head actuator ramp, in track-position units per tick.
    head_step: float = 2.0
    head_tolerance: float = 1.0
    sequential_seek_ms: float = 1.0
    # A random read completes after total_access_ms * this many ms of simulated time.
    read_time_scale: float = 10.0
    read_bytes: int = 4096
    crash_fly_height_nm: float = 5.0
    default_drive_index: int = 1

    def __post_init__(self) -> None:
        if self.tick_period_ms <= 0.0:
            raise ValueError("tick_period_ms must be > 0")
        if self.head_step <= 0.0:
            raise ValueError("head_step must be > 0")
        if self.head_tolerance < 0.0:
            raise ValueError("head_tolerance must be >= 0")
        if self.read_time_scale <= 0.0:
            raise ValueError("read_time_scale must be > 0")
        if self.read_bytes < 1:
            raise ValueError("read_bytes must be >= 1")
        if not (0 <= self.default_drive_index < len(DRIVE_PROFILES)):
            raise ValueError("default_drive_index out of range")


@dataclass(frozen=True, slots=True)
class HddStatus:
    drive_name: str
    rpm: int
    sequential: bool
    seek_ms: float
    rotational_latency_ms: float
    total_access_ms: float
    random_iops: float
    sequential_iops: float
    throughput_mb_s: float
    head_position: float
    target_position: float
    head_settled: bool
    platter_angle_deg: float
    fly_height_nm: float
    crash_risk: bool
    read_in_progress: bool
    reads_completed: int
    bytes_read: int
    last_read_ms: float | None


def rotational_latency_ms(rpm: float) -> float:
    """Average wait for the sector: half a revolution."""

    return safe_div(60.0, rpm) * 1000.0 / 2.0


class HddKernel(KernelBase):
    """Access-latency model of a spinning disk with a seeking head."""

    ACTIONS = ("random_read", "park_head")

    def __init__(self, *, config: HddConfig | None = None, seed: int | None = None) -> None:
        self._cfg = config or HddConfig()
        self.tick_period_ms = self._cfg.tick_period_ms
        super().__init__(
            specs=(
                ParameterSpec(
                    name="drive_index",
                    label="Drive",
                    minimum=0,
                    maximum=len(DRIVE_PROFILES) - 1,
                    step=1,
                    initial=self._cfg.default_drive_index,
                ),
                ParameterSpec(
                    name="sequential", label="Sequential access", minimum=0, maximum=1, step=1, initial=0
                ),
                ParameterSpec(
                    name="target_position",
                    label="Target track",
                    minimum=0,
                    maximum=100,
                    step=1,
                    initial=50,
                ),
                ParameterSpec(
                    name="fly_height_nm",
                    label="Fly height",
                    unit="nm",
                    minimum=1,
                    maximum=20,
                    step=0.5,
                    initial=10,
                ),
            )
        )
        self._seed = seed
        self._rng = random.Random(seed)
        self._init_motion()

    def _init_motion(self) -> None:
        self._head_position = float(self.parameter("target_position"))
        self._platter_angle_deg = 0.0
        self._read_remaining_ms: float | None = None
        self._pending_read_ms = 0.0
        self._reads_completed = 0
        self._bytes_read = 0
        self._last_read_ms: float | None = None

    @property
    def drive(self) -> DriveProfile:
        return DRIVE_PROFILES[int(self.parameter("drive_index"))]

    @property
    def head_position(self) -> float:
        return self._head_position

    @property
    def reads_completed(self) -> int:
        return self._reads_completed

    def seek_ms(self) -> float:
        if self.parameter("sequential") >= 1.0:
            return self._cfg.sequential_seek_ms
        return self.drive.seek_ms

    def total_access_ms(self) -> float:
        return self.seek_ms() + rotational_latency_ms(self.drive.rpm)

    def actions(self) -> tuple[str, ...]:
        return self.ACTIONS

    def trigger(self, action: str) -> bool:
        if action == "random_read":
            if self._read_remaining_ms is not None:
                return False
            target = self._rng.random() * 80.0 + 10.0
            self.set_parameter("target_position", target)
            access = self.total_access_ms()
            self._pending_read_ms = access
            self._read_remaining_ms = access * self._cfg.read_time_scale
            return True
        if action == "park_head":
            return self.set_parameter("target_position", 0)
        return False

    def tick(self, delta_ms: float) -> None:
        steps = max(0.0, float(delta_ms)) / self.tick_period_ms

        degrees = self.drive.rpm / 60.0 * 6.0 * steps
        self._platter_angle_deg = (self._platter_angle_deg + degrees) % 360.0

        target = self.parameter("target_position")
        diff = target - self._head_position
        if abs(diff) > self._cfg.head_tolerance:
            direction = 1.0 if diff > 0 else -1.0
            moved = self._head_position + direction * self._cfg.head_step * steps
            self._head_position = min(max(moved, 0.0), 100.0)

        if self._read_remaining_ms is not None:
            self._read_remaining_ms -= float(delta_ms)
            if self._read_remaining_ms <= 0.0:
                self._read_remaining_ms = None
                self._reads_completed += 1
                self._bytes_read += self._cfg.read_bytes
                self._last_read_ms = self._pending_read_ms

    def reset(self) -> None:
        self._reset_parameters()
        self._rng = random.Random(self._seed)
        self._init_motion()

    def derive_status(self) -> HddStatus:
        drive = self.drive
        rot = self._guard.check("rotational_latency_ms", rotational_latency_ms(drive.rpm))
        seek = self.seek_ms()
        total = self._guard.check("total_access_ms", seek + rot)
        fly = self.parameter("fly_height_nm")
        target = self.parameter("target_position")
        return HddStatus(
            drive_name=drive.name,
            rpm=drive.rpm,
            sequential=self.parameter("sequential") >= 1.0,
            seek_ms=seek,
            rotational_latency_ms=rot,
            total_access_ms=total,
            random_iops=self._guard.check("random_iops", safe_div(1000.0, total)),
            sequential_iops=self._guard.check("sequential_iops", safe_div(1000.0, 0.5 + rot / 4.0)),
            throughput_mb_s=drive.throughput_mb_s,
            head_position=self._head_position,
            target_position=target,
            head_settled=abs(target - self._head_position) <= self._cfg.head_tolerance,
            platter_angle_deg=self._platter_angle_deg,
            fly_height_nm=fly,
            crash_risk=fly < self._cfg.crash_fly_height_nm,
            read_in_progress=self._read_remaining_ms is not None,
            reads_completed=self._reads_completed,
            bytes_read=self._bytes_read,
            last_read_ms=self._last_read_ms,
        )


HDD_QUESTIONS: tuple[Question, ...] = (
    build_question(
        "hdd-1",
        "What limits HDD random read performance?",
        ["Electronic transfer speed", "Seek time and rotational latency", "Cable bandwidth", "CPU processing speed"],
        1,
        explanation="Every random read pays for moving the arm and waiting for the sector to spin round.",
    ),
    build_question(
        "hdd-2",
        "Average rotational latency for a 7200 RPM drive is approximately:",
        ["0.4 ms", "4 ms", "40 ms", "400 ms"],
        1,
        explanation="One revolution takes 60/7200 s = 8.33 ms; on average you wait half of it.",
    ),
    build_question(
        "hdd-3",
        "Why are SSDs faster than HDDs for random access?",
        [
            "SSDs have faster spinning platters",
            "SSDs have no moving parts, access is purely electronic",
            "SSDs use better cables",
            "SSDs have larger caches only",
        ],
        1,
    ),
    build_question(
        "hdd-4",
        "The head fly height in modern HDDs is approximately:",
        ["1 millimeter", "1 micrometer (1000 nm)", "3-10 nanometers", "1 meter when accounting for scale"],
        2,
    ),
    build_question(
        "hdd-5",
        "A head crash in an HDD is caused by:",
        [
            "Electrical short circuit",
            "Physical contact between head and platter",
            "Overheating of the motor",
            "Software malfunction",
        ],
        1,
    ),
    build_question(
        "hdd-6",
        "Sequential HDD performance is much better than random because:",
        [
            "Data is compressed for sequential reads",
            "No seek is needed, the data is in order on the track",
            "The CPU processes sequential data faster",
            "Cables work better with sequential data",
        ],
        1,
    ),
    build_question(
        "hdd-7",
        "Higher RPM drives have lower latency because:",
        [
            "They use better motors",
            "The platter brings the desired sector under the head sooner",
            "They have more platters",
            "They generate more magnetism",
        ],
        1,
    ),
    build_question(
        "hdd-8",
        "Random-access IOPS for a single HDD is limited to approximately:",
        ["50-200", "5,000-10,000", "100,000+", "1 million"],
        0,
        explanation="1000 ms divided by roughly 8-15 ms per access.",
    ),
    build_question(
        "hdd-9",
        "Why do some enterprise HDDs use helium filling?",
        [
            "Helium makes the drive lighter",
            "Less turbulence allows closer tracks and a lower fly height",
            "Helium conducts electricity better",
            "Helium prevents rust",
        ],
        1,
    ),
    build_question(
        "hdd-10",
        "Laptop accelerometer-based HDD protection works by:",
        [
            "Spinning the drive faster during drops",
            "Parking the head in a safe zone when motion is detected",
            "Switching to SSD mode temporarily",
            "Applying more power to the head",
        ],
        1,
    ),
)

HDD_APPLICATIONS: tuple[Application, ...] = (
    Application(
        title="Data Center Storage",
        short="Cloud Infrastructure",
        description=(
            "Hyperscale data centers keep cold data, backups and archives on HDDs while "
            "SSDs serve hot random-access data. Tiering follows the same seek and latency "
            "limits explored in the experiment."
        ),
        stats=(
            AppStat("20+ TB", "Per enterprise HDD"),
            AppStat("$15/TB", "HDD cost vs $80/TB SSD"),
            AppStat("100,000+", "HDDs per data center"),
        ),
        examples=("Deep archive object storage", "Cold-tier cloud buckets", "Photo and video archives"),
    ),
    Application(
        title="Video Surveillance Systems",
        short="Security",
        description=(
            "Camera recorders write frames to sequential sectors around the clock, "
            "avoiding seeks. Playback of old footage interrupts the stream with random seeks."
        ),
        stats=(
            AppStat("180 TB/yr", "Write workload rating"),
            AppStat("64+", "Simultaneous camera streams"),
            AppStat("24/7", "Continuous operation"),
        ),
        examples=("Traffic camera networks", "Airport security recorders", "Retail DVR systems"),
    ),
    Application(
        title="Enterprise NAS Systems",
        short="Business",
        description=(
            "Shared file servers stripe data across RAID arrays. Many users reading "
            "different files force constant seeking, so NAS boxes add SSD caches."
        ),
        stats=(
            AppStat("100+ TB", "Typical capacity"),
            AppStat("10 GbE", "Network link"),
            AppStat("99.99%", "Uptime target"),
        ),
        examples=("Medical imaging archives", "Shared media project drives", "CAD collaboration storage"),
    ),
    Application(
        title="HAMR Technology",
        short="Next-Gen Storage",
        description=(
            "Heat-assisted magnetic recording briefly heats a nanometre spot with a laser "
            "during writes, pushing areal density further with the same seek and fly-height physics."
        ),
        stats=(
            AppStat("30+ TB", "Current drive capacity"),
            AppStat("100+ TB", "Roadmap target"),
            AppStat("450 C", "Laser spot temperature"),
        ),
        examples=("Hyperscale deployments", "Cold storage archives", "Scientific data repositories"),
    ),
)


def build_hdd_topic(*, config: HddConfig | None = None, seed: int | None = None) -> TopicConfig:
    cfg = config or HddConfig()
    return TopicConfig(
        topic_id="hdd_physics",
        title="Hard Drive Physics",
        hook=(
            "A hard drive's platter spins thousands of times a minute while a head floats "
            "nanometres above it. Why does a random read still take milliseconds?"
        ),
        prediction=PredictionSet(
            prompt="How does an HDD compare with an SSD for random reads?",
            options=(
                PredictionOption("same", "Same speed, both move data electronically"),
                PredictionOption("hdd_faster", "HDDs are faster, they have more storage density"),
                PredictionOption("ssd_faster", "SSDs are faster, no mechanical parts to move"),
                PredictionOption("depends", "Depends on the data size only"),
            ),
            correct_id="ssd_faster",
        ),
        twist_prediction=PredictionSet(
            prompt="What happens if the head touches the spinning platter?",
            options=(
                PredictionOption("safe", "HDDs are rugged and can handle physical contact"),
                PredictionOption("slow", "Physical contact just makes them slower"),
                PredictionOption("crash", "Head crashes from contact can destroy data instantly"),
                PredictionOption("automatic", "Drives automatically prevent any contact"),
            ),
            correct_id="crash",
        ),
        questions=HDD_QUESTIONS,
        applications=HDD_APPLICATIONS,
        kernel_factory=lambda: HddKernel(config=cfg, seed=seed),
        phase_labels={Phase.TWIST_PLAY: "Head Crash"},
        review_text=(
            "Access time = seek time + rotational latency. At 7200 RPM half a revolution "
            "is 4.17 ms, so even a perfect seek leaves a random read in the milliseconds."
        ),
        twist_review_text=(
            "The head flies 3-10 nm above the platter on an air bearing. Any contact at "
            "platter speed scrapes the magnetic layer and destroys data."
        ),
        mastery_text="You can now explain why random I/O on spinning disks is slow.",
        play_hint="Switch drives, toggle sequential access and trigger random reads.",
        twist_play_hint="Lower the fly height and watch the crash risk.",
    )


def build_hdd_lesson(
    *,
    scheduler: Scheduler,
    config: HddConfig | None = None,
    seed: int | None = None,
    resume_phase: object = None,
    navigation: NavigationConfig | None = None,
    on_event: EventListener | None = None,
    on_correct_answer: Callable[[], None] | None = None,
    on_incorrect_answer: Callable[[], None] | None = None,
) -> LessonModule:
    return LessonModule(
        topic=build_hdd_topic(config=config, seed=seed),
        scheduler=scheduler,
        resume_phase=resume_phase,
        navigation=navigation,
        on_event=on_event,
        on_correct_answer=on_correct_answer,
        on_incorrect_answer=on_incorrect_answer,
    )
