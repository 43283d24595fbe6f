from __future__ import annotations

from dataclasses import dataclass

from microlesson.catalog import build_lesson
from microlesson.clock import Scheduler
from microlesson.events import LessonEvent, LessonEventKind
from microlesson.hdd_physics import build_hdd_lesson
from microlesson.lesson import LessonModule
from microlesson.phases import Phase


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


def _settle(clock: FakeClock, lesson: LessonModule) -> None:
    clock.advance(0.45)
    lesson.scheduler.pump()


def _next(clock: FakeClock, lesson: LessonModule) -> None:
    _settle(clock, lesson)
    assert lesson.advance() is True


def _answer_quiz(lesson: LessonModule, correct: int) -> None:
    for i, q in enumerate(lesson.topic.questions):
        if i < correct:
            option_id = q.correct_option_id
        else:
            option_id = next(o.id for o in q.options if not o.is_correct)
        assert lesson.answer_question(i, option_id) is True


def _walk_to(clock: FakeClock, lesson: LessonModule, target: Phase) -> None:
    while lesson.phase is not target:
        phase = lesson.phase
        if phase is Phase.PREDICT:
            lesson.choose_prediction(lesson.topic.prediction.correct_id)
        elif phase is Phase.TWIST_PREDICT:
            lesson.choose_prediction(lesson.topic.twist_prediction.correct_id)
        elif phase is Phase.TRANSFER:
            for i in range(len(lesson.topic.applications)):
                lesson.view_application(i)
        _next(clock, lesson)


def test_full_walkthrough_passes_with_eight_correct() -> None:
    clock = FakeClock()
    events: list[LessonEvent] = []
    correct_calls: list[int] = []
    incorrect_calls: list[int] = []
    lesson = build_hdd_lesson(
        scheduler=Scheduler(clock),
        seed=3,
        on_event=events.append,
        on_correct_answer=lambda: correct_calls.append(1),
        on_incorrect_answer=lambda: incorrect_calls.append(1),
    )
    assert lesson.phase is Phase.HOOK

    _walk_to(clock, lesson, Phase.TEST)
    snap = lesson.snapshot()
    assert snap.prediction == "ssd_faster"
    assert snap.prediction_correct is True
    assert snap.twist_prediction_correct is True
    assert snap.gallery_viewed == (0, 1, 2, 3)
    assert lesson.can_go_next() is False

    _answer_quiz(lesson, 8)
    assert lesson.submit_quiz() == 8
    assert lesson.quiz.passed() is True
    assert correct_calls == [1]
    assert incorrect_calls == []

    _next(clock, lesson)
    assert lesson.phase is Phase.MASTERY
    assert lesson.can_go_next() is False
    assert lesson.advance() is False

    kinds = [e.event_type for e in events]
    assert kinds.count(LessonEventKind.PHASE_CHANGED) == 9
    assert kinds[-1] is LessonEventKind.MASTERY_REACHED
    submitted = next(e for e in events if e.event_type is LessonEventKind.QUIZ_SUBMITTED)
    assert submitted.details["score"] == 8
    assert submitted.details["passed"] is True
    assert submitted.topic_id == "hdd_physics"


def test_failed_quiz_blocks_mastery_until_retry() -> None:
    clock = FakeClock()
    incorrect_calls: list[int] = []
    lesson = build_hdd_lesson(
        scheduler=Scheduler(clock),
        resume_phase="test",
        on_incorrect_answer=lambda: incorrect_calls.append(1),
    )

    assert lesson.retry_quiz() is False
    _answer_quiz(lesson, 6)
    assert lesson.submit_quiz() == 6
    assert incorrect_calls == [1]
    assert lesson.can_go_next() is False
    assert lesson.answer_question(0, "a") is False

    assert lesson.retry_quiz() is True
    assert lesson.quiz.answered_count == 0
    _answer_quiz(lesson, 7)
    assert lesson.submit_quiz() == 7
    assert lesson.can_go_next() is True


def test_resume_at_saved_phase() -> None:
    clock = FakeClock()
    lesson = build_lesson("thermal_throttling", scheduler=Scheduler(clock), resume_phase="play")

    snap = lesson.snapshot()
    assert snap.phase is Phase.PLAY
    assert snap.position == 3
    assert snap.total == 10
    assert snap.furthest is Phase.PLAY
    assert lesson.navigation.can_jump_to(Phase.HOOK) is True


def test_invalid_resume_starts_at_hook() -> None:
    lesson = build_lesson("antenna_gain", scheduler=Scheduler(FakeClock()), resume_phase="warp")
    assert lesson.phase is Phase.HOOK


def test_predict_phase_gates_on_choice() -> None:
    clock = FakeClock()
    lesson = build_hdd_lesson(scheduler=Scheduler(clock), resume_phase="predict")

    assert lesson.advance() is False
    assert lesson.choose_prediction("no_such_option") is False
    assert lesson.choose_prediction("hdd_faster") is True
    assert lesson.snapshot().prediction_correct is False
    assert lesson.advance() is True

    # Later phases cannot rewrite the prediction.
    assert lesson.choose_prediction("ssd_faster") is False
    assert lesson.snapshot().prediction == "hdd_faster"


def test_transfer_requires_every_application() -> None:
    clock = FakeClock()
    lesson = build_hdd_lesson(scheduler=Scheduler(clock), resume_phase="transfer")

    for i in range(3):
        assert lesson.view_application(i) is True
    assert lesson.view_application(0) is False
    assert lesson.can_go_next() is False

    assert lesson.view_application(3) is True
    assert lesson.can_go_next() is True


def test_kickback_play_requires_experiments() -> None:
    clock = FakeClock()
    lesson = build_lesson("inductive_kickback", scheduler=Scheduler(clock), resume_phase="play")

    assert lesson.snapshot().requirement_met is False
    assert lesson.can_go_next() is False
    for _ in range(3):
        assert lesson.trigger("toggle_switch") is True
    assert lesson.trigger("detonate") is False
    assert lesson.can_go_next() is True
    twist = build_lesson("inductive_kickback", scheduler=Scheduler(clock), resume_phase="twist_play")
    assert twist.can_go_next() is False
    assert twist.set_parameter("boost_active", 1) is True
    assert twist.can_go_next() is True


def test_simulation_runs_only_in_play_phases() -> None:
    clock = FakeClock()
    events: list[LessonEvent] = []
    lesson = build_lesson("thermal_throttling", scheduler=Scheduler(clock), on_event=events.append)

    assert lesson.start_simulation() is False

    _settle(clock, lesson)
    assert lesson.jump_to("hook") is False
    lesson.sync_external_phase("play")
    assert lesson.phase is Phase.PLAY
    assert lesson.start_simulation() is True
    assert lesson.start_simulation() is False

    clock.advance(0.5)
    lesson.scheduler.pump()
    assert lesson.driver.ticks > 0
    assert lesson.snapshot().status.temperature_c > 40.0

    # Leaving the phase stops the ticking.
    assert lesson.advance() is True
    assert lesson.driver.running is False
    ticks = lesson.driver.ticks
    clock.advance(1.0)
    lesson.scheduler.pump()
    assert lesson.driver.ticks == ticks

    toggles = [e.details["running"] for e in events if e.event_type is LessonEventKind.SIMULATION_TOGGLED]
    assert toggles == [True, False]


def test_parameter_changes_are_clamped_and_reported() -> None:
    clock = FakeClock()
    events: list[LessonEvent] = []
    lesson = build_lesson("thermal_throttling", scheduler=Scheduler(clock), on_event=events.append)

    assert lesson.set_parameter("workload_pct", 250) is True
    assert lesson.kernel.parameter("workload_pct") == 100
    assert lesson.set_parameter("fan_rpm", 3) is False
    assert lesson.export_state().simulation_parameters["workload_pct"] == 100

    changed = [e for e in events if e.event_type is LessonEventKind.PARAMETER_CHANGED]
    assert len(changed) == 1
    assert changed[0].details["value"] == 100


def test_reset_simulation_restores_defaults() -> None:
    clock = FakeClock()
    lesson = build_lesson("thermal_throttling", scheduler=Scheduler(clock), resume_phase="play")
    lesson.set_parameter("workload_pct", 100)
    lesson.start_simulation()
    clock.advance(0.5)
    lesson.scheduler.pump()

    lesson.reset_simulation()
    assert lesson.driver.running is False
    assert lesson.kernel.parameter("workload_pct") == 50
    assert lesson.snapshot().status.temperature_c == 40.0


def test_export_and_restore_state() -> None:
    clock = FakeClock()
    lesson = build_hdd_lesson(scheduler=Scheduler(clock), resume_phase="transfer")
    lesson.view_application(1)
    lesson.set_parameter("drive_index", 3)
    saved = lesson.export_state()

    # Exported copies are detached from the live state.
    saved.gallery_viewed.add(2)
    assert lesson.gallery.viewed == (1,)

    other = build_hdd_lesson(scheduler=Scheduler(FakeClock()))
    assert other.restore_state(saved) is True
    snap = other.snapshot()
    assert snap.phase is Phase.TRANSFER
    assert snap.gallery_viewed == (1, 2)
    assert other.kernel.parameter("drive_index") == 3


def test_restore_state_repairs_bad_pieces() -> None:
    clock = FakeClock()
    lesson = build_hdd_lesson(scheduler=Scheduler(clock))
    state = lesson.export_state()
    state.current_phase = "bogus"  # type: ignore[assignment]
    state.prediction = "not_an_option"
    state.gallery_viewed = {0, 99}
    state.quiz_answers = ["a"] * 3
    state.quiz_submitted = True
    state.simulation_parameters = {"drive_index": 42.0, "unknown": 1.0}

    assert lesson.restore_state(state) is True
    snap = lesson.snapshot()
    assert snap.phase is Phase.HOOK
    assert snap.prediction is None
    assert snap.gallery_viewed == (0,)
    assert snap.quiz_answered == 3
    assert snap.quiz_submitted is False
    assert lesson.kernel.parameter("drive_index") == 3
    assert lesson.restore_state("nonsense") is False  # type: ignore[arg-type]


def test_malformed_restore_leaves_lesson_untouched() -> None:
    clock = FakeClock()
    lesson = build_hdd_lesson(scheduler=Scheduler(clock), resume_phase="play")
    lesson.set_parameter("drive_index", 2)
    assert lesson.start_simulation() is True
    before = lesson.export_state()

    state = lesson.export_state()
    state.current_phase = Phase.TRANSFER
    state.prediction = "ssd_faster"
    state.gallery_viewed = {"0"}  # type: ignore[assignment]
    state.simulation_parameters = {"drive_index": 0.0}

    assert lesson.restore_state(state) is False
    assert lesson.phase is Phase.PLAY
    assert lesson.phase is lesson.navigation.phase
    assert lesson.snapshot().prediction is None
    assert lesson.driver.running is True
    assert lesson.kernel.parameter("drive_index") == 2
    assert lesson.export_state() == before

    bad_answers = lesson.export_state()
    bad_answers.quiz_answers = 7  # type: ignore[assignment]
    assert lesson.restore_state(bad_answers) is False
    assert lesson.phase is Phase.PLAY


def test_non_integer_indices_are_ignored() -> None:
    clock = FakeClock()
    events: list[LessonEvent] = []
    lesson = build_hdd_lesson(scheduler=Scheduler(clock), resume_phase="transfer", on_event=events.append)
    assert lesson.view_application(0) is True

    assert lesson.view_application(1.0) is False  # type: ignore[arg-type]
    assert lesson.view_application("1") is False  # type: ignore[arg-type]
    assert lesson.answer_question("0", "a") is False  # type: ignore[arg-type]
    assert lesson.select_question(2.0) is False  # type: ignore[arg-type]
    assert lesson.export_state().gallery_viewed == {0}
    assert lesson.quiz.answered_count == 0
    assert [e.event_type for e in events].count(LessonEventKind.APPLICATION_VIEWED) == 1


def test_observer_errors_do_not_break_the_lesson() -> None:
    clock = FakeClock()

    def explode(event: LessonEvent) -> None:
        raise RuntimeError("observer bug")

    def explode_callback() -> None:
        raise RuntimeError("callback bug")

    lesson = build_hdd_lesson(
        scheduler=Scheduler(clock),
        resume_phase="test",
        on_event=explode,
        on_correct_answer=explode_callback,
    )
    _answer_quiz(lesson, 10)
    assert lesson.submit_quiz() == 10
    assert lesson.advance() is True
    assert lesson.phase is Phase.MASTERY


def test_dispose_stops_everything() -> None:
    clock = FakeClock()
    lesson = build_lesson("thermal_throttling", scheduler=Scheduler(clock), resume_phase="play")
    lesson.start_simulation()
    assert lesson.advance() is True

    lesson.dispose()
    lesson.dispose()
    assert lesson.disposed is True
    assert lesson.driver.running is False
    assert lesson.scheduler.pending() == 0
    assert lesson.advance() is False
    assert lesson.go_back() is False
    assert lesson.start_simulation() is False
