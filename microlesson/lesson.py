from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .clock import Scheduler
from .events import EventEmitter, EventListener, LessonEventKind
from .gallery import GalleryProgressTracker
from .navigation import NavigationConfig, NavigationController
from .phases import SIMULATION_PHASES, Phase, PhaseGraph
from .prediction import PredictionSlot, PredictionTracker
from .quiz import QuestionReview, QuizEngine
from .simulation import KernelBase, ParameterValue, SimulationDriver, SimulationKernel
from .state import ModuleState
from .topic import TopicConfig

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@dataclass(frozen=True, slots=True)
class LessonSnapshot:
    topic_id: str
    topic_title: str
    phase: Phase
    phase_label: str
    position: int
    total: int
    phase_labels: tuple[str, ...]
    furthest: Phase
    can_go_next: bool
    can_go_back: bool
    navigation_locked: bool
    prediction: str | None
    prediction_correct: bool
    twist_prediction: str | None
    twist_prediction_correct: bool
    simulating: bool
    parameters: tuple[ParameterValue, ...]
    status: object
    actions: tuple[str, ...]
    requirement_met: bool
    hint: str
    gallery_viewed: tuple[int, ...]
    gallery_total: int
    quiz_answered: int
    quiz_total: int
    quiz_current: int
    quiz_submitted: bool
    quiz_score: int
    quiz_passed: bool
    pass_threshold: int
    quiz_review: tuple[QuestionReview, ...]


class LessonModule:
    """One mounted lesson: topic data bound to the generic engine.

    The host drives it through the methods below and renders ``snapshot()``.
    Invalid input is ignored (methods return ``False`` or ``None``); nothing
    here raises for learner actions.
    """

    def __init__(
        self,
        *,
        topic: TopicConfig,
        scheduler: Scheduler,
        resume_phase: object = None,
        navigation: NavigationConfig | None = None,
        on_event: EventListener | None = None,
        on_correct_answer: Callback | None = None,
        on_incorrect_answer: Callback | None = None,
    ) -> None:
        self._topic = topic
        self._scheduler = scheduler
        self._graph = PhaseGraph(labels=topic.phase_labels)
        self._on_correct_answer = on_correct_answer
        self._on_incorrect_answer = on_incorrect_answer

        self._state = ModuleState.fresh(
            phase=self._graph.first,
            question_count=len(topic.questions),
        )
        self._kernel: SimulationKernel = topic.kernel_factory()
        self._state.simulation_parameters = self._kernel.parameters()
        self._driver = SimulationDriver(kernel=self._kernel, scheduler=scheduler)

        self._events = EventEmitter(
            topic_id=topic.topic_id,
            topic_title=topic.title,
            clock=scheduler.clock,
            listener=on_event,
        )
        self._nav = NavigationController(
            state=self._state,
            graph=self._graph,
            scheduler=scheduler,
            config=navigation,
            on_change=self._on_phase_changed,
        )
        self._predictions = PredictionTracker(
            state=self._state,
            first=topic.prediction,
            twist=topic.twist_prediction,
        )
        self._gallery = GalleryProgressTracker(
            state=self._state,
            total_count=len(topic.applications),
        )
        self._quiz = QuizEngine(
            questions=topic.questions,
            state=self._state,
            pass_threshold=topic.pass_threshold,
        )
        self._disposed = False
        self._nav.init(resume_phase)
        logger.info("Mounted lesson %s at %s", topic.topic_id, self._state.current_phase.value)

    # Components -------------------------------------------------------

    @property
    def topic(self) -> TopicConfig:
        return self._topic

    @property
    def graph(self) -> PhaseGraph:
        return self._graph

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def kernel(self) -> SimulationKernel:
        return self._kernel

    @property
    def driver(self) -> SimulationDriver:
        return self._driver

    @property
    def navigation(self) -> NavigationController:
        return self._nav

    @property
    def predictions(self) -> PredictionTracker:
        return self._predictions

    @property
    def gallery(self) -> GalleryProgressTracker:
        return self._gallery

    @property
    def quiz(self) -> QuizEngine:
        return self._quiz

    @property
    def phase(self) -> Phase:
        return self._state.current_phase

    @property
    def disposed(self) -> bool:
        return self._disposed

    # Navigation -------------------------------------------------------

    def can_go_next(self) -> bool:
        phase = self._state.current_phase
        if phase is self._graph.last:
            return False
        if phase is Phase.PREDICT:
            return self._predictions.has_answered(PredictionSlot.FIRST)
        if phase is Phase.TWIST_PREDICT:
            return self._predictions.has_answered(PredictionSlot.TWIST)
        if phase in SIMULATION_PHASES:
            return self._requirement_met(phase)
        if phase is Phase.TRANSFER:
            return self._gallery.is_complete()
        if phase is Phase.TEST:
            return self._quiz.passed()
        return True

    def advance(self) -> bool:
        if self._disposed or not self.can_go_next():
            return False
        return self._nav.go_next()

    def go_back(self) -> bool:
        if self._disposed:
            return False
        return self._nav.go_back()

    def jump_to(self, phase: object) -> bool:
        if self._disposed:
            return False
        return self._nav.jump_to(phase)

    def sync_external_phase(self, hint: object) -> bool:
        if self._disposed:
            return False
        return self._nav.sync_external_phase(hint)

    # Predictions ------------------------------------------------------

    def choose_prediction(self, option_id: str) -> bool:
        slot = self._predictions.choose(self._state.current_phase, option_id)
        if slot is None:
            return False
        self._events.emit(
            LessonEventKind.PREDICTION_MADE,
            slot=slot.value,
            option_id=option_id,
            correct=self._predictions.is_correct(slot),
        )
        return True

    # Simulation -------------------------------------------------------

    def set_parameter(self, name: str, value: float) -> bool:
        if not self._kernel.set_parameter(name, value):
            return False
        stored = self._kernel.parameter(name)
        self._state.simulation_parameters[name] = stored
        self._events.emit(LessonEventKind.PARAMETER_CHANGED, name=name, value=stored)
        return True

    def trigger(self, action: str) -> bool:
        if action not in self._kernel.actions():
            logger.debug("Unknown action %r for %s", action, self._topic.topic_id)
            return False
        if not self._kernel.trigger(action):
            return False
        self._state.simulation_parameters = self._kernel.parameters()
        self._events.emit(LessonEventKind.ACTION_TRIGGERED, action=action)
        return True

    def start_simulation(self) -> bool:
        if self._disposed or self._state.current_phase not in SIMULATION_PHASES:
            return False
        if not self._driver.start():
            return False
        self._events.emit(LessonEventKind.SIMULATION_TOGGLED, running=True)
        return True

    def stop_simulation(self) -> bool:
        if not self._driver.stop():
            return False
        self._events.emit(LessonEventKind.SIMULATION_TOGGLED, running=False)
        return True

    def toggle_simulation(self) -> bool:
        if self._driver.running:
            self.stop_simulation()
        else:
            self.start_simulation()
        return self._driver.running

    def reset_simulation(self) -> None:
        self.stop_simulation()
        self._kernel.reset()
        self._state.simulation_parameters = self._kernel.parameters()
        self._events.emit(LessonEventKind.ACTION_TRIGGERED, action="reset")

    # Gallery ----------------------------------------------------------

    def view_application(self, index: int) -> bool:
        if not self._gallery.mark_viewed(index):
            return False
        self._events.emit(
            LessonEventKind.APPLICATION_VIEWED,
            index=index,
            title=self._topic.applications[index].title,
            viewed=self._gallery.viewed_count,
            complete=self._gallery.is_complete(),
        )
        return True

    # Quiz -------------------------------------------------------------

    def answer_question(self, index: int, option_id: str) -> bool:
        if not self._quiz.set_answer(index, option_id):
            return False
        self._events.emit(
            LessonEventKind.QUIZ_ANSWERED,
            index=index,
            option_id=option_id,
            answered=self._quiz.answered_count,
        )
        return True

    def select_question(self, index: int) -> bool:
        return self._quiz.select(index)

    def next_question(self) -> bool:
        return self._quiz.next_question()

    def previous_question(self) -> bool:
        return self._quiz.previous_question()

    def submit_quiz(self) -> int | None:
        score = self._quiz.submit()
        if score is None:
            return None
        passed = self._quiz.passed()
        self._events.emit(
            LessonEventKind.QUIZ_SUBMITTED,
            score=score,
            total=self._quiz.question_count,
            passed=passed,
        )
        self._notify(self._on_correct_answer if passed else self._on_incorrect_answer)
        return score

    def retry_quiz(self) -> bool:
        if not self._quiz.submitted or self._quiz.passed():
            return False
        self._quiz.reset()
        self._events.emit(LessonEventKind.QUIZ_RESET)
        return True

    # Host state -------------------------------------------------------

    def export_state(self) -> ModuleState:
        self._state.simulation_parameters = self._kernel.parameters()
        return self._state.copy()

    def restore_state(self, state: ModuleState) -> bool:
        """Replace the whole lesson state; invalid pieces fall back to defaults.

        Malformed containers (a non-integer gallery index, answers that are
        not a sequence) reject the whole state and leave the lesson as it was.
        """

        if self._disposed or not isinstance(state, ModuleState):
            return False
        try:
            restored = state.copy()
            self._nav.normalise(restored)
            self._predictions.normalise(restored)
            self._gallery.normalise(restored)
            self._quiz.normalise(restored)
        except (TypeError, ValueError):
            logger.warning("Rejected malformed state for lesson %s", self._topic.topic_id, exc_info=True)
            return False

        self._driver.stop()
        self._kernel.reset()
        for name, value in restored.simulation_parameters.items():
            self._kernel.set_parameter(name, value)
        restored.simulation_parameters = self._kernel.parameters()

        self._nav.bind(restored)
        self._predictions.bind(restored)
        self._gallery.bind(restored)
        self._quiz.bind(restored)
        self._state = restored
        logger.info("Restored lesson %s at %s", self._topic.topic_id, restored.current_phase.value)
        return True

    def snapshot(self) -> LessonSnapshot:
        phase = self._state.current_phase
        parameters: tuple[ParameterValue, ...] = ()
        if isinstance(self._kernel, KernelBase):
            parameters = self._kernel.parameter_values()
        return LessonSnapshot(
            topic_id=self._topic.topic_id,
            topic_title=self._topic.title,
            phase=phase,
            phase_label=self._graph.label(phase),
            position=self._graph.position(phase),
            total=self._graph.total,
            phase_labels=self._graph.labels(),
            furthest=self._nav.furthest,
            can_go_next=self.can_go_next(),
            can_go_back=self._graph.prev(phase) is not None,
            navigation_locked=self._nav.in_flight,
            prediction=self._state.prediction,
            prediction_correct=self._predictions.is_correct(PredictionSlot.FIRST),
            twist_prediction=self._state.twist_prediction,
            twist_prediction_correct=self._predictions.is_correct(PredictionSlot.TWIST),
            simulating=self._driver.running,
            parameters=parameters,
            status=self._kernel.derive_status(),
            actions=self._kernel.actions(),
            requirement_met=self._requirement_met(phase),
            hint=self._topic.hint_for(phase),
            gallery_viewed=self._gallery.viewed,
            gallery_total=self._gallery.total_count,
            quiz_answered=self._quiz.answered_count,
            quiz_total=self._quiz.question_count,
            quiz_current=self._quiz.current_index,
            quiz_submitted=self._quiz.submitted,
            quiz_score=self._quiz.score,
            quiz_passed=self._quiz.passed(),
            pass_threshold=self._quiz.pass_threshold,
            quiz_review=self._quiz.review(),
        )

    def dispose(self) -> None:
        if self._disposed:
            return
        self._driver.dispose()
        self._nav.dispose()
        self._disposed = True
        logger.info("Disposed lesson %s", self._topic.topic_id)

    # Internals --------------------------------------------------------

    def _requirement_met(self, phase: Phase) -> bool:
        requirement = self._topic.requirement_for(phase)
        if requirement is None:
            return True
        return bool(requirement(self._kernel))

    def _on_phase_changed(self, old: Phase, new: Phase) -> None:
        if old in SIMULATION_PHASES:
            self.stop_simulation()
        self._events.emit(
            LessonEventKind.PHASE_CHANGED,
            phase=new.value,
            previous=old.value,
            phase_label=self._graph.label(new),
            current_screen=self._graph.position(new),
            total_screens=self._graph.total,
        )
        if new is self._graph.last:
            self._events.emit(
                LessonEventKind.MASTERY_REACHED,
                score=self._quiz.score,
                total=self._quiz.question_count,
            )

    def _notify(self, callback: Callback | None) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception:
            logger.exception("Answer callback failed for %s", self._topic.topic_id)
