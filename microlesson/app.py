"""Pygame shell for the micro-lesson engine.

The main menu lists the available topics. Each topic opens a LessonScreen
that pumps the scheduler once per frame, renders the lesson snapshot as
plain text panels and maps keys onto LessonModule calls.

Deterministic navigation/simulation/scoring lives in microlesson/* (core
modules); nothing here is needed to run a lesson headlessly.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from array import array
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import pygame

from .catalog import TOPICS, build_lesson
from .clock import RealClock, Scheduler
from .events import LessonEvent, LessonEventKind
from .lesson import LessonModule, LessonSnapshot
from .persistence import default_db_path, load_resume_phase, record_lesson_attempt, save_resume_phase
from .phases import SIMULATION_PHASES, Phase
from .prediction import PredictionSlot
from .results import attempt_result_from_lesson

logger = logging.getLogger(__name__)

APP_VERSION = "0.1.0"


class Screen(Protocol):
    def handle_event(self, event: pygame.event.Event) -> None: ...
    def render(self, surface: pygame.Surface) -> None: ...


@dataclass(frozen=True, slots=True)
class MenuItem:
    label: str
    action: Callable[[], None]


class _LessonSoundAdapter:
    """Short synthesized cues for lesson feedback.

    Tones are rendered on first use, so a lesson that never plays a sound
    never touches the mixer. Any mixer failure disables the adapter for the
    rest of the lesson; sound never blocks the lesson itself.
    """

    _sample_rate = 22050
    _amp = 32767
    # name -> (frequency Hz, duration s)
    _cues: dict[str, tuple[float, float]] = {
        "click": (600.0, 0.10),
        "success": (800.0, 0.20),
        "failure": (300.0, 0.30),
        "transition": (500.0, 0.15),
        "complete": (900.0, 0.40),
    }

    def __init__(self, *, gain: float = 0.25) -> None:
        self._gain = float(gain)
        self._sounds: dict[str, pygame.mixer.Sound] = {}
        self._channel: pygame.mixer.Channel | None = None
        self._available: bool | None = None

    @property
    def available(self) -> bool:
        return bool(self._available)

    def play(self, name: str) -> None:
        if name not in self._cues or not self._ensure_ready():
            return
        try:
            sound = self._sounds.get(name)
            if sound is None:
                freq, duration = self._cues[name]
                sound = pygame.mixer.Sound(buffer=self._render_tone_pcm(freq, duration).tobytes())
                self._sounds[name] = sound
            assert self._channel is not None
            self._channel.play(sound)
        except Exception:
            logger.warning("Sound cue %r failed; disabling lesson audio", name, exc_info=True)
            self._available = False

    def stop(self) -> None:
        if self._channel is not None:
            try:
                self._channel.stop()
            except Exception:
                logger.warning("Could not stop lesson audio channel", exc_info=True)

    def dispose(self) -> None:
        self.stop()
        self._sounds.clear()
        self._channel = None
        self._available = False

    def _ensure_ready(self) -> bool:
        if self._available is not None:
            return self._available
        try:
            if pygame.mixer.get_init() is None:
                pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1, buffer=512)
            self._channel = pygame.mixer.Channel(0)
            self._available = True
        except Exception:
            logger.warning("Audio unavailable; lesson will run silently", exc_info=True)
            self._available = False
        return self._available

    def _render_tone_pcm(self, frequency_hz: float, duration_s: float) -> array[int]:
        sample_count = max(1, int(self._sample_rate * duration_s))
        fade_n = max(1, int(self._sample_rate * 0.008))
        out = array("h")
        for idx in range(sample_count):
            # Exponential tail, like a struck tone.
            envelope = math.exp(-3.0 * idx / float(sample_count))
            if idx < fade_n:
                envelope *= idx / float(fade_n)
            phase = (2.0 * math.pi * float(frequency_hz) * idx) / float(self._sample_rate)
            sample = math.sin(phase) * self._gain * envelope
            out.append(int(max(-1.0, min(1.0, sample)) * self._amp))
        return out


class _ProgressRecorder:
    """Best-effort sqlite writes for resume phase and quiz attempts."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    def resume_phase(self, topic_id: str) -> str | None:
        try:
            return load_resume_phase(db_path=self._db_path, topic_id=topic_id)
        except Exception:
            logger.warning("Could not load progress for %s", topic_id, exc_info=True)
            return None

    def save_phase(self, topic_id: str, phase: Phase) -> None:
        try:
            save_resume_phase(db_path=self._db_path, topic_id=topic_id, phase=phase.value)
        except Exception:
            logger.warning("Could not save progress for %s", topic_id, exc_info=True)

    def record_attempt(self, lesson: LessonModule) -> None:
        try:
            result = attempt_result_from_lesson(lesson)
            record_lesson_attempt(db_path=self._db_path, result=result, app_version=APP_VERSION)
        except Exception:
            logger.warning("Could not record attempt for %s", lesson.topic.topic_id, exc_info=True)


WINDOW_SIZE = (960, 540)
TARGET_FPS = 60

_BG = (3, 9, 78)
_PANEL_BG = (8, 18, 104)
_HEADER_BG = (18, 30, 118)
_BORDER = (226, 236, 255)
_TEXT_MAIN = (238, 245, 255)
_TEXT_MUTED = (186, 200, 224)
_GOOD = (110, 220, 150)
_BAD = (240, 120, 120)
_ACCENT = (250, 205, 90)


class App:
    def __init__(self, surface: pygame.Surface, font: pygame.font.Font) -> None:
        self._surface = surface
        self._font = font
        self._screens: list[Screen] = []
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def font(self) -> pygame.font.Font:
        return self._font

    def push(self, screen: Screen) -> None:
        self._screens.append(screen)

    def pop(self) -> None:
        # Never pop the root screen; it handles quit itself.
        if len(self._screens) > 1:
            self._screens.pop()

    def quit(self) -> None:
        self._running = False

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.QUIT:
            self.quit()
            return
        if not self._screens:
            return
        self._screens[-1].handle_event(event)

    def render(self) -> None:
        if not self._screens:
            return
        self._screens[-1].render(self._surface)


def _fit_label(font: pygame.font.Font, label: str, max_width: int) -> str:
    if max_width <= 0:
        return ""
    if font.size(label)[0] <= max_width:
        return label
    clipped = label
    while clipped and font.size(f"{clipped}...")[0] > max_width:
        clipped = clipped[:-1]
    return f"{clipped}..." if clipped else "..."


def _wrap(font: pygame.font.Font, text: str, max_width: int) -> list[str]:
    lines: list[str] = []
    for paragraph in str(text).split("\n"):
        current = ""
        for word in paragraph.split():
            candidate = word if current == "" else f"{current} {word}"
            if font.size(candidate)[0] <= max_width or current == "":
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


def _format_value(value: object) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, float):
        return f"{value:.2f}"
    if value is None:
        return "-"
    return str(value)


def _draw_frame(surface: pygame.Surface, *, title: str, tag: str, title_font: pygame.font.Font,
                hint_font: pygame.font.Font) -> pygame.Rect:
    """Draw the shared window chrome and return the content rect."""

    w, h = surface.get_size()
    surface.fill(_BG)
    margin = max(10, min(26, w // 34))
    frame = pygame.Rect(margin, margin, max(260, w - margin * 2), max(220, h - margin * 2))
    pygame.draw.rect(surface, _PANEL_BG, frame)
    pygame.draw.rect(surface, _BORDER, frame, 2)

    header_h = max(34, min(52, h // 8))
    header = pygame.Rect(frame.x + 2, frame.y + 2, frame.w - 4, header_h)
    pygame.draw.rect(surface, _HEADER_BG, header)
    pygame.draw.line(surface, _BORDER, (header.x, header.bottom), (header.right, header.bottom), 1)

    tag_surf = hint_font.render(tag, True, _TEXT_MUTED)
    surface.blit(tag_surf, (header.x + 12, header.y + (header.h - tag_surf.get_height()) // 2))
    title_surf = title_font.render(_fit_label(title_font, title, header.w - 200), True, _TEXT_MAIN)
    surface.blit(title_surf, title_surf.get_rect(center=(frame.centerx, header.centery)))

    return pygame.Rect(frame.x + 16, header.bottom + 10, frame.w - 32, frame.bottom - header.bottom - 44)


class MenuScreen:
    def __init__(self, app: App, title: str, items: list[MenuItem], *, is_root: bool = False) -> None:
        self._app = app
        self._title = title
        self._items = items
        self._selected = 0
        self._is_root = is_root
        self._title_font = pygame.font.Font(None, 42)
        self._item_font = pygame.font.Font(None, 32)
        self._hint_font = pygame.font.Font(None, 22)

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        if event.key in (pygame.K_UP, pygame.K_w):
            self._move(-1)
        elif event.key in (pygame.K_DOWN, pygame.K_s):
            self._move(1)
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER, pygame.K_SPACE):
            self._activate()
        elif event.key in (pygame.K_ESCAPE, pygame.K_BACKSPACE):
            self._back()

    def _move(self, delta: int) -> None:
        if not self._items:
            return
        self._selected = (self._selected + delta) % len(self._items)

    def _activate(self) -> None:
        if not self._items:
            return
        self._items[self._selected].action()

    def _back(self) -> None:
        if self._is_root:
            self._app.quit()
        else:
            self._app.pop()

    def render(self, surface: pygame.Surface) -> None:
        content = _draw_frame(
            surface,
            title=self._title,
            tag="MENU",
            title_font=self._title_font,
            hint_font=self._hint_font,
        )
        item_count = max(1, len(self._items))
        gap = 8
        row_h = max(30, min(44, (content.h - gap * (item_count + 1)) // item_count))
        total_h = row_h * item_count + gap * (item_count - 1)
        y = content.y + max(8, (content.h - total_h) // 2)

        for idx, item in enumerate(self._items):
            row = pygame.Rect(content.x + 12, y, content.w - 24, row_h)
            selected = idx == self._selected
            if selected:
                pygame.draw.rect(surface, (244, 248, 255), row)
                pygame.draw.rect(surface, (120, 142, 196), row, 2)
            else:
                pygame.draw.rect(surface, (9, 20, 106), row)
                pygame.draw.rect(surface, (62, 84, 152), row, 1)
            color = (14, 26, 74) if selected else _TEXT_MAIN
            text = self._item_font.render(_fit_label(self._item_font, item.label, row.w - 20), True, color)
            surface.blit(text, (row.x + 10, row.y + (row.h - text.get_height()) // 2))
            y += row_h + gap

        footer = "Enter/Space: Select  |  Esc/Backspace: Back"
        foot = self._hint_font.render(footer, True, _TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(surface.get_width() // 2, surface.get_height() - 20)))


_DIGIT_KEYS = {
    pygame.K_1: 0,
    pygame.K_2: 1,
    pygame.K_3: 2,
    pygame.K_4: 3,
    pygame.K_5: 4,
    pygame.K_6: 5,
    pygame.K_7: 6,
    pygame.K_8: 7,
    pygame.K_9: 8,
}


class LessonScreen:
    def __init__(
        self,
        app: App,
        *,
        topic_id: str,
        scheduler: Scheduler,
        recorder: _ProgressRecorder | None = None,
        seed: int | None = None,
    ) -> None:
        self._app = app
        self._recorder = recorder
        self._sound = _LessonSoundAdapter()
        resume = recorder.resume_phase(topic_id) if recorder is not None else None
        self._lesson = build_lesson(
            topic_id,
            scheduler=scheduler,
            seed=seed,
            resume_phase=resume,
            on_event=self._on_event,
        )
        self._param_cursor = 0
        self._selected_app = 0

        self._title_font = pygame.font.Font(None, 40)
        self._body_font = pygame.font.Font(None, 26)
        self._small_font = pygame.font.Font(None, 22)

    @property
    def lesson(self) -> LessonModule:
        return self._lesson

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type != pygame.KEYDOWN:
            return
        key = event.key
        lesson = self._lesson
        phase = lesson.phase

        if key == pygame.K_ESCAPE:
            self._leave()
        elif key in (pygame.K_LEFT, pygame.K_BACKSPACE):
            lesson.go_back()
        elif key == pygame.K_RIGHT:
            lesson.advance()
        elif key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self._primary()
        elif key in _DIGIT_KEYS:
            self._choose(_DIGIT_KEYS[key])
        elif phase in SIMULATION_PHASES:
            self._handle_simulation_key(key)
        elif phase is Phase.TEST:
            if key == pygame.K_UP:
                lesson.previous_question()
            elif key == pygame.K_DOWN:
                lesson.next_question()
            elif key == pygame.K_r:
                lesson.retry_quiz()

    def _handle_simulation_key(self, key: int) -> None:
        lesson = self._lesson
        params = lesson.kernel.parameter_specs()
        if key == pygame.K_SPACE:
            lesson.toggle_simulation()
        elif key == pygame.K_UP and params:
            self._param_cursor = (self._param_cursor - 1) % len(params)
        elif key == pygame.K_DOWN and params:
            self._param_cursor = (self._param_cursor + 1) % len(params)
        elif key in (pygame.K_MINUS, pygame.K_KP_MINUS, pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
            if not params:
                return
            spec = params[self._param_cursor % len(params)]
            direction = -1.0 if key in (pygame.K_MINUS, pygame.K_KP_MINUS) else 1.0
            lesson.set_parameter(spec.name, lesson.kernel.parameter(spec.name) + direction * spec.step)
        elif key == pygame.K_r:
            lesson.reset_simulation()
        elif key in (pygame.K_t, pygame.K_y):
            actions = lesson.kernel.actions()
            idx = 0 if key == pygame.K_t else 1
            if idx < len(actions):
                lesson.trigger(actions[idx])

    def _primary(self) -> None:
        lesson = self._lesson
        phase = lesson.phase
        if phase is Phase.TEST and not lesson.quiz.submitted:
            lesson.submit_quiz()
        elif phase is Phase.TEST and not lesson.quiz.passed():
            lesson.retry_quiz()
        elif phase is lesson.graph.last:
            self._leave()
        else:
            lesson.advance()

    def _choose(self, index: int) -> None:
        lesson = self._lesson
        phase = lesson.phase
        if phase in (Phase.PREDICT, Phase.TWIST_PREDICT):
            slot = PredictionSlot.FIRST if phase is Phase.PREDICT else PredictionSlot.TWIST
            options = lesson.predictions.prediction_set(slot).options
            if index < len(options):
                lesson.choose_prediction(options[index].id)
        elif phase is Phase.TRANSFER:
            if index < len(lesson.topic.applications):
                self._selected_app = index
                lesson.view_application(index)
        elif phase is Phase.TEST:
            question = lesson.quiz.current_question
            if index < len(question.options):
                if lesson.answer_question(lesson.quiz.current_index, question.options[index].id):
                    lesson.next_question()

    def _leave(self) -> None:
        if self._recorder is not None:
            self._recorder.save_phase(self._lesson.topic.topic_id, self._lesson.phase)
        self._lesson.dispose()
        self._sound.dispose()
        self._app.pop()

    def _on_event(self, event: LessonEvent) -> None:
        kind = event.event_type
        if kind is LessonEventKind.PHASE_CHANGED:
            self._sound.play("transition")
            if self._recorder is not None:
                self._recorder.save_phase(event.topic_id, Phase(str(event.details["phase"])))
        elif kind is LessonEventKind.QUIZ_SUBMITTED:
            self._sound.play("success" if event.details.get("passed") else "failure")
            if self._recorder is not None:
                self._recorder.record_attempt(self._lesson)
        elif kind is LessonEventKind.MASTERY_REACHED:
            self._sound.play("complete")
        elif kind is not LessonEventKind.SIMULATION_TOGGLED:
            self._sound.play("click")

    # Rendering --------------------------------------------------------

    def render(self, surface: pygame.Surface) -> None:
        self._lesson.scheduler.pump()
        snap = self._lesson.snapshot()

        content = _draw_frame(
            surface,
            title=f"{snap.topic_title}: {snap.phase_label}",
            tag=f"{snap.position}/{snap.total}",
            title_font=self._title_font,
            hint_font=self._small_font,
        )
        self._render_progress(surface, snap, content)
        body = pygame.Rect(content.x, content.y + 26, content.w, content.h - 26)

        phase = snap.phase
        if phase is Phase.HOOK:
            self._render_text(surface, body, self._lesson.topic.hook)
        elif phase in (Phase.PREDICT, Phase.TWIST_PREDICT):
            self._render_prediction(surface, body, snap)
        elif phase in SIMULATION_PHASES:
            self._render_simulation(surface, body, snap)
        elif phase in (Phase.REVIEW, Phase.TWIST_REVIEW):
            self._render_review(surface, body, snap)
        elif phase is Phase.TRANSFER:
            self._render_transfer(surface, body, snap)
        elif phase is Phase.TEST:
            self._render_test(surface, body, snap)
        else:
            text = (
                f"{self._lesson.topic.mastery_text}\n\n"
                f"Final score: {snap.quiz_score}/{snap.quiz_total}"
            )
            self._render_text(surface, body, text)

        self._render_footer(surface, snap)

    def _render_progress(self, surface: pygame.Surface, snap: LessonSnapshot, content: pygame.Rect) -> None:
        furthest = self._lesson.graph.position(snap.furthest)
        x = content.x
        for i in range(1, snap.total + 1):
            center = (x + 8, content.y + 8)
            if i == snap.position:
                pygame.draw.circle(surface, _ACCENT, center, 7)
            elif i <= furthest:
                pygame.draw.circle(surface, _TEXT_MUTED, center, 5)
            else:
                pygame.draw.circle(surface, (62, 84, 152), center, 5, 1)
            x += 22

    def _render_text(self, surface: pygame.Surface, rect: pygame.Rect, text: str, *,
                     color: tuple[int, int, int] = _TEXT_MAIN, start_y: int | None = None) -> int:
        y = rect.y if start_y is None else start_y
        for line in _wrap(self._body_font, text, rect.w):
            if y > rect.bottom - 20:
                break
            surface.blit(self._body_font.render(line, True, color), (rect.x, y))
            y += 26
        return y

    def _render_prediction(self, surface: pygame.Surface, rect: pygame.Rect, snap: LessonSnapshot) -> None:
        slot = PredictionSlot.FIRST if snap.phase is Phase.PREDICT else PredictionSlot.TWIST
        pset = self._lesson.predictions.prediction_set(slot)
        chosen = snap.prediction if slot is PredictionSlot.FIRST else snap.twist_prediction
        y = self._render_text(surface, rect, pset.prompt) + 10
        for idx, option in enumerate(pset.options):
            marker = ">" if option.id == chosen else " "
            color = _ACCENT if option.id == chosen else _TEXT_MAIN
            y = self._render_text(surface, rect, f"{marker} {idx + 1}. {option.label}", color=color, start_y=y)

    def _render_simulation(self, surface: pygame.Surface, rect: pygame.Rect, snap: LessonSnapshot) -> None:
        half = rect.w // 2
        left = pygame.Rect(rect.x, rect.y, half - 10, rect.h)
        right = pygame.Rect(rect.x + half, rect.y, half, rect.h)

        y = self._render_text(surface, left, snap.hint, color=_TEXT_MUTED)
        running = "RUNNING" if snap.simulating else "PAUSED"
        y = self._render_text(surface, left, f"Simulation: {running}", color=_ACCENT, start_y=y + 4)
        for idx, param in enumerate(snap.parameters):
            selected = idx == self._param_cursor % max(1, len(snap.parameters))
            color = _ACCENT if selected else _TEXT_MAIN
            unit = f" {param.unit}" if param.unit else ""
            label = f"{param.label}: {_format_value(param.value)}{unit}"
            surface.blit(self._small_font.render(label, True, color), (left.x, y))
            bar = pygame.Rect(left.x, y + 18, left.w - 20, 6)
            pygame.draw.rect(surface, (62, 84, 152), bar)
            span = param.maximum - param.minimum
            frac = 0.0 if span <= 0 else (param.value - param.minimum) / span
            pygame.draw.rect(surface, color, pygame.Rect(bar.x, bar.y, int(bar.w * frac), bar.h))
            y += 32
        if snap.actions:
            keys = ", ".join(f"{k}: {a}" for k, a in zip(("T", "Y"), snap.actions))
            self._render_text(surface, left, keys, color=_TEXT_MUTED, start_y=y + 4)

        y = right.y
        for f in dataclasses.fields(snap.status):
            value = _format_value(getattr(snap.status, f.name))
            line = f"{f.name.replace('_', ' ')}: {value}"
            surface.blit(self._small_font.render(line, True, _TEXT_MAIN), (right.x, y))
            y += 20
            if y > right.bottom - 20:
                break

    def _render_review(self, surface: pygame.Surface, rect: pygame.Rect, snap: LessonSnapshot) -> None:
        topic = self._lesson.topic
        if snap.phase is Phase.REVIEW:
            correct, text = snap.prediction_correct, topic.review_text
        else:
            correct, text = snap.twist_prediction_correct, topic.twist_review_text
        verdict = "Your prediction was right." if correct else "Not quite what you predicted."
        y = self._render_text(surface, rect, verdict, color=_GOOD if correct else _BAD)
        self._render_text(surface, rect, text, start_y=y + 10)

    def _render_transfer(self, surface: pygame.Surface, rect: pygame.Rect, snap: LessonSnapshot) -> None:
        apps = self._lesson.topic.applications
        y = rect.y
        for idx, application in enumerate(apps):
            tick = "x" if idx in snap.gallery_viewed else " "
            color = _ACCENT if idx == self._selected_app else _TEXT_MAIN
            line = f"[{tick}] {idx + 1}. {application.title} ({application.short})"
            surface.blit(self._small_font.render(line, True, color), (rect.x, y))
            y += 22
        chosen = apps[min(self._selected_app, len(apps) - 1)]
        if self._selected_app in snap.gallery_viewed:
            y = self._render_text(surface, rect, chosen.description, start_y=y + 10)
            stats = "  |  ".join(f"{s.value} {s.label}" for s in chosen.stats)
            self._render_text(surface, rect, stats, color=_TEXT_MUTED, start_y=y + 4)
        summary = f"{len(snap.gallery_viewed)} of {snap.gallery_total} applications viewed"
        surface.blit(self._small_font.render(summary, True, _TEXT_MUTED), (rect.x, rect.bottom - 22))

    def _render_test(self, surface: pygame.Surface, rect: pygame.Rect, snap: LessonSnapshot) -> None:
        if snap.quiz_submitted:
            verdict = "Passed" if snap.quiz_passed else f"Need {snap.pass_threshold} to pass"
            y = self._render_text(
                surface,
                rect,
                f"Score: {snap.quiz_score}/{snap.quiz_total}. {verdict}.",
                color=_GOOD if snap.quiz_passed else _BAD,
            )
            for row in snap.quiz_review:
                mark = "ok" if row.is_correct else "x "
                line = f"{mark} {row.index + 1}. {row.prompt}"
                surface.blit(
                    self._small_font.render(_fit_label(self._small_font, line, rect.w), True, _TEXT_MUTED),
                    (rect.x, y),
                )
                y += 20
            return

        question = self._lesson.quiz.current_question
        chosen = self._lesson.quiz.answer(snap.quiz_current)
        header = f"Question {snap.quiz_current + 1} of {snap.quiz_total} ({snap.quiz_answered} answered)"
        y = self._render_text(surface, rect, header, color=_TEXT_MUTED)
        if question.scenario:
            y = self._render_text(surface, rect, question.scenario, color=_TEXT_MUTED, start_y=y + 4)
        y = self._render_text(surface, rect, question.prompt, start_y=y + 4)
        for idx, option in enumerate(question.options):
            color = _ACCENT if option.id == chosen else _TEXT_MAIN
            y = self._render_text(surface, rect, f"{idx + 1}. {option.label}", color=color, start_y=y + 2)

    def _render_footer(self, surface: pygame.Surface, snap: LessonSnapshot) -> None:
        parts = ["Esc: Menu", "Left: Back"]
        if snap.can_go_next:
            parts.append("Right/Enter: Next")
        if snap.phase in SIMULATION_PHASES:
            parts.append("Space: Run  Up/Down +/-: Adjust  R: Reset")
        elif snap.phase is Phase.TEST:
            parts.append("1-4: Answer  Up/Down: Question  Enter: Submit")
        elif snap.phase in (Phase.PREDICT, Phase.TWIST_PREDICT, Phase.TRANSFER):
            parts.append("1-9: Choose")
        foot = self._small_font.render("  |  ".join(parts), True, _TEXT_MUTED)
        surface.blit(foot, foot.get_rect(midbottom=(surface.get_width() // 2, surface.get_height() - 20)))


def run(*, max_frames: int | None = None, event_injector: Callable[[int], None] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    pygame.init()

    pygame.display.set_caption("Micro-lessons")
    surface = pygame.display.set_mode(WINDOW_SIZE, pygame.RESIZABLE)

    font = pygame.font.Font(None, 36)
    clock = pygame.time.Clock()

    app = App(surface=surface, font=font)
    scheduler = Scheduler(RealClock())
    recorder = _ProgressRecorder(default_db_path())

    def open_topic(topic_id: str) -> Callable[[], None]:
        def open_screen() -> None:
            app.push(LessonScreen(app, topic_id=topic_id, scheduler=scheduler, recorder=recorder))

        return open_screen

    items = [MenuItem(entry.title, open_topic(entry.topic_id)) for entry in TOPICS]
    items.append(MenuItem("Quit", app.quit))
    app.push(MenuScreen(app, "Lessons", items, is_root=True))

    frame = 0
    try:
        while app.running:
            if event_injector is not None:
                event_injector(frame)

            for event in pygame.event.get():
                app.handle_event(event)

            app.render()

            pygame.display.flip()

            frame += 1
            if max_frames is not None and frame >= max_frames:
                break

            clock.tick(TARGET_FPS)
    finally:
        pygame.quit()

    return 0
