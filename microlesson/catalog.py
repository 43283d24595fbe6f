from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .antenna_gain import build_antenna_lesson
from .clock import Scheduler
from .events import EventListener
from .hdd_physics import build_hdd_lesson
from .inductive_kickback import build_kickback_lesson
from .lesson import LessonModule
from .navigation import NavigationConfig
from .thermal_throttling import build_thermal_lesson

# Called as factory(seed, scheduler=..., resume_phase=..., ...); only seeded
# topics look at the seed.
LessonFactory = Callable[..., LessonModule]


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    topic_id: str
    title: str
    build: LessonFactory


TOPICS: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        "hdd_physics",
        "Hard Drive Physics",
        lambda seed, **kwargs: build_hdd_lesson(seed=seed, **kwargs),
    ),
    CatalogEntry(
        "thermal_throttling",
        "Thermal Throttling",
        lambda seed, **kwargs: build_thermal_lesson(**kwargs),
    ),
    CatalogEntry(
        "antenna_gain",
        "Antenna Gain",
        lambda seed, **kwargs: build_antenna_lesson(**kwargs),
    ),
    CatalogEntry(
        "inductive_kickback",
        "Inductive Kickback",
        lambda seed, **kwargs: build_kickback_lesson(**kwargs),
    ),
)

TOPICS_BY_ID: dict[str, CatalogEntry] = {entry.topic_id: entry for entry in TOPICS}


def topic_ids() -> tuple[str, ...]:
    return tuple(entry.topic_id for entry in TOPICS)


def build_lesson(
    topic_id: str,
    *,
    scheduler: Scheduler,
    seed: int | None = None,
    resume_phase: object = None,
    navigation: NavigationConfig | None = None,
    on_event: EventListener | None = None,
    on_correct_answer: Callable[[], None] | None = None,
    on_incorrect_answer: Callable[[], None] | None = None,
) -> LessonModule:
    entry = TOPICS_BY_ID.get(topic_id)
    if entry is None:
        raise ValueError(f"Unknown topic: {topic_id!r}")
    return entry.build(
        seed,
        scheduler=scheduler,
        resume_phase=resume_phase,
        navigation=navigation,
        on_event=on_event,
        on_correct_answer=on_correct_answer,
        on_incorrect_answer=on_incorrect_answer,
    )
