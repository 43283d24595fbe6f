from __future__ import annotations

import pytest

from microlesson.gallery import GalleryProgressTracker
from microlesson.phases import Phase
from microlesson.state import ModuleState


def _tracker(total: int = 4) -> tuple[GalleryProgressTracker, ModuleState]:
    state = ModuleState.fresh(phase=Phase.TRANSFER, question_count=10)
    return GalleryProgressTracker(state=state, total_count=total), state


def test_viewing_is_idempotent_and_bounded() -> None:
    tracker, state = _tracker()

    assert tracker.mark_viewed(2) is True
    assert tracker.mark_viewed(2) is False
    assert tracker.mark_viewed(4) is False
    assert tracker.mark_viewed(-1) is False

    assert tracker.viewed == (2,)
    assert tracker.viewed_count == 1
    assert tracker.is_viewed(2) is True
    assert state.gallery_viewed == {2}


def test_complete_in_any_order() -> None:
    tracker, _ = _tracker()

    for index in (3, 0, 2):
        tracker.mark_viewed(index)
    assert tracker.is_complete() is False
    assert tracker.next_unviewed() == 1

    tracker.mark_viewed(1)
    assert tracker.is_complete() is True
    assert tracker.next_unviewed() is None
    assert tracker.viewed == (0, 1, 2, 3)


def test_explicit_total_overrides_count() -> None:
    tracker, _ = _tracker()
    tracker.mark_viewed(0)
    tracker.mark_viewed(1)

    assert tracker.is_complete(2) is True
    assert tracker.is_complete(3) is False


def test_bind_drops_out_of_range_indices() -> None:
    tracker, _ = _tracker()
    restored = ModuleState.fresh(phase=Phase.TRANSFER, question_count=10)
    restored.gallery_viewed = {0, 7, -2}

    tracker.bind(restored)
    assert tracker.viewed == (0,)


def test_non_integer_indices_are_ignored() -> None:
    tracker, state = _tracker()
    tracker.mark_viewed(1)

    assert tracker.mark_viewed(1.0) is False  # type: ignore[arg-type]
    assert tracker.mark_viewed("2") is False  # type: ignore[arg-type]
    assert tracker.mark_viewed(True) is False
    assert tracker.is_viewed("1") is False  # type: ignore[arg-type]
    assert state.gallery_viewed == {1}


def test_normalise_rejects_non_integer_entries() -> None:
    tracker, state = _tracker()
    tracker.mark_viewed(0)
    restored = ModuleState.fresh(phase=Phase.TRANSFER, question_count=10)
    restored.gallery_viewed = {"0"}  # type: ignore[assignment]

    with pytest.raises(TypeError):
        tracker.normalise(restored)
    assert tracker.viewed == (0,)
    assert state.gallery_viewed == {0}


def test_total_must_be_positive() -> None:
    with pytest.raises(ValueError):
        _tracker(total=0)
