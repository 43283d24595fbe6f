from __future__ import annotations

from .state import ModuleState, is_index


class GalleryProgressTracker:
    """Which real-world applications the learner has opened."""

    def __init__(self, *, state: ModuleState, total_count: int) -> None:
        if total_count < 1:
            raise ValueError("total_count must be >= 1")
        self._total = int(total_count)
        self._state = state
        self.bind(state)

    def normalise(self, state: ModuleState) -> None:
        """Drop out-of-range indices from ``state``; non-integer entries raise TypeError."""

        viewed: set[int] = set()
        for i in state.gallery_viewed:
            if not is_index(i):
                raise TypeError(f"gallery index must be an int, got {i!r}")
            if 0 <= i < self._total:
                viewed.add(i)
        state.gallery_viewed = viewed

    def bind(self, state: ModuleState) -> None:
        self.normalise(state)
        self._state = state

    @property
    def total_count(self) -> int:
        return self._total

    @property
    def viewed(self) -> tuple[int, ...]:
        return tuple(sorted(self._state.gallery_viewed))

    @property
    def viewed_count(self) -> int:
        return len(self._state.gallery_viewed)

    def is_viewed(self, index: int) -> bool:
        return is_index(index) and index in self._state.gallery_viewed

    def mark_viewed(self, index: int) -> bool:
        """Returns True only the first time ``index`` is viewed."""

        if not is_index(index) or not (0 <= index < self._total):
            return False
        if index in self._state.gallery_viewed:
            return False
        self._state.gallery_viewed.add(index)
        return True

    def is_complete(self, total_count: int | None = None) -> bool:
        total = self._total if total_count is None else int(total_count)
        return all(i in self._state.gallery_viewed for i in range(total))

    def next_unviewed(self) -> int | None:
        for i in range(self._total):
            if i not in self._state.gallery_viewed:
                return i
        return None
