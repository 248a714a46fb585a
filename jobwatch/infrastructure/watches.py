"""Infrastructure layer for watch persistence."""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from jobwatch.application.tracker import JobTracker


class WatchRepository(Protocol):
    """Persistence contract for open watches."""

    def next_watch_id(self) -> str: ...

    def add(self, watch_id: str, tracker: "JobTracker") -> None: ...

    def get(self, watch_id: str) -> "JobTracker | None": ...

    def remove(self, watch_id: str) -> "JobTracker | None": ...

    def items(self) -> list[tuple[str, "JobTracker"]]: ...

    def reset(self) -> None: ...


class InMemoryWatchRepository:
    """Simple in-memory repository; one process, one set of watches."""

    def __init__(self) -> None:
        self._trackers: dict[str, "JobTracker"] = {}
        self._watch_counter = 0

    def next_watch_id(self) -> str:
        self._watch_counter += 1
        return f"watch-{self._watch_counter:05d}"

    def add(self, watch_id: str, tracker: "JobTracker") -> None:
        self._trackers[watch_id] = tracker

    def get(self, watch_id: str) -> "JobTracker | None":
        return self._trackers.get(watch_id)

    def remove(self, watch_id: str) -> "JobTracker | None":
        return self._trackers.pop(watch_id, None)

    def items(self) -> list[tuple[str, "JobTracker"]]:
        return list(self._trackers.items())

    def reset(self) -> None:
        self._trackers.clear()
        self._watch_counter = 0
