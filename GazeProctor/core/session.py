"""
Exam session state and its append-only gaze event log.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Optional


@dataclass(frozen=True)
class ClassifiedEvent:
    x: int
    y: int
    timestamp: float  # estimator elapsed time
    off_screen: bool
    snapshot: Optional[str] = None  # base64 data URL
    snapshot_id: Optional[str] = None  # e.g. snapshot_3.jpg
    observed_at: datetime = field(default_factory=datetime.now)


class EventLog:
    """Arrival-ordered store of classified samples.

    Events are only ever appended or wiped all at once by ``reset()``. The
    off-screen count is kept as events arrive.
    """

    def __init__(self) -> None:
        self._events: List[ClassifiedEvent] = []
        self._off_screen = 0

    def append(self, event: ClassifiedEvent) -> None:
        self._events.append(event)
        if event.off_screen:
            self._off_screen += 1

    def filter(self, off_screen: bool) -> Iterator[ClassifiedEvent]:
        return (e for e in self._events if e.off_screen == off_screen)

    def count(self, off_screen: bool = True) -> int:
        if off_screen:
            return self._off_screen
        return len(self._events) - self._off_screen

    def reset(self) -> None:
        self._events.clear()
        self._off_screen = 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[ClassifiedEvent]:
        return iter(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)


class Session:
    def __init__(self) -> None:
        self.tracking = False
        self.started = False
        self.events = EventLog()
        self.snapshot_counter = 0

    @property
    def off_screen_count(self) -> int:
        return self.events.count(off_screen=True)

    def next_snapshot_name(self, extension: str) -> str:
        self.snapshot_counter += 1
        return f"snapshot_{self.snapshot_counter}.{extension}"

    def reset(self) -> None:
        self.events.reset()
        self.snapshot_counter = 0

    def off_screen_lines(self) -> List[str]:
        """Human-readable lines for the on-page report list."""
        return [
            f"Off-screen gaze at {e.observed_at.strftime('%H:%M:%S')} (x: {e.x}, y: {e.y})"
            for e in self.events.filter(off_screen=True)
        ]
