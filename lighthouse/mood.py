from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

MOOD_MIN = 1
MOOD_MAX = 5
WINDOW = 7


@dataclass(frozen=True)
class MoodEntry:
    day: str
    value: int
    note: Optional[str] = None


SEED_ENTRIES: Sequence[MoodEntry] = (
    MoodEntry("Mon", 3),
    MoodEntry("Tue", 2),
    MoodEntry("Wed", 4),
    MoodEntry("Thu", 3),
    MoodEntry("Fri", 4),
    MoodEntry("Sat", 5),
    MoodEntry("Sun", 4),
)


class MoodLog:
    """Rolling week of mood values, newest last."""

    def __init__(self, entries: Sequence[MoodEntry] = SEED_ENTRIES) -> None:
        self._entries: List[MoodEntry] = list(entries)[-WINDOW:]
        self.today: Optional[int] = None

    @property
    def entries(self) -> List[MoodEntry]:
        return list(self._entries)

    def record(self, value: int, *, today: Optional[date] = None, note: str | None = None) -> MoodEntry:
        value = int(value)
        if not MOOD_MIN <= value <= MOOD_MAX:
            raise ValueError(f"Mood value must be between {MOOD_MIN} and {MOOD_MAX}, got {value}")
        day = (today or date.today()).strftime("%a")
        entry = MoodEntry(day, value, note or None)
        self.today = value
        self._entries = (self._entries + [entry])[-WINDOW:]
        return entry

    def average(self) -> float:
        if not self._entries:
            return 0.0
        return sum(entry.value for entry in self._entries) / len(self._entries)


__all__ = ["MOOD_MAX", "MOOD_MIN", "MoodEntry", "MoodLog", "SEED_ENTRIES", "WINDOW"]
