from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class GroundingStep:
    count: int
    instruction: str
    placeholder: str


STEPS: Tuple[GroundingStep, ...] = (
    GroundingStep(5, "Acknowledge 5 things you see around you.", "I see..."),
    GroundingStep(4, "Acknowledge 4 things you can touch.", "I can touch..."),
    GroundingStep(3, "Acknowledge 3 things you hear.", "I hear..."),
    GroundingStep(2, "Acknowledge 2 things you can smell.", "I smell..."),
    GroundingStep(1, "Acknowledge 1 thing you can taste.", "I can taste..."),
)

COMPLETION_MESSAGE = "You did great. How do you feel?"

QUICK_DISTRACTIONS: Tuple[str, ...] = (
    "Count backwards from 100 by 7",
    "Find 5 blue objects",
    "Name all your favorite movies",
    "Drink a glass of cold water",
)

# 4-7-8 breathing: phase name and its length in seconds.
BREATHING_PHASES: Tuple[Tuple[str, int], ...] = (("Inhale", 4), ("Hold", 7), ("Exhale", 8))


class BreathingCycle:
    def __init__(self) -> None:
        self.active = False
        self._phase_index = 0
        self.remaining = BREATHING_PHASES[0][1]

    @property
    def phase(self) -> str:
        return BREATHING_PHASES[self._phase_index][0]

    def toggle(self) -> bool:
        self.active = not self.active
        if self.active:
            self._phase_index = 0
            self.remaining = BREATHING_PHASES[0][1]
        return self.active

    def tick(self) -> None:
        if not self.active:
            return
        if self.remaining > 1:
            self.remaining -= 1
            return
        self._phase_index = (self._phase_index + 1) % len(BREATHING_PHASES)
        self.remaining = BREATHING_PHASES[self._phase_index][1]


class GroundingWalkthrough:
    """The 5-4-3-2-1 senses exercise."""

    def __init__(self) -> None:
        self.index = 0

    @property
    def step(self) -> GroundingStep:
        return STEPS[self.index]

    @property
    def finished(self) -> bool:
        return self.index == len(STEPS) - 1

    @property
    def progress(self) -> float:
        return (self.index + 1) / len(STEPS)

    def next_step(self) -> GroundingStep:
        if self.index < len(STEPS) - 1:
            self.index += 1
        return self.step

    def reset(self) -> GroundingStep:
        self.index = 0
        return self.step


__all__ = [
    "BREATHING_PHASES",
    "BreathingCycle",
    "COMPLETION_MESSAGE",
    "GroundingStep",
    "GroundingWalkthrough",
    "QUICK_DISTRACTIONS",
    "STEPS",
]
