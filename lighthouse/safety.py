from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class Contact:
    name: str
    phone: str


@dataclass
class SafetyPlan:
    """A prioritized list of coping strategies and supports to use during a crisis."""

    warning_signs: List[str] = field(default_factory=list)
    coping_strategies: List[str] = field(default_factory=list)
    supporters: List[Contact] = field(default_factory=list)
    professionals: List[Contact] = field(default_factory=list)
    reasons_to_live: List[str] = field(default_factory=list)

    def sections(self) -> List[Tuple[str, List[str]]]:
        return [
            ("Warning Signs", list(self.warning_signs)),
            ("Coping Strategies", list(self.coping_strategies)),
            ("People I Can Call", [f"{c.name}: {c.phone}" for c in self.supporters]),
            ("Professionals", [f"{c.name}: {c.phone}" for c in self.professionals]),
            ("Reasons to Live", list(self.reasons_to_live)),
        ]


def default_plan() -> SafetyPlan:
    return SafetyPlan(
        warning_signs=["Feeling restless", "Isolating from friends", "Changes in sleep"],
        coping_strategies=[
            "Deep breathing (4-7-8)",
            "Listening to soothing music",
            "Walking the dog",
        ],
        supporters=[Contact("Sarah (Sister)", "555-0123"), Contact("Tom (Best Friend)", "555-0124")],
        professionals=[Contact("Dr. Smith", "555-0199"), Contact("Crisis Line", "988")],
        reasons_to_live=["My cat Luna", "Seeing the ocean again", "Finish reading my book series"],
    )


CRISIS_INTRO = (
    "Help is available right now. These services are free, confidential, and available 24/7."
)

# (label, link)
CRISIS_RESOURCES: Tuple[Tuple[str, str], ...] = (
    ("Call 988", "tel:988"),
    ('Text "HOME" to 741741', "sms:741741&body=HOME"),
    ("Find International Helplines", "https://findahelpline.com"),
)


__all__ = [
    "CRISIS_INTRO",
    "CRISIS_RESOURCES",
    "Contact",
    "SafetyPlan",
    "default_plan",
]
