from __future__ import annotations

from enum import Enum
from typing import Tuple


class View(str, Enum):
    HOME = "HOME"
    CHAT = "CHAT"
    GROUNDING = "GROUNDING"
    SAFETY_PLAN = "SAFETY_PLAN"
    MOOD = "MOOD"
    ANALYSIS = "ANALYSIS"


VIEW_TITLES = {
    View.HOME: "Home",
    View.CHAT: "3AM Friend",
    View.GROUNDING: "Ground Me",
    View.SAFETY_PLAN: "Safety Plan",
    View.MOOD: "Mood Log",
    View.ANALYSIS: "AI Check-in",
}


class ViewRouter:
    """Single owner of the active view."""

    def __init__(self, initial: View = View.HOME) -> None:
        self._active = View(initial)

    @property
    def active(self) -> View:
        return self._active

    def navigate(self, view: View) -> View:
        self._active = View(view)
        return self._active

    def render(self) -> Tuple[Tuple[View, bool], ...]:
        """Visibility of every view, in declaration order; exactly one is shown."""

        return tuple((view, view is self._active) for view in View)


__all__ = ["VIEW_TITLES", "View", "ViewRouter"]
