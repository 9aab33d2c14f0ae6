"""In-memory conversation log for a single chat session.

A ``Session`` is an ordered, append-only list of ``Turn`` objects.  Turns are
never removed or reordered; the one sanctioned edit is :meth:`Session.patch`,
which swaps the body of an existing turn while keeping its id and position.
Voice messages rely on it to replace the placeholder once a transcript comes
back from the model.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

USER = "user"
ASSISTANT = "assistant"
_AUTHORS = (USER, ASSISTANT)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Turn:
    id: str
    author: str
    body: str
    created_at: datetime = field(default_factory=_now)

    def to_message(self) -> Dict[str, str]:
        return {"role": self.author, "content": self.body}


class Session:
    def __init__(self) -> None:
        self._turns: List[Turn] = []
        self._index: Dict[str, int] = {}
        # Millisecond stamp keeps ids readable; the counter keeps them unique
        # when several turns land inside the same millisecond.
        self._seq = itertools.count(int(time.time() * 1000))

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(list(self._turns))

    def __getitem__(self, index: int) -> Turn:
        return self._turns[index]

    @property
    def turns(self) -> List[Turn]:
        return list(self._turns)

    def _next_id(self) -> str:
        turn_id = str(next(self._seq))
        while turn_id in self._index:
            turn_id = str(next(self._seq))
        return turn_id

    def append(self, author: str, body: str) -> Turn:
        if author not in _AUTHORS:
            raise ValueError(f"Unknown turn author: {author!r}")
        turn = Turn(id=self._next_id(), author=author, body=body)
        self._index[turn.id] = len(self._turns)
        self._turns.append(turn)
        return turn

    def get(self, turn_id: str) -> Optional[Turn]:
        position = self._index.get(turn_id)
        if position is None:
            return None
        return self._turns[position]

    def patch(self, turn_id: str, body: str) -> Turn:
        """Replace the body of ``turn_id`` in place and return the new turn."""

        position = self._index.get(turn_id)
        if position is None:
            raise KeyError(turn_id)
        updated = replace(self._turns[position], body=body)
        self._turns[position] = updated
        return updated

    def to_messages(self) -> List[Dict[str, str]]:
        return [turn.to_message() for turn in self._turns]


__all__ = ["ASSISTANT", "USER", "Session", "Turn"]
