from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Tuple

import gradio as gr

from .router import View
from .session import Session


def safe_component(
    factory: Callable[..., Any],
    *args: Any,
    optional_keys: Tuple[str, ...] = ("type",),
    **kwargs: Any,
) -> Any:
    """Instantiate a Gradio component, dropping optional kwargs the installed release rejects."""

    attempt_kwargs = dict(kwargs)
    while True:
        try:
            return factory(*args, **attempt_kwargs)
        except TypeError as exc:
            message = str(exc)
            dropped = next(
                (key for key in optional_keys if key in attempt_kwargs and f"'{key}'" in message),
                None,
            )
            if dropped is None:
                raise
            attempt_kwargs.pop(dropped)


def chat_messages(session: Session) -> List[Dict[str, str]]:
    """Render a session in the ``messages`` format understood by ``gr.Chatbot``."""

    return session.to_messages()


def view_updates(rendered: Iterable[Tuple[View, bool]]) -> List[Any]:
    return [gr.update(visible=visible) for _, visible in rendered]


def nav_updates(rendered: Iterable[Tuple[View, bool]], views: Iterable[View]) -> List[Any]:
    active = {view for view, visible in rendered if visible}
    return [gr.update(variant="primary" if view in active else "secondary") for view in views]


def markdown_list(items: Iterable[str]) -> str:
    lines = [f"- {item}" for item in items]
    return "\n".join(lines) if lines else "_Nothing here yet._"


__all__ = ["chat_messages", "markdown_list", "nav_updates", "safe_component", "view_updates"]
