#!/usr/bin/env python3

# Copyright (c) 2025 James Baker VA7ODR
#
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software
# and associated documentation files (the “Software”), to deal in the Software without
# restriction, including without limitation the rights to use, copy, modify, merge, publish,
# distribute, sublicense, and/or sell copies of the Software, and to permit persons to whom the
# Software is furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all copies or
# substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED “AS IS”, WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR
# OTHER LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE,
# ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
# OTHER DEALINGS IN THE SOFTWARE.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import gradio as gr

import lighthouse.config as lighthouse_config
from lighthouse.chat import QUICK_REPLIES, ChatState, ConversationController
from lighthouse.checkin import CheckinState, EmotionCheckinController
from lighthouse.devices import LocalDeviceCapture
from lighthouse.gateway import GeminiGateway
from lighthouse.grounding import (
    COMPLETION_MESSAGE,
    QUICK_DISTRACTIONS,
    STEPS,
    BreathingCycle,
    GroundingWalkthrough,
)
from lighthouse.media import MediaCapture
from lighthouse.mood import MOOD_MAX, MOOD_MIN, MoodLog
from lighthouse.router import VIEW_TITLES, View, ViewRouter
from lighthouse.safety import CRISIS_INTRO, CRISIS_RESOURCES, SafetyPlan, default_plan
from lighthouse.ui_utils import chat_messages, markdown_list, nav_updates, safe_component, view_updates


lighthouse_config.reload_from_environment()

LOGGER = logging.getLogger(__name__)

LOADING_AFFIRMATION = "Loading hope..."
NAV_VIEWS = (View.HOME, View.MOOD, View.CHAT, View.SAFETY_PLAN)
MOOD_FACES = {1: "😞", 2: "🙁", 3: "😐", 4: "🙂", 5: "😄"}


def greeting_for_hour(hour: int) -> str:
    if hour < 5:
        return "It's late. I'm glad you're here."
    if hour < 12:
        return "Good morning."
    if hour < 18:
        return "Good afternoon."
    return "Good evening."


@dataclass
class AppDependencies:
    gateway: GeminiGateway
    capture: MediaCapture


gateway: GeminiGateway
capture: MediaCapture
_dependencies: AppDependencies | None = None


def build_dependencies(
    *,
    gateway_factory: Optional[Callable[[], GeminiGateway]] = None,
    capture_factory: Optional[Callable[[], MediaCapture]] = None,
) -> AppDependencies:
    gateway_instance = gateway_factory() if gateway_factory else GeminiGateway()
    capture_instance = capture_factory() if capture_factory else LocalDeviceCapture()
    if gateway_instance.offline:
        LOGGER.warning("No API key configured; Lighthouse is running in offline mode.")
    return AppDependencies(gateway=gateway_instance, capture=capture_instance)


def get_dependencies() -> AppDependencies:
    if _dependencies is None:
        raise RuntimeError("App dependencies have not been configured")
    return _dependencies


def configure_dependencies(deps: AppDependencies) -> AppDependencies:
    global gateway, capture, _dependencies
    _dependencies = deps
    gateway = deps.gateway
    capture = deps.capture
    return deps


configure_dependencies(build_dependencies())


@dataclass
class AppSession:
    """Everything one browser session holds; nothing outlives it."""

    router: ViewRouter = field(default_factory=ViewRouter)
    greeting: str = ""
    affirmation: str = LOADING_AFFIRMATION
    chat: Optional[ConversationController] = None
    checkin: Optional[EmotionCheckinController] = None
    breathing: BreathingCycle = field(default_factory=BreathingCycle)
    walkthrough: GroundingWalkthrough = field(default_factory=GroundingWalkthrough)
    mood: MoodLog = field(default_factory=MoodLog)
    plan: SafetyPlan = field(default_factory=default_plan)


def _initial_state(now: Optional[datetime] = None) -> AppSession:
    current = now or datetime.now()
    return AppSession(greeting=greeting_for_hour(current.hour))


def _mount(state: AppSession, view: View) -> None:
    if view is View.CHAT:
        state.chat = ConversationController(gateway, capture)
    elif view is View.ANALYSIS:
        state.checkin = EmotionCheckinController(gateway, capture)
        state.checkin.initialize()
    elif view is View.GROUNDING:
        state.breathing = BreathingCycle()
        state.walkthrough = GroundingWalkthrough()


def _unmount(state: AppSession, view: View) -> None:
    if view is View.CHAT and state.chat is not None:
        state.chat.teardown()
        state.chat = None
    elif view is View.ANALYSIS and state.checkin is not None:
        state.checkin.teardown()
        state.checkin = None
    elif view is View.GROUNDING:
        state.breathing.active = False


def _switch_view(state: AppSession, view: View) -> AppSession:
    previous = state.router.active
    state.router.navigate(view)
    if previous is not view:
        _unmount(state, previous)
        _mount(state, view)
        LOGGER.debug("View changed %s -> %s", previous.value, view.value)
    return state


def _ensure_state(state: Optional[AppSession]) -> AppSession:
    # Events can fire before ``demo.load`` has populated the session.
    if isinstance(state, AppSession):
        return state
    return _initial_state()


def _release_session(state: Any) -> None:
    if not isinstance(state, AppSession):
        return
    _unmount(state, state.router.active)


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------


def _home_markdown(state: AppSession) -> str:
    return f"# {state.greeting}\n\n_\"{state.affirmation}\"_"


def _mic_status(chat: Optional[ConversationController]) -> str:
    if chat is None:
        return ""
    if chat.mic_error:
        return "🚫 Microphone access failed"
    if chat.state is ChatState.RECORDING:
        return "🔴 Listening..."
    if chat.state is ChatState.AWAITING_RESPONSE:
        return "_3AM Friend is typing..._"
    return ""


def _chat_updates(state: AppSession, *, clear_input: bool = False) -> List[Any]:
    chat = state.chat
    history = chat_messages(chat.session) if chat is not None else []
    suggestions = chat.suggestions() if chat is not None else ()
    busy = chat.busy if chat is not None else True
    recording = chat is not None and chat.state is ChatState.RECORDING

    quick_updates = []
    for index in range(3):
        if index < len(suggestions):
            quick_updates.append(
                gr.update(value=suggestions[index][0], visible=True, interactive=not busy)
            )
        else:
            quick_updates.append(gr.update(visible=False))

    input_update: Dict[str, Any] = {
        "interactive": not busy,
        "placeholder": "Listening..." if recording else "Type your message...",
    }
    if clear_input:
        input_update["value"] = ""

    return [
        history,
        *quick_updates,
        gr.update(**input_update),
        gr.update(interactive=not busy),
        gr.update(visible=not recording, interactive=not busy),
        gr.update(visible=recording),
        _mic_status(chat),
        gr.Timer(active=bool(chat is not None and chat.mic_error)),
    ]


def _checkin_markdown(checkin: Optional[EmotionCheckinController]) -> str:
    if checkin is None or checkin.state is CheckinState.INITIALIZING:
        return "Initializing camera..."
    if checkin.state is CheckinState.ERROR:
        return f"⚠️ {checkin.error}"
    if checkin.state is CheckinState.READY:
        text = (
            "Look toward your camera, then press record.\n\n"
            f"We'll listen for {checkin.countdown.seconds} seconds and take one still photo at the end."
        )
        if not checkin.has_audio:
            text += "\n\n_Microphone unavailable: the check-in will use your camera only._"
        return text
    if checkin.state is CheckinState.RECORDING:
        return f"## 🔴 {checkin.remaining}\n\nKeep looking at the camera and say how you feel."
    if checkin.state is CheckinState.ANALYZING:
        return "✨ Analyzing your check-in..."
    return f"### Your check-in\n\n> \"{checkin.result}\""


def _checkin_updates(state: AppSession) -> List[Any]:
    checkin = state.checkin
    current = checkin.state if checkin is not None else CheckinState.INITIALIZING
    return [
        _checkin_markdown(checkin),
        gr.update(
            visible=current in (CheckinState.READY, CheckinState.INITIALIZING, CheckinState.ERROR),
            interactive=current is CheckinState.READY,
        ),
        gr.update(visible=current is CheckinState.RESULT),
        gr.Timer(active=current is CheckinState.RECORDING),
    ]


def _breathing_markdown(breathing: BreathingCycle) -> str:
    if not breathing.active:
        return "### 4-7-8 Breathing\n\nRelax your mind and body."
    return f"### 4-7-8 Breathing\n\n## {breathing.remaining}\n\n**{breathing.phase.upper()}**"


def _walkthrough_markdown(walkthrough: GroundingWalkthrough) -> str:
    step = walkthrough.step
    lines = [
        "### 5-4-3-2-1 Grounding",
        f"Progress: {int(walkthrough.progress * 100)}% (step {walkthrough.index + 1} of {len(STEPS)})",
        f"## {step.count}",
        step.instruction,
        f"_{step.placeholder}_",
    ]
    if walkthrough.finished:
        lines.append(f"**{COMPLETION_MESSAGE}**")
    return "\n\n".join(lines)


def _grounding_updates(state: AppSession) -> List[Any]:
    return [
        _breathing_markdown(state.breathing),
        gr.update(value="⏸ Pause" if state.breathing.active else "▶ Start"),
        gr.Timer(active=state.breathing.active),
        _walkthrough_markdown(state.walkthrough),
        gr.update(visible=not state.walkthrough.finished),
    ]


def _mood_markdown(mood: MoodLog) -> str:
    rows = ["| Day | Mood |", "| --- | --- |"]
    for entry in mood.entries:
        rows.append(f"| {entry.day} | {MOOD_FACES.get(entry.value, '')} {entry.value} |")
    lines = ["### Your week", "\n".join(rows), f"Weekly average: {mood.average():.1f}"]
    if mood.today is not None:
        lines.insert(0, f"Today's mood logged: **{mood.today}**. Thank you for checking in.")
    return "\n\n".join(lines)


def _safety_markdown(plan: SafetyPlan) -> str:
    blocks = [
        "## My Safety Plan",
        "A prioritized list of coping strategies and supports to use during a crisis.",
    ]
    for title, items in plan.sections():
        blocks.append(f"### {title}\n\n{markdown_list(items)}")
    return "\n\n".join(blocks)


def _crisis_markdown() -> str:
    links = [f"- [{label}]({href})" for label, href in CRISIS_RESOURCES]
    return f"**{CRISIS_INTRO}**\n\n" + "\n".join(links)


def _navigation_snapshot(state: AppSession) -> List[Any]:
    rendered = state.router.render()
    return [
        state,
        *view_updates(rendered),
        *nav_updates(rendered, NAV_VIEWS),
        _home_markdown(state),
        *_chat_updates(state, clear_input=True),
        *_checkin_updates(state),
        *_grounding_updates(state),
        _mood_markdown(state.mood),
    ]


# ----------------------------------------------------------------------
# Event handlers
# ----------------------------------------------------------------------


def on_load():
    state = _initial_state()
    yield _navigation_snapshot(state)
    state.affirmation = gateway.affirmation()
    yield _navigation_snapshot(state)


def on_navigate(view: View, state: Optional[AppSession]):
    state = _ensure_state(state)
    _switch_view(state, view)
    return _navigation_snapshot(state)


def on_send(message: str, state: Optional[AppSession]):
    state = _ensure_state(state)
    chat = state.chat
    if chat is None or chat.send_text(message) is None:
        yield [state, *_chat_updates(state)]
        return
    yield [state, *_chat_updates(state, clear_input=True)]
    chat.resolve()
    yield [state, *_chat_updates(state, clear_input=True)]


def on_quick_reply(index: int, state: Optional[AppSession]):
    state = _ensure_state(state)
    chat = state.chat
    suggestions = chat.suggestions() if chat is not None else ()
    if index >= len(suggestions):
        yield [state, *_chat_updates(state)]
        return
    yield from on_send(suggestions[index][1], state)


def on_record_start(state: Optional[AppSession]):
    state = _ensure_state(state)
    if state.chat is not None:
        state.chat.start_recording()
    return [state, *_chat_updates(state)]


def on_record_stop(state: Optional[AppSession]):
    state = _ensure_state(state)
    chat = state.chat
    if chat is None or chat.stop_recording() is None:
        yield [state, *_chat_updates(state)]
        return
    yield [state, *_chat_updates(state)]
    chat.resolve()
    yield [state, *_chat_updates(state)]


def on_mic_tick(state: Optional[AppSession]):
    state = _ensure_state(state)
    return [state, *_chat_updates(state)]


def on_checkin_start(state: Optional[AppSession]):
    state = _ensure_state(state)
    if state.checkin is not None:
        state.checkin.start()
    return [state, *_checkin_updates(state)]


def on_checkin_tick(state: Optional[AppSession]):
    state = _ensure_state(state)
    checkin = state.checkin
    if checkin is None or not checkin.tick():
        yield [state, *_checkin_updates(state)]
        return
    yield [state, *_checkin_updates(state)]
    checkin.analyze()
    yield [state, *_checkin_updates(state)]


def on_checkin_reset(state: Optional[AppSession]):
    state = _ensure_state(state)
    if state.checkin is not None:
        state.checkin.reset()
    return [state, *_checkin_updates(state)]


def on_breathing_toggle(state: Optional[AppSession]):
    state = _ensure_state(state)
    state.breathing.toggle()
    return [state, *_grounding_updates(state)]


def on_breathing_tick(state: Optional[AppSession]):
    state = _ensure_state(state)
    state.breathing.tick()
    return [state, *_grounding_updates(state)]


def on_grounding_next(state: Optional[AppSession]):
    state = _ensure_state(state)
    state.walkthrough.next_step()
    return [state, *_grounding_updates(state)]


def on_grounding_reset(state: Optional[AppSession]):
    state = _ensure_state(state)
    state.walkthrough.reset()
    return [state, *_grounding_updates(state)]


def on_mood(value: int, state: Optional[AppSession]):
    state = _ensure_state(state)
    state.mood.record(value)
    return [state, _mood_markdown(state.mood)]


# ----------------------------------------------------------------------
# Layout
# ----------------------------------------------------------------------

with gr.Blocks(title="Lighthouse") as demo:
    gr.Markdown("# ⚓ Lighthouse")

    session_state = safe_component(
        gr.State,
        value=None,
        delete_callback=_release_session,
        optional_keys=("delete_callback",),
    )

    with gr.Accordion("🆘 Help now", open=False):
        gr.Markdown(_crisis_markdown())

    view_columns = {}

    with gr.Column(visible=True) as home_col:
        home_md = gr.Markdown(_home_markdown(_initial_state()))
        checkin_nav_btn = gr.Button("🙂 AI Check-in: analyze mood via voice & camera", variant="primary")
        with gr.Row():
            chat_nav_btn = gr.Button("💬 3AM Friend")
            grounding_nav_btn = gr.Button("⚓ Ground Me")
        with gr.Row():
            safety_nav_btn = gr.Button("🛡️ Safety Plan")
            mood_nav_btn = gr.Button("📈 Mood Log")
    view_columns[View.HOME] = home_col

    with gr.Column(visible=False) as chat_col:
        gr.Markdown(f"## {VIEW_TITLES[View.CHAT]}\nAlways here to listen.")
        chatbot = safe_component(
            gr.Chatbot,
            value=[],
            height=420,
            type="messages",
            optional_keys=("type", "bubble_full_width"),
        )
        with gr.Row():
            quick_btns = [gr.Button(label, size="sm") for label, _ in QUICK_REPLIES]
        with gr.Row():
            user_box = gr.Textbox(
                show_label=False,
                placeholder="Type your message...",
                scale=4,
            )
            record_btn = gr.Button("🎤", scale=0)
            stop_btn = gr.Button("⏹", variant="stop", visible=False, scale=0)
            send_btn = gr.Button("Send", variant="primary", scale=0)
        mic_status = gr.Markdown("")
        mic_timer = gr.Timer(1.0, active=False)
    view_columns[View.CHAT] = chat_col

    with gr.Column(visible=False) as grounding_col:
        breathing_md = gr.Markdown(_breathing_markdown(BreathingCycle()))
        breathing_btn = gr.Button("▶ Start")
        breathing_timer = gr.Timer(1.0, active=False)
        walkthrough_md = gr.Markdown(_walkthrough_markdown(GroundingWalkthrough()))
        with gr.Row():
            grounding_next_btn = gr.Button("I've done this", variant="primary")
            grounding_reset_btn = gr.Button("↺ Start over")
        gr.Markdown("### ☕ Quick Distractions\n\n" + markdown_list(QUICK_DISTRACTIONS))
    view_columns[View.GROUNDING] = grounding_col

    with gr.Column(visible=False) as safety_col:
        gr.Markdown(_safety_markdown(default_plan()))
    view_columns[View.SAFETY_PLAN] = safety_col

    with gr.Column(visible=False) as mood_col:
        gr.Markdown("## How are you feeling today?")
        with gr.Row():
            mood_btns = {
                value: gr.Button(f"{MOOD_FACES[value]} {value}")
                for value in range(MOOD_MIN, MOOD_MAX + 1)
            }
        mood_md = gr.Markdown(_mood_markdown(MoodLog()))
    view_columns[View.MOOD] = mood_col

    with gr.Column(visible=False) as analysis_col:
        gr.Markdown(f"## {VIEW_TITLES[View.ANALYSIS]}")
        checkin_md = gr.Markdown("Initializing camera...")
        checkin_start_btn = gr.Button("⏺ Start check-in", variant="primary")
        checkin_again_btn = gr.Button("Check-in again", visible=False)
        checkin_timer = gr.Timer(1.0, active=False)
    view_columns[View.ANALYSIS] = analysis_col

    with gr.Row():
        nav_btns = {
            View.HOME: gr.Button("🏠 Home", variant="primary"),
            View.MOOD: gr.Button("📈 Mood"),
            View.CHAT: gr.Button("💬 Chat"),
            View.SAFETY_PLAN: gr.Button("🛡️ Safety"),
        }

    chat_outputs = [
        chatbot,
        *quick_btns,
        user_box,
        send_btn,
        record_btn,
        stop_btn,
        mic_status,
        mic_timer,
    ]
    checkin_outputs = [checkin_md, checkin_start_btn, checkin_again_btn, checkin_timer]
    grounding_outputs = [
        breathing_md,
        breathing_btn,
        breathing_timer,
        walkthrough_md,
        grounding_next_btn,
    ]
    navigation_outputs = [
        session_state,
        *(view_columns[view] for view in View),
        *(nav_btns[view] for view in NAV_VIEWS),
        home_md,
        *chat_outputs,
        *checkin_outputs,
        *grounding_outputs,
        mood_md,
    ]

    demo.load(on_load, inputs=None, outputs=navigation_outputs)

    def _navigate_to(view: View):
        return lambda s: on_navigate(view, s)

    for view, button in nav_btns.items():
        button.click(_navigate_to(view), inputs=session_state, outputs=navigation_outputs)
    for view, button in (
        (View.ANALYSIS, checkin_nav_btn),
        (View.CHAT, chat_nav_btn),
        (View.GROUNDING, grounding_nav_btn),
        (View.SAFETY_PLAN, safety_nav_btn),
        (View.MOOD, mood_nav_btn),
    ):
        button.click(_navigate_to(view), inputs=session_state, outputs=navigation_outputs)

    send_btn.click(on_send, inputs=[user_box, session_state], outputs=[session_state, *chat_outputs])
    user_box.submit(on_send, inputs=[user_box, session_state], outputs=[session_state, *chat_outputs])

    def _quick_reply(index: int):
        def handler(s):
            yield from on_quick_reply(index, s)

        return handler

    for index, button in enumerate(quick_btns):
        button.click(_quick_reply(index), inputs=session_state, outputs=[session_state, *chat_outputs])
    record_btn.click(on_record_start, inputs=session_state, outputs=[session_state, *chat_outputs])
    stop_btn.click(on_record_stop, inputs=session_state, outputs=[session_state, *chat_outputs])
    mic_timer.tick(on_mic_tick, inputs=session_state, outputs=[session_state, *chat_outputs])

    checkin_start_btn.click(on_checkin_start, inputs=session_state, outputs=[session_state, *checkin_outputs])
    checkin_timer.tick(on_checkin_tick, inputs=session_state, outputs=[session_state, *checkin_outputs])
    checkin_again_btn.click(on_checkin_reset, inputs=session_state, outputs=[session_state, *checkin_outputs])

    breathing_btn.click(on_breathing_toggle, inputs=session_state, outputs=[session_state, *grounding_outputs])
    breathing_timer.tick(on_breathing_tick, inputs=session_state, outputs=[session_state, *grounding_outputs])
    grounding_next_btn.click(on_grounding_next, inputs=session_state, outputs=[session_state, *grounding_outputs])
    grounding_reset_btn.click(on_grounding_reset, inputs=session_state, outputs=[session_state, *grounding_outputs])

    def _record_mood(value: int):
        return lambda s: on_mood(value, s)

    for value, button in mood_btns.items():
        button.click(_record_mood(value), inputs=session_state, outputs=[session_state, mood_md])


if __name__ == "__main__":
    logging.basicConfig(
        level=getattr(logging, lighthouse_config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    configure_dependencies(build_dependencies())
    demo.launch(
        server_name=lighthouse_config.SERVER_HOST,
        server_port=lighthouse_config.SERVER_PORT,
        show_error=True,
    )
