"""Turn-taking controller behind the 3AM Friend chat view."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from . import config
from .gateway import CHAT_FALLBACK, GeminiGateway, Reply
from .media import MediaCapture, MediaStream, MediaUnavailableError, Recorder, encode_base64
from .session import ASSISTANT, USER, Session, Turn

LOGGER = logging.getLogger(__name__)

GREETING = (
    "Hello. I'm your 3AM Friend. \n\n"
    "The night can be long, but you don't have to get through it alone. I'm here to listen "
    "without judgment, help you ground yourself, or just sit with you in the dark. \n\n"
    "How are you holding up?"
)
VOICE_PLACEHOLDER = "🎤 Sending voice message..."
VOICE_LABEL = "🎤 Voice Message"
NO_AUDIO_REPLY = (
    "I couldn't hear anything in that recording. Could you try again, or type to me instead?"
)

# (button label, message sent)
QUICK_REPLIES: Tuple[Tuple[str, str], ...] = (
    ("I'm anxious", "I'm feeling anxious"),
    ("Grounding help", "Help me ground myself"),
    ("Vent", "I just need to vent"),
)
_QUICK_REPLY_TURN_LIMIT = 3


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    RECORDING = "recording"
    RECORDING_FAILED = "recording_failed"


@dataclass(frozen=True)
class _PendingRequest:
    history: Tuple[Turn, ...]
    text: str
    audio_base64: str = ""
    placeholder_id: Optional[str] = None


def voice_label(transcript: Optional[str]) -> str:
    if transcript:
        return f'🎤 "{transcript}"'
    return VOICE_LABEL


class ConversationController:
    """Owns one chat ``Session`` and sequences input, gateway calls and replies.

    Sending is split in two steps so a UI can render the optimistic user turn
    before the gateway answers: ``send_text``/``stop_recording`` queue the
    request and ``resolve`` performs it.  ``submit_text`` and ``record_voice``
    run both steps at once.  Actions that arrive while a request or a
    recording is in progress are ignored.
    """

    def __init__(
        self,
        gateway: GeminiGateway,
        capture: MediaCapture,
        *,
        clock: Callable[[], float] = time.monotonic,
        mic_error_seconds: float | None = None,
        greeting: str = GREETING,
    ) -> None:
        self.gateway = gateway
        self.capture = capture
        self._clock = clock
        self.mic_error_seconds = (
            config.MIC_ERROR_SECONDS if mic_error_seconds is None else mic_error_seconds
        )
        self.session = Session()
        self.session.append(ASSISTANT, greeting)
        self._state = ChatState.IDLE
        self._pending: Optional[_PendingRequest] = None
        self._stream: Optional[MediaStream] = None
        self._recorder: Optional[Recorder] = None
        self._mic_error_until: Optional[float] = None

    @property
    def state(self) -> ChatState:
        if (
            self._state is ChatState.RECORDING_FAILED
            and self._mic_error_until is not None
            and self._clock() >= self._mic_error_until
        ):
            self._clear_mic_error()
        return self._state

    @property
    def busy(self) -> bool:
        return self.state in (ChatState.AWAITING_RESPONSE, ChatState.RECORDING)

    @property
    def mic_error(self) -> bool:
        return self.state is ChatState.RECORDING_FAILED

    def suggestions(self) -> Tuple[Tuple[str, str], ...]:
        if len(self.session) < _QUICK_REPLY_TURN_LIMIT:
            return QUICK_REPLIES
        return ()

    def _accepts_input(self, action: str) -> bool:
        state = self.state
        if state in (ChatState.IDLE, ChatState.RECORDING_FAILED):
            return True
        LOGGER.debug("Ignoring %s while %s", action, state.value)
        return False

    def _clear_mic_error(self) -> None:
        self._state = ChatState.IDLE
        self._mic_error_until = None

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------
    def send_text(self, text: str) -> Optional[Turn]:
        """Append the user turn and queue the gateway request."""

        if not (text or "").strip():
            return None
        if not self._accepts_input("text submission"):
            return None
        self._clear_mic_error()
        history = tuple(self.session)
        turn = self.session.append(USER, text)
        self._pending = _PendingRequest(history=history, text=text)
        self._state = ChatState.AWAITING_RESPONSE
        return turn

    def submit_text(self, text: str) -> Optional[Turn]:
        if self.send_text(text) is None:
            return None
        return self.resolve()

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------
    def start_recording(self) -> bool:
        if not self._accepts_input("recording start"):
            return False
        self._clear_mic_error()
        stream: Optional[MediaStream] = None
        try:
            stream = self.capture.acquire(audio=True, video=False)
            recorder = stream.recorder()
            recorder.start()
        except MediaUnavailableError as exc:
            LOGGER.warning("Error accessing microphone: %s", exc)
            if stream is not None:
                stream.stop()
            self._state = ChatState.RECORDING_FAILED
            self._mic_error_until = self._clock() + self.mic_error_seconds
            return False
        self._stream, self._recorder = stream, recorder
        self._state = ChatState.RECORDING
        return True

    def stop_recording(self) -> Optional[Turn]:
        """Finalize the recording, append the placeholder turn and queue the request."""

        if self._state is not ChatState.RECORDING:
            LOGGER.debug("Ignoring recording stop while %s", self._state.value)
            return None
        blob = self._release_recorder()
        history = tuple(self.session)
        placeholder = self.session.append(USER, VOICE_PLACEHOLDER)
        if not blob:
            LOGGER.info("Recording produced no audio; skipping gateway call")
            self.session.patch(placeholder.id, VOICE_LABEL)
            self.session.append(ASSISTANT, NO_AUDIO_REPLY)
            self._state = ChatState.IDLE
            return self.session.get(placeholder.id)
        self._pending = _PendingRequest(
            history=history,
            text="",
            audio_base64=encode_base64(blob),
            placeholder_id=placeholder.id,
        )
        self._state = ChatState.AWAITING_RESPONSE
        return placeholder

    def record_voice(self) -> Optional[Turn]:
        if self.stop_recording() is None:
            return None
        return self.resolve()

    def _release_recorder(self) -> bytes:
        recorder, stream = self._recorder, self._stream
        self._recorder = self._stream = None
        blob = b""
        try:
            if recorder is not None:
                blob = recorder.stop()
        finally:
            if stream is not None:
                stream.stop()
        return blob or b""

    # ------------------------------------------------------------------
    # Response integration
    # ------------------------------------------------------------------
    def resolve(self) -> Optional[Turn]:
        """Run the queued gateway request and append the assistant turn."""

        pending = self._pending
        if self._state is not ChatState.AWAITING_RESPONSE or pending is None:
            return None
        self._pending = None
        try:
            reply = self.gateway.converse(
                pending.history, pending.text, pending.audio_base64 or None
            )
        except Exception:
            LOGGER.exception("Gateway raised during conversation turn")
            reply = Reply(text=CHAT_FALLBACK)

        if pending.placeholder_id is not None:
            self.session.patch(pending.placeholder_id, voice_label(reply.transcript))

        turn = self.session.append(ASSISTANT, reply.text)
        self._state = ChatState.IDLE
        return turn

    def teardown(self) -> None:
        """Release the microphone if the view goes away mid-recording."""

        if self._state is ChatState.RECORDING:
            self._release_recorder()
            self._state = ChatState.IDLE


__all__ = [
    "ChatState",
    "ConversationController",
    "GREETING",
    "NO_AUDIO_REPLY",
    "QUICK_REPLIES",
    "VOICE_LABEL",
    "VOICE_PLACEHOLDER",
    "voice_label",
]
