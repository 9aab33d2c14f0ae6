"""Timed camera + microphone emotion check-in."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from . import config
from .gateway import ANALYSIS_FALLBACK, UNABLE_TO_CAPTURE, GeminiGateway
from .media import (
    CHECKIN_STRATEGIES,
    AcquisitionStrategy,
    CaptureCapability,
    CaptureOutcome,
    MediaCapture,
    MediaStream,
    MediaUnavailableError,
    Recorder,
    encode_base64,
    probe_capture,
)

LOGGER = logging.getLogger(__name__)

CAMERA_ERROR = "Unable to access camera. Please check permissions or device connection."


class CheckinState(str, Enum):
    INITIALIZING = "initializing"
    READY = "ready"
    RECORDING = "recording"
    ANALYZING = "analyzing"
    RESULT = "result"
    ERROR = "error"


class Countdown:
    """Whole-second countdown; ``tick`` reports the single zero crossing."""

    def __init__(self, seconds: int) -> None:
        if seconds < 1:
            raise ValueError("seconds must be at least 1")
        self.seconds = seconds
        self.remaining = 0
        self.running = False

    def start(self) -> None:
        self.remaining = self.seconds
        self.running = True

    def cancel(self) -> None:
        self.running = False

    def tick(self) -> bool:
        if not self.running:
            return False
        self.remaining = max(self.remaining - 1, 0)
        if self.remaining == 0:
            self.running = False
            return True
        return False


@dataclass(frozen=True)
class CheckinPayload:
    image_base64: str = ""
    audio_base64: str = ""

    @property
    def empty(self) -> bool:
        return not self.image_base64 and not self.audio_base64


class EmotionCheckinController:
    def __init__(
        self,
        gateway: GeminiGateway,
        capture: MediaCapture,
        *,
        seconds: int | None = None,
        strategies: Sequence[AcquisitionStrategy] = CHECKIN_STRATEGIES,
    ) -> None:
        self.gateway = gateway
        self.capture = capture
        self.strategies = tuple(strategies)
        self.countdown = Countdown(seconds or config.CHECKIN_SECONDS)
        self.state = CheckinState.INITIALIZING
        self.capability: Optional[CaptureCapability] = None
        self.error: Optional[str] = None
        self.payload: Optional[CheckinPayload] = None
        self.result: Optional[str] = None
        self._stream: Optional[MediaStream] = None
        self._recorder: Optional[Recorder] = None

    @property
    def has_audio(self) -> bool:
        return bool(self.capability and self.capability.has_audio)

    def initialize(self) -> CheckinState:
        """Probe the devices once; later calls return the settled state."""

        if self.state is not CheckinState.INITIALIZING:
            return self.state
        capability, stream = probe_capture(self.capture, self.strategies)
        self.capability = capability
        if capability.outcome is CaptureOutcome.UNAVAILABLE:
            if stream is not None:
                stream.stop()
            self.error = CAMERA_ERROR
            self.state = CheckinState.ERROR
            LOGGER.error("Could not access camera; check-in disabled")
            return self.state
        self._stream = stream
        self.state = CheckinState.READY
        return self.state

    def start(self) -> bool:
        if self.state is not CheckinState.READY or self._stream is None:
            LOGGER.debug("Ignoring check-in start while %s", self.state.value)
            return False
        self.result = None
        self.payload = None
        self._recorder = None
        if self.has_audio:
            try:
                recorder = self._stream.recorder()
                recorder.start()
            except MediaUnavailableError as exc:
                LOGGER.warning("Failed to start audio capture, continuing with video: %s", exc)
            else:
                self._recorder = recorder
        self.countdown.start()
        self.state = CheckinState.RECORDING
        return True

    @property
    def remaining(self) -> int:
        return self.countdown.remaining

    def tick(self) -> bool:
        """Advance the countdown by one second; returns True when it stopped the recording."""

        if self.state is not CheckinState.RECORDING:
            return False
        if self.countdown.tick():
            self.stop()
            return True
        return False

    def stop(self) -> Optional[CheckinPayload]:
        if self.state is not CheckinState.RECORDING:
            return None
        self.countdown.cancel()

        audio = b""
        recorder, self._recorder = self._recorder, None
        if recorder is not None:
            try:
                audio = recorder.stop()
            except MediaUnavailableError as exc:
                LOGGER.warning("Audio capture could not be finalized: %s", exc)
        image = self._stream.snapshot() if self._stream is not None else b""

        self.payload = CheckinPayload(
            image_base64=encode_base64(image),
            audio_base64=encode_base64(audio),
        )
        self.state = CheckinState.ANALYZING
        return self.payload

    def analyze(self) -> Optional[str]:
        if self.state is not CheckinState.ANALYZING or self.payload is None:
            return None
        payload = self.payload
        if payload.empty:
            result = UNABLE_TO_CAPTURE
        else:
            try:
                result = self.gateway.analyze_sentiment(payload.image_base64, payload.audio_base64)
            except Exception:
                LOGGER.exception("Gateway raised during sentiment analysis")
                result = ANALYSIS_FALLBACK
        self.result = result
        self.state = CheckinState.RESULT
        return result

    def reset(self) -> bool:
        if self.state is not CheckinState.RESULT:
            return False
        self.result = None
        self.payload = None
        self.state = CheckinState.READY
        return True

    def teardown(self) -> None:
        recorder, self._recorder = self._recorder, None
        if recorder is not None:
            try:
                recorder.stop()
            except MediaUnavailableError as exc:
                LOGGER.debug("Discarding recorder during teardown: %s", exc)
        self.countdown.cancel()
        if self._stream is not None:
            self._stream.stop()
            self._stream = None


__all__ = [
    "CAMERA_ERROR",
    "CheckinPayload",
    "CheckinState",
    "Countdown",
    "EmotionCheckinController",
]
