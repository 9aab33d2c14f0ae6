"""Capture-device abstractions shared by the chat and check-in controllers."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple

LOGGER = logging.getLogger(__name__)


class MediaUnavailableError(RuntimeError):
    """Raised when a capture device cannot be acquired."""


class CaptureOutcome(str, Enum):
    FULL = "full"
    VIDEO_ONLY = "video_only"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CaptureCapability:
    has_video: bool
    has_audio: bool

    @property
    def outcome(self) -> CaptureOutcome:
        if self.has_video and self.has_audio:
            return CaptureOutcome.FULL
        if self.has_video:
            return CaptureOutcome.VIDEO_ONLY
        return CaptureOutcome.UNAVAILABLE


UNAVAILABLE = CaptureCapability(has_video=False, has_audio=False)


class Recorder(Protocol):
    def start(self) -> None: ...

    def stop(self) -> bytes:
        """Stop capturing and return the buffered audio as one encoded blob."""
        ...


class MediaStream(Protocol):
    has_audio: bool
    has_video: bool

    def recorder(self) -> Recorder: ...

    def snapshot(self) -> bytes:
        """Return the current video frame as JPEG bytes, or ``b""`` if none."""
        ...

    def stop(self) -> None:
        """Release every track held by the stream."""
        ...


class MediaCapture(Protocol):
    def acquire(self, *, audio: bool, video: bool) -> MediaStream: ...


@dataclass(frozen=True)
class AcquisitionStrategy:
    name: str
    audio: bool
    video: bool


CHECKIN_STRATEGIES: Tuple[AcquisitionStrategy, ...] = (
    AcquisitionStrategy("audio+video", audio=True, video=True),
    AcquisitionStrategy("video-only", audio=False, video=True),
)


def probe_capture(
    capture: MediaCapture,
    strategies: Sequence[AcquisitionStrategy] = CHECKIN_STRATEGIES,
) -> Tuple[CaptureCapability, Optional[MediaStream]]:
    """Try ``strategies`` in order and stop at the first stream acquired."""

    for strategy in strategies:
        try:
            stream = capture.acquire(audio=strategy.audio, video=strategy.video)
        except MediaUnavailableError as exc:
            LOGGER.warning("Capture strategy %s failed: %s", strategy.name, exc)
            continue
        capability = CaptureCapability(
            has_video=bool(strategy.video and stream.has_video),
            has_audio=bool(strategy.audio and stream.has_audio),
        )
        LOGGER.info("Capture strategy %s succeeded (%s)", strategy.name, capability.outcome.value)
        return capability, stream
    return UNAVAILABLE, None


def encode_base64(blob: bytes) -> str:
    if not blob:
        return ""
    return base64.b64encode(blob).decode("ascii")


__all__ = [
    "AcquisitionStrategy",
    "CHECKIN_STRATEGIES",
    "CaptureCapability",
    "CaptureOutcome",
    "MediaCapture",
    "MediaStream",
    "MediaUnavailableError",
    "Recorder",
    "UNAVAILABLE",
    "encode_base64",
    "probe_capture",
]
