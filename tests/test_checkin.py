from __future__ import annotations

import base64
from typing import List, Optional

import pytest

from lighthouse.checkin import (
    CAMERA_ERROR,
    CheckinPayload,
    CheckinState,
    Countdown,
    EmotionCheckinController,
)
from lighthouse.gateway import ANALYSIS_FALLBACK, UNABLE_TO_CAPTURE
from lighthouse.media import MediaUnavailableError


class _FakeGateway:
    def __init__(self, result: object = "You look calm.") -> None:
        self.result = result
        self.calls: List[tuple] = []

    def analyze_sentiment(self, image_base64: str = "", audio_base64: str = "") -> str:
        self.calls.append((image_base64, audio_base64))
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


class _FakeRecorder:
    def __init__(self, blob: bytes) -> None:
        self.blob = blob
        self.start_calls = 0
        self.stop_calls = 0

    def start(self) -> None:
        self.start_calls += 1

    def stop(self) -> bytes:
        self.stop_calls += 1
        return self.blob


class _FakeStream:
    def __init__(self, *, audio: bool, frame: bytes = b"jpeg", blob: bytes = b"wav") -> None:
        self.has_audio = audio
        self.has_video = True
        self.frame = frame
        self.recorders: List[_FakeRecorder] = []
        self._blob = blob
        self.snapshots = 0
        self.stopped = False

    def recorder(self) -> _FakeRecorder:
        recorder = _FakeRecorder(self._blob)
        self.recorders.append(recorder)
        return recorder

    def snapshot(self) -> bytes:
        self.snapshots += 1
        return self.frame

    def stop(self) -> None:
        self.stopped = True


class _FakeCapture:
    def __init__(self, *, allow_audio: bool = True, allow_video: bool = True, **stream_kwargs) -> None:
        self.allow_audio = allow_audio
        self.allow_video = allow_video
        self.stream_kwargs = stream_kwargs
        self.requests: List[tuple] = []
        self.stream: Optional[_FakeStream] = None

    def acquire(self, *, audio: bool, video: bool) -> _FakeStream:
        self.requests.append((audio, video))
        if (audio and not self.allow_audio) or (video and not self.allow_video):
            raise MediaUnavailableError("NotAllowedError")
        self.stream = _FakeStream(audio=audio, **self.stream_kwargs)
        return self.stream


def _b64(blob: bytes) -> str:
    return base64.b64encode(blob).decode("ascii")


def _ready(capture: _FakeCapture, gateway: Optional[_FakeGateway] = None, seconds: int = 5):
    controller = EmotionCheckinController(gateway or _FakeGateway(), capture, seconds=seconds)
    controller.initialize()
    return controller


def test_countdown_reports_zero_exactly_once() -> None:
    countdown = Countdown(5)
    countdown.start()

    observed = []
    fired = []
    for _ in range(8):
        fired.append(countdown.tick())
        observed.append(countdown.remaining)

    assert observed[:5] == [4, 3, 2, 1, 0]
    assert fired.count(True) == 1
    assert fired[4] is True
    assert not countdown.running


def test_countdown_rejects_non_positive_duration() -> None:
    with pytest.raises(ValueError):
        Countdown(0)


def test_initialize_with_camera_and_microphone() -> None:
    capture = _FakeCapture()
    controller = _ready(capture)

    assert controller.state is CheckinState.READY
    assert controller.has_audio
    assert capture.requests == [(True, True)]


def test_initialize_falls_back_to_video_only() -> None:
    capture = _FakeCapture(allow_audio=False)
    controller = _ready(capture)

    assert controller.state is CheckinState.READY
    assert not controller.has_audio
    assert capture.requests == [(True, True), (False, True)]


def test_initialize_without_any_device_is_an_error() -> None:
    capture = _FakeCapture(allow_audio=False, allow_video=False)
    controller = _ready(capture)

    assert controller.state is CheckinState.ERROR
    assert controller.error == CAMERA_ERROR
    assert controller.start() is False
    assert controller.state is CheckinState.ERROR


def test_initialize_probes_only_once() -> None:
    capture = _FakeCapture()
    controller = _ready(capture)

    controller.initialize()

    assert capture.requests == [(True, True)]


def test_countdown_stops_recording_once_and_captures_at_stop() -> None:
    capture = _FakeCapture(frame=b"frame", blob=b"audio")
    controller = _ready(capture, seconds=5)

    assert controller.start() is True
    assert controller.state is CheckinState.RECORDING
    assert controller.remaining == 5
    stream = capture.stream
    assert stream.recorders[0].start_calls == 1

    for _ in range(4):
        assert controller.tick() is False
    assert controller.remaining == 1
    assert stream.snapshots == 0

    assert controller.tick() is True
    assert controller.state is CheckinState.ANALYZING
    assert controller.tick() is False
    assert stream.snapshots == 1
    assert stream.recorders[0].stop_calls == 1
    assert controller.payload == CheckinPayload(_b64(b"frame"), _b64(b"audio"))


def test_full_round_trip_reports_result() -> None:
    gateway = _FakeGateway("You seem a bit tired but steady.")
    controller = _ready(_FakeCapture(frame=b"frame", blob=b"audio"), gateway=gateway, seconds=1)
    controller.start()
    controller.tick()

    assert controller.analyze() == "You seem a bit tired but steady."
    assert controller.state is CheckinState.RESULT
    assert gateway.calls == [(_b64(b"frame"), _b64(b"audio"))]


def test_video_only_check_in_sends_image_without_audio() -> None:
    gateway = _FakeGateway()
    capture = _FakeCapture(allow_audio=False, frame=b"frame")
    controller = _ready(capture, gateway=gateway, seconds=1)

    controller.start()
    controller.tick()
    controller.analyze()

    assert capture.stream.recorders == []
    assert gateway.calls == [(_b64(b"frame"), "")]


def test_empty_capture_skips_gateway() -> None:
    gateway = _FakeGateway()
    controller = _ready(_FakeCapture(allow_audio=False, frame=b""), gateway=gateway, seconds=1)

    controller.start()
    controller.tick()

    assert controller.payload.empty
    assert controller.analyze() == UNABLE_TO_CAPTURE
    assert gateway.calls == []
    assert controller.state is CheckinState.RESULT


def test_gateway_exception_becomes_analysis_fallback() -> None:
    controller = _ready(_FakeCapture(), gateway=_FakeGateway(RuntimeError("boom")), seconds=1)
    controller.start()
    controller.tick()

    assert controller.analyze() == ANALYSIS_FALLBACK


def test_manual_stop_cancels_countdown() -> None:
    capture = _FakeCapture()
    controller = _ready(capture, seconds=5)
    controller.start()
    controller.tick()

    assert controller.stop() is not None
    assert controller.tick() is False
    assert capture.stream.snapshots == 1


def test_reset_returns_to_ready_without_reprobing() -> None:
    capture = _FakeCapture()
    controller = _ready(capture, seconds=1)
    controller.start()
    controller.tick()
    controller.analyze()

    assert controller.reset() is True
    assert controller.state is CheckinState.READY
    assert controller.result is None
    assert capture.requests == [(True, True)]
    assert controller.start() is True


def test_start_outside_ready_is_ignored() -> None:
    controller = _ready(_FakeCapture(), seconds=5)
    controller.start()

    assert controller.start() is False
    assert controller.reset() is False


def test_teardown_releases_stream() -> None:
    capture = _FakeCapture()
    controller = _ready(capture, seconds=5)
    controller.start()

    controller.teardown()

    assert capture.stream.stopped
    assert capture.stream.recorders[0].stop_calls == 1
