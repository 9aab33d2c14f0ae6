from typing import List

from lighthouse.media import (
    CHECKIN_STRATEGIES,
    AcquisitionStrategy,
    CaptureCapability,
    CaptureOutcome,
    MediaUnavailableError,
    encode_base64,
    probe_capture,
)


class _Stream:
    def __init__(self, audio, video):
        self.has_audio = audio
        self.has_video = video


class _Capture:
    def __init__(self, failing: List[tuple]):
        self.failing = failing
        self.requests = []

    def acquire(self, *, audio, video):
        self.requests.append((audio, video))
        if (audio, video) in self.failing:
            raise MediaUnavailableError("denied")
        return _Stream(audio, video)


def test_capability_outcomes():
    assert CaptureCapability(True, True).outcome is CaptureOutcome.FULL
    assert CaptureCapability(True, False).outcome is CaptureOutcome.VIDEO_ONLY
    assert CaptureCapability(False, True).outcome is CaptureOutcome.UNAVAILABLE
    assert CaptureCapability(False, False).outcome is CaptureOutcome.UNAVAILABLE


def test_probe_stops_at_first_success():
    capture = _Capture(failing=[])

    capability, stream = probe_capture(capture)

    assert capability.outcome is CaptureOutcome.FULL
    assert stream is not None
    assert capture.requests == [(True, True)]


def test_probe_falls_back_in_order():
    capture = _Capture(failing=[(True, True)])

    capability, stream = probe_capture(capture, CHECKIN_STRATEGIES)

    assert capability.outcome is CaptureOutcome.VIDEO_ONLY
    assert stream.has_video
    assert capture.requests == [(True, True), (False, True)]


def test_probe_reports_unavailable_when_every_strategy_fails():
    capture = _Capture(failing=[(True, True), (False, True)])

    capability, stream = probe_capture(capture)

    assert capability.outcome is CaptureOutcome.UNAVAILABLE
    assert stream is None


def test_probe_accepts_custom_strategies():
    capture = _Capture(failing=[])
    strategies = [AcquisitionStrategy("audio-only", audio=True, video=False)]

    capability, _ = probe_capture(capture, strategies)

    assert capability == CaptureCapability(has_video=False, has_audio=True)


def test_encode_base64_empty_blob_is_empty_string():
    assert encode_base64(b"") == ""
    assert encode_base64(b"hi") == "aGk="
