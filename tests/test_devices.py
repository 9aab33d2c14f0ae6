import io
import wave

import numpy as np
import pytest

from lighthouse import devices
from lighthouse.media import MediaUnavailableError


@pytest.fixture(autouse=True)
def _free_device_lease():
    yield
    if devices._DEVICE_LEASE.locked():
        devices._DEVICE_LEASE.release()


class _FakeRawStream:
    def __init__(self, callback, **kwargs):
        self.callback = callback
        self.kwargs = kwargs
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


class _FakeSoundDevice:
    def __init__(self, *, usable=True):
        self.usable = usable
        self.streams = []

    def check_input_settings(self, **kwargs):
        if not self.usable:
            raise RuntimeError("Error querying device -1")

    def RawInputStream(self, **kwargs):  # noqa: N802
        stream = _FakeRawStream(**kwargs)
        self.streams.append(stream)
        return stream


class _FakeCamera:
    def __init__(self, *, opened=True, frame=None, frames=None):
        self.opened = opened
        self.frames = list(frames) if frames is not None else ([frame] if frame is not None else [])
        self.current = None
        self.released = False
        self.props = {}

    def isOpened(self):  # noqa: N802
        return self.opened

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def grab(self):
        if not self.frames:
            return False
        self.current = self.frames.pop(0)
        return True

    def retrieve(self):
        return (self.current is not None, self.current)

    def read(self):
        if not self.grab():
            return (False, None)
        return self.retrieve()

    def release(self):
        self.released = True


def test_encode_jpeg_rejects_empty_frames():
    assert devices.encode_jpeg(None) == b""
    assert devices.encode_jpeg(np.zeros((0, 0, 3), dtype=np.uint8)) == b""


def test_encode_jpeg_produces_jpeg_bytes():
    frame = np.zeros((8, 8, 3), dtype=np.uint8)

    blob = devices.encode_jpeg(frame)

    assert blob.startswith(b"\xff\xd8")


def test_pcm_to_wav_wraps_frames():
    pcm = b"\x00\x01" * 160

    blob = devices.pcm_to_wav(pcm, sample_rate=16000)

    with wave.open(io.BytesIO(blob), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnchannels() == 1
        assert wf.getsampwidth() == 2
        assert wf.readframes(wf.getnframes()) == pcm
    assert devices.pcm_to_wav(b"", sample_rate=16000) == b""


def test_microphone_recorder_buffers_blocks_into_wav():
    sd = _FakeSoundDevice()
    recorder = devices.MicrophoneRecorder(sd, sample_rate=8000)

    recorder.start()
    stream = sd.streams[0]
    assert stream.started
    assert stream.kwargs["dtype"] == "int16"
    stream.callback(b"\x01\x00\x02\x00", 2, None, None)
    stream.callback(b"\x03\x00", 1, None, None)

    blob = recorder.stop()

    assert stream.closed
    assert not recorder.running
    with wave.open(io.BytesIO(blob), "rb") as wf:
        assert wf.readframes(wf.getnframes()) == b"\x01\x00\x02\x00\x03\x00"


def test_microphone_recorder_without_audio_returns_empty_blob():
    recorder = devices.MicrophoneRecorder(_FakeSoundDevice(), sample_rate=8000)
    recorder.start()

    assert recorder.stop() == b""


def test_acquire_audio_only(monkeypatch):
    sd = _FakeSoundDevice()
    monkeypatch.setattr(devices, "_load_sounddevice", lambda: sd)

    stream = devices.LocalDeviceCapture(camera_index=0, sample_rate=16000).acquire(
        audio=True, video=False
    )

    assert stream.has_audio
    assert not stream.has_video
    assert stream.snapshot() == b""
    stream.stop()


def test_acquire_reports_missing_microphone(monkeypatch):
    monkeypatch.setattr(devices, "_load_sounddevice", lambda: _FakeSoundDevice(usable=False))

    with pytest.raises(MediaUnavailableError):
        devices.LocalDeviceCapture().acquire(audio=True, video=True)


def test_acquire_reports_closed_camera(monkeypatch):
    camera = _FakeCamera(opened=False)
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: camera)

    with pytest.raises(MediaUnavailableError):
        devices.LocalDeviceCapture(camera_index=3).acquire(audio=False, video=True)
    assert camera.released


def test_stream_snapshot_and_stop_release_camera(monkeypatch):
    camera = _FakeCamera(frame=np.zeros((4, 4, 3), dtype=np.uint8))
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: camera)
    monkeypatch.setattr(devices, "_load_sounddevice", lambda: _FakeSoundDevice())

    stream = devices.LocalDeviceCapture().acquire(audio=True, video=True)
    assert stream.snapshot().startswith(b"\xff\xd8")
    recorder = stream.recorder()
    recorder.start()

    stream.stop()

    assert camera.released
    assert not recorder.running
    assert not stream.has_video


def test_recorder_requires_audio_track():
    stream = devices.DeviceStream(camera=_FakeCamera())

    with pytest.raises(MediaUnavailableError):
        stream.recorder()


def test_acquire_nothing_is_an_error():
    with pytest.raises(MediaUnavailableError):
        devices.LocalDeviceCapture().acquire(audio=False, video=False)


def test_snapshot_skips_buffered_frames(monkeypatch):
    frames = [np.full((4, 4, 3), value, dtype=np.uint8) for value in (10, 20, 30)]
    camera = _FakeCamera(frames=frames)
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: camera)
    monkeypatch.setattr(devices, "encode_jpeg", lambda frame: bytes([int(frame[0, 0, 0])]))

    stream = devices.LocalDeviceCapture().acquire(audio=False, video=True)
    try:
        assert stream.snapshot() == bytes([30])
        assert camera.props[devices.cv2.CAP_PROP_BUFFERSIZE] == 1
    finally:
        stream.stop()


def test_second_session_cannot_open_devices_in_use(monkeypatch):
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: _FakeCamera())
    capture = devices.LocalDeviceCapture()

    first = capture.acquire(audio=False, video=True)
    with pytest.raises(MediaUnavailableError):
        devices.LocalDeviceCapture().acquire(audio=False, video=True)

    first.stop()
    second = capture.acquire(audio=False, video=True)
    second.stop()
    assert not devices._DEVICE_LEASE.locked()


def test_failed_acquire_releases_the_lease(monkeypatch):
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: _FakeCamera(opened=False))

    with pytest.raises(MediaUnavailableError):
        devices.LocalDeviceCapture().acquire(audio=False, video=True)

    assert not devices._DEVICE_LEASE.locked()


def test_stopping_twice_releases_once(monkeypatch):
    monkeypatch.setattr(devices.cv2, "VideoCapture", lambda index: _FakeCamera())
    stream = devices.LocalDeviceCapture().acquire(audio=False, video=True)

    stream.stop()
    stream.stop()

    assert not devices._DEVICE_LEASE.locked()
