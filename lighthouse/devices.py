"""Local camera and microphone access backing :class:`~lighthouse.media.MediaCapture`."""

from __future__ import annotations

import io
import logging
import wave
from threading import Lock
from typing import Any, Callable, List, Optional

import cv2

from . import config
from .media import MediaUnavailableError

LOGGER = logging.getLogger(__name__)

JPEG_QUALITY = 80
# Frames a webcam driver may queue before the one we want.
BUFFERED_FRAMES = 5


def _load_sounddevice() -> Any:
    # PortAudio is resolved when sounddevice is imported, so a machine without
    # an audio stack only fails once a microphone is actually requested.
    try:
        import sounddevice
    except (ImportError, OSError) as exc:
        raise MediaUnavailableError(f"Audio backend unavailable: {exc}") from exc
    return sounddevice


def encode_jpeg(frame: Any) -> bytes:
    """Encode a BGR frame as JPEG; frames with zero dimensions yield ``b""``."""

    shape = getattr(frame, "shape", None)
    if frame is None or not shape or len(shape) < 2 or shape[0] == 0 or shape[1] == 0:
        LOGGER.warning("Video frame not ready or has 0 dimensions")
        return b""
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), JPEG_QUALITY])
    if not ok:
        LOGGER.warning("JPEG encoding failed for frame of shape %s", shape)
        return b""
    return buffer.tobytes()


def pcm_to_wav(frames: bytes, *, sample_rate: int, channels: int = 1) -> bytes:
    if not frames:
        return b""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(frames)
    return buf.getvalue()


class MicrophoneRecorder:
    """Buffers 16-bit PCM from the default input device until stopped."""

    def __init__(self, sounddevice: Any, *, sample_rate: int, channels: int = 1) -> None:
        self._sd = sounddevice
        self.sample_rate = sample_rate
        self.channels = channels
        self._chunks: List[bytes] = []
        self._stream: Any = None
        self._lock = Lock()

    @property
    def running(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        with self._lock:
            if self._stream is not None:
                return
            self._chunks = []
            try:
                stream = self._sd.RawInputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    callback=self._on_block,
                )
                stream.start()
            except Exception as exc:
                raise MediaUnavailableError(f"Microphone recording failed: {exc}") from exc
            self._stream = stream
            LOGGER.debug("Microphone recording started.")

    def stop(self) -> bytes:
        with self._lock:
            stream, self._stream = self._stream, None
            chunks, self._chunks = self._chunks, []
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:
                LOGGER.warning("Closing microphone stream failed: %s", exc)
            LOGGER.debug("Microphone recording stopped (%d blocks).", len(chunks))
        return pcm_to_wav(b"".join(chunks), sample_rate=self.sample_rate, channels=self.channels)

    def _on_block(self, indata, frames, time, status) -> None:  # noqa: ANN001
        if status:  # pragma: no cover
            LOGGER.warning("Microphone status: %s", status)
        self._chunks.append(bytes(indata))


class DeviceStream:
    def __init__(
        self,
        *,
        camera: Any = None,
        sounddevice: Any = None,
        sample_rate: int = 16_000,
        on_release: Optional[Callable[[], None]] = None,
    ) -> None:
        self._camera = camera
        self._sd = sounddevice
        self.sample_rate = sample_rate
        self.has_video = camera is not None
        self.has_audio = sounddevice is not None
        self._recorder: Optional[MicrophoneRecorder] = None
        self._on_release = on_release

    def recorder(self) -> MicrophoneRecorder:
        if self._sd is None:
            raise MediaUnavailableError("Stream has no audio track")
        self._recorder = MicrophoneRecorder(self._sd, sample_rate=self.sample_rate)
        return self._recorder

    def snapshot(self) -> bytes:
        """Encode the newest camera frame, skipping whatever the driver buffered."""

        if self._camera is None:
            return b""
        grabbed = False
        for _ in range(BUFFERED_FRAMES):
            if not self._camera.grab():
                break
            grabbed = True
        if grabbed:
            ok, frame = self._camera.retrieve()
        else:
            ok, frame = self._camera.read()
        if not ok:
            LOGGER.warning("Camera returned no frame")
            return b""
        return encode_jpeg(frame)

    def stop(self) -> None:
        if self._recorder is not None and self._recorder.running:
            self._recorder.stop()
        self._recorder = None
        if self._camera is not None:
            self._camera.release()
            self._camera = None
        self.has_video = False
        self.has_audio = False
        release, self._on_release = self._on_release, None
        if release is not None:
            release()


# One camera and one microphone per host: a stream holds the lease until stopped.
_DEVICE_LEASE = Lock()


class LocalDeviceCapture:
    """Opens the machine's camera (OpenCV) and microphone (sounddevice).

    Only one stream may be open at a time across the whole process; a second
    browser session asking for devices gets ``MediaUnavailableError`` until the
    first stream is stopped.
    """

    def __init__(self, *, camera_index: int | None = None, sample_rate: int | None = None) -> None:
        self.camera_index = config.CAMERA_INDEX if camera_index is None else camera_index
        self.sample_rate = sample_rate or config.AUDIO_SAMPLE_RATE

    def acquire(self, *, audio: bool, video: bool) -> DeviceStream:
        if not audio and not video:
            raise MediaUnavailableError("Nothing requested")
        if not _DEVICE_LEASE.acquire(blocking=False):
            raise MediaUnavailableError("Capture devices are in use by another session")
        try:
            return self._open(audio=audio, video=video)
        except BaseException:
            _DEVICE_LEASE.release()
            raise

    def _open(self, *, audio: bool, video: bool) -> DeviceStream:
        sd = None
        if audio:
            sd = _load_sounddevice()
            try:
                sd.check_input_settings(samplerate=self.sample_rate, channels=1, dtype="int16")
            except Exception as exc:
                raise MediaUnavailableError(f"Microphone unavailable: {exc}") from exc

        camera = None
        if video:
            camera = cv2.VideoCapture(self.camera_index)
            if camera is None or not camera.isOpened():
                if camera is not None:
                    camera.release()
                raise MediaUnavailableError(f"Camera {self.camera_index} could not be opened")
            camera.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        return DeviceStream(
            camera=camera,
            sounddevice=sd,
            sample_rate=self.sample_rate,
            on_release=_DEVICE_LEASE.release,
        )


__all__ = [
    "DeviceStream",
    "LocalDeviceCapture",
    "MicrophoneRecorder",
    "encode_jpeg",
    "pcm_to_wav",
]
