"""Microphone capture source feeding 16-bit PCM frames to a buffer sink."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from errors import AudioCaptureError
from interfaces import BufferSink
from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceCaptureSource:
    """Restartable ``sounddevice`` input stream.

    The stream callback runs on PortAudio's audio thread; it converts the block
    and hands it to the installed sink without taking the start/stop lock.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        device_selector: Optional[Callable[[], Optional[int]]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._device_selector = device_selector
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self._sink: Optional[BufferSink] = None
        self.overflow_count = 0

    @property
    def running(self) -> bool:
        return self._running

    def install_buffer_sink(self, sink: BufferSink) -> None:
        self._sink = sink

    def remove_buffer_sink(self) -> None:
        self._sink = None

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise AudioCaptureError("sounddevice is not installed")
            device = self._device_selector() if self._device_selector else None
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    device=device,
                    callback=self._on_audio,
                )
                self._stream.start()
            except Exception as exc:
                self._close_stream()
                raise AudioCaptureError(f"could not open input device {device!r}: {exc}") from exc
            self._running = True
            logger.info("capture started on device %r", device)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            self._close_stream()
            logger.info("capture stopped")

    def _close_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception:
            logger.warning("failed to close input stream", exc_info=True)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        sink = self._sink
        if not self._running or sink is None:
            return
        if np is None:
            return
        if status:
            self.overflow_count += 1
        payload = np.asarray(indata, dtype=np.int16).tobytes()
        sink(
            AudioFrame(
                pcm16_bytes=payload,
                sample_rate=self.sample_rate,
                channels=self.channels,
                timestamp_ms=int(time.time() * 1000),
            )
        )
