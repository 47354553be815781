from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".webp"}

Source = Union[str, int]


def downscale(frame: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Resize a frame to the processing resolution (width, height)."""
    w, h = size
    if frame.shape[1] == w and frame.shape[0] == h:
        return frame
    return cv2.resize(frame, (w, h), interpolation=cv2.INTER_AREA)


class IntervalThrottle:
    """Lets a frame through at most once per interval (milliseconds)."""

    def __init__(self, interval_ms: float) -> None:
        self.interval_ms = interval_ms
        self._last_ms: Optional[float] = None

    def ready(self, now_ms: Optional[float] = None) -> bool:
        if now_ms is None:
            now_ms = time.monotonic() * 1000.0
        if self._last_ms is None or now_ms - self._last_ms >= self.interval_ms:
            self._last_ms = now_ms
            return True
        return False

    def reset(self) -> None:
        self._last_ms = None


class FrameSource:
    """
    Frames from a video file, camera index, still image or numbered image
    sequence (printf pattern such as ``frames/img_%04d.png``).
    """

    def __init__(self, source: Source, process_size: Optional[Tuple[int, int]] = None) -> None:
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        self.source = source
        self.process_size = process_size

        self._capture: Optional[cv2.VideoCapture] = None
        self._image: Optional[np.ndarray] = None

    @property
    def is_image(self) -> bool:
        if not isinstance(self.source, str) or "%" in self.source:
            return False
        return Path(self.source).suffix.lower() in IMAGE_SUFFIXES

    @property
    def fps(self) -> float:
        if self._capture is None:
            return 0.0
        return float(self._capture.get(cv2.CAP_PROP_FPS) or 0.0)

    def open(self) -> "FrameSource":
        if self.is_image:
            self._image = cv2.imread(str(self.source), cv2.IMREAD_COLOR)
            if self._image is None:
                raise IOError(f"Cannot read image {self.source}")
            logger.info("Opened image %s (%dx%d)", self.source, self._image.shape[1], self._image.shape[0])
            return self

        self._capture = cv2.VideoCapture(self.source)
        if not self._capture.isOpened():
            self._capture = None
            raise IOError(f"Cannot open video source {self.source!r}")
        logger.info("Opened video source %r (fps=%.1f)", self.source, self.fps)
        return self

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
        self._image = None

    def __enter__(self) -> "FrameSource":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.release()

    def frames(self) -> Iterator[Tuple[float, np.ndarray, np.ndarray]]:
        """
        Yield (timestamp_ms, original_frame, processing_frame).

        Timestamps come from the container when available, otherwise from the
        frame index and FPS.
        """
        if self._image is not None:
            yield 0.0, self._image, self._scaled(self._image)
            return
        if self._capture is None:
            raise RuntimeError("FrameSource is not open")

        index = 0
        fps = self.fps
        while True:
            ok, frame = self._capture.read()
            if not ok or frame is None:
                logger.info("Video source %r exhausted after %d frame(s)", self.source, index)
                break
            ts = float(self._capture.get(cv2.CAP_PROP_POS_MSEC) or 0.0)
            if ts <= 0.0 and fps > 0:
                ts = index * 1000.0 / fps
            index += 1
            yield ts, frame, self._scaled(frame)

    def _scaled(self, frame: np.ndarray) -> np.ndarray:
        if self.process_size is None:
            return frame
        return downscale(frame, self.process_size)
