from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import cv2
import numpy as np

from core.adaptive_params import AdaptiveParams, compute_adaptive_params
from core.config import DetectorConfig
from core.segments import LineSegment

logger = logging.getLogger(__name__)


@dataclass
class DetectionLayers:
    """Intermediate images of one detector pass, kept for the debug views."""

    gray: np.ndarray
    edges: np.ndarray
    segments: List[LineSegment] = field(default_factory=list)


class EdgeLineDetector:
    """Canny edges followed by probabilistic Hough, with resolution-scaled thresholds."""

    def __init__(self, config: Optional[DetectorConfig] = None) -> None:
        self.config = config or DetectorConfig()

    def preprocess(self, frame: np.ndarray) -> np.ndarray:
        """Grayscale + Gaussian blur."""
        if frame.ndim == 3:
            code = cv2.COLOR_BGRA2GRAY if frame.shape[2] == 4 else cv2.COLOR_BGR2GRAY
            gray = cv2.cvtColor(frame, code)
        else:
            gray = frame
        k = self.config.blur_kernel
        if k > 1:
            gray = cv2.GaussianBlur(gray, (k, k), 0)
        return gray

    def edges(self, gray: np.ndarray, params: AdaptiveParams) -> np.ndarray:
        return cv2.Canny(gray, params.canny_low, params.canny_high)

    def detect_layers(self, frame: np.ndarray, params: Optional[AdaptiveParams] = None) -> Optional[DetectionLayers]:
        """Same as detect(), but also returns the grayscale and edge images. None for an empty frame."""
        if frame is None or frame.size == 0:
            logger.debug("Empty frame passed to line detector")
            return None

        h, w = frame.shape[:2]
        if params is None:
            params = compute_adaptive_params(w, h, detector_cfg=self.config)

        gray = self.preprocess(frame)
        edges = self.edges(gray, params)
        lines = cv2.HoughLinesP(
            edges,
            1,
            np.pi / 180,
            int(round(params.hough_threshold)),
            minLineLength=params.hough_min_length,
            maxLineGap=params.hough_max_gap,
        )
        segments = LineSegment.from_array(lines)
        logger.debug("Detected %d segment(s) in %dx%d frame", len(segments), w, h)
        return DetectionLayers(gray=gray, edges=edges, segments=segments)

    def detect(self, frame: np.ndarray, params: Optional[AdaptiveParams] = None) -> List[LineSegment]:
        """
        Detect straight segments in a frame.

        Args:
            frame: BGR, BGRA or grayscale image at processing resolution
            params: Thresholds for this resolution; computed from the frame if omitted

        Returns:
            List of LineSegment in frame pixel coordinates
        """
        layers = self.detect_layers(frame, params)
        if layers is None:
            return []
        return layers.segments
