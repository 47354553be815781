from __future__ import annotations

import logging
import threading
from typing import Optional

import numpy as np

from core.adaptive_params import compute_adaptive_params
from core.classifier import SegmentClassifier
from core.config import DetectorConfig, HorizonConfig
from core.horizon import FrameAnalysis, HorizonEstimator
from core.line_detector import DetectionLayers, EdgeLineDetector

logger = logging.getLogger(__name__)


class FrameProcessor:
    """
    Runs line detection and horizon estimation on processing-resolution frames.

    One instance per camera. Calls are serialized with a lock because the
    estimator's smoothing buffers are shared mutable state.
    """

    def __init__(
        self,
        horizon_config: Optional[HorizonConfig] = None,
        detector_config: Optional[DetectorConfig] = None,
    ) -> None:
        self.horizon_config = horizon_config or HorizonConfig()
        self.detector_config = detector_config or DetectorConfig()
        self.detector = EdgeLineDetector(self.detector_config)
        self.estimator = HorizonEstimator(self.horizon_config, self.detector_config)
        self._lock = threading.Lock()
        self.frames_processed = 0
        self.frames_with_horizon = 0
        # Grayscale, edges and raw segments of the most recent frame
        self.last_layers: Optional[DetectionLayers] = None

    @property
    def classifier(self) -> SegmentClassifier:
        return self.estimator.classifier

    def process(self, frame: np.ndarray) -> FrameAnalysis:
        if frame is None or frame.size == 0:
            logger.warning("Empty frame skipped")
            with self._lock:
                self.frames_processed += 1
                self.last_layers = None
            return FrameAnalysis(horizon=None, walls=(), params=None)

        h, w = frame.shape[:2]
        params = compute_adaptive_params(w, h, self.horizon_config, self.detector_config)
        layers = self.detector.detect_layers(frame, params)

        with self._lock:
            analysis = self.estimator.estimate(layers.segments, w, h, params)
            self.last_layers = layers
            self.frames_processed += 1
            if analysis.has_horizon:
                self.frames_with_horizon += 1
        return analysis

    def reset(self) -> None:
        with self._lock:
            self.estimator.reset()
            self.frames_processed = 0
            self.frames_with_horizon = 0
            self.last_layers = None
        logger.info("FrameProcessor reset")

    @property
    def detection_rate(self) -> float:
        if self.frames_processed == 0:
            return 0.0
        return self.frames_with_horizon / self.frames_processed
