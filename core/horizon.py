"""
Horizon estimation from per-frame line segments.

Pipeline per call:
    1. Adaptive parameters from the frame size
    2. Classification into horizon and wall candidates
    3. Clustering by angle (parallel segments)
    4. Clustering by signed offset (collinear segments)
    5. Scoring and selection of the best cluster
    6. Weighted-median line fit at the horizontal centre
    7. Median smoothing of y and angle across frames

The estimator keeps no state besides its smoothing buffers. It is not safe to
share one instance between threads without external locking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from core.adaptive_params import AdaptiveParams, compute_adaptive_params
from core.classifier import SegmentClassifier
from core.clustering import ClusterScorer, collinear_clusters
from core.config import DetectorConfig, HorizonConfig
from core.line_fitting import RobustLineFitter
from core.segments import LineSegment
from core.smoothing import TemporalSmoother

logger = logging.getLogger(__name__)

CHANNEL_Y = "y"
CHANNEL_ANGLE = "angle"


@dataclass(frozen=True)
class HorizonEstimate:
    y: float  # smoothed y at the horizontal centre (processing pixels)
    angle: float  # smoothed tilt (degrees, [-90, 90])
    offset: float  # weighted median signed offset of the winning cluster
    segments: Tuple[LineSegment, ...]
    confidence: float  # 0..1
    segment_count: int
    total_length: float
    raw_y: float  # before smoothing
    raw_angle: float  # before smoothing
    score: float


@dataclass(frozen=True)
class FrameAnalysis:
    """Result of one estimator call. `horizon` is None when nothing was found."""

    horizon: Optional[HorizonEstimate]
    walls: Tuple[LineSegment, ...]
    params: Optional[AdaptiveParams]  # None for an empty frame
    candidate_count: int = 0
    rejected: int = 0

    @property
    def has_horizon(self) -> bool:
        return self.horizon is not None


class HorizonEstimator:
    """Estimates a temporally smoothed horizon line from raw segments."""

    def __init__(
        self,
        config: Optional[HorizonConfig] = None,
        detector_config: Optional[DetectorConfig] = None,
    ) -> None:
        self.config = config or HorizonConfig()
        self.detector_config = detector_config or DetectorConfig()

        self.classifier = SegmentClassifier(
            max_horizon_angle=self.config.max_horizon_angle,
            wall_angle_tolerance=self.config.wall_angle_tolerance,
            max_walls=self.config.max_walls,
        )
        self.scorer = ClusterScorer()
        self.fitter = RobustLineFitter()
        self.smoother = TemporalSmoother(capacity=self.config.smooth_frames)

    def reset(self) -> None:
        """Drop smoothing history, e.g. after a scene cut or camera switch."""
        self.smoother.reset()
        logger.debug("Horizon smoothing buffers cleared")

    def estimate(
        self,
        segments: Iterable[LineSegment],
        width: int,
        height: int,
        params: Optional[AdaptiveParams] = None,
    ) -> FrameAnalysis:
        """
        Args:
            segments: Raw segments in processing coordinates
            width: Processing frame width
            height: Processing frame height
            params: Thresholds already computed for this size, recomputed if omitted
        """
        if params is None:
            params = compute_adaptive_params(width, height, self.config, self.detector_config)
        classified = self.classifier.classify(segments)
        walls = tuple(classified.walls)

        def empty(reason: str) -> FrameAnalysis:
            logger.debug("No horizon: %s", reason)
            return FrameAnalysis(
                horizon=None,
                walls=walls,
                params=params,
                candidate_count=len(classified.horizon),
                rejected=classified.rejected,
            )

        if not classified.horizon:
            return empty("no horizon candidates")

        clusters = collinear_clusters(
            classified.horizon,
            angle_tolerance=params.cluster_tolerance_angle,
            offset_tolerance=params.cluster_tolerance_offset,
            min_size=self.config.min_cluster_segments,
        )
        best = self.scorer.select_best(clusters)
        if best is None:
            return empty(f"no cluster with >= {self.config.min_cluster_segments} segment(s)")

        line = self.fitter.fit(best, width, height)

        # Buffers only advance on frames where a horizon was observed
        smooth_y = self.smoother.smooth(CHANNEL_Y, line.y)
        smooth_angle = self.smoother.smooth(CHANNEL_ANGLE, line.angle)

        horizon = HorizonEstimate(
            y=smooth_y,
            angle=smooth_angle,
            offset=line.offset,
            segments=best.cluster.segments,
            confidence=line.confidence,
            segment_count=best.segment_count,
            total_length=best.total_length,
            raw_y=line.y,
            raw_angle=line.angle,
            score=best.score,
        )
        return FrameAnalysis(
            horizon=horizon,
            walls=walls,
            params=params,
            candidate_count=len(classified.horizon),
            rejected=classified.rejected,
        )
