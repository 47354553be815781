"""
Weighted-median line fitting for horizon estimation.

This module turns the winning cluster of collinear segments into a single
screen-space line from the length-weighted medians of angle and offset.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.clustering import ScoredCluster

logger = logging.getLogger(__name__)

# |cos(theta)| below this is treated as a vertical line
COS_EPSILON = 1e-3
# Score of an "excellent" horizon, as a share of the frame diagonal
EXPECTED_SCORE_RATIO = 0.8


@dataclass(frozen=True)
class FittedHorizonLine:
    """Represents a fitted horizon line before temporal smoothing."""
    y: float  # y at the horizontal centre of the frame
    angle: float  # weighted median angle (degrees)
    offset: float  # weighted median signed offset (pixels)
    confidence: float  # 0..1


def weighted_median(values: Sequence[float], weights: Sequence[float]) -> float:
    """
    Lower weighted median.

    Values are sorted ascending and their weights accumulated; the first value
    whose cumulative weight reaches half of the total weight is returned.
    No interpolation between neighbours.

    Args:
        values: Scalar samples
        weights: Non-negative weights, one per sample

    Returns:
        The weighted median, or 0.0 for empty input
    """
    if len(values) != len(weights):
        raise ValueError(f"values and weights differ in length: {len(values)} != {len(weights)}")
    if len(values) == 0:
        return 0.0
    if len(values) == 1:
        return float(values[0])

    vals = np.asarray(values, dtype=np.float64)
    order = np.argsort(vals, kind="stable")
    cumulative = np.cumsum(np.asarray(weights, dtype=np.float64)[order])
    half = cumulative[-1] / 2.0

    idx = int(np.searchsorted(cumulative, half, side="left"))
    idx = min(idx, len(vals) - 1)
    return float(vals[order][idx])


def line_y_at(x: float, angle_deg: float, offset: float, fallback: float) -> float:
    """
    Solve x*sin(theta) - y*cos(theta) = d for y.

    Returns the fallback when the line is (numerically) vertical.
    """
    rad = math.radians(angle_deg)
    cos_t = math.cos(rad)
    if abs(cos_t) <= COS_EPSILON:
        return fallback
    return (x * math.sin(rad) - offset) / cos_t


class RobustLineFitter:
    """
    Fits a single horizon line to the best-scoring collinear cluster.
    """

    def __init__(self, expected_score_ratio: float = EXPECTED_SCORE_RATIO):
        """
        Args:
            expected_score_ratio: Reference score (times the frame diagonal) that
                maps to full confidence
        """
        self.expected_score_ratio = expected_score_ratio

    def fit(self, scored: ScoredCluster, width: int, height: int) -> FittedHorizonLine:
        """
        Fit a horizon line.

        Args:
            scored: Selected cluster with its score
            width: Processing frame width (pixels)
            height: Processing frame height (pixels)

        Returns:
            FittedHorizonLine evaluated at x = width / 2
        """
        segments = scored.cluster.segments
        weights = [s.length for s in segments]

        median_angle = weighted_median([s.angle for s in segments], weights)
        median_offset = weighted_median([s.offset for s in segments], weights)

        center_y = line_y_at(width / 2.0, median_angle, median_offset, fallback=height / 2.0)

        diagonal = math.sqrt(width * width + height * height)
        confidence = min(max(scored.score / (diagonal * self.expected_score_ratio), 0.0), 1.0)

        logger.debug(
            "Fitted horizon: y=%.1f angle=%.2f offset=%.1f confidence=%.2f (%d segments)",
            center_y,
            median_angle,
            median_offset,
            confidence,
            len(segments),
        )
        return FittedHorizonLine(y=center_y, angle=median_angle, offset=median_offset, confidence=confidence)
