"""
Resolution-dependent thresholds.

Detector and clustering tolerances are tuned for a 640x480 processing frame;
this module rescales them for whatever resolution the caller actually uses.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from core.config import DetectorConfig, HorizonConfig

REFERENCE_WIDTH = 640
REFERENCE_HEIGHT = 480

# Offset tolerance for collinear grouping, as a share of the frame diagonal
OFFSET_TOLERANCE_RATIO = 0.03
MIN_OFFSET_TOLERANCE = 10.0


@dataclass(frozen=True)
class AdaptiveParams:
    cluster_tolerance_angle: float
    cluster_tolerance_offset: float
    diagonal: float
    scale: float
    canny_low: float
    canny_high: float
    hough_threshold: float
    hough_min_length: float
    hough_max_gap: float


def compute_adaptive_params(
    width: int,
    height: int,
    horizon_cfg: Optional[HorizonConfig] = None,
    detector_cfg: Optional[DetectorConfig] = None,
) -> AdaptiveParams:
    """
    Derive clustering and detector thresholds for a frame of the given size.

    Args:
        width: Processing frame width (pixels)
        height: Processing frame height (pixels)
        horizon_cfg: Estimator options (angle tolerance)
        detector_cfg: Detector options before scaling

    Returns:
        AdaptiveParams with every threshold clamped to its floor
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Frame size must be positive, got {width}x{height}")

    horizon_cfg = horizon_cfg or HorizonConfig()
    detector_cfg = detector_cfg or DetectorConfig()

    diagonal = math.sqrt(width * width + height * height)
    scale = min(width / REFERENCE_WIDTH, height / REFERENCE_HEIGHT)

    return AdaptiveParams(
        cluster_tolerance_angle=horizon_cfg.cluster_angle_tolerance,
        cluster_tolerance_offset=max(MIN_OFFSET_TOLERANCE, diagonal * OFFSET_TOLERANCE_RATIO),
        diagonal=diagonal,
        scale=scale,
        # Lowered Canny thresholds keep dark, low-contrast edges
        canny_low=max(20.0, detector_cfg.canny_low * scale * 0.7),
        canny_high=max(60.0, detector_cfg.canny_high * scale * 0.8),
        hough_threshold=max(20.0, min(detector_cfg.hough_threshold, math.sqrt(width * height) * 0.15)),
        hough_min_length=max(20.0, min(detector_cfg.hough_min_length, diagonal * 0.08)),
        hough_max_gap=max(5.0, min(detector_cfg.hough_max_gap, width * 0.05)),
    )
