from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List

from core.segments import LineSegment

logger = logging.getLogger(__name__)


class SegmentClass(str, Enum):
    HORIZON = "horizon"
    WALL = "wall"
    OTHER = "other"
    REJECTED = "rejected"  # non-finite or zero-length


@dataclass
class ClassifiedSegments:
    horizon: List[LineSegment] = field(default_factory=list)  # input order preserved
    walls: List[LineSegment] = field(default_factory=list)  # longest first
    rejected: int = 0  # non-finite or zero-length input


class SegmentClassifier:
    """
    Splits raw segments into horizon candidates and wall candidates by angle.
    """

    def __init__(
        self,
        max_horizon_angle: float = 45.0,
        wall_angle_tolerance: float = 15.0,
        max_walls: int = 10,
    ):
        """
        Args:
            max_horizon_angle: Segments flatter than this (degrees) are horizon candidates
            wall_angle_tolerance: Segments within this of vertical (degrees) are walls
            max_walls: Number of longest wall segments to report
        """
        self.max_horizon_angle = max_horizon_angle
        self.wall_angle_tolerance = wall_angle_tolerance
        self.max_walls = max_walls

    def label(self, seg: LineSegment) -> SegmentClass:
        if not seg.is_finite or seg.is_degenerate:
            return SegmentClass.REJECTED
        angle = seg.angle
        if abs(angle) < self.max_horizon_angle:
            return SegmentClass.HORIZON
        if abs(abs(angle) - 90.0) < self.wall_angle_tolerance:
            return SegmentClass.WALL
        return SegmentClass.OTHER

    def classify(self, segments: Iterable[LineSegment]) -> ClassifiedSegments:
        result = ClassifiedSegments()

        for seg in segments:
            kind = self.label(seg)
            if kind is SegmentClass.HORIZON:
                result.horizon.append(seg)
            elif kind is SegmentClass.WALL:
                result.walls.append(seg)
            elif kind is SegmentClass.REJECTED:
                result.rejected += 1

        if result.rejected:
            logger.debug("Skipped %d malformed segment(s)", result.rejected)

        result.walls.sort(key=lambda s: s.length, reverse=True)
        del result.walls[self.max_walls:]
        return result
