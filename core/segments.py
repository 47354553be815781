from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np


def normalize_angle(angle: float) -> float:
    """Fold an angle in degrees from (-180, 180] into [-90, 90]."""
    if angle > 90.0:
        angle -= 180.0
    if angle < -90.0:
        angle += 180.0
    return angle


@dataclass(frozen=True)
class LineSegment:
    """A detected straight edge fragment in processing-space pixels."""

    x1: float
    y1: float
    x2: float
    y2: float

    @classmethod
    def from_array(cls, lines: np.ndarray | None) -> List["LineSegment"]:
        """Build segments from an (N, 4) or (N, 1, 4) array as returned by HoughLinesP."""
        if lines is None:
            return []
        arr = np.asarray(lines, dtype=np.float64).reshape(-1, 4)
        return [cls(float(x1), float(y1), float(x2), float(y2)) for x1, y1, x2, y2 in arr]

    @property
    def raw_angle(self) -> float:
        return math.degrees(math.atan2(self.y2 - self.y1, self.x2 - self.x1))

    @property
    def angle(self) -> float:
        return normalize_angle(self.raw_angle)

    @property
    def length(self) -> float:
        return math.hypot(self.x2 - self.x1, self.y2 - self.y1)

    @property
    def midpoint(self) -> Tuple[float, float]:
        return (self.x1 + self.x2) / 2.0, (self.y1 + self.y2) / 2.0

    @property
    def offset(self) -> float:
        """
        Signed distance from the origin to the infinite line through the segment.

        The line satisfies x*sin(theta) - y*cos(theta) = d, so collinear segments
        share the same d regardless of where along the line they sit.
        """
        cx, cy = self.midpoint
        rad = math.radians(self.angle)
        return cx * math.sin(rad) - cy * math.cos(rad)

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x1, self.y1, self.x2, self.y2))

    @property
    def is_degenerate(self) -> bool:
        return self.length == 0.0

    def scaled(self, sx: float, sy: float) -> "LineSegment":
        return LineSegment(self.x1 * sx, self.y1 * sy, self.x2 * sx, self.y2 * sy)

    def as_int_points(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        return (int(round(self.x1)), int(round(self.y1))), (int(round(self.x2)), int(round(self.y2)))
