"""
Grouping of line segments and selection of the dominant group.

Segments are first grouped by angle (parallel lines), then each angle group is
split by signed offset (collinear lines). Every collinear group is scored and
the best one is handed to the line fitter.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from core.segments import LineSegment

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Average angle at which the horizontal bonus reaches zero (degrees)
ANGLE_BONUS_SPAN = 45.0
# Score = length * sqrt(count) * (BASE_WEIGHT + ANGLE_WEIGHT * bonus)
BASE_WEIGHT = 0.7
ANGLE_WEIGHT = 0.3


def cluster_by_property(
    items: Sequence[T],
    key: Callable[[T], float],
    tolerance: float,
    min_size: int = 1,
) -> List[List[T]]:
    """
    Seed-anchored single-pass grouping.

    Items are visited in input order. Each unassigned item seeds a new cluster
    and pulls in every later unassigned item whose property differs from the
    seed's by strictly less than the tolerance. Membership is measured against
    the seed only, not transitively through other members.

    Args:
        items: Items to group
        key: Accessor for the scalar property
        tolerance: Maximum (exclusive) distance to the seed
        min_size: Clusters smaller than this are dropped

    Returns:
        List of clusters, each a list of items in input order
    """
    values = [key(item) for item in items]
    used = [False] * len(items)
    clusters: List[List[T]] = []

    for i, seed_value in enumerate(values):
        if used[i]:
            continue
        used[i] = True
        cluster = [items[i]]

        for j in range(i + 1, len(items)):
            if used[j]:
                continue
            if abs(seed_value - values[j]) < tolerance:
                cluster.append(items[j])
                used[j] = True

        if len(cluster) >= min_size:
            clusters.append(cluster)

    return clusters


@dataclass(frozen=True)
class Cluster:
    """A non-empty group of segments judged similar in one property."""

    segments: Tuple[LineSegment, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise ValueError("Cluster must contain at least one segment")

    @property
    def total_length(self) -> float:
        return sum(s.length for s in self.segments)

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    def weighted_mean(self, key: Callable[[LineSegment], float]) -> float:
        """Length-weighted mean of a segment property."""
        total = self.total_length
        if total <= 0:
            return sum(key(s) for s in self.segments) / len(self.segments)
        return sum(key(s) * s.length for s in self.segments) / total


def collinear_clusters(
    candidates: Sequence[LineSegment],
    angle_tolerance: float,
    offset_tolerance: float,
    min_size: int = 1,
) -> List[Cluster]:
    """Two-stage grouping: by angle, then by offset inside each angle group."""
    result: List[Cluster] = []
    angle_groups = cluster_by_property(candidates, lambda s: s.angle, angle_tolerance, min_size)
    for group in angle_groups:
        for sub in cluster_by_property(group, lambda s: s.offset, offset_tolerance, min_size):
            result.append(Cluster(tuple(sub)))

    logger.debug(
        "Clustering: %d candidates -> %d angle groups -> %d collinear clusters",
        len(candidates),
        len(angle_groups),
        len(result),
    )
    return result


@dataclass(frozen=True)
class ScoredCluster:
    cluster: Cluster
    total_length: float
    segment_count: int
    avg_angle: float
    angle_bonus: float
    score: float


class ClusterScorer:
    """Ranks collinear clusters by total length, sqrt(segment count) and flatness."""

    def score(self, cluster: Cluster) -> ScoredCluster:
        total_length = cluster.total_length
        segment_count = cluster.segment_count
        avg_angle = cluster.weighted_mean(lambda s: s.angle)
        angle_bonus = min(1.0, max(0.0, 1.0 - abs(avg_angle) / ANGLE_BONUS_SPAN))
        score = total_length * math.sqrt(segment_count) * (BASE_WEIGHT + ANGLE_WEIGHT * angle_bonus)
        return ScoredCluster(
            cluster=cluster,
            total_length=total_length,
            segment_count=segment_count,
            avg_angle=avg_angle,
            angle_bonus=angle_bonus,
            score=score,
        )

    def select_best(self, clusters: Iterable[Cluster]) -> Optional[ScoredCluster]:
        best: Optional[ScoredCluster] = None
        for cluster in clusters:
            scored = self.score(cluster)
            if best is None or scored.score > best.score:
                best = scored
        return best
