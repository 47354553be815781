from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List


class TemporalSmoother:
    """Per-channel median filter over the last `capacity` samples."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._buffers: Dict[str, Deque[float]] = {}

    def smooth(self, channel: str, value: float) -> float:
        """Record a sample and return the median of the channel's buffer."""
        buffer = self._buffers.get(channel)
        if buffer is None:
            buffer = self._buffers[channel] = deque(maxlen=self.capacity)
        buffer.append(float(value))

        # Upper median for even counts, no interpolation
        ordered = sorted(buffer)
        return ordered[len(ordered) // 2]

    def history(self, channel: str) -> List[float]:
        return list(self._buffers.get(channel, ()))

    def size(self, channel: str) -> int:
        return len(self._buffers.get(channel, ()))

    def reset(self) -> None:
        self._buffers.clear()
