"""
Capped in-memory sample buffer.

Holds the most recent ``cap`` samples of one series. Appending past the cap
evicts the oldest sample first, so the buffer always holds a contiguous,
time-ordered suffix of everything that was appended.

CHANGELOG:
- 2026-10-19: Reduce to the append/snapshot surface the view model uses (STORY-014)
- 2026-10-12: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

from collections import deque

from dashboard.src.models import Sample


class SampleBuffer:
    """FIFO-evicting buffer of :class:`Sample` points.

    Args:
        cap: Maximum number of retained samples (>= 1).

    Raises:
        ValueError: If *cap* is smaller than 1.
    """

    def __init__(self, cap: int) -> None:
        if cap < 1:
            raise ValueError(f"Buffer cap must be >= 1 (got {cap})")
        self._samples: deque[Sample] = deque(maxlen=cap)

    def append(self, sample: Sample) -> None:
        self._samples.append(sample)

    def snapshot(self) -> list[Sample]:
        """Return a copy of the buffered samples, oldest first."""
        return list(self._samples)
