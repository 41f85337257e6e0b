"""FIFO replacement for the set-associative caches.

A single `FIFOReplacement` is owned by each `Cache`. It keeps the cache's
fill-sequence counter (global to the cache, not per set) and picks the
victim line inside a set:

- the first invalid line in scan order wins immediately
- otherwise the valid line with the smallest fill sequence is evicted

Hits never touch the sequence numbers, so a line that keeps hitting is still
evicted in the order it was filled.
"""

from typing import Sequence


class FIFOReplacement:
    """First-In-First-Out replacement driven by fill sequence numbers."""

    def __init__(self):
        self.counter = 0

    def stamp(self) -> int:
        """Return the next fill sequence number (post-increment)."""
        seq = self.counter
        self.counter += 1
        return seq

    def victim(self, lines: Sequence) -> int:
        """Index of the line to replace in a set that missed."""
        oldest = 0
        for i, line in enumerate(lines):
            if not line.valid:
                return i
            if line.fifo_sequence < lines[oldest].fifo_sequence:
                oldest = i
        return oldest

    def reset(self) -> None:
        self.counter = 0


__all__ = ["FIFOReplacement"]
