"""Circular coordinate arithmetic.

Organelle chromosomes are circular, so every position, range and step
used by the annotation engine wraps modulo the genome length. All of
that arithmetic lives here:

- 1-based position wrapping
- Reading-frame phase arithmetic
- Wraparound-aware range overlap
- A numpy-backed circular counter array

Example:
    >>> from plastoforge.utils.circular import CircularArray, genome_wrap
    >>> genome_wrap(1000, 1002)
    2
    >>> stack = CircularArray.zeros(1000)
    >>> stack.add_range(999, 4, 3)
    >>> stack[1]
    3
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

# =============================================================================
# Position Arithmetic
# =============================================================================


def genome_wrap(genome_length: int, position: int) -> int:
    """Wrap a 1-based position onto ``[1, genome_length]``.

    Args:
        genome_length: Length of the circular genome.
        position: Any integer position, possibly outside the genome.

    Returns:
        Equivalent position in ``[1, genome_length]``.
    """
    return (position - 1) % genome_length + 1


def phase_counter(phase: int, distance: int) -> int:
    """Advance a reading-frame phase by ``distance`` nucleotides.

    Phase is the number of nucleotides to skip to reach the first
    complete codon. Moving the start ``distance`` bases downstream
    consumes that many bases of the skip.

    Args:
        phase: Phase at the original position (0-2).
        distance: Number of bases moved downstream (may be negative).

    Returns:
        Phase at the new position (0-2).
    """
    return (phase - distance) % 3


def unwrap_after(anchor: int, position: int, genome_length: int) -> int:
    """Return the copy of ``position`` nearest to ``anchor`` on the unrolled axis."""
    delta = (position - anchor) % genome_length
    if delta > genome_length // 2:
        delta -= genome_length
    return anchor + delta


def ranges_overlap(
    start1: int,
    length1: int,
    start2: int,
    length2: int,
    genome_length: int,
) -> bool:
    """Check whether two circular ranges share at least one position.

    Args:
        start1: 1-based start of the first range.
        length1: Length of the first range.
        start2: 1-based start of the second range.
        length2: Length of the second range.
        genome_length: Length of the circular genome.

    Returns:
        True if the ranges overlap.
    """
    if length1 <= 0 or length2 <= 0:
        return False
    if length1 >= genome_length or length2 >= genome_length:
        return True
    s1 = genome_wrap(genome_length, start1)
    s2 = genome_wrap(genome_length, start2)
    # offset of the second start relative to the first, and vice versa
    if (s2 - s1) % genome_length < length1:
        return True
    return (s1 - s2) % genome_length < length2


# =============================================================================
# Circular Array
# =============================================================================


class CircularArray:
    """Fixed-length integer counter array with 1-based circular indexing.

    Any integer index is valid: ``array[0]`` is the last cell and
    ``array[n + 1]`` is the first. Range operations wrap across the
    origin and are vectorised with numpy.

    Attributes:
        values: Underlying 0-based numpy array.
    """

    __slots__ = ("values",)

    def __init__(self, values: np.ndarray) -> None:
        self.values = values

    @classmethod
    def zeros(cls, length: int) -> CircularArray:
        """Create a zero-initialised array."""
        return cls(np.zeros(length, dtype=np.int32))

    @classmethod
    def filled(cls, length: int, value: int) -> CircularArray:
        """Create an array with every cell set to ``value``."""
        return cls(np.full(length, value, dtype=np.int32))

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, position: int) -> int:
        return int(self.values[(position - 1) % len(self.values)])

    def _segments(self, start: int, length: int) -> Iterator[tuple[int, int]]:
        """Yield 0-based half-open slices covering a circular range."""
        n = len(self.values)
        offset = (start - 1) % n
        remaining = length
        while remaining > 0:
            stop = min(n, offset + remaining)
            yield offset, stop
            remaining -= stop - offset
            offset = 0

    def add_range(self, start: int, length: int, value: int) -> None:
        """Add ``value`` to every cell of ``[start, start + length - 1]``."""
        for lo, hi in self._segments(start, length):
            self.values[lo:hi] += value

    def range_values(self, start: int, length: int) -> np.ndarray:
        """Copy of the cells of ``[start, start + length - 1]`` in order."""
        parts = [self.values[lo:hi] for lo, hi in self._segments(start, length)]
        if not parts:
            return np.zeros(0, dtype=self.values.dtype)
        return np.concatenate(parts)

    def range_sum(self, start: int, length: int) -> int:
        """Sum of the cells of ``[start, start + length - 1]``."""
        return int(sum(int(self.values[lo:hi].sum()) for lo, hi in self._segments(start, length)))
