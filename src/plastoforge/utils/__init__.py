"""Utility functions for PlastoForge.

This module provides common utilities used across PlastoForge:

- Circular coordinate arithmetic and circular arrays
- Sequence manipulation and plastid translation
- Logging configuration

Example:
    >>> from plastoforge.utils.circular import genome_wrap
    >>> genome_wrap(1000, 1001)
    1
"""

from plastoforge.utils.circular import CircularArray, genome_wrap, phase_counter
from plastoforge.utils.sequences import CircularSequence, reverse_complement, translate

__all__ = [
    "CircularArray",
    "CircularSequence",
    "genome_wrap",
    "phase_counter",
    "reverse_complement",
    "translate",
]
