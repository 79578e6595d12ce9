"""Core annotation logic for PlastoForge.

This module contains the algorithms and data structures that turn
projected reference annotations into gene models:

- Feature projection through aligned blocks
- Feature and shadow evidence stacks
- Boundary refinement (template matching, consensus, fulcrum)
- Reading frames and start codons
- Gene-model grouping, refinement and scoring

Example:
    >>> from plastoforge.core.annotate import Reference, annotate
    >>> result = annotate("target", target_seq, references, templates)
"""

from plastoforge.core.features import (
    AlignedBlock,
    Annotation,
    Feature,
    FeatureArray,
    FeatureTemplate,
    StrandPair,
)

__all__: list[str] = [
    "AlignedBlock",
    "Annotation",
    "Feature",
    "FeatureArray",
    "FeatureTemplate",
    "StrandPair",
]
