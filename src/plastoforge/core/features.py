"""Feature data structures and the per-strand spatial index.

Key components:
- FeaturePath: Parsed ``gene/instance/type/part`` identifier
- Feature: A reference or inferred annotation interval
- FeatureArray: All features of one genome strand, indexed for overlap queries
- AlignedBlock: A collinear run mapping reference to target coordinates
- Annotation: A reference feature projected onto target coordinates
- FeatureTemplate: Expected statistics of a feature path

Example:
    >>> from plastoforge.core.features import Feature, FeatureArray
    >>> features = [Feature("rbcL/1/CDS/1", 100, 1428, 0)]
    >>> array = FeatureArray.build("ref", 150000, "+", features)
    >>> [f.path for f in array.overlapping(90, 110)]
    ['rbcL/1/CDS/1']
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterator, NamedTuple

import attrs
from intervaltree import Interval, IntervalTree

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

FEATURE_CDS = "CDS"
FEATURE_INTRON = "intron"

STRANDS = ("+", "-")

# Placeholder for the instance number in paths shared across references
ANY_INSTANCE = "?"


# =============================================================================
# Paths
# =============================================================================


class FeaturePath(NamedTuple):
    """Components of a feature path such as ``ndhB/1/CDS/2``.

    Attributes:
        gene: Gene name.
        instance: Copy number of the gene in its genome.
        type: Feature type (CDS, intron, tRNA, rRNA, ...).
        part: Ordinal of the part within the gene.
    """

    gene: str
    instance: str
    type: str
    part: str

    @property
    def suffix(self) -> str:
        """``type/part``, as written after a model identifier."""
        return f"{self.type}/{self.part}"

    @property
    def annotation_path(self) -> str:
        """Path with the instance replaced so copies pool their evidence."""
        return f"{self.gene}/{ANY_INSTANCE}/{self.type}/{self.part}"


@lru_cache(maxsize=4096)
def parse_path(path: str) -> FeaturePath:
    """Split a ``/``-delimited feature path into its components.

    Raises:
        ValueError: If the path does not have four components.
    """
    parts = path.split("/")
    if len(parts) != 4:
        raise ValueError(f"Feature path must be gene/instance/type/part: {path!r}")
    return FeaturePath(*parts)


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class Feature:
    """An annotation interval on one strand of a circular genome.

    Attributes:
        path: ``gene/instance/type/part`` identifier.
        start: 1-based start (may lie past the origin while being refined).
        length: Length in bases.
        phase: Bases to skip at the 5' end to reach the reading frame (0-2).
    """

    path: str
    start: int
    length: int
    phase: int = 0

    @property
    def components(self) -> FeaturePath:
        """Parsed path components."""
        return parse_path(self.path)

    @property
    def gene(self) -> str:
        """Gene name."""
        return self.components.gene

    @property
    def type(self) -> str:
        """Feature type."""
        return self.components.type

    @property
    def end(self) -> int:
        """Last base (inclusive, unwrapped)."""
        return self.start + self.length - 1

    @property
    def is_coding(self) -> bool:
        """Whether this feature is a CDS."""
        return self.type == FEATURE_CDS


class AlignedBlock(NamedTuple):
    """A collinear run of aligned bases.

    Attributes:
        src_index: 1-based start in the reference genome.
        tgt_index: 1-based start in the target genome.
        blocklength: Number of aligned bases.
    """

    src_index: int
    tgt_index: int
    blocklength: int

    @property
    def src_end(self) -> int:
        """Last reference base of the block (inclusive)."""
        return self.src_index + self.blocklength - 1


@attrs.define(slots=True, frozen=True)
class Annotation:
    """Part or all of a reference feature projected onto the target.

    Attributes:
        genome_id: Reference genome the feature came from.
        path: Annotation path (instance replaced by ``?``).
        start: 1-based start on the target.
        length: Projected length.
        offset5: Distance from the projected start to the feature's 5' edge.
        offset3: Distance from the projected end to the feature's 3' edge.
        phase: Phase at the projected start (0 for non-coding features).
    """

    genome_id: str
    path: str
    start: int
    length: int
    offset5: int
    offset3: int
    phase: int


@attrs.define(slots=True, frozen=True)
class FeatureTemplate:
    """Expected statistics for one annotation path.

    Attributes:
        path: Annotation path.
        threshold_counts: Minimum depth for a called feature.
        threshold_coverage: Minimum fraction of the feature with evidence.
        median_length: Median length of the feature across references.
    """

    path: str
    threshold_counts: float
    threshold_coverage: float
    median_length: int


# =============================================================================
# Spatial Index
# =============================================================================


class FeatureArray:
    """All features of one strand of a reference genome.

    Features are held in an interval tree keyed by ``[start, end]`` and
    are immutable once the array is built.

    Attributes:
        genome_id: Reference genome identifier.
        genome_length: Reference genome length.
        strand: ``+`` or ``-``.
    """

    def __init__(
        self,
        genome_id: str,
        genome_length: int,
        strand: str,
        features: list[Feature],
    ) -> None:
        self.genome_id = genome_id
        self.genome_length = genome_length
        self.strand = strand
        self._features = tuple(features)
        self._tree = IntervalTree(
            Interval(feature.start, feature.start + feature.length, index)
            for index, feature in enumerate(self._features)
            if feature.length > 0
        )

    @classmethod
    def build(
        cls,
        genome_id: str,
        genome_length: int,
        strand: str,
        features: list[Feature],
    ) -> FeatureArray:
        """Build an index from features, sorting them by ``(start, end)``."""
        ordered = sorted(features, key=lambda f: (f.start, f.end))
        return cls(genome_id, genome_length, strand, ordered)

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def overlapping(self, lo: int, hi: int) -> list[Feature]:
        """Features overlapping the inclusive range ``[lo, hi]``, in index order."""
        if hi < lo:
            return []
        hits = sorted(interval.data for interval in self._tree.overlap(lo, hi + 1))
        return [self._features[index] for index in hits]


class StrandPair(NamedTuple):
    """Values for the forward and reverse strand of one genome."""

    forward: Any
    reverse: Any

    def for_strand(self, strand: str) -> Any:
        """Value for ``+`` or ``-``."""
        if strand == "+":
            return self.forward
        if strand == "-":
            return self.reverse
        raise ValueError(f"Invalid strand: {strand!r}")
