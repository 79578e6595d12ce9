"""Reading-frame resolution for coding features.

Handles:
- Phase estimation from projected annotations
- Longest open reading frame selection and stop-codon extension
- Bidirectional start-codon search

Example:
    >>> from plastoforge.core.frames import ReadingFrameResolver
    >>> resolver = ReadingFrameResolver(target_seq)
    >>> resolver.set_longest_orf(last_cds)
    >>> resolver.find_start_codon(first_cds)
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import NamedTuple, Sequence

from plastoforge.config import AnnotateConfig
from plastoforge.core.features import Annotation, Feature
from plastoforge.utils.circular import genome_wrap, phase_counter, ranges_overlap, unwrap_after
from plastoforge.utils.sequences import CircularSequence, is_start_codon, is_stop_codon

logger = logging.getLogger(__name__)


class OpenReadingFrame(NamedTuple):
    """A candidate reading-frame segment.

    Attributes:
        start: First base of the segment.
        stop: Last base of the segment (inclusive).
        closed: Whether the segment ends in a stop codon.
    """

    start: int
    stop: int
    closed: bool

    @property
    def length(self) -> int:
        """Segment length in bases."""
        return self.stop - self.start + 1


def feature_phase_from_annotations(
    feat: Feature,
    annotations: Sequence[Annotation],
    genome_length: int,
) -> int:
    """Most common phase implied by overlapping same-path annotations.

    Each annotation's phase is carried over the circular distance from
    its start to the feature's start. Ties go to the phase seen first.

    Args:
        feat: Feature whose phase is wanted.
        annotations: All annotations for this strand.
        genome_length: Target genome length.

    Returns:
        Phase (0-2); 0 with a warning when no annotation overlaps.
    """
    phases: Counter[int] = Counter()
    for annotation in annotations:
        if annotation.path != feat.path:
            continue
        if not ranges_overlap(feat.start, feat.length, annotation.start, annotation.length, genome_length):
            continue
        distance = unwrap_after(annotation.start, feat.start, genome_length) - annotation.start
        phases[phase_counter(annotation.phase, distance)] += 1

    if not phases:
        logger.warning(f"No annotations found for {feat.path}")
        return 0
    return phases.most_common(1)[0][0]


class ReadingFrameResolver:
    """Fix reading frames of coding features on one target strand.

    Attributes:
        target_seq: Target strand sequence, read 5' to 3'.
        config: Gene exceptions for start codons.
    """

    def __init__(
        self,
        target_seq: CircularSequence,
        config: AnnotateConfig | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            target_seq: Target sequence for this strand.
            config: Annotation configuration (defaults if None).
        """
        self.target_seq = target_seq
        self.config = config or AnnotateConfig()

    @property
    def genome_length(self) -> int:
        """Target genome length."""
        return len(self.target_seq)

    def _is_stop(self, position: int) -> bool:
        return is_stop_codon(self.target_seq.codon(position))

    def set_longest_orf(self, feat: Feature) -> Feature:
        """Trim a CDS to its longest open reading frame.

        The feature is scanned codon by codon from ``start + phase``; each
        stop closes a segment. The longest segment (first on ties) becomes
        the feature. If it is still open at the feature's end, it is
        extended codon by codon until a stop codon, which is included.

        Args:
            feat: Coding feature, modified in place.

        Returns:
            The same feature.
        """
        orfs: list[OpenReadingFrame] = []
        translation_start = feat.start
        translation_stop = translation_start + 2
        last_codon = feat.start + feat.length - 3

        for nt in range(feat.start + feat.phase, last_codon + 1, 3):
            translation_stop = nt + 2
            if self._is_stop(nt):
                orfs.append(OpenReadingFrame(translation_start, translation_stop, True))
                translation_start = nt + 3
        orfs.append(OpenReadingFrame(translation_start, translation_stop, False))

        longest: OpenReadingFrame | None = None
        for orf in orfs:
            if orf.length > 0 and (longest is None or orf.length > longest.length):
                longest = orf
        if longest is None:
            return feat

        if longest.start > feat.start:
            # an internal stop was skipped, the segment starts in frame
            feat.phase = 0
        feat.start = genome_wrap(self.genome_length, longest.start)
        feat.length = longest.length

        if not longest.closed:
            if self._is_stop(longest.stop - 2):
                return feat
            nt = longest.stop + 1
            # never grow past one full turn of the genome
            while feat.length + 3 <= self.genome_length:
                feat.length += 3
                if self._is_stop(nt):
                    break
                nt += 3
            else:
                logger.warning(f"No stop codon found for {feat.path}")
        return feat

    def _start_options(self, gene: str) -> tuple[bool, bool]:
        """(allow ACG, allow GTG) for a gene."""
        return gene in self.config.acg_start_genes, gene in self.config.gtg_start_genes

    def _scan_for_start(self, origin: int, direction: int, allow_acg: bool, allow_gtg: bool) -> int | None:
        """Scan in-frame codons from ``origin`` until a start or a stop codon."""
        for offset in range(0, self.genome_length - 2, 3):
            position = origin + direction * offset
            codon = self.target_seq.codon(position)
            if is_start_codon(codon, allow_acg, allow_gtg):
                return position
            if is_stop_codon(codon):
                return None
        return None

    def find_start_codon(self, cds: Feature) -> Feature:
        """Move a CDS start onto the nearest in-frame start codon.

        The codon at ``start + phase`` is accepted as is when it is ATG,
        GTG or ACG. Otherwise in-frame codons are scanned downstream and
        upstream, each direction stopping at the first stop codon; the
        candidate nearer the original position wins (upstream on ties).
        The end of the feature is kept.

        Args:
            cds: First coding feature of a gene model, modified in place.

        Returns:
            The same feature.
        """
        origin = cds.start + cds.phase
        if is_start_codon(self.target_seq.codon(origin), allow_acg=True, allow_gtg=True):
            cds.start = origin
            cds.length -= cds.phase
            cds.phase = 0
            return cds

        allow_acg, allow_gtg = self._start_options(cds.gene)
        downstream = self._scan_for_start(origin, 1, allow_acg, allow_gtg)
        upstream = self._scan_for_start(origin, -1, allow_acg, allow_gtg)

        if downstream is None and upstream is None:
            logger.warning(f"Couldn't find start for {cds.path}")
            return cds

        if upstream is None:
            chosen = downstream
        elif downstream is None:
            chosen = upstream
        elif (downstream - origin) ** 2 < (origin - upstream) ** 2:
            chosen = downstream
        else:
            chosen = upstream

        cds.length += cds.start - chosen
        cds.start = genome_wrap(self.genome_length, chosen)
        cds.phase = 0
        return cds
