"""Projection of reference features onto a target genome.

Each aligned block maps a stretch of the reference onto the target.
Every reference feature overlapping a block is clipped to the block and
shifted into target coordinates, remembering how far the clipped edges
lie from the feature's true edges.

Example:
    >>> from plastoforge.core.projection import find_overlaps
    >>> annotations = find_overlaps(ref_features, blocks)
"""

from __future__ import annotations

import logging
from typing import Iterable

from plastoforge.core.features import AlignedBlock, Annotation, Feature, FeatureArray
from plastoforge.utils.circular import phase_counter

logger = logging.getLogger(__name__)


def project_feature(
    genome_id: str,
    feature: Feature,
    block: AlignedBlock,
) -> Annotation | None:
    """Project the part of ``feature`` covered by ``block``.

    Args:
        genome_id: Reference genome identifier.
        feature: Reference feature.
        block: Aligned block.

    Returns:
        The projected annotation, or None if they do not overlap.
    """
    start = max(feature.start, block.src_index)
    length = min(feature.start + feature.length, block.src_index + block.blocklength) - start
    if length <= 0:
        return None

    offset5 = start - feature.start
    phase = phase_counter(feature.phase, offset5) if feature.is_coding else 0

    return Annotation(
        genome_id=genome_id,
        path=feature.components.annotation_path,
        start=start - block.src_index + block.tgt_index,
        length=length,
        offset5=offset5,
        offset3=feature.length - offset5 - length,
        phase=phase,
    )


def find_overlaps(
    ref_features: FeatureArray,
    aligned_blocks: Iterable[AlignedBlock],
) -> list[Annotation]:
    """Project every reference feature touched by an aligned block.

    Annotations are emitted block by block, in index order within a
    block.

    Args:
        ref_features: Indexed features of one reference strand.
        aligned_blocks: Blocks aligning that strand to the target.

    Returns:
        List of projected annotations.
    """
    annotations: list[Annotation] = []
    for block in aligned_blocks:
        for feature in ref_features.overlapping(block.src_index, block.src_end):
            annotation = project_feature(ref_features.genome_id, feature, block)
            if annotation is None:
                continue
            annotations.append(annotation)

    logger.debug(
        f"{ref_features.genome_id} ({ref_features.strand}): "
        f"{len(annotations)} annotations from {len(ref_features)} features"
    )
    return annotations


def alignment_coverage(aligned_blocks: Iterable[AlignedBlock], target_length: int) -> float:
    """Fraction of the target covered by aligned blocks, capped at 1."""
    aligned = sum(block.blocklength for block in aligned_blocks)
    return min(1.0, aligned / target_length) if target_length > 0 else 0.0
