"""Feature boundary refinement on evidence stacks.

This module provides the signal-processing steps that turn evidence
stacks into feature boundaries:

- Greedy boundary expansion (single-base and chunked)
- Sliding-window template matching
- Weighted-consensus voting on projected feature edges
- Fulcrum search between adjacent features

All of them read ``stack[i] + shadow[i]`` (or, for the fulcrum, the two
competing stacks) over circular coordinates.

Example:
    >>> from plastoforge.core.boundaries import align_template_to_stack
    >>> hits, median_length = align_template_to_stack(stacks["rbcL/?/CDS/1"], shadow)
    >>> hits[0].position, hits[0].score
    (54321, 12840)
"""

from __future__ import annotations

import logging
from typing import Iterable, NamedTuple, Sequence

import numpy as np

from plastoforge.config import DEFAULT_CHUNK_SIZES, DEFAULT_TEMPLATE_HIT_FRACTION
from plastoforge.core.features import Annotation, Feature
from plastoforge.core.stacks import FeatureStack, ShadowStack
from plastoforge.utils.circular import genome_wrap, ranges_overlap, unwrap_after

logger = logging.getLogger(__name__)

# =============================================================================
# Data Structures
# =============================================================================


class TemplateHit(NamedTuple):
    """A window where a template matches its stack.

    Attributes:
        position: 1-based window start.
        score: Sum of ``stack + shadow`` over the window.
    """

    position: int
    score: int


# =============================================================================
# Greedy Expansion
# =============================================================================


def expand_boundary(
    feature_stack: FeatureStack,
    shadow: ShadowStack,
    origin: int,
    direction: int,
    max_steps: int,
) -> int:
    """Walk from ``origin`` while the next position has non-negative signal.

    Args:
        feature_stack: Stack of the feature being expanded.
        shadow: Shared shadow stack.
        origin: Starting position.
        direction: +1 to walk downstream, -1 upstream.
        max_steps: Maximum number of bases to walk.

    Returns:
        Last accepted position (not wrapped).
    """
    index = origin
    for _ in range(max_steps):
        if feature_stack.signal(shadow, index + direction) < 0:
            break
        index += direction
    return index


def expand_boundary_in_chunks(
    feature_stack: FeatureStack,
    shadow: ShadowStack,
    origin: int,
    direction: int,
    max_steps: int,
    chunk_sizes: Sequence[int] = DEFAULT_CHUNK_SIZES,
) -> int:
    """Coarse-to-fine version of :func:`expand_boundary`.

    For each chunk size, leap whole chunks while the summed signal over
    the chunk is non-negative, then retry with the next smaller size.
    Never travels more than ``max_steps`` bases.

    Returns:
        Last accepted position, wrapped onto the genome.
    """
    glen = len(shadow)
    index = origin
    travelled = 0
    for chunk in chunk_sizes:
        while travelled + chunk <= max_steps:
            first = index + 1 if direction > 0 else index - chunk
            total = feature_stack.stack.range_sum(first, chunk) + shadow.range_sum(first, chunk)
            if total < 0:
                break
            index += direction * chunk
            travelled += chunk
    return genome_wrap(glen, index)


# =============================================================================
# Template Matching
# =============================================================================


def align_template_to_stack(
    feature_stack: FeatureStack,
    shadow: ShadowStack,
    hit_fraction: float = DEFAULT_TEMPLATE_HIT_FRACTION,
) -> tuple[list[TemplateHit], int]:
    """Slide a window of the template's median length around the genome.

    Windows with a positive summed signal are candidate hits. A candidate
    starting within ``median_length`` of the last kept hit replaces it
    only if it scores strictly higher; the same holds across the origin
    between the last and the first hit. Hits are returned best first and
    only those scoring at least ``hit_fraction`` of the best are kept.

    Args:
        feature_stack: Stack to scan.
        shadow: Shared shadow stack.
        hit_fraction: Fraction of the top score a hit must reach.

    Returns:
        Tuple of (hits, median_length).
    """
    median_length = feature_stack.template.median_length
    glen = len(feature_stack.stack)
    if median_length <= 0:
        return [], median_length

    signal = feature_stack.stack.values.astype(np.int64) + shadow.values
    # cyclic extension so the last windows wrap over the origin
    extended = np.resize(signal, glen + median_length - 1)
    cumulative = np.concatenate(([0], np.cumsum(extended)))
    scores = cumulative[median_length : median_length + glen] - cumulative[:glen]

    hits: list[TemplateHit] = []
    for index in np.flatnonzero(scores > 0):
        hit = TemplateHit(int(index) + 1, int(scores[index]))
        if not hits or hit.position >= hits[-1].position + median_length:
            hits.append(hit)
        elif hit.score > hits[-1].score:
            hits[-1] = hit

    if not hits:
        return hits, median_length
    if len(hits) > 1 and hits[-1].position + median_length > hits[0].position + glen:
        # the last window runs over the origin into the first one
        last = hits.pop()
        if last.score > hits[0].score:
            hits[0] = last

    # stable sort: equal scores stay in genome order
    hits.sort(key=lambda h: h.score, reverse=True)
    max_score = hits[0].score
    hits = [h for h in hits if h.score >= max_score * hit_fraction]
    return hits, median_length


# =============================================================================
# Weighted Consensus
# =============================================================================


def weighted_mode(values: Iterable[int], weights: Iterable[float]) -> int:
    """Value with the highest total weight (first seen wins ties)."""
    totals: dict[int, float] = {}
    for value, weight in zip(values, weights):
        totals[value] = totals.get(value, 0.0) + weight
    if not totals:
        raise ValueError("weighted_mode of empty sequence")
    best_value, best_weight = None, None
    for value, weight in totals.items():
        if best_weight is None or weight > best_weight:
            best_value, best_weight = value, weight
    return best_value


def refine_match_boundaries_by_offsets(
    feat: Feature,
    annotations: Sequence[Annotation],
    target_length: int,
    coverages: dict[str, float],
) -> bool:
    """Move feature edges to the weighted consensus of projected edges.

    Every annotation of the same path that overlaps the feature predicts
    where the feature's 5' and 3' edges are (its start minus ``offset5``,
    its end plus ``offset3``). Predictions are weighted by how close the
    annotation lies to that edge and by the alignment coverage of its
    reference; the heaviest prediction wins.

    Args:
        feat: Feature to refine in place.
        annotations: All annotations for this strand.
        target_length: Target genome length.
        coverages: Alignment coverage per reference genome id.

    Returns:
        True if the feature was updated.
    """
    length = feat.length
    if length <= 0:
        return False

    voters: list[tuple[Annotation, int]] = []
    for annotation in annotations:
        if annotation.path != feat.path:
            continue
        if annotation.offset5 >= length or annotation.offset3 >= length:
            continue
        if not ranges_overlap(feat.start, length, annotation.start, annotation.length, target_length):
            continue
        voters.append((annotation, unwrap_after(feat.start, annotation.start, target_length)))

    if not voters:
        return False

    min_start = min(start for _, start in voters)
    max_end = max(start + annotation.length - 1 for annotation, start in voters)

    end5s, end5_weights, end3s, end3_weights = [], [], [], []
    for annotation, start in voters:
        coverage = coverages.get(annotation.genome_id, 1.0)
        end = start + annotation.length - 1

        end5s.append(start - annotation.offset5)
        end5_weights.append(((length - (start - min_start)) / length) ** 2 * coverage)

        end3s.append(end + annotation.offset3)
        end3_weights.append(((length - (max_end - end)) / length) ** 2 * coverage)

    left = weighted_mode(end5s, end5_weights)
    right = weighted_mode(end3s, end3_weights)
    if right < left:
        logger.debug(f"Consensus edges of {feat.path} cross ({left} > {right}), left unchanged")
        return False

    feat.start = genome_wrap(target_length, left)
    feat.length = right - left + 1
    return True


# =============================================================================
# Fulcrum Search
# =============================================================================


def refine_boundaries_by_score(
    feat1: Feature,
    feat2: Feature,
    genome_length: int,
    stacks: dict[str, FeatureStack],
) -> bool:
    """Split the region between two adjacent features at the fulcrum.

    ``feat1`` must precede ``feat2``. The region between the end of
    ``feat1`` and the start of ``feat2`` is scanned for the split point
    that best separates positions supporting ``feat1`` from positions
    supporting ``feat2``; ``feat1`` is cut to end there and ``feat2`` to
    start just after, keeping its end.

    Args:
        feat1: Upstream feature, modified in place.
        feat2: Downstream feature, modified in place.
        genome_length: Target genome length.
        stacks: Feature stacks keyed by path.

    Returns:
        True if the features were updated.
    """
    stack1 = stacks.get(feat1.path)
    stack2 = stacks.get(feat2.path)
    if stack1 is None or stack2 is None:
        logger.debug(f"No stack for {feat1.path} or {feat2.path}, boundary kept")
        return False

    end1 = feat1.end
    start2 = unwrap_after(end1, feat2.start, genome_length)
    lo, hi = min(end1, start2), max(end1, start2)

    values1 = stack1.stack.range_values(lo, hi - lo + 1).astype(np.int64)
    values2 = stack2.stack.range_values(lo, hi - lo + 1).astype(np.int64)

    score = int(values2.sum() - values1.sum())
    running = score + 2 * np.cumsum(values1 - values2)
    fulcrum = lo - 1
    best = int(np.argmax(running))
    if running[best] > score:
        fulcrum = lo + best

    # fulcrum is the last base of feat1
    feat1.length = fulcrum - feat1.start + 1
    feat2.length += start2 - (fulcrum + 1)
    feat2.start = genome_wrap(genome_length, fulcrum + 1)
    return True
