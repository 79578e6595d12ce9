"""Evidence accumulation over circular target coordinates.

Every projected annotation votes for its path at each target position
it covers. Votes are kept in one circular counter per path (the feature
stack) and mirrored, negatively, in one genome-wide counter shared by
all paths (the shadow stack). ``stack[i] + shadow[i]`` is the signal
used by all boundary refinement: positive where the path has more
support than the background of unclaimed evidence.

Example:
    >>> from plastoforge.core.stacks import fill_feature_stacks
    >>> stacks, shadow = fill_feature_stacks(genome_length, annotations, templates)
    >>> stacks["psbA/?/CDS/1"].stack[120]
    9
"""

from __future__ import annotations

import logging
from typing import Iterable

import attrs

from plastoforge.config import DEFAULT_EVIDENCE_WEIGHT, DEFAULT_SHADOW_PRIOR
from plastoforge.core.features import Annotation, FeatureTemplate
from plastoforge.utils.circular import CircularArray

logger = logging.getLogger(__name__)

ShadowStack = CircularArray


@attrs.define(slots=True)
class FeatureStack:
    """Per-path evidence counter.

    Attributes:
        path: Annotation path (same as ``template.path``).
        stack: Circular counter, one cell per target base.
        template: Expected statistics for this path.
    """

    path: str
    stack: CircularArray
    template: FeatureTemplate

    def signal(self, shadow: ShadowStack, position: int) -> int:
        """Combined evidence ``stack + shadow`` at a position."""
        return self.stack[position] + shadow[position]


def fill_feature_stacks(
    target_length: int,
    annotations: Iterable[Annotation],
    templates: dict[str, FeatureTemplate],
    evidence_weight: int = DEFAULT_EVIDENCE_WEIGHT,
    shadow_prior: int = DEFAULT_SHADOW_PRIOR,
) -> tuple[dict[str, FeatureStack], ShadowStack]:
    """Accumulate annotations into feature stacks and the shadow stack.

    Annotations are grouped by path before accumulation, so input order
    does not matter. Annotations whose path has no template are dropped.

    Args:
        target_length: Length of the target genome.
        annotations: Projected annotations from all references.
        templates: Templates keyed by path.
        evidence_weight: Stack increment per covered position.
        shadow_prior: Initial shadow-stack value.

    Returns:
        Tuple of (stacks keyed by path, shadow stack).
    """
    stacks: dict[str, FeatureStack] = {}
    shadow = ShadowStack.filled(target_length, shadow_prior)
    n_annotations = 0
    n_dropped = 0

    for annotation in sorted(annotations, key=lambda a: a.path):
        n_annotations += 1
        template = templates.get(annotation.path)
        if template is None:
            n_dropped += 1
            continue

        feature_stack = stacks.get(annotation.path)
        if feature_stack is None:
            feature_stack = FeatureStack(
                path=annotation.path,
                stack=CircularArray.zeros(target_length),
                template=template,
            )
            stacks[annotation.path] = feature_stack

        feature_stack.stack.add_range(annotation.start, annotation.length, evidence_weight)
        shadow.add_range(annotation.start, annotation.length, -1)

    if n_dropped:
        logger.debug(f"Dropped {n_dropped} annotations without a template")
    logger.debug(f"Found {len(stacks)} feature stacks from {n_annotations} annotations")
    return stacks, shadow


def depth_and_coverage(
    feature_stack: FeatureStack,
    start: int,
    length: int,
    numrefs: int,
) -> tuple[float, float]:
    """Evidence depth and coverage of a stack over a range.

    Args:
        feature_stack: Stack to inspect.
        start: 1-based range start.
        length: Range length.
        numrefs: Number of references contributing evidence.

    Returns:
        Tuple of (depth, coverage). Depth is the sum of positive cells per
        reference per base; coverage is the fraction of positive cells.
    """
    if length <= 0 or numrefs <= 0:
        return 0.0, 0.0
    values = feature_stack.stack.range_values(start, length)
    positive = values[values > 0]
    if positive.size == 0:
        return 0.0, 0.0
    depth = int(positive.sum()) / (numrefs * length)
    return depth, positive.size / length
