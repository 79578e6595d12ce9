"""Annotation pipeline for one circular target genome.

This module ties the engine together, strand by strand:

1. Project reference features through aligned blocks
2. Accumulate the projections into feature and shadow stacks
3. Call features where templates match their stacks
4. Group features into gene models and refine them
5. Score every model for output

All stacks and indices built here belong to a single call of
:func:`annotate`; several targets may be annotated concurrently.

Example:
    >>> from plastoforge.core.annotate import Reference, annotate
    >>> references = [Reference.from_files("NC_000932.sff", "NC_000932.blocks")]
    >>> result = annotate("target", target_seq, references, templates)
    >>> with open("target.sff", "w") as out:
    ...     result.write_sff(out)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence, TextIO

import attrs

from plastoforge.config import AnnotateConfig
from plastoforge.core.boundaries import (
    align_template_to_stack,
    expand_boundary_in_chunks,
    refine_match_boundaries_by_offsets,
)
from plastoforge.core.features import (
    STRANDS,
    AlignedBlock,
    Annotation,
    Feature,
    FeatureTemplate,
    StrandPair,
)
from plastoforge.core.genemodels import GeneModel, GeneModelRefiner, group_features_into_gene_models
from plastoforge.core.projection import alignment_coverage, find_overlaps
from plastoforge.core.records import SFFRecord, calc_maxlengths, to_sff
from plastoforge.core.stacks import FeatureStack, ShadowStack, depth_and_coverage, fill_feature_stacks
from plastoforge.io.blocks import read_blocks
from plastoforge.io.features import read_features
from plastoforge.io.gff import write_gff
from plastoforge.io.sff import write_sff
from plastoforge.utils.logging import Timer
from plastoforge.utils.sequences import CircularSequence

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True, frozen=True)
class Reference:
    """An annotated reference genome aligned to the target.

    Attributes:
        genome_id: Reference genome identifier.
        features: Reference features per strand (FeatureArray).
        blocks: Aligned blocks per strand (list of AlignedBlock).
    """

    genome_id: str
    features: StrandPair
    blocks: StrandPair

    @classmethod
    def from_files(cls, feature_path: Path | str, block_path: Path | str) -> Reference:
        """Load a reference from a feature file and its block file."""
        features = read_features(feature_path)
        blocks = read_blocks(block_path)
        return cls(features.forward.genome_id, features, blocks)


@attrs.define(slots=True)
class StrandAnnotation:
    """Result of annotating one strand.

    Attributes:
        strand: ``+`` or ``-``.
        annotations: Projected annotations from all references.
        models: Refined gene models.
        records: Scored models, one list of records per model.
    """

    strand: str
    annotations: list[Annotation] = attrs.Factory(list)
    models: list[GeneModel] = attrs.Factory(list)
    records: list[list[SFFRecord]] = attrs.Factory(list)

    @property
    def n_features(self) -> int:
        """Number of features over all models."""
        return sum(len(model) for model in self.records)


@attrs.define(slots=True)
class AnnotationResult:
    """Annotation of one target genome.

    Reverse-strand coordinates are in the reverse-complement frame of the
    target; GFF3 export converts them to forward coordinates.

    Attributes:
        target_id: Target genome identifier.
        genome_length: Target genome length.
        forward: Forward strand result.
        reverse: Reverse strand result.
        ir: Inverted repeat, written as two repeat_region rows.
        config: Configuration used.
    """

    target_id: str
    genome_length: int
    forward: StrandAnnotation
    reverse: StrandAnnotation
    ir: AlignedBlock | None = None
    config: AnnotateConfig = attrs.Factory(AnnotateConfig)

    @property
    def n_models(self) -> int:
        """Number of gene models on both strands."""
        return len(self.forward.records) + len(self.reverse.records)

    def pseudogenes(self) -> list[tuple[str, str, str]]:
        """(gene, strand, note) for every model flagged as a possible pseudogene."""
        maxlengths = calc_maxlengths(self.forward.records, self.reverse.records)
        flagged = []
        for strand_result in (self.forward, self.reverse):
            for model in strand_result.records:
                first = model[0]
                note = first.pseudogene_note(
                    maxlengths.get(first.gene, 0), self.config.pseudogene_tolerance
                )
                if note:
                    flagged.append((first.gene, strand_result.strand, note))
        return flagged

    def write_sff(self, out: TextIO) -> int:
        """Write the result as an SFF record stream."""
        return write_sff(
            out,
            self.target_id,
            self.genome_length,
            self.forward.records,
            self.reverse.records,
            ir=self.ir,
            tolerance=self.config.pseudogene_tolerance,
        )

    def write_gff(self, out: Path | str | TextIO) -> int:
        """Write the result as GFF3."""
        return write_gff(
            out,
            self.target_id,
            self.genome_length,
            self.forward.records,
            self.reverse.records,
            tolerance=self.config.pseudogene_tolerance,
        )


# =============================================================================
# Projection
# =============================================================================


def project_references(references: Sequence[Reference], strand: str) -> list[Annotation]:
    """Project the features of every reference onto one target strand."""
    annotations: list[Annotation] = []
    for reference in references:
        annotations.extend(
            find_overlaps(reference.features.for_strand(strand), reference.blocks.for_strand(strand))
        )
    return annotations


# =============================================================================
# Feature Calling
# =============================================================================


def call_features(
    feature_stack: FeatureStack,
    shadow: ShadowStack,
    annotations: Sequence[Annotation],
    coverages: dict[str, float],
    numrefs: int,
    config: AnnotateConfig,
) -> list[Feature]:
    """Call features of one path from its stack.

    Every template hit seeds a feature of the template's median length.
    Its edges move to the weighted consensus of projected edges; when no
    projection votes, they are grown greedily from the window edges
    instead. Features short of the template's depth or coverage
    thresholds are dropped.

    Args:
        feature_stack: Stack of the path.
        shadow: Shared shadow stack.
        annotations: All annotations for this strand.
        coverages: Alignment coverage per reference genome id.
        numrefs: Number of references.
        config: Annotation configuration.

    Returns:
        Called features.
    """
    glen = len(shadow)
    template: FeatureTemplate = feature_stack.template
    hits, median_length = align_template_to_stack(
        feature_stack, shadow, config.template_hit_fraction
    )

    features: list[Feature] = []
    for hit in hits:
        feature = Feature(feature_stack.path, hit.position, median_length, 0)
        if not refine_match_boundaries_by_offsets(feature, annotations, glen, coverages):
            left = expand_boundary_in_chunks(
                feature_stack, shadow, hit.position, -1, median_length, config.chunk_sizes
            )
            right = expand_boundary_in_chunks(
                feature_stack,
                shadow,
                hit.position + median_length - 1,
                1,
                median_length,
                config.chunk_sizes,
            )
            feature.start = left
            feature.length = (right - left) % glen + 1

        depth, coverage = depth_and_coverage(feature_stack, feature.start, feature.length, numrefs)
        if depth >= template.threshold_counts and coverage >= template.threshold_coverage:
            features.append(feature)
        else:
            logger.debug(
                f"Rejected {feature.path} at {feature.start}: "
                f"depth {depth:.3f}, coverage {coverage:.3f}"
            )
    return features


# =============================================================================
# Pipeline
# =============================================================================


def annotate_strand(
    strand: str,
    strand_seq: CircularSequence,
    references: Sequence[Reference],
    templates: dict[str, FeatureTemplate],
    config: AnnotateConfig,
) -> StrandAnnotation:
    """Annotate one strand of the target.

    Args:
        strand: ``+`` or ``-``.
        strand_seq: Target sequence read along this strand.
        references: Aligned references.
        templates: Templates keyed by annotation path.
        config: Annotation configuration.

    Returns:
        The strand result.
    """
    glen = len(strand_seq)
    numrefs = len(references)
    result = StrandAnnotation(strand)

    with Timer(f"Projection ({strand})", logger):
        result.annotations = project_references(references, strand)
    coverages = {
        reference.genome_id: alignment_coverage(reference.blocks.for_strand(strand), glen)
        for reference in references
    }

    with Timer(f"Feature stacks ({strand})", logger):
        stacks, shadow = fill_feature_stacks(
            glen, result.annotations, templates, config.evidence_weight, config.shadow_prior
        )

    with Timer(f"Feature calling ({strand})", logger):
        features: list[Feature] = []
        for feature_stack in stacks.values():
            features.extend(
                call_features(feature_stack, shadow, result.annotations, coverages, numrefs, config)
            )
        features.sort(key=lambda f: f.start)

    with Timer(f"Gene models ({strand})", logger):
        models = group_features_into_gene_models(features, glen)
        refiner = GeneModelRefiner(strand_seq, result.annotations, stacks, config)
        result.models = refiner.refine_all(models)

    for model in result.models:
        records = to_sff(
            model,
            strand_seq,
            stacks,
            numrefs,
            start_exempt_genes=config.start_exempt_genes,
            evidence_weight=config.evidence_weight,
        )
        if records:
            result.records.append(records)

    logger.info(
        f"Strand {strand}: {len(result.records)} gene models "
        f"from {len(result.annotations)} annotations"
    )
    return result


def annotate(
    target_id: str,
    target_seq: CircularSequence,
    references: Sequence[Reference],
    templates: dict[str, FeatureTemplate],
    config: AnnotateConfig | None = None,
    ir: AlignedBlock | None = None,
) -> AnnotationResult:
    """Annotate both strands of a circular target genome.

    Args:
        target_id: Target genome identifier.
        target_seq: Forward strand of the target.
        references: Aligned references.
        templates: Templates keyed by annotation path.
        config: Annotation configuration (defaults if None).
        ir: Inverted repeat to report with the result.

    Returns:
        The annotation result.

    Raises:
        ValueError: If no references or templates are given.
    """
    if not references:
        raise ValueError("At least one reference is required")
    if not templates:
        raise ValueError("No feature templates given")
    config = config or AnnotateConfig()

    logger.info(f"Annotating {target_id} ({len(target_seq):,} bp) from {len(references)} references")
    strand_seqs = {"+": target_seq, "-": target_seq.reverse_complement()}
    forward, reverse = (
        annotate_strand(strand, strand_seqs[strand], references, templates, config)
        for strand in STRANDS
    )
    return AnnotationResult(
        target_id=target_id,
        genome_length=len(target_seq),
        forward=forward,
        reverse=reverse,
        ir=ir,
        config=config,
    )
