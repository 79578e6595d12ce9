"""Gene-model assembly and per-model refinement.

Features called on one strand are grouped into gene models (runs of
consecutive features with the same gene name) and then refined model by
model: reading frame of the last CDS, boundaries between neighbouring
parts, phase consistency, and finally the start codon of the first CDS.

Example:
    >>> from plastoforge.core.genemodels import GeneModelRefiner, group_features_into_gene_models
    >>> models = group_features_into_gene_models(sorted(features, key=lambda f: f.start))
    >>> GeneModelRefiner(target_seq, annotations, stacks).refine_all(models)
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from plastoforge.config import AnnotateConfig
from plastoforge.core.boundaries import refine_boundaries_by_score
from plastoforge.core.features import Annotation, Feature
from plastoforge.core.frames import ReadingFrameResolver, feature_phase_from_annotations
from plastoforge.core.stacks import FeatureStack
from plastoforge.utils.circular import phase_counter, unwrap_after
from plastoforge.utils.sequences import CircularSequence

logger = logging.getLogger(__name__)

GeneModel = list[Feature]


def _unwrapped_start(feature: Feature, anchor: int, genome_length: int | None) -> int:
    if genome_length is None:
        return feature.start
    return unwrap_after(anchor, feature.start, genome_length)


def _joins_across_origin(head: GeneModel, tail: GeneModel, genome_length: int) -> bool:
    """Whether the first and last models are one gene split by the origin.

    They must share the gene name, have no feature path in common, and
    the tail must end less than half a genome before the head starts.
    """
    if head is tail or head[0].gene != tail[0].gene:
        return False
    if {f.path for f in head} & {f.path for f in tail}:
        return False
    tail_end = max(f.start + f.length for f in tail)
    gap = (min(f.start for f in head) - tail_end) % genome_length
    return gap < genome_length // 2


def group_features_into_gene_models(
    features: Iterable[Feature],
    genome_length: int | None = None,
) -> list[GeneModel]:
    """Group consecutive features with the same gene name.

    With a genome length, a gene whose parts straddle the origin (found
    both at the start and at the end of the ordered features) is joined
    into a single model, ordered from its 5' part across the origin.

    Args:
        features: Features of one strand, ordered by start.
        genome_length: Target genome length.

    Returns:
        Gene models, each sorted by start.
    """
    gene_models: list[GeneModel] = []
    current: GeneModel = []
    for feature in features:
        if current and current[0].gene != feature.gene:
            current.sort(key=lambda f: f.start)
            gene_models.append(current)
            current = []
        current.append(feature)
    if current:
        current.sort(key=lambda f: f.start)
        gene_models.append(current)

    if genome_length is not None and len(gene_models) > 1:
        head, tail = gene_models[0], gene_models[-1]
        if _joins_across_origin(head, tail, genome_length):
            logger.debug(f"Joining {head[0].gene} across the origin")
            anchor = tail[0].start
            tail.extend(head)
            tail.sort(key=lambda f: _unwrapped_start(f, anchor, genome_length))
            del gene_models[0]
    return gene_models


def gene_length(model: Sequence[Feature], genome_length: int | None = None) -> int:
    """Span of a gene model from its lowest start to its highest end.

    With a genome length, starts are taken relative to the first feature
    so models crossing the origin keep their true span.
    """
    if not model:
        return 0
    anchor = model[0].start
    starts = [_unwrapped_start(f, anchor, genome_length) for f in model]
    return max(s + f.length for s, f in zip(starts, model)) - min(starts)


class GeneModelRefiner:
    """Refine gene models of one strand in place.

    Attributes:
        target_seq: Target strand sequence.
        annotations: All annotations projected onto this strand.
        stacks: Feature stacks keyed by path.
        config: Annotation configuration.
    """

    def __init__(
        self,
        target_seq: CircularSequence,
        annotations: Sequence[Annotation],
        stacks: dict[str, FeatureStack],
        config: AnnotateConfig | None = None,
    ) -> None:
        self.target_seq = target_seq
        self.annotations = annotations
        self.stacks = stacks
        self.config = config or AnnotateConfig()
        self.frames = ReadingFrameResolver(target_seq, self.config)

    @property
    def genome_length(self) -> int:
        """Target genome length."""
        return len(self.target_seq)

    def _phase(self, feature: Feature) -> int:
        return feature_phase_from_annotations(feature, self.annotations, self.genome_length)

    def _gap(self, feature: Feature, following: Feature) -> int:
        end = feature.start + feature.length
        return unwrap_after(end, following.start, self.genome_length) - end

    def refine(self, model: GeneModel) -> GeneModel:
        """Refine one gene model in place.

        Args:
            model: Features of one gene instance.

        Returns:
            The same model, sorted by feature midpoint.
        """
        if not model:
            return model

        # midpoint order keeps a long intron from jumping ahead of a short exon;
        # starts are unwrapped around the first feature for models on the origin
        anchor = model[0].start
        model.sort(key=lambda f: _unwrapped_start(f, anchor, self.genome_length) + f.length / 2)
        gene = model[0].gene
        last_cds: Feature | None = None

        last = model[-1]
        if last.is_coding:
            last.phase = self._phase(last)
            if gene not in self.config.orf_exempt_genes:
                self.frames.set_longest_orf(last)
            last_cds = last

        for i in range(len(model) - 2, -1, -1):
            feature = model[i]
            following = model[i + 1]
            gap = self._gap(feature, following)
            if gap != 0 and gap < self.config.max_fulcrum_gap:
                refine_boundaries_by_score(feature, following, self.genome_length, self.stacks)
                gap = self._gap(feature, following)
            if gap != 0:
                logger.warning(f"Non-adjacent boundaries for {feature.path} {following.path}")

            if feature.is_coding:
                feature.phase = self._phase(feature)
                if (
                    last_cds is not None
                    and phase_counter(feature.phase, feature.length % 3) != last_cds.phase
                ):
                    logger.warning(f"Incompatible phases for {feature.path} {last_cds.path}")
                last_cds = feature

        first = model[0]
        if first.is_coding and gene not in self.config.start_exempt_genes:
            self.frames.find_start_codon(first)

        return model

    def refine_all(self, gene_models: list[GeneModel]) -> list[GeneModel]:
        """Refine every gene model of the strand."""
        for model in gene_models:
            self.refine(model)
        return gene_models
