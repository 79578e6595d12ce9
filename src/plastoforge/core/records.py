"""Scoring of finished gene models.

Each refined gene model becomes one ``SFFRecord`` per feature, carrying
the quality metrics written to the output: relative length against the
template, evidence depth, and the start/stop checks of the translated
protein used to flag possible pseudogenes.

Translation goes through one shared working buffer guarded by a module
lock, so several genomes may be annotated concurrently.

Example:
    >>> from plastoforge.core.records import to_sff
    >>> records = to_sff(model, target_seq, stacks, numrefs=3)
    >>> records[0].relative_length
    1.0
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Iterator, Sequence

import attrs

from plastoforge.config import (
    DEFAULT_EVIDENCE_WEIGHT,
    DEFAULT_PSEUDOGENE_TOLERANCE,
    DEFAULT_START_EXEMPT_GENES,
)
from plastoforge.core.features import FEATURE_INTRON, Feature
from plastoforge.core.genemodels import gene_length
from plastoforge.core.stacks import FeatureStack
from plastoforge.utils.sequences import STOP_SYMBOL, CircularSequence, is_start_codon, translate

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

PSEUDOGENE_PREFIX = "possible pseudogene"
NOTE_SHORTER_COPY = "shorter than 2nd copy"
NOTE_NO_START = "no start codon"
NOTE_PREMATURE_STOP = "premature stop codon"

# Shared translation working buffer; only touched while holding the lock
_TRANSLATION_LOCK = threading.Lock()
_CDS_BUFFER: list[str] = []


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class SFFRecord:
    """A finalized feature and the metrics of its gene model.

    Attributes:
        gene: Gene name.
        feature: The refined feature.
        gene_length: Span of the whole gene model.
        exon_count: Number of non-intron features in the model.
        relative_length: Feature length over the template median length.
        depth: Normalised evidence depth over the feature.
        has_start: Whether the model starts with a start codon.
        has_premature_stop: Whether the protein has an internal stop.
    """

    gene: str
    feature: Feature
    gene_length: int
    exon_count: int
    relative_length: float
    depth: float
    has_start: bool = True
    has_premature_stop: bool = False

    def pseudogene_note(self, max_length: int, tolerance: int = DEFAULT_PSEUDOGENE_TOLERANCE) -> str:
        """Pseudogene annotation for this record.

        Notes are listed after a single ``possible pseudogene`` prefix,
        separated by ``", "``.

        Args:
            max_length: Longest span of this gene on either strand.
            tolerance: Span deficit (bp) tolerated before flagging.

        Returns:
            The note, or an empty string.
        """
        notes = []
        if self.gene_length - max_length < -tolerance:
            notes.append(NOTE_SHORTER_COPY)
        if not self.has_start:
            notes.append(NOTE_NO_START)
        if self.has_premature_stop:
            notes.append(NOTE_PREMATURE_STOP)
        if not notes:
            return ""
        return ", ".join([PSEUDOGENE_PREFIX, *notes])


# =============================================================================
# Translation
# =============================================================================


def translate_model(target_seq: CircularSequence, model: Sequence[Feature]) -> str:
    """Translate the concatenated coding features of a model.

    The first coding feature contributes from its phase-adjusted start;
    later ones continue the reading frame from their start. Trailing
    bases short of a codon are dropped.

    Args:
        target_seq: Target strand sequence.
        model: Features of the model in order.

    Returns:
        Protein sequence.
    """
    with _TRANSLATION_LOCK:
        _CDS_BUFFER.clear()
        first = True
        for feature in model:
            if not feature.is_coding:
                continue
            start = feature.start + feature.phase if first else feature.start
            first = False
            _CDS_BUFFER.append(target_seq.span(start, feature.end))
        cds = "".join(_CDS_BUFFER)
        _CDS_BUFFER.clear()
    return translate(cds[: len(cds) - len(cds) % 3])


# =============================================================================
# Record Building
# =============================================================================


def to_sff(
    model: Sequence[Feature],
    target_seq: CircularSequence,
    feature_stacks: dict[str, FeatureStack],
    numrefs: int,
    start_exempt_genes: Iterable[str] = DEFAULT_START_EXEMPT_GENES,
    evidence_weight: int = DEFAULT_EVIDENCE_WEIGHT,
) -> list[SFFRecord]:
    """Score a refined gene model.

    Args:
        model: Features of one gene model.
        target_seq: Target strand sequence.
        feature_stacks: Stacks keyed by path.
        numrefs: Number of references contributing evidence.
        start_exempt_genes: Genes not required to begin with a start codon.
        evidence_weight: Stack increment per annotated base.

    Returns:
        One record per feature, or an empty list for an empty or
        zero-span model.
    """
    if not model:
        return []
    span = gene_length(model, len(target_seq))
    if span <= 0:
        logger.debug(f"Skipping {model[0].gene}: gene span {span}")
        return []

    gene = model[0].gene
    exon_count = sum(1 for f in model if f.type != FEATURE_INTRON)
    coding = [f for f in model if f.is_coding]

    has_start = True
    has_premature_stop = False
    if coding:
        protein = translate_model(target_seq, model)
        first_cds = coding[0]
        if gene not in start_exempt_genes and not is_start_codon(
            target_seq.codon(first_cds.start), allow_acg=True, allow_gtg=True
        ):
            has_start = False
        stop_position = protein.find(STOP_SYMBOL)
        if 0 <= stop_position < len(protein) - 1:
            has_premature_stop = True

    records = []
    for feature in model:
        feature_stack = feature_stacks.get(feature.path)
        depth = 0.0
        relative_length = 0.0
        if feature_stack is not None and feature.length > 0:
            total = feature_stack.stack.range_sum(feature.start, feature.length)
            depth = total / (evidence_weight * numrefs * feature.length) if numrefs > 0 else 0.0
            median = feature_stack.template.median_length
            relative_length = feature.length / median if median > 0 else 0.0
        records.append(
            SFFRecord(
                gene=gene,
                feature=feature,
                gene_length=span,
                exon_count=exon_count,
                relative_length=relative_length,
                depth=depth,
                has_start=has_start,
                has_premature_stop=has_premature_stop,
            )
        )
    return records


def calc_maxlengths(*strand_models: Iterable[Sequence[SFFRecord]]) -> dict[str, int]:
    """Longest gene span per gene name across all given strands."""
    maxlengths: dict[str, int] = {}
    for models in strand_models:
        for model in models:
            if not model:
                continue
            first = model[0]
            maxlengths[first.gene] = max(first.gene_length, maxlengths.get(first.gene, 0))
    return maxlengths


def iter_named_models(
    forward_models: Sequence[Sequence[SFFRecord]],
    reverse_models: Sequence[Sequence[SFFRecord]],
) -> Iterator[tuple[str, str, Sequence[SFFRecord]]]:
    """Assign ``gene/N`` identifiers to the scored models of both strands.

    Forward models are numbered first; ``N`` is the lowest instance not
    yet taken by the same gene on either strand. Empty models are skipped.

    Yields:
        Tuples of (model id, strand, model).
    """
    taken: set[str] = set()
    for strand, models in (("+", forward_models), ("-", reverse_models)):
        for model in models:
            if not model:
                continue
            gene = model[0].gene
            instance = 1
            while f"{gene}/{instance}" in taken:
                instance += 1
            model_id = f"{gene}/{instance}"
            taken.add(model_id)
            yield model_id, strand, model
