"""GFF3 export of annotated gene models.

Gene models are written as one ``gene`` line followed by one child line
per feature. Reverse-strand models are kept in reverse-complement
coordinates during annotation and are converted to forward coordinates
here. Features crossing the origin of the circular genome keep an end
past the genome length, as GFF3 allows for circular sequences.

Example:
    >>> from plastoforge.io.gff import GFF3Writer
    >>> with GFF3Writer("out.gff3", "NC_001666", 140384) as writer:
    ...     writer.write_header()
    ...     writer.write_models(forward_models, reverse_models)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence, TextIO

from plastoforge import __version__
from plastoforge.config import DEFAULT_PSEUDOGENE_TOLERANCE
from plastoforge.core.genemodels import gene_length
from plastoforge.core.records import SFFRecord, calc_maxlengths, iter_named_models
from plastoforge.utils.circular import genome_wrap, unwrap_after

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# GFF3 column indices
COL_SEQID = 0
COL_SOURCE = 1
COL_TYPE = 2
COL_START = 3
COL_END = 4
COL_SCORE = 5
COL_STRAND = 6
COL_PHASE = 7
COL_ATTRIBUTES = 8

FEATURE_GENE = "gene"
FEATURE_REGION = "region"

DEFAULT_SOURCE = "PlastoForge"


def format_attributes(attributes: dict[str, str]) -> str:
    """Format attribute dictionary as GFF3 string.

    Args:
        attributes: Dictionary of attributes.

    Returns:
        Semicolon-separated key=value string.
    """
    if not attributes:
        return "."

    parts = []
    for key, value in attributes.items():
        # URL encode special characters
        value = str(value).replace(";", "%3B").replace("=", "%3D")
        value = value.replace("&", "%26").replace(",", "%2C")
        parts.append(f"{key}={value}")

    return ";".join(parts)


def to_forward_start(start: int, length: int, genome_length: int) -> int:
    """Forward-strand start of a range given in reverse-complement coordinates."""
    return genome_wrap(genome_length, genome_length - (start + length - 1) + 1)


# =============================================================================
# GFF3 Writer
# =============================================================================


class GFF3Writer:
    """Write annotated gene models of one circular genome to GFF3.

    Accepts either a path or an open text stream; only a file opened by
    the writer is closed by it.

    Example:
        >>> with GFF3Writer(sys.stdout, "NC_001666", 140384) as writer:
        ...     writer.write_header()
        ...     writer.write_models(result.forward_records, result.reverse_records)
    """

    def __init__(
        self,
        output: Path | str | TextIO,
        seqid: str,
        genome_length: int,
        source: str = DEFAULT_SOURCE,
        tolerance: int = DEFAULT_PSEUDOGENE_TOLERANCE,
    ) -> None:
        """Initialize the writer.

        Args:
            output: Output file path or text stream.
            seqid: Target genome identifier.
            genome_length: Target genome length.
            source: Source field value for GFF3.
            tolerance: Span deficit (bp) that flags a shorter gene copy.
        """
        if isinstance(output, (str, Path)):
            self._file = open(output, "w")
            self._owns_file = True
        else:
            self._file = output
            self._owns_file = False
        self.seqid = seqid
        self.genome_length = genome_length
        self.source = source
        self.tolerance = tolerance
        self._header_written = False

    def __enter__(self) -> GFF3Writer:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the output file if the writer opened it."""
        if self._owns_file and self._file:
            self._file.close()
        self._file = None

    def write_header(self) -> None:
        """Write the GFF3 header and a circular region line for the genome."""
        self._file.write("##gff-version 3\n")
        self._file.write(f"#!processor PlastoForge v{__version__}\n")
        self._file.write(f"##sequence-region {self.seqid} 1 {self.genome_length}\n")
        self._file.write(
            self._format_line(
                FEATURE_REGION,
                1,
                self.genome_length,
                "+",
                {"ID": self.seqid, "Is_circular": "true"},
            )
        )
        self._header_written = True

    def _format_line(
        self,
        feature_type: str,
        start: int,
        end: int,
        strand: str,
        attributes: dict[str, str],
        score: float | None = None,
        phase: int | None = None,
    ) -> str:
        """Format a GFF3 line.

        Args:
            feature_type: Feature type.
            start: Start (1-based).
            end: End (1-based, inclusive).
            strand: Strand.
            attributes: Attribute dictionary.
            score: Feature score.
            phase: CDS phase.

        Returns:
            Formatted GFF3 line.
        """
        score_str = "." if score is None else f"{score:.3f}"
        phase_str = "." if phase is None else str(phase)
        attr_str = format_attributes(attributes)

        return (
            f"{self.seqid}\t{self.source}\t{feature_type}\t{start}\t{end}\t"
            f"{score_str}\t{strand}\t{phase_str}\t{attr_str}\n"
        )

    def _forward_start(self, start: int, length: int, strand: str) -> int:
        if strand == "-":
            return to_forward_start(start, length, self.genome_length)
        return genome_wrap(self.genome_length, start)

    def write_model(
        self,
        model_id: str,
        strand: str,
        model: Sequence[SFFRecord],
        max_length: int,
    ) -> None:
        """Write one gene model.

        Args:
            model_id: ``gene/N`` identifier.
            strand: ``+`` or ``-``.
            model: Scored features of the model.
            max_length: Longest span of this gene on either strand.
        """
        if not self._header_written:
            self.write_header()

        features = [record.feature for record in model]
        span = gene_length(features, self.genome_length)
        anchor = features[0].start
        first = min(unwrap_after(anchor, f.start, self.genome_length) for f in features)
        gene_start = self._forward_start(first, span, strand)

        gene_attrs = {"ID": model_id, "Name": model[0].gene}
        note = model[0].pseudogene_note(max_length, self.tolerance)
        if note:
            gene_attrs["Note"] = note
        self._file.write(
            self._format_line(FEATURE_GENE, gene_start, gene_start + span - 1, strand, gene_attrs)
        )

        for record in model:
            feature = record.feature
            start = self._forward_start(feature.start, feature.length, strand)
            child_attrs = {
                "ID": f"{model_id}/{feature.components.suffix}",
                "Parent": model_id,
                "depth": f"{record.depth:.3f}",
                "relative_length": f"{record.relative_length:.3f}",
            }
            self._file.write(
                self._format_line(
                    feature.type,
                    start,
                    start + feature.length - 1,
                    strand,
                    child_attrs,
                    phase=feature.phase if feature.is_coding else None,
                )
            )

    def write_models(
        self,
        forward_models: Sequence[Sequence[SFFRecord]],
        reverse_models: Sequence[Sequence[SFFRecord]],
    ) -> int:
        """Write the scored models of both strands.

        Returns:
            Number of gene models written.
        """
        maxlengths = calc_maxlengths(forward_models, reverse_models)
        n_models = 0
        for model_id, strand, model in iter_named_models(forward_models, reverse_models):
            self.write_model(model_id, strand, model, maxlengths.get(model[0].gene, 0))
            n_models += 1
        logger.debug(f"Wrote {n_models} gene models to GFF3 for {self.seqid}")
        return n_models


# =============================================================================
# Convenience Functions
# =============================================================================


def write_gff(
    output: Path | str | TextIO,
    seqid: str,
    genome_length: int,
    forward_models: Sequence[Sequence[SFFRecord]],
    reverse_models: Sequence[Sequence[SFFRecord]],
    source: str = DEFAULT_SOURCE,
    tolerance: int = DEFAULT_PSEUDOGENE_TOLERANCE,
) -> int:
    """Write scored gene models to a GFF3 file.

    Args:
        output: Output file path or text stream.
        seqid: Target genome identifier.
        genome_length: Target genome length.
        forward_models: Scored models of the forward strand.
        reverse_models: Scored models of the reverse strand.
        source: Source field value.
        tolerance: Span deficit (bp) that flags a shorter gene copy.

    Returns:
        Number of gene models written.
    """
    with GFF3Writer(output, seqid, genome_length, source=source, tolerance=tolerance) as writer:
        writer.write_header()
        return writer.write_models(forward_models, reverse_models)
