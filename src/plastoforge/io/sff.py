"""Reading and writing annotation record streams (SFF).

An SFF file starts with a ``genome_id<TAB>genome_length`` header and has
one row per finalized feature:

    model_id/type/part  strand  start  length  phase  rel_length  depth  note

Model identifiers are ``gene/N`` with ``N`` counting copies of the gene
across both strands. A written file can be used again as a reference
feature file.

Example:
    >>> from plastoforge.io.sff import write_sff
    >>> with open("out.sff", "w") as out:
    ...     write_sff(out, "NC_001666", 140384, fwd_models, rev_models)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, NamedTuple, Sequence, TextIO

from plastoforge.config import DEFAULT_PSEUDOGENE_TOLERANCE
from plastoforge.core.features import AlignedBlock
from plastoforge.core.records import SFFRecord, calc_maxlengths, iter_named_models

logger = logging.getLogger(__name__)

IR_FORWARD_PATH = "IR/1/repeat_region/1"
IR_REVERSE_PATH = "IR/2/repeat_region/1"


class SFFRow(NamedTuple):
    """One row of a written SFF file."""

    path: str
    strand: str
    start: int
    length: int
    phase: int
    relative_length: float
    depth: float
    note: str


# =============================================================================
# Writing
# =============================================================================


def _format_model(
    model_id: str,
    model: Sequence[SFFRecord],
    strand: str,
    maxlengths: dict[str, int],
    tolerance: int,
) -> Iterable[str]:
    for record in model:
        feature = record.feature
        note = record.pseudogene_note(maxlengths.get(record.gene, 0), tolerance)
        yield (
            f"{model_id}/{feature.components.suffix}\t{strand}\t{feature.start}\t"
            f"{feature.length}\t{feature.phase}\t{record.relative_length:.3f}\t"
            f"{record.depth:.3f}\t{note}\n"
        )


def write_sff(
    out: TextIO,
    genome_id: str,
    genome_length: int,
    forward_models: Sequence[Sequence[SFFRecord]],
    reverse_models: Sequence[Sequence[SFFRecord]],
    ir: AlignedBlock | None = None,
    tolerance: int = DEFAULT_PSEUDOGENE_TOLERANCE,
) -> int:
    """Write scored gene models of both strands.

    Args:
        out: Text stream to write to.
        genome_id: Target genome identifier.
        genome_length: Target genome length.
        forward_models: Scored models of the forward strand.
        reverse_models: Scored models of the reverse strand.
        ir: Inverted repeat to append as two repeat_region rows.
        tolerance: Span deficit (bp) that flags a shorter gene copy.

    Returns:
        Number of gene models written.
    """
    maxlengths = calc_maxlengths(forward_models, reverse_models)

    out.write(f"{genome_id}\t{genome_length}\n")
    n_models = 0
    for model_id, strand, model in iter_named_models(forward_models, reverse_models):
        out.writelines(_format_model(model_id, model, strand, maxlengths, tolerance))
        n_models += 1

    if ir is not None:
        out.write(f"{IR_FORWARD_PATH}\t+\t{ir.src_index}\t{ir.blocklength}\t0\t0\t0\t0\t\n")
        out.write(f"{IR_REVERSE_PATH}\t-\t{ir.tgt_index}\t{ir.blocklength}\t0\t0\t0\t0\t\n")

    logger.debug(f"Wrote {n_models} gene models for {genome_id}")
    return n_models


# =============================================================================
# Reading
# =============================================================================


def read_sff(path: Path | str) -> tuple[str, int, list[SFFRow]]:
    """Read an SFF file written by ``write_sff``.

    Args:
        path: SFF file.

    Returns:
        Tuple of (genome id, genome length, rows).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the header or a row is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"SFF file not found: {path}")

    rows: list[SFFRow] = []
    with open(path) as f:
        header = f.readline().rstrip("\n").split("\t")
        if len(header) < 2:
            raise ValueError(f"{path}: header must be genome_id<TAB>genome_length")
        try:
            genome_length = int(header[1])
        except ValueError as e:
            raise ValueError(f"{path}:1: invalid genome length {header[1]!r}") from e

        for line_num, line in enumerate(f, start=2):
            line = line.rstrip("\n")
            if not line:
                continue
            fields = line.split("\t")
            try:
                rows.append(
                    SFFRow(
                        path=fields[0],
                        strand=fields[1],
                        start=int(fields[2]),
                        length=int(fields[3]),
                        phase=int(fields[4]),
                        relative_length=float(fields[5]),
                        depth=float(fields[6]),
                        note=fields[7] if len(fields) > 7 else "",
                    )
                )
            except (IndexError, ValueError) as e:
                raise ValueError(f"{path}:{line_num}: malformed SFF row: {e}") from e

    return header[0], genome_length, rows
