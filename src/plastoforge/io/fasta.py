"""FASTA file handling for target genomes.

Targets are read with pyfaidx; the first record of the file is the
circular genome to annotate.

Example:
    >>> from plastoforge.io.fasta import read_target
    >>> target_id, target_seq = read_target("NC_001666.fa")
    >>> len(target_seq)
    140384
"""

from __future__ import annotations

import logging
from pathlib import Path

import pyfaidx

from plastoforge.utils.sequences import CircularSequence

logger = logging.getLogger(__name__)


def read_target(fasta_path: Path | str) -> tuple[str, CircularSequence]:
    """Read the first record of a FASTA file as a circular sequence.

    Args:
        fasta_path: Path to FASTA file. A .fai index is created if needed.

    Returns:
        Tuple of (record id, sequence).

    Raises:
        FileNotFoundError: If the FASTA file doesn't exist.
        ValueError: If the file has no sequence.
    """
    path = Path(fasta_path)
    if not path.exists():
        raise FileNotFoundError(f"FASTA file not found: {path}")

    with pyfaidx.Fasta(str(path), sequence_always_upper=True, rebuild=False) as fasta:
        seqids = list(fasta.keys())
        if not seqids:
            raise ValueError(f"No sequences in FASTA file: {path}")
        if len(seqids) > 1:
            logger.warning(f"{path.name} has {len(seqids)} records, annotating {seqids[0]} only")
        target_id = seqids[0]
        sequence = str(fasta[target_id][:])

    if not sequence:
        raise ValueError(f"Empty sequence {target_id} in {path}")

    logger.info(f"Read target {target_id}: {len(sequence):,} bp")
    return target_id, CircularSequence(sequence)
