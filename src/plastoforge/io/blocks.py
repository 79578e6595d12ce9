"""Alignment block files.

Aligned blocks come from an external genome aligner. Each row of a
block file is ``strand, src_index, tgt_index, blocklength`` (tab
separated, ``#`` starts a comment). Reverse-strand blocks align the
reverse complements of both genomes.

Example:
    >>> from plastoforge.io.blocks import read_blocks
    >>> blocks = read_blocks("NC_000932.blocks.tsv")
    >>> blocks.forward[0]
    AlignedBlock(src_index=1, tgt_index=12, blocklength=8411)
"""

from __future__ import annotations

import logging
from pathlib import Path

from plastoforge.core.features import AlignedBlock, StrandPair

logger = logging.getLogger(__name__)


def read_blocks(path: Path | str) -> StrandPair:
    """Read aligned blocks for both strands.

    Args:
        path: Block file.

    Returns:
        StrandPair of block lists (forward, reverse), in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If a row is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Block file not found: {path}")

    forward: list[AlignedBlock] = []
    reverse: list[AlignedBlock] = []
    with open(path) as f:
        for line_num, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            fields = line.split("\t")
            try:
                strand = fields[0]
                block = AlignedBlock(int(fields[1]), int(fields[2]), int(fields[3]))
            except (IndexError, ValueError) as e:
                raise ValueError(f"{path}:{line_num}: malformed block row: {e}") from e

            if strand == "+":
                forward.append(block)
            elif strand == "-":
                reverse.append(block)
            else:
                raise ValueError(f"{path}:{line_num}: invalid strand {strand!r}")

    logger.debug(f"Read {len(forward)} + {len(reverse)} blocks from {path.name}")
    return StrandPair(forward, reverse)
