"""Sequence manipulation utilities.

This module provides utilities for working with nucleotide and protein
sequences on circular genomes:

- Reverse complement
- Codon classification (start/stop)
- Translation
- Circular sequence access

Example:
    >>> from plastoforge.utils.sequences import CircularSequence, translate
    >>> seq = CircularSequence("ATGAAATAG")
    >>> seq.codon(8)
    'AGA'
    >>> translate("ATGAAATAG")
    'MK*'
"""

from __future__ import annotations

# =============================================================================
# Constants
# =============================================================================

COMPLEMENT_TABLE = str.maketrans(
    "ACGTacgtNnRYSWKMBDHVryswkmbdhv",
    "TGCAtgcaNnYRSWMKVHDByrswmkvhdb",
)

# Bacterial, archaeal and plant plastid code (NCBI Table 11)
CODON_TABLE_PLASTID = {
    "TTT": "F", "TTC": "F", "TTA": "L", "TTG": "L",
    "CTT": "L", "CTC": "L", "CTA": "L", "CTG": "L",
    "ATT": "I", "ATC": "I", "ATA": "I", "ATG": "M",
    "GTT": "V", "GTC": "V", "GTA": "V", "GTG": "V",
    "TCT": "S", "TCC": "S", "TCA": "S", "TCG": "S",
    "CCT": "P", "CCC": "P", "CCA": "P", "CCG": "P",
    "ACT": "T", "ACC": "T", "ACA": "T", "ACG": "T",
    "GCT": "A", "GCC": "A", "GCA": "A", "GCG": "A",
    "TAT": "Y", "TAC": "Y", "TAA": "*", "TAG": "*",
    "CAT": "H", "CAC": "H", "CAA": "Q", "CAG": "Q",
    "AAT": "N", "AAC": "N", "AAA": "K", "AAG": "K",
    "GAT": "D", "GAC": "D", "GAA": "E", "GAG": "E",
    "TGT": "C", "TGC": "C", "TGA": "*", "TGG": "W",
    "CGT": "R", "CGC": "R", "CGA": "R", "CGG": "R",
    "AGT": "S", "AGC": "S", "AGA": "R", "AGG": "R",
    "GGT": "G", "GGC": "G", "GGA": "G", "GGG": "G",
}

STOP_CODONS = frozenset({"TAA", "TAG", "TGA"})

STOP_SYMBOL = "*"


# =============================================================================
# Codon Classification
# =============================================================================


def is_start_codon(codon: str, allow_acg: bool = False, allow_gtg: bool = False) -> bool:
    """Check whether a codon can initiate translation.

    ATG is always accepted; ACG (RNA-edited to AUG) and GTG are only
    accepted when explicitly allowed.

    Args:
        codon: Three-letter codon.
        allow_acg: Accept ACG as a start.
        allow_gtg: Accept GTG as a start.

    Returns:
        True if the codon is an acceptable start.
    """
    codon = codon.upper()
    if codon == "ATG":
        return True
    if allow_acg and codon == "ACG":
        return True
    return allow_gtg and codon == "GTG"


def is_stop_codon(codon: str) -> bool:
    """Check whether a codon is a stop codon."""
    return codon.upper() in STOP_CODONS


# =============================================================================
# Complement and Translation
# =============================================================================


def reverse_complement(sequence: str) -> str:
    """Get the reverse complement of a DNA sequence.

    Handles IUPAC ambiguity codes and preserves case.

    Args:
        sequence: DNA sequence string.

    Returns:
        Reverse complement sequence.
    """
    return sequence.translate(COMPLEMENT_TABLE)[::-1]


def translate(sequence: str) -> str:
    """Translate a DNA sequence to protein.

    Trailing bases that do not form a full codon are ignored. Codons
    containing ambiguous bases translate to ``X``.

    Args:
        sequence: DNA coding sequence.

    Returns:
        Amino acid sequence, with ``*`` for stop codons.
    """
    protein = []
    for i in range(0, len(sequence) - len(sequence) % 3, 3):
        codon = sequence[i : i + 3].upper()
        protein.append(CODON_TABLE_PLASTID.get(codon, "X"))
    return "".join(protein)


# =============================================================================
# Circular Sequence
# =============================================================================


class CircularSequence:
    """Read-only DNA sequence with 1-based circular indexing.

    Attributes:
        sequence: The linear sequence (upper case).

    Example:
        >>> seq = CircularSequence("ACGTT")
        >>> seq.span(4, 7)
        'TTAC'
    """

    __slots__ = ("sequence",)

    def __init__(self, sequence: str) -> None:
        if not sequence:
            raise ValueError("Circular sequence must not be empty")
        self.sequence = sequence.upper()

    def __len__(self) -> int:
        return len(self.sequence)

    def __getitem__(self, position: int) -> str:
        return self.sequence[(position - 1) % len(self.sequence)]

    def span(self, first: int, last: int) -> str:
        """Bases of the inclusive span ``first..last``, wrapping the origin."""
        length = last - first + 1
        if length <= 0:
            return ""
        n = len(self.sequence)
        offset = (first - 1) % n
        if offset + length <= n:
            return self.sequence[offset : offset + length]
        parts = [self.sequence[offset:]]
        remaining = length - (n - offset)
        while remaining > 0:
            parts.append(self.sequence[: min(n, remaining)])
            remaining -= n
        return "".join(parts)

    def codon(self, position: int) -> str:
        """Codon starting at ``position``."""
        return self.span(position, position + 2)

    def reverse_complement(self) -> CircularSequence:
        """The opposite strand, read 5' to 3'."""
        return CircularSequence(reverse_complement(self.sequence))
