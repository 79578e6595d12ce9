"""Input/output handlers for PlastoForge.

This module provides readers and writers for the file formats used in
annotation transfer:

- Feature files (SFF) and feature templates
- Aligned block files
- FASTA: Target genome sequences
- GFF3: Gene model export

Example:
    >>> from plastoforge.io.features import read_features, read_templates
    >>> features = read_features("NC_000932.sff")
"""

__all__: list[str] = []
