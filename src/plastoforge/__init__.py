"""PlastoForge: annotation transfer for circular organelle genomes.

PlastoForge projects the annotations of related reference genomes onto a
new circular target genome through whole-genome alignment blocks,
accumulates the projected evidence in per-feature stacks, and calls
gene models with refined boundaries, reading frames and quality notes.

Example:
    >>> import plastoforge
    >>> plastoforge.__version__
    '0.1.0'

Modules:
    io: Readers and writers for features, templates, blocks, FASTA, SFF and GFF3
    core: Projection, evidence stacks, boundary refinement and gene models
    utils: Circular coordinates, sequences and logging
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
