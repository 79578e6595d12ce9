"""Reference feature and template tables.

Both are tab-separated files describing the reference annotations that
are projected onto a target:

- Feature files: header ``genome_id<TAB>genome_length``, then one row per
  feature ``path, strand, start, length, phase[, ..., note]``
- Template files: a header line, then ``path, threshold_counts,
  threshold_coverage, median_length``

Example:
    >>> from plastoforge.io.features import read_features, read_templates
    >>> features = read_features("NC_000932.sff")
    >>> len(features.forward)
    112
    >>> templates = read_templates("optimised_templates.tsv")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from plastoforge.core.features import (
    STRANDS,
    Feature,
    FeatureArray,
    FeatureTemplate,
    StrandPair,
    parse_path,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Column indices
COL_PATH = 0
COL_STRAND = 1
COL_START = 2
COL_LENGTH = 3
COL_PHASE = 4
COL_NOTE = 8

EXCLUDED_PREFIXES = ("unassigned", "predicted")
PSEUDOGENE_MARKER = "pseudo"


# =============================================================================
# Feature Files
# =============================================================================


def _is_excluded(fields: list[str]) -> bool:
    """Whether a feature row is left out of the reference set."""
    if fields[COL_PATH].startswith(EXCLUDED_PREFIXES):
        return True
    return len(fields) > COL_NOTE and PSEUDOGENE_MARKER in fields[COL_NOTE]


def read_features(path: Path | str) -> StrandPair:
    """Read a reference feature file.

    Rows for unassigned or predicted features, and rows marked as
    pseudogenes, are skipped.

    Args:
        path: Feature file.

    Returns:
        StrandPair of FeatureArray (forward, reverse).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If a header or numeric field is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Feature file not found: {path}")

    forward: list[Feature] = []
    reverse: list[Feature] = []

    with open(path) as f:
        header = f.readline().rstrip("\n").split("\t")
        if len(header) < 2:
            raise ValueError(f"{path}: header must be genome_id<TAB>genome_length")
        genome_id = header[0]
        try:
            genome_length = int(header[1])
        except ValueError as e:
            raise ValueError(f"{path}:1: invalid genome length {header[1]!r}") from e

        for line_num, line in enumerate(f, start=2):
            line = line.rstrip("\n")
            if not line:
                continue
            fields = line.split("\t")
            if _is_excluded(fields):
                continue
            try:
                parse_path(fields[COL_PATH])
                feature = Feature(
                    fields[COL_PATH],
                    int(fields[COL_START]),
                    int(fields[COL_LENGTH]),
                    int(fields[COL_PHASE]),
                )
            except (IndexError, ValueError) as e:
                raise ValueError(f"{path}:{line_num}: malformed feature row: {e}") from e

            if fields[COL_STRAND].startswith("+"):
                forward.append(feature)
            else:
                reverse.append(feature)

    logger.debug(f"Read {len(forward)} + {len(reverse)} features for {genome_id} from {path.name}")
    return StrandPair(
        FeatureArray.build(genome_id, genome_length, "+", forward),
        FeatureArray.build(genome_id, genome_length, "-", reverse),
    )


# =============================================================================
# Template Files
# =============================================================================


def read_templates(path: Path | str) -> dict[str, FeatureTemplate]:
    """Read a feature template file.

    Args:
        path: Template file.

    Returns:
        Templates keyed by path, in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file is empty, a path is duplicated, or a
            numeric field is malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Template file not found: {path}")
    if path.stat().st_size == 0:
        raise ValueError(f"No data in template file: {path}")

    templates: dict[str, FeatureTemplate] = {}
    with open(path) as f:
        f.readline()  # header
        for line_num, line in enumerate(f, start=2):
            line = line.rstrip("\n")
            if not line:
                continue
            fields = line.split("\t")
            try:
                template = FeatureTemplate(
                    path=fields[0],
                    threshold_counts=float(fields[1]),
                    threshold_coverage=float(fields[2]),
                    median_length=int(fields[3]),
                )
            except (IndexError, ValueError) as e:
                raise ValueError(f"{path}:{line_num}: malformed template row: {e}") from e

            if template.path in templates:
                raise ValueError(f"Duplicate path {template.path!r} in template file {path}")
            templates[template.path] = template

    logger.debug(f"Read {len(templates)} templates from {path.name}")
    return templates


# =============================================================================
# Projected Annotations
# =============================================================================

ANNOTATION_COLUMNS = ("genome_id", "strand", "path", "start", "length", "offset5", "offset3", "phase")


def write_annotations(out: TextIO, annotations: StrandPair) -> int:
    """Write projected annotations of both strands as a TSV table.

    Args:
        out: Text stream to write to.
        annotations: StrandPair of annotation lists.

    Returns:
        Number of rows written.
    """
    out.write("\t".join(ANNOTATION_COLUMNS) + "\n")
    n_rows = 0
    for strand, strand_annotations in zip(STRANDS, annotations):
        for a in strand_annotations:
            out.write(
                f"{a.genome_id}\t{strand}\t{a.path}\t{a.start}\t{a.length}\t"
                f"{a.offset5}\t{a.offset3}\t{a.phase}\n"
            )
            n_rows += 1
    return n_rows
