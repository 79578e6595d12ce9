"""Pytest configuration and shared fixtures for PlastoForge tests.

This module contains fixtures that are shared across multiple test modules.
Fixtures are organized by category:

- Sequence fixtures: Small synthetic circular genomes
- File fixtures: Reference, block, template and FASTA files on disk
- Engine fixtures: Stacks and annotations built in memory
"""

from pathlib import Path

import pytest

from plastoforge.core.features import Annotation, FeatureTemplate
from plastoforge.core.stacks import fill_feature_stacks
from plastoforge.utils.sequences import CircularSequence, reverse_complement

GENOME_LENGTH = 1000
GENE_ANNOTATION_PATH = "geneX/?/CDS/1"


# =============================================================================
# Sequence Fixtures
# =============================================================================


def make_target_sequence() -> str:
    """1000 bp genome with one 10-codon ORF at 10-39.

    Layout: A x9, ATG, GCT x8, TAA, C x961.
    """
    return "A" * 9 + "ATG" + "GCT" * 8 + "TAA" + "C" * (GENOME_LENGTH - 39)


@pytest.fixture
def target_sequence() -> CircularSequence:
    """Target genome with geneX at 10-39 on the forward strand."""
    return CircularSequence(make_target_sequence())


@pytest.fixture
def reverse_target_sequence() -> CircularSequence:
    """Target genome with geneX at 10-39 of the reverse strand."""
    return CircularSequence(reverse_complement(make_target_sequence()))


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def target_fasta(tmp_path: Path) -> Path:
    """FASTA file of the target genome."""
    fasta_path = tmp_path / "target.fa"
    seq = make_target_sequence()
    with open(fasta_path, "w") as f:
        f.write(">target\n")
        # Write in 80-character lines
        for i in range(0, len(seq), 80):
            f.write(seq[i : i + 80] + "\n")
    return fasta_path


@pytest.fixture
def reference_sff(tmp_path: Path) -> Path:
    """Reference feature file with geneX and rows that must be skipped."""
    path = tmp_path / "ref.sff"
    path.write_text(
        "ref\t1000\n"
        "geneX/1/CDS/1\t+\t10\t30\t0\t1.000\t1.000\t\n"
        "unassigned/1/CDS/1\t+\t100\t30\t0\t1.000\t1.000\t\n"
        "geneY/1/CDS/1\t-\t200\t60\t0\t1.000\t1.000\t\tpseudo\n"
        "geneZ/1/tRNA/1\t-\t500\t72\t0\t1.000\t1.000\t\n"
    )
    return path


@pytest.fixture
def reference_blocks(tmp_path: Path) -> Path:
    """Block file aligning geneX of the reference onto the target."""
    path = tmp_path / "ref.blocks"
    path.write_text("# strand\tsrc\ttgt\tlength\n+\t10\t10\t30\n")
    return path


@pytest.fixture
def templates_tsv(tmp_path: Path) -> Path:
    """Template file for geneX and geneZ."""
    path = tmp_path / "templates.tsv"
    path.write_text(
        "path\tthreshold_counts\tthreshold_coverage\tmedian_length\n"
        "geneX/?/CDS/1\t1.0\t0.5\t30\n"
        "geneZ/?/tRNA/1\t1.0\t0.5\t72\n"
    )
    return path


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def gene_template() -> FeatureTemplate:
    """Template of the geneX CDS."""
    return FeatureTemplate(GENE_ANNOTATION_PATH, 1.0, 0.5, 30)


@pytest.fixture
def gene_annotation() -> Annotation:
    """geneX projected fully onto 10-39."""
    return Annotation("ref", GENE_ANNOTATION_PATH, 10, 30, 0, 0, 0)


@pytest.fixture
def gene_stacks(gene_annotation: Annotation, gene_template: FeatureTemplate):
    """Stacks and shadow built from the single geneX annotation."""
    return fill_feature_stacks(
        GENOME_LENGTH, [gene_annotation], {GENE_ANNOTATION_PATH: gene_template}
    )
