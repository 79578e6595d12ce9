"""Integration tests for plastoforge.core.annotate module.

Tests run the whole pipeline on small synthetic genomes:
- A forward-strand gene copied from one reference
- Genes crossing the origin of the target
- A gene on the reverse strand
"""

import io
import logging
from pathlib import Path

import pytest

from plastoforge.config import AnnotateConfig
from plastoforge.core.annotate import Reference, annotate, call_features, project_references
from plastoforge.core.features import AlignedBlock, FeatureTemplate
from plastoforge.io.features import read_templates
from plastoforge.utils.sequences import CircularSequence

ORF = "ATG" + "GCT" * 8 + "TAA"


@pytest.fixture
def reference(reference_sff: Path, reference_blocks: Path) -> Reference:
    return Reference.from_files(reference_sff, reference_blocks)


@pytest.fixture
def templates(templates_tsv: Path) -> dict[str, FeatureTemplate]:
    return read_templates(templates_tsv)


def write_reference(tmp_path: Path, feature_row: str, block_row: str) -> Reference:
    """Reference with a single feature and a single block."""
    sff = tmp_path / "single.sff"
    sff.write_text(f"ref\t1000\n{feature_row}\n")
    blocks = tmp_path / "single.blocks"
    blocks.write_text(f"{block_row}\n")
    return Reference.from_files(sff, blocks)


class TestReference:
    """Tests for Reference.from_files."""

    def test_from_files(self, reference: Reference) -> None:
        """Features and blocks of both strands are loaded."""
        assert reference.genome_id == "ref"
        assert len(reference.features.forward) == 1
        assert len(reference.features.reverse) == 1
        assert reference.blocks.forward == [AlignedBlock(10, 10, 30)]

    def test_project_references(self, reference: Reference) -> None:
        """Only features covered by blocks are projected."""
        forward = project_references([reference], "+")
        assert [(a.path, a.start, a.length) for a in forward] == [("geneX/?/CDS/1", 10, 30)]
        assert project_references([reference], "-") == []


class TestAnnotate:
    """Tests for the annotate pipeline."""

    def test_forward_gene(self, target_sequence, reference, templates) -> None:
        """A gene aligned from the reference is called and refined."""
        result = annotate("target", target_sequence, [reference], templates)

        assert result.n_models == 1
        assert result.reverse.records == []
        (model,) = result.forward.records
        (record,) = model
        feature = record.feature
        assert (feature.path, feature.start, feature.length, feature.phase) == (
            "geneX/?/CDS/1",
            10,
            30,
            0,
        )
        assert record.relative_length == pytest.approx(1.0)
        assert record.depth == pytest.approx(1.0)
        assert result.pseudogenes() == []

    def test_write_sff(self, target_sequence, reference, templates) -> None:
        """The result is written as an SFF stream."""
        result = annotate("target", target_sequence, [reference], templates)
        out = io.StringIO()
        assert result.write_sff(out) == 1
        assert out.getvalue() == "target\t1000\ngeneX/1/CDS/1\t+\t10\t30\t0\t1.000\t1.000\t\n"

    def test_inverted_repeat_reported(self, target_sequence, reference, templates) -> None:
        """An inverted repeat passed in is written after the models."""
        ir = AlignedBlock(100, 600, 200)
        result = annotate("target", target_sequence, [reference], templates, ir=ir)
        out = io.StringIO()
        result.write_sff(out)
        assert out.getvalue().splitlines()[-2:] == [
            "IR/1/repeat_region/1\t+\t100\t200\t0\t0\t0\t0\t",
            "IR/2/repeat_region/1\t-\t600\t200\t0\t0\t0\t0\t",
        ]

    def test_gene_across_origin(self, tmp_path: Path, templates) -> None:
        """A gene crossing the origin keeps its start and full length."""
        # ORF at 985-1014, i.e. 985-1000 and 1-14
        seq = CircularSequence(ORF[16:] + "C" * 970 + ORF[:16])
        reference = write_reference(
            tmp_path, "geneX/1/CDS/1\t+\t10\t30\t0\t1.000\t1.000\t", "+\t10\t985\t30"
        )
        result = annotate("target", seq, [reference], templates)

        (model,) = result.forward.records
        feature = model[0].feature
        assert (feature.start, feature.length) == (985, 30)
        assert model[0].has_start
        assert not model[0].has_premature_stop

    def test_block_across_origin_keeps_phase(self, tmp_path: Path, templates) -> None:
        """A CDS projected past the end of the target keeps its frame."""
        # source 16 maps to 1005, i.e. position 5 of the 1000 bp target
        seq = CircularSequence("C" * 4 + ORF + "C" * 966)
        reference = write_reference(
            tmp_path, "geneX/1/CDS/1\t+\t16\t30\t0\t1.000\t1.000\t", "+\t1\t990\t100"
        )
        result = annotate("target", seq, [reference], templates)

        (annotation,) = result.forward.annotations
        assert annotation.start == 1005
        (model,) = result.forward.records
        feature = model[0].feature
        assert (feature.start, feature.length, feature.phase) == (5, 30, 0)
        assert model[0].has_start

    def test_split_gene_across_origin(self, tmp_path: Path, caplog) -> None:
        """A two-part gene straddling the origin becomes one model."""
        orf = "ATG" + "GCT" * 16 + "TAA"
        seq = CircularSequence(orf[25:] + "C" * 946 + orf[:25])
        reference = write_reference(
            tmp_path,
            "geneA/1/CDS/1\t+\t976\t25\t0\t1.000\t1.000\t\n"
            "geneA/1/CDS/2\t+\t1\t29\t2\t1.000\t1.000\t",
            "+\t1\t1\t1000",
        )
        templates = {
            "geneA/?/CDS/1": FeatureTemplate("geneA/?/CDS/1", 1.0, 0.5, 25),
            "geneA/?/CDS/2": FeatureTemplate("geneA/?/CDS/2", 1.0, 0.5, 29),
        }
        with caplog.at_level(logging.WARNING, logger="plastoforge"):
            result = annotate("target", seq, [reference], templates)

        (model,) = result.forward.records
        features = [r.feature for r in model]
        assert [(f.path, f.start, f.length, f.phase) for f in features] == [
            ("geneA/?/CDS/1", 976, 25, 0),
            ("geneA/?/CDS/2", 1, 29, 2),
        ]
        assert {r.gene_length for r in model} == {54}
        assert model[0].has_start
        assert not model[0].has_premature_stop
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_reverse_strand_gene(self, tmp_path: Path, reverse_target_sequence, templates) -> None:
        """Reverse-strand genes are reported in reverse-complement coordinates."""
        reference = write_reference(
            tmp_path, "geneX/1/CDS/1\t-\t10\t30\t0\t1.000\t1.000\t", "-\t10\t10\t30"
        )
        result = annotate("target", reverse_target_sequence, [reference], templates)

        assert result.forward.records == []
        (model,) = result.reverse.records
        assert (model[0].feature.start, model[0].feature.length) == (10, 30)

        out = io.StringIO()
        result.write_gff(out)
        gene_line = out.getvalue().splitlines()[4].split("\t")
        assert gene_line[2:7] == ["gene", "962", "991", ".", "-"]

    def test_template_thresholds(self, target_sequence, reference) -> None:
        """Features short of the template depth are not called."""
        strict = {"geneX/?/CDS/1": FeatureTemplate("geneX/?/CDS/1", 5.0, 0.5, 30)}
        result = annotate("target", target_sequence, [reference], strict)
        assert result.n_models == 0

    def test_config_passed_through(self, target_sequence, reference, templates) -> None:
        """The configuration is kept with the result."""
        config = AnnotateConfig(pseudogene_tolerance=0)
        result = annotate("target", target_sequence, [reference], templates, config=config)
        assert result.config.pseudogene_tolerance == 0

    def test_requires_references(self, target_sequence, templates) -> None:
        """At least one reference is needed."""
        with pytest.raises(ValueError, match="reference"):
            annotate("target", target_sequence, [], templates)

    def test_requires_templates(self, target_sequence, reference) -> None:
        """Templates are needed."""
        with pytest.raises(ValueError, match="templates"):
            annotate("target", target_sequence, [reference], {})


class TestCallFeatures:
    """Tests for call_features function."""

    def test_called_from_stack(self, gene_stacks, gene_annotation) -> None:
        """A template hit with supporting projections becomes a feature."""
        stacks, shadow = gene_stacks
        features = call_features(
            stacks["geneX/?/CDS/1"], shadow, [gene_annotation], {"ref": 1.0}, 1, AnnotateConfig()
        )
        assert [(f.start, f.length) for f in features] == [(10, 30)]

    def test_expanded_without_voters(self, gene_stacks) -> None:
        """Without projections the edges grow over the positive signal."""
        stacks, shadow = gene_stacks
        features = call_features(stacks["geneX/?/CDS/1"], shadow, [], {}, 1, AnnotateConfig())
        assert [(f.start, f.length) for f in features] == [(10, 30)]
