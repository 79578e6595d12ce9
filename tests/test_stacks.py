"""Unit tests for plastoforge.core.stacks module.

Tests cover:
- Feature and shadow stack accumulation
- Wrapping of annotations across the origin
- Depth and coverage of a stack
"""

import logging

import numpy as np

from plastoforge.core.features import Annotation, FeatureTemplate
from plastoforge.core.stacks import depth_and_coverage, fill_feature_stacks

PATH = "geneX/?/CDS/1"
TEMPLATES = {PATH: FeatureTemplate(PATH, 1.0, 0.5, 30)}


class TestFillFeatureStacks:
    """Tests for fill_feature_stacks function."""

    def test_single_annotation(self, gene_stacks) -> None:
        """One annotation adds 3 to its stack and -1 to the shadow, nowhere else."""
        stacks, shadow = gene_stacks
        assert list(stacks) == [PATH]
        stack = stacks[PATH].stack

        assert stack.values[9:39].tolist() == [3] * 30
        assert int(np.count_nonzero(stack.values)) == 30
        assert shadow.values[9:39].tolist() == [-2] * 30
        assert int(np.count_nonzero(shadow.values == -1)) == 970

    def test_signal(self, gene_stacks) -> None:
        """stack + shadow is +1 inside the annotation and -1 outside."""
        stacks, shadow = gene_stacks
        assert stacks[PATH].signal(shadow, 10) == 1
        assert stacks[PATH].signal(shadow, 9) == -1

    def test_wraparound(self) -> None:
        """An annotation crossing the origin updates both ends of the genome."""
        annotation = Annotation("ref", PATH, 998, 5, 0, 0, 0)
        stacks, shadow = fill_feature_stacks(1000, [annotation], TEMPLATES)
        stack = stacks[PATH].stack
        for position in (998, 999, 1000, 1, 2):
            assert stack[position] == 3
            assert shadow[position] == -2
        assert stack[3] == 0
        assert stack[997] == 0
        assert int(stack.values.sum()) == 15

    def test_unknown_path_dropped(self, caplog) -> None:
        """Annotations without a template do not create stacks."""
        annotations = [
            Annotation("ref", "other/?/CDS/1", 10, 30, 0, 0, 0),
            Annotation("ref", PATH, 100, 10, 0, 0, 0),
        ]
        with caplog.at_level(logging.DEBUG, logger="plastoforge"):
            stacks, shadow = fill_feature_stacks(1000, annotations, TEMPLATES)
        assert list(stacks) == [PATH]
        assert shadow[10] == -1
        assert "without a template" in caplog.text

    def test_order_independent(self) -> None:
        """Input order does not change the stacks."""
        a = Annotation("ref1", PATH, 10, 30, 0, 0, 0)
        b = Annotation("ref2", PATH, 20, 30, 0, 0, 0)
        stacks_ab, shadow_ab = fill_feature_stacks(1000, [a, b], TEMPLATES)
        stacks_ba, shadow_ba = fill_feature_stacks(1000, [b, a], TEMPLATES)
        assert np.array_equal(stacks_ab[PATH].stack.values, stacks_ba[PATH].stack.values)
        assert np.array_equal(shadow_ab.values, shadow_ba.values)
        assert stacks_ab[PATH].stack[25] == 6
        assert shadow_ab[25] == -3

    def test_custom_weights(self) -> None:
        """Evidence weight and shadow prior are configurable."""
        annotation = Annotation("ref", PATH, 10, 5, 0, 0, 0)
        stacks, shadow = fill_feature_stacks(
            100, [annotation], TEMPLATES, evidence_weight=5, shadow_prior=0
        )
        assert stacks[PATH].stack[10] == 5
        assert shadow[10] == -1
        assert shadow[50] == 0


class TestDepthAndCoverage:
    """Tests for depth_and_coverage function."""

    def test_full_support(self, gene_stacks) -> None:
        """A range fully inside the annotation has depth 3 per reference."""
        stacks, _ = gene_stacks
        depth, coverage = depth_and_coverage(stacks[PATH], 10, 30, 1)
        assert depth == 3.0
        assert coverage == 1.0

    def test_half_support(self, gene_stacks) -> None:
        """Only positive cells count toward depth and coverage."""
        stacks, _ = gene_stacks
        depth, coverage = depth_and_coverage(stacks[PATH], 25, 30, 1)
        assert coverage == 0.5
        assert depth == 1.5

    def test_no_support(self, gene_stacks) -> None:
        """A range without evidence scores zero."""
        stacks, _ = gene_stacks
        assert depth_and_coverage(stacks[PATH], 500, 30, 1) == (0.0, 0.0)

    def test_degenerate(self, gene_stacks) -> None:
        """Empty ranges or no references score zero."""
        stacks, _ = gene_stacks
        assert depth_and_coverage(stacks[PATH], 10, 0, 1) == (0.0, 0.0)
        assert depth_and_coverage(stacks[PATH], 10, 30, 0) == (0.0, 0.0)
