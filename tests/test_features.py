"""Unit tests for plastoforge.core.features module.

Tests cover:
- Feature path parsing
- Feature properties
- FeatureArray overlap queries
"""

import pytest

from plastoforge.core.features import (
    AlignedBlock,
    Feature,
    FeatureArray,
    StrandPair,
    parse_path,
)


class TestParsePath:
    """Tests for parse_path function."""

    def test_components(self) -> None:
        """A four-part path splits into named components."""
        path = parse_path("ndhB/2/CDS/1")
        assert path.gene == "ndhB"
        assert path.instance == "2"
        assert path.type == "CDS"
        assert path.part == "1"

    def test_suffix_and_annotation_path(self) -> None:
        """Derived paths drop or replace the instance."""
        path = parse_path("ndhB/2/CDS/1")
        assert path.suffix == "CDS/1"
        assert path.annotation_path == "ndhB/?/CDS/1"

    @pytest.mark.parametrize("bad", ["ndhB/CDS/1", "ndhB/1/CDS/1/x", ""])
    def test_malformed(self, bad: str) -> None:
        """Paths without four parts are rejected."""
        with pytest.raises(ValueError, match="gene/instance/type/part"):
            parse_path(bad)


class TestFeature:
    """Tests for Feature."""

    def test_properties(self) -> None:
        """Gene, type and end come from the path and coordinates."""
        feature = Feature("rbcL/1/CDS/1", 100, 30, 0)
        assert feature.gene == "rbcL"
        assert feature.type == "CDS"
        assert feature.end == 129
        assert feature.is_coding

    def test_non_coding(self) -> None:
        """Introns and RNAs are not coding."""
        assert not Feature("trnK/1/intron/1", 1, 10).is_coding
        assert not Feature("trnK/1/tRNA/1", 1, 10).is_coding

    def test_mutable(self) -> None:
        """Features are refined in place."""
        feature = Feature("rbcL/1/CDS/1", 100, 30, 0)
        feature.start = 90
        feature.length = 40
        assert feature.end == 129


class TestAlignedBlock:
    """Tests for AlignedBlock."""

    def test_src_end(self) -> None:
        """src_end is the last aligned reference base."""
        assert AlignedBlock(10, 20, 30).src_end == 39


class TestFeatureArray:
    """Tests for FeatureArray."""

    @pytest.fixture
    def array(self) -> FeatureArray:
        features = [
            Feature("psbA/1/CDS/1", 500, 100),
            Feature("rbcL/1/CDS/1", 100, 50),
            Feature("atpB/1/CDS/1", 100, 20),
            Feature("empty/1/CDS/1", 300, 0),
        ]
        return FeatureArray.build("ref", 1000, "+", features)

    def test_build_sorts(self, array: FeatureArray) -> None:
        """Features are ordered by start, then end."""
        assert [f.gene for f in array] == ["atpB", "rbcL", "empty", "psbA"]
        assert len(array) == 4

    def test_overlapping(self, array: FeatureArray) -> None:
        """Queries return overlapping features in array order."""
        assert [f.gene for f in array.overlapping(110, 130)] == ["atpB", "rbcL"]
        assert [f.gene for f in array.overlapping(120, 149)] == ["rbcL"]

    def test_inclusive_bounds(self, array: FeatureArray) -> None:
        """Both query ends are inclusive."""
        assert [f.gene for f in array.overlapping(149, 149)] == ["rbcL"]
        assert [f.gene for f in array.overlapping(150, 499)] == []
        assert [f.gene for f in array.overlapping(599, 700)] == ["psbA"]

    def test_zero_length_never_found(self, array: FeatureArray) -> None:
        """Zero-length features are not indexed."""
        assert array.overlapping(290, 310) == []

    def test_reversed_query(self, array: FeatureArray) -> None:
        """A query with hi < lo finds nothing."""
        assert array.overlapping(200, 100) == []


class TestStrandPair:
    """Tests for StrandPair."""

    def test_for_strand(self) -> None:
        """Values are selected by strand symbol."""
        pair = StrandPair("fwd", "rev")
        assert pair.for_strand("+") == "fwd"
        assert pair.for_strand("-") == "rev"

    def test_invalid_strand(self) -> None:
        """Unknown strand symbols are rejected."""
        with pytest.raises(ValueError, match="Invalid strand"):
            StrandPair("fwd", "rev").for_strand(".")
