"""Unit tests for plastoforge.config module."""

from pathlib import Path

import pytest

from plastoforge.config import (
    DEFAULT_CHUNK_SIZES,
    DEFAULT_EVIDENCE_WEIGHT,
    DEFAULT_MAX_FULCRUM_GAP,
    AnnotateConfig,
)


class TestAnnotateConfig:
    """Tests for AnnotateConfig."""

    def test_defaults(self) -> None:
        """Defaults describe plastid genomes."""
        config = AnnotateConfig()
        assert config.evidence_weight == DEFAULT_EVIDENCE_WEIGHT == 3
        assert config.shadow_prior == -1
        assert config.chunk_sizes == DEFAULT_CHUNK_SIZES
        assert config.max_fulcrum_gap == DEFAULT_MAX_FULCRUM_GAP == 100
        assert "rps12A" in config.orf_exempt_genes
        assert "rps12B" in config.start_exempt_genes
        assert "rps19" in config.gtg_start_genes
        assert "ndhD" in config.acg_start_genes

    def test_lists_become_tuples(self) -> None:
        """Sequence fields are stored as tuples."""
        config = AnnotateConfig(chunk_sizes=[50, 10, 1], gtg_start_genes=["rps19", "psbC"])
        assert config.chunk_sizes == (50, 10, 1)
        assert config.gtg_start_genes == ("rps19", "psbC")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"evidence_weight": 0},
            {"chunk_sizes": []},
            {"chunk_sizes": [10, 0]},
            {"template_hit_fraction": 1.5},
        ],
    )
    def test_validation(self, kwargs) -> None:
        """Invalid values are rejected."""
        with pytest.raises(ValueError):
            AnnotateConfig(**kwargs)

    def test_to_dict(self) -> None:
        """to_dict exposes every field."""
        data = AnnotateConfig().to_dict()
        assert data["max_fulcrum_gap"] == 100
        assert data["pseudogene_tolerance"] == 10


class TestLoad:
    """Tests for AnnotateConfig.load."""

    def test_none_gives_defaults(self) -> None:
        """No path gives the default configuration."""
        assert AnnotateConfig.load(None) == AnnotateConfig()

    def test_top_level_keys(self, tmp_path: Path) -> None:
        """Keys may be given at the top level."""
        path = tmp_path / "config.toml"
        path.write_text("max_fulcrum_gap = 50\nchunk_sizes = [20, 5, 1]\n")
        config = AnnotateConfig.load(path)
        assert config.max_fulcrum_gap == 50
        assert config.chunk_sizes == (20, 5, 1)

    def test_annotate_table(self, tmp_path: Path) -> None:
        """Keys may be grouped under an [annotate] table."""
        path = tmp_path / "config.toml"
        path.write_text('[annotate]\npseudogene_tolerance = 30\nacg_start_genes = ["ndhD", "psbL"]\n')
        config = AnnotateConfig.load(path)
        assert config.pseudogene_tolerance == 30
        assert config.acg_start_genes == ("ndhD", "psbL")
        assert config.max_fulcrum_gap == 100

    def test_unknown_key(self, tmp_path: Path) -> None:
        """Unknown keys are reported."""
        path = tmp_path / "config.toml"
        path.write_text("max_gap = 50\n")
        with pytest.raises(ValueError, match="max_gap"):
            AnnotateConfig.load(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file is an error."""
        with pytest.raises(FileNotFoundError):
            AnnotateConfig.load(tmp_path / "missing.toml")

    @pytest.mark.parametrize("name", ["config.yaml", "config.yml"])
    def test_yaml_file(self, tmp_path: Path, name: str) -> None:
        """Files with a YAML suffix are read as YAML."""
        path = tmp_path / name
        path.write_text("annotate:\n  max_fulcrum_gap: 40\n  gtg_start_genes: [rps19, psbC]\n")
        config = AnnotateConfig.load(path)
        assert config.max_fulcrum_gap == 40
        assert config.gtg_start_genes == ("rps19", "psbC")

    def test_empty_yaml_gives_defaults(self, tmp_path: Path) -> None:
        """An empty YAML file leaves every default in place."""
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert AnnotateConfig.load(path) == AnnotateConfig()

    def test_yaml_errors(self, tmp_path: Path) -> None:
        """Malformed or non-mapping YAML is reported as a ValueError."""
        path = tmp_path / "config.yaml"
        path.write_text("max_fulcrum_gap: [1, 2\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            AnnotateConfig.load(path)

        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            AnnotateConfig.load(path)
