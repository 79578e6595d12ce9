"""Configuration management for PlastoForge.

This module holds the tunable constants of the annotation engine.
Configuration can come from:
- Default values
- A TOML or YAML configuration file
- Command-line arguments

Example:
    >>> from plastoforge.config import AnnotateConfig
    >>> config = AnnotateConfig.load("plastoforge.toml")
    >>> config.max_fulcrum_gap
    100
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import attrs
import yaml

# =============================================================================
# Default Configuration Values
# =============================================================================

# Evidence accumulation
DEFAULT_EVIDENCE_WEIGHT = 3  # +1 cancels the shadow decrement, +1 evidence, +1 claimed bias
DEFAULT_SHADOW_PRIOR = -1

# Boundary refinement
DEFAULT_CHUNK_SIZES = (100, 80, 60, 40, 30, 20, 10, 5, 1)
DEFAULT_TEMPLATE_HIT_FRACTION = 0.9
DEFAULT_MAX_FULCRUM_GAP = 100

# Record building
DEFAULT_PSEUDOGENE_TOLERANCE = 10

# Gene-specific exceptions (plastid genomes)
DEFAULT_ORF_EXEMPT_GENES = ("rps12A",)  # trans-spliced 5' part, no stop search
DEFAULT_START_EXEMPT_GENES = ("rps12B",)  # trans-spliced 3' part, no start codon
DEFAULT_GTG_START_GENES = ("rps19",)
DEFAULT_ACG_START_GENES = ("ndhD",)  # ACG edited to AUG

# Configuration file formats
YAML_SUFFIXES = (".yaml", ".yml")


# =============================================================================
# Configuration Classes
# =============================================================================


def _as_tuple(value: Any) -> tuple:
    return tuple(value)


@attrs.define(slots=True)
class AnnotateConfig:
    """Configuration for the annotation engine.

    Attributes:
        evidence_weight: Stack increment per annotated position.
        shadow_prior: Initial value of every shadow-stack cell.
        chunk_sizes: Leap sizes of chunked boundary expansion, largest first.
        template_hit_fraction: Fraction of the best template score a hit must reach.
        max_fulcrum_gap: Gaps below this are reconciled by fulcrum search.
        pseudogene_tolerance: Span deficit (bp) versus the longest copy that flags a pseudogene.
        orf_exempt_genes: Genes whose last CDS is not extended to a stop codon.
        start_exempt_genes: Genes whose first CDS is not searched for a start codon.
        gtg_start_genes: Genes allowed to start with GTG.
        acg_start_genes: Genes allowed to start with ACG.
    """

    evidence_weight: int = DEFAULT_EVIDENCE_WEIGHT
    shadow_prior: int = DEFAULT_SHADOW_PRIOR
    chunk_sizes: tuple[int, ...] = attrs.field(default=DEFAULT_CHUNK_SIZES, converter=_as_tuple)
    template_hit_fraction: float = DEFAULT_TEMPLATE_HIT_FRACTION
    max_fulcrum_gap: int = DEFAULT_MAX_FULCRUM_GAP
    pseudogene_tolerance: int = DEFAULT_PSEUDOGENE_TOLERANCE
    orf_exempt_genes: tuple[str, ...] = attrs.field(
        default=DEFAULT_ORF_EXEMPT_GENES, converter=_as_tuple
    )
    start_exempt_genes: tuple[str, ...] = attrs.field(
        default=DEFAULT_START_EXEMPT_GENES, converter=_as_tuple
    )
    gtg_start_genes: tuple[str, ...] = attrs.field(
        default=DEFAULT_GTG_START_GENES, converter=_as_tuple
    )
    acg_start_genes: tuple[str, ...] = attrs.field(
        default=DEFAULT_ACG_START_GENES, converter=_as_tuple
    )

    def __attrs_post_init__(self) -> None:
        """Validate configuration values."""
        if self.evidence_weight <= 0:
            raise ValueError("evidence_weight must be positive")
        if not self.chunk_sizes or any(size <= 0 for size in self.chunk_sizes):
            raise ValueError("chunk_sizes must be non-empty positive integers")
        if not 0.0 <= self.template_hit_fraction <= 1.0:
            raise ValueError("template_hit_fraction must be between 0 and 1")

    @classmethod
    def load(cls, path: Path | str | None = None) -> AnnotateConfig:
        """Load configuration from a TOML or YAML file.

        Files ending in ``.yaml`` or ``.yml`` are read as YAML, anything
        else as TOML. Keys may sit at the top level or under an
        ``annotate`` table.

        Args:
            path: Path to configuration file. If None, returns defaults.

        Returns:
            Loaded configuration object.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            ValueError: If configuration file is not a mapping or has unknown keys.
        """
        if path is None:
            return cls()

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        if path.suffix.lower() in YAML_SUFFIXES:
            with open(path) as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Invalid YAML in {path}: {e}") from e
        else:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        data = data.get("annotate", data)

        known = {field.name for field in attrs.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys in {path}: {', '.join(unknown)}")

        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return attrs.asdict(self)
