"""Command-line interface for PlastoForge.

This module provides the main entry point for the plastoforge CLI tool.
It uses Click to define commands and subcommands for various operations.

Commands:
    annotate: Annotate a circular target genome from aligned references
    project: Write the projected reference annotations for inspection

Example:
    $ plastoforge --help
    $ plastoforge annotate target.fa -r NC_000932.sff -b NC_000932.blocks -t templates.tsv -o target.sff
    $ plastoforge project -r NC_000932.sff -b NC_000932.blocks -o annotations.tsv
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from plastoforge import __version__

# Initialize rich console for pretty output
console = Console()


def _check_reference_pairs(references: tuple[Path, ...], blocks: tuple[Path, ...]) -> None:
    if len(references) != len(blocks):
        console.print(
            f"[red]Error:[/red] {len(references)} reference file(s) but "
            f"{len(blocks)} block file(s); give one --blocks per --reference"
        )
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="plastoforge")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Also write debug-level log messages to this file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, log_file: Optional[Path]) -> None:
    """PlastoForge: Transfer annotations onto circular organelle genomes.

    PlastoForge projects the annotations of aligned reference genomes onto
    a target genome, calls features from the accumulated evidence, and
    writes refined gene models with quality notes.
    """
    from plastoforge.utils.logging import setup_logging

    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    verbosity = 0 if quiet else (2 if verbose else 1)
    setup_logging(verbosity=verbosity, log_file=log_file)


# =============================================================================
# annotate command
# =============================================================================


@main.command()
@click.argument("target", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-r",
    "--reference",
    "references",
    type=click.Path(exists=True, path_type=Path),
    multiple=True,
    required=True,
    help="Reference feature file (SFF). Repeat for several references.",
)
@click.option(
    "-b",
    "--blocks",
    "block_files",
    type=click.Path(exists=True, path_type=Path),
    multiple=True,
    required=True,
    help="Aligned blocks of the matching reference onto the target, in the same order.",
)
@click.option(
    "-t",
    "--templates",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Feature template table.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output SFF file [default: <target id>.sff].",
)
@click.option(
    "--gff",
    type=click.Path(path_type=Path),
    help="Also write the gene models as GFF3.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="TOML or YAML configuration file.",
)
@click.option(
    "--inverted-repeat",
    type=(int, int, int),
    default=None,
    metavar="SRC TGT LEN",
    help="Inverted repeat to report as repeat_region rows.",
)
@click.pass_context
def annotate(
    ctx: click.Context,
    target: Path,
    references: tuple[Path, ...],
    block_files: tuple[Path, ...],
    templates: Path,
    output: Optional[Path],
    gff: Optional[Path],
    config_path: Optional[Path],
    inverted_repeat: Optional[tuple[int, int, int]],
) -> None:
    """Annotate a circular target genome.

    TARGET is a FASTA file whose first record is the genome to annotate.
    Each reference feature file (-r) needs a block file (-b) aligning
    that reference to the target.

    Examples:
        plastoforge annotate target.fa -r ref1.sff -b ref1.blocks \\
            -r ref2.sff -b ref2.blocks -t templates.tsv --gff target.gff3
    """
    from plastoforge.config import AnnotateConfig
    from plastoforge.core.annotate import Reference
    from plastoforge.core.annotate import annotate as run_annotate
    from plastoforge.core.features import AlignedBlock
    from plastoforge.io.fasta import read_target
    from plastoforge.io.features import read_templates

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    _check_reference_pairs(references, block_files)

    try:
        config = AnnotateConfig.load(config_path)

        if not quiet:
            console.print(f"[blue]Target:[/blue] {target}")
            console.print(f"[blue]References:[/blue] {len(references)} file(s)")
            for ref in references:
                console.print(f"  - {ref.name}")
            console.print(f"[blue]Templates:[/blue] {templates}")

        target_id, target_seq = read_target(target)
        feature_templates = read_templates(templates)
        loaded = [Reference.from_files(ref, blk) for ref, blk in zip(references, block_files)]

        ir = AlignedBlock(*inverted_repeat) if inverted_repeat else None

        if not quiet:
            console.print(f"[dim]Annotating {target_id} ({len(target_seq):,} bp)...[/dim]")
        result = run_annotate(target_id, target_seq, loaded, feature_templates, config, ir)

        if output is None:
            output = Path(f"{target_id}.sff")
        with open(output, "w") as out:
            result.write_sff(out)

        if gff:
            result.write_gff(gff)

        if not quiet:
            table = Table(title=f"Annotation of {target_id}")
            table.add_column("Strand")
            table.add_column("Gene models", justify="right")
            table.add_column("Features", justify="right")
            table.add_column("Annotations", justify="right")
            for strand_result in (result.forward, result.reverse):
                table.add_row(
                    strand_result.strand,
                    f"{len(strand_result.records):,}",
                    f"{strand_result.n_features:,}",
                    f"{len(strand_result.annotations):,}",
                )
            console.print("")
            console.print(table)

            pseudogenes = result.pseudogenes()
            if pseudogenes:
                console.print(f"[yellow]Possible pseudogenes:[/yellow] {len(pseudogenes)}")
                for gene, strand, note in pseudogenes:
                    console.print(f"  - {gene} ({strand}): {note}")

            console.print("")
            console.print(f"[green]Wrote SFF:[/green] {output}")
            if gff:
                console.print(f"[green]Wrote GFF3:[/green] {gff}")

    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        raise SystemExit(1)


# =============================================================================
# project command
# =============================================================================


@main.command()
@click.option(
    "-r",
    "--reference",
    "references",
    type=click.Path(exists=True, path_type=Path),
    multiple=True,
    required=True,
    help="Reference feature file (SFF). Repeat for several references.",
)
@click.option(
    "-b",
    "--blocks",
    "block_files",
    type=click.Path(exists=True, path_type=Path),
    multiple=True,
    required=True,
    help="Aligned blocks of the matching reference onto the target, in the same order.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output TSV of projected annotations.",
)
@click.pass_context
def project(
    ctx: click.Context,
    references: tuple[Path, ...],
    block_files: tuple[Path, ...],
    output: Path,
) -> None:
    """Project reference annotations onto the target without calling features.

    Writes one row per reference feature fragment covered by an aligned
    block, in target coordinates.

    Examples:
        plastoforge project -r ref1.sff -b ref1.blocks -o annotations.tsv
    """
    from plastoforge.core.annotate import Reference, project_references
    from plastoforge.core.features import StrandPair
    from plastoforge.io.features import write_annotations

    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    _check_reference_pairs(references, block_files)

    try:
        loaded = [Reference.from_files(ref, blk) for ref, blk in zip(references, block_files)]
        annotations = StrandPair(
            project_references(loaded, "+"),
            project_references(loaded, "-"),
        )
        with open(output, "w") as out:
            n_rows = write_annotations(out, annotations)

        if not quiet:
            console.print(f"  Forward annotations:  {len(annotations.forward):,}")
            console.print(f"  Reverse annotations:  {len(annotations.reverse):,}")
            console.print(f"[green]Wrote {n_rows:,} annotations:[/green] {output}")

    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        raise SystemExit(1)


if __name__ == "__main__":
    main()
