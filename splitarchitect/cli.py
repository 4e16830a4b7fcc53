import logging
from typing import List, Optional, TextIO

import click

from splitarchitect.config import NetworkConfig, SplitNewickConfig
from splitarchitect.elements.compatibility import compute_compatibility
from splitarchitect.exceptions import NewickParseError, SplitArchitectError
from splitarchitect.io.split_newick import (
    SplitNewickResult,
    read_split_newick,
    to_split_newick,
)
from splitarchitect.logger.tables import graph_summary_table, split_table
from splitarchitect.network.convex_hull import build_split_network
from splitarchitect.network.progress import RichProgress

logger = logging.getLogger(__name__)


def _read(stream: TextIO) -> SplitNewickResult:
    try:
        return read_split_newick(stream)
    except NewickParseError as e:
        raise click.ClickException(f"{stream.name}: {e}") from e


def _parse_cycle(value: Optional[str], ntax: int) -> Optional[List[int]]:
    if not value:
        return None
    try:
        cycle = [int(part) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise click.BadParameter(f"not a comma separated list of taxa: {value}") from e
    if sorted(cycle) != list(range(1, ntax + 1)):
        raise click.BadParameter(f"must be a permutation of 1..{ntax}")
    return cycle


def _report_diagnostics(result) -> None:
    for diagnostic in result.diagnostics:
        click.echo(f"warning: {diagnostic}", err=True)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """Read, analyse and re-write split systems in Split-Newick format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command()
@click.argument("input", type=click.File("r"))
def splits(input: TextIO) -> None:
    """Print the splits of a Split-Newick file."""
    result = _read(input)
    click.echo(split_table(result.splits, result.taxon_label))
    click.echo(
        f"\n{len(result.splits)} splits on {result.ntax} taxa: "
        f"{compute_compatibility(result.ntax, result.splits).value}"
    )
    _report_diagnostics(result)


@main.command()
@click.argument("input", type=click.File("r"))
@click.option("--no-fallback", is_flag=True, help="Keep a disconnected network.")
def network(input: TextIO, no_fallback: bool) -> None:
    """Build the split network of a Split-Newick file."""
    result = _read(input)
    progress = RichProgress()
    try:
        built = build_split_network(
            result.splits,
            taxon_label=result.taxon_label,
            ntax=result.ntax or None,
            progress=progress,
            config=NetworkConfig(star_fallback=not no_fallback),
        )
    except SplitArchitectError as e:
        raise click.ClickException(str(e)) from e
    finally:
        progress.close()

    click.echo(graph_summary_table(built.graph))
    if built.fallback:
        click.echo("network was disconnected, replaced by star network")
    _report_diagnostics(result)
    _report_diagnostics(built)


@main.command()
@click.argument("input", type=click.File("r"))
@click.option("--no-weights", is_flag=True, help="Omit split weights.")
@click.option("--confidences", is_flag=True, help="Include split confidences.")
@click.option("--cycle", default=None, help="Taxon ordering, e.g. 1,3,2,4.")
@click.option("-o", "--output", type=click.File("w"), default="-")
def reencode(
    input: TextIO,
    no_weights: bool,
    confidences: bool,
    cycle: Optional[str],
    output: TextIO,
) -> None:
    """Parse a Split-Newick file and write it again."""
    result = _read(input)
    config = SplitNewickConfig(
        include_weights=not no_weights, include_confidences=confidences
    )
    text = to_split_newick(
        result.splits,
        result.taxon_label,
        ordering=_parse_cycle(cycle, result.ntax),
        config=config,
        diagnostics=result.diagnostics,
    )
    output.write(text + "\n")
    _report_diagnostics(result)


if __name__ == "__main__":
    main()
